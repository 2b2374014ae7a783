from unittest.mock import patch

import pytest
from pydantic import ValidationError

from imagesync.factories import sync_options_factory
from imagesync.settings import Settings, settings


def test_secret_file(monkeypatch, tmp_path):
    secret = tmp_path / "aws_account_id"
    secret.write_text("656715373819\n")
    monkeypatch.setenv("AWS_ACCOUNT_ID_FILE", str(secret))
    monkeypatch.setenv("AWS_ACCOUNT_ID", "111111111111")

    assert Settings().AWS_ACCOUNT_ID == "656715373819"


def test_missing_secret_file_falls_back(monkeypatch, tmp_path):
    monkeypatch.setenv("PROMOTION_TAG_FILE", str(tmp_path / "missing"))
    monkeypatch.setenv("PROMOTION_TAG", "stable")

    assert Settings().PROMOTION_TAG == "stable"


def test_host_template_requires_region():
    with pytest.raises(ValidationError):
        Settings(REGISTRY_HOST_TEMPLATE="dkr.ecr.amazonaws.com")


@pytest.mark.parametrize("page_size", [0, 1001])
def test_page_size_bounds(page_size):
    with pytest.raises(ValidationError):
        Settings(PAGE_SIZE=page_size)


def test_sync_options_factory():
    sync_options_factory.cache_clear()
    try:
        with (
            patch.object(settings, "PROMOTION_TAG", "stable"),
            patch.object(settings, "SYNC_TIMEOUT_SECONDS", 0),
        ):
            options = sync_options_factory()
    finally:
        sync_options_factory.cache_clear()

    assert options.promotion_tag == "stable"
    assert options.timeout_seconds is None
