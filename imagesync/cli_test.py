import json
from unittest.mock import patch

import pytest

from imagesync.cli import build_parser, main, run_command
from imagesync.packages.registry import (
    ConfigurationError,
    ImageReference,
    RegistryLookupError,
    Repository,
)

ACCOUNT_ID = "656715373819"


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_parser_promote_arguments():
    args = build_parser().parse_args(
        [
            "--region",
            "eu-west-1",
            "promote",
            "--repository",
            "web",
            "--tag",
            "1.0.0",
            "--account-id",
            ACCOUNT_ID,
        ]
    )

    assert args.command == "promote"
    assert args.region == "eu-west-1"
    assert args.repository == "web"
    assert args.tag == "1.0.0"
    assert args.account_id == ACCOUNT_ID


async def test_run_repositories(catalog, pipeline):
    catalog.list_repositories.return_value = [Repository("api")]
    args = build_parser().parse_args(["--region", "us-east-1", "repositories"])

    result = await run_command(args, catalog, pipeline)

    assert result == {"repositories": [{"repositoryName": "api"}]}


async def test_run_images(catalog, pipeline):
    catalog.list_images.return_value = [ImageReference(digest="sha256:a", tag="1.0.0")]
    args = build_parser().parse_args(["images", "--repository", "web"])

    result = await run_command(args, catalog, pipeline)

    assert result == {"imageIds": [{"imageDigest": "sha256:a", "imageTag": "1.0.0"}]}


async def test_run_promote(catalog, pipeline, image_engine):
    args = build_parser().parse_args(
        [
            "--region",
            "us-east-1",
            "promote",
            "--repository",
            "web",
            "--tag",
            "1.0.0",
            "--account-id",
            ACCOUNT_ID,
        ]
    )

    result = await run_command(args, catalog, pipeline)

    assert result["state"] == "done"
    assert result["destination"] == (
        f"{ACCOUNT_ID}.dkr.ecr.us-east-1.amazonaws.com/web:latest"
    )
    assert len(image_engine.calls) == 3


async def test_run_promote_without_account(catalog, pipeline, image_engine):
    args = build_parser().parse_args(
        ["promote", "--repository", "web", "--tag", "1.0.0", "--account-id", ""]
    )

    with pytest.raises(ConfigurationError):
        await run_command(args, catalog, pipeline)

    assert image_engine.calls == []


def test_main_prints_result(catalog, pipeline, capsys):
    catalog.list_repositories.return_value = [Repository("api"), Repository("web")]

    with (
        patch("imagesync.cli.configure_logging"),
        patch("imagesync.cli.registry_catalog_factory", return_value=catalog),
        patch("imagesync.cli.sync_pipeline_factory", return_value=pipeline),
    ):
        exit_code = main(["--region", "us-east-1", "repositories"])

    assert exit_code == 0
    assert json.loads(capsys.readouterr().out) == {
        "repositories": [{"repositoryName": "api"}, {"repositoryName": "web"}]
    }


def test_main_registry_error(catalog, pipeline, capsys):
    catalog.list_images.side_effect = RegistryLookupError("no such repository")

    with (
        patch("imagesync.cli.configure_logging"),
        patch("imagesync.cli.registry_catalog_factory", return_value=catalog),
        patch("imagesync.cli.sync_pipeline_factory", return_value=pipeline),
    ):
        exit_code = main(["images", "--repository", "missing"])

    assert exit_code == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    error = json.loads(captured.err.strip().splitlines()[-1])
    assert error["stage"] == "enumeration"
