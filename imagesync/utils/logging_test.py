import logging

from httpx import AsyncClient

from imagesync.utils.logging import LogFormats, configure_logging, redact_secrets


def test_redact_secrets():
    event = redact_secrets(
        None, "info", {"event": "Pulling", "password": "pw", "registry": "r"}
    )

    assert event == {"event": "Pulling", "password": "***", "registry": "r"}


def test_configure_logging_quiets_wire_loggers():
    configure_logging(log_format=LogFormats.CONSOLE, log_level="debug")

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("botocore").level == logging.WARNING
    assert len(logging.getLogger().handlers) == 1


async def test_process_time_header(client: AsyncClient):
    response = await client.get("/ping")

    assert float(response.headers["X-Process-Time"]) >= 0
    assert response.headers["X-Request-ID"]
