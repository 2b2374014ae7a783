"""structlog configuration shared by the HTTP service and the CLI.

Everything is rendered by one handler on the stdlib root logger, so boto3,
aiodocker and uvicorn records come out in the same format as ours.
"""

import logging
import time
from enum import Enum
from typing import Any

import structlog
from asgi_correlation_id import CorrelationIdMiddleware
from asgi_correlation_id.context import correlation_id
from fastapi import FastAPI, Request, Response
from pydantic_settings import BaseSettings
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from structlog.typing import EventDict, Processor, WrappedLogger

# Event keys whose values are replaced before rendering
SENSITIVE_KEYS = frozenset({"password", "secret", "auth", "authorization", "token"})

# Libraries that log request/response bodies at DEBUG
NOISY_LOGGERS = ("botocore", "boto3", "urllib3", "aiodocker")


class LogFormats(str, Enum):
    JSON = "json"
    CONSOLE = "console"


class LogSettings(BaseSettings):
    LOG_FORMAT: LogFormats = LogFormats.JSON
    LOG_LEVEL: str = "INFO"


def redact_secrets(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    for key in SENSITIVE_KEYS.intersection(event_dict):
        event_dict[key] = "***"
    return event_dict


def _shared_processors(log_format: LogFormats) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(),
        redact_secrets,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if log_format == LogFormats.JSON:
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                [
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            )
        )
        processors.append(structlog.processors.format_exc_info)
    return processors


def configure_logging(
    log_format: LogFormats | None = None, log_level: str | None = None
) -> None:
    """Configure structlog and the stdlib root logger.

    Arguments override LOG_FORMAT / LOG_LEVEL from the environment.
    """
    log_settings = LogSettings()
    log_format = log_format or log_settings.LOG_FORMAT
    log_level = (log_level or log_settings.LOG_LEVEL).upper()

    renderer: Processor
    if log_format == LogFormats.CONSOLE:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    shared = _shared_processors(log_format)
    structlog.configure(
        processors=shared + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, root_logger.level))


def setup_logger(app: FastAPI):
    configure_logging()

    # uvicorn's own handlers would print a second, unstructured copy
    for name in ("uvicorn", "uvicorn.error"):
        logging.getLogger(name).handlers.clear()
        logging.getLogger(name).propagate = True

    access = logging.getLogger("uvicorn.access")
    access.handlers.clear()
    access.propagate = False

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(CorrelationIdMiddleware)


access_logger = structlog.stdlib.get_logger("imagesync.access")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds the correlation id to the log context and writes the access log."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=correlation_id.get())

        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception:
            access_logger.exception("Unhandled error", path=request.url.path)
            raise
        finally:
            duration = time.perf_counter() - started
            fields: dict[str, Any] = {
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "duration": round(duration, 4),
            }
            if request.url.query:
                fields["query"] = request.url.query
            access_logger.info("Request handled", **fields)

        response.headers["X-Process-Time"] = str(duration)
        return response
