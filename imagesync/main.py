import sentry_sdk
import structlog
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from imagesync.packages.registry import RegistrySyncError
from imagesync.routes import health, repositories
from imagesync.settings import settings
from imagesync.utils.logging import setup_logger

logger = structlog.stdlib.get_logger(__name__)


def init_sentry():
    if settings.SENTRY_DSN:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            traces_sample_rate=0.01,
            send_default_pii=False,
            environment=settings.SENTRY_ENVIRONMENT,
        )


init_sentry()
app = FastAPI(title="imagesync")
setup_logger(app)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "title": "Validation error",
            "description": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(RegistrySyncError)
async def registry_exception_handler(request: Request, exc: RegistrySyncError):
    logger.warning(
        "Registry request failed",
        path=request.url.path,
        stage=exc.stage,
        error=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"title": "Internal Server Error", "description": str(exc)},
    )


app.include_router(health.router)
app.include_router(repositories.router)
