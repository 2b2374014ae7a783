from functools import lru_cache

from imagesync.packages.registry import (
    ECRCredentialProvider,
    RegistryCatalog,
    SyncOptions,
    SyncPipeline,
    docker_engine,
)
from imagesync.settings import settings


@lru_cache
def sync_options_factory() -> SyncOptions:
    return SyncOptions(
        registry_host_template=settings.REGISTRY_HOST_TEMPLATE,
        registry_username=settings.REGISTRY_USERNAME,
        promotion_tag=settings.PROMOTION_TAG,
        tag_filter=settings.TAG_FILTER,
        page_size=settings.PAGE_SIZE,
        timeout_seconds=settings.SYNC_TIMEOUT_SECONDS or None,
    )


@lru_cache
def registry_catalog_factory() -> RegistryCatalog:
    return RegistryCatalog(options=sync_options_factory())


@lru_cache
def sync_pipeline_factory() -> SyncPipeline:
    """Factory function for the image promotion pipeline.

    The pipeline holds configuration only; credentials, boto3 sessions and
    Docker connections are created per invocation.
    """
    options = sync_options_factory()
    return SyncPipeline(
        credential_provider=ECRCredentialProvider(username=options.registry_username),
        engine_factory=docker_engine,
        options=options,
    )
