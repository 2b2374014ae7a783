from typing import Annotated

from fastapi import Depends

from imagesync.factories import (
    registry_catalog_factory,
    sync_pipeline_factory,
)
from imagesync.packages.registry import RegistryCatalog, SyncPipeline


def get_registry_catalog() -> RegistryCatalog:
    return registry_catalog_factory()


def get_sync_pipeline() -> SyncPipeline:
    return sync_pipeline_factory()


CatalogDep = Annotated[RegistryCatalog, Depends(get_registry_catalog)]
PipelineDep = Annotated[SyncPipeline, Depends(get_sync_pipeline)]
