from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from imagesync.deps.registry import get_registry_catalog, get_sync_pipeline
from imagesync.main import app
from imagesync.packages.registry import RegistryCatalog, SyncOptions, SyncPipeline
from imagesync.packages.registry.tests.fakes import (
    FakeCredentialProvider,
    FakeImageEngine,
    engine_factory_for,
)


@pytest.fixture
def catalog():
    """Catalog double; tests set return values on its list methods."""
    catalog = MagicMock(spec=RegistryCatalog)
    catalog.list_repositories = AsyncMock(return_value=[])
    catalog.list_images = AsyncMock(return_value=[])
    return catalog


@pytest.fixture
def image_engine():
    return FakeImageEngine()


@pytest.fixture
def credential_provider():
    return FakeCredentialProvider()


@pytest.fixture
def pipeline(image_engine, credential_provider):
    return SyncPipeline(
        credential_provider=credential_provider,
        engine_factory=engine_factory_for(image_engine),
        options=SyncOptions(),
    )


@pytest.fixture
async def dependency_overrides(catalog, pipeline):
    app.dependency_overrides[get_registry_catalog] = lambda: catalog
    app.dependency_overrides[get_sync_pipeline] = lambda: pipeline
    yield
    app.dependency_overrides.clear()


@pytest.fixture
async def client(dependency_overrides):
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://localhost"
    ) as ac:
        yield ac
