"""Registry synchronization package.

This package lists ECR repositories and images under pagination and promotes
images through a pull -> tag -> push pipeline with freshly minted credentials.
"""

from .catalog import RegistryCatalog, sort_images, sort_repositories, tag_contains
from .credentials import CredentialProvider, ECRCredentialProvider, open_ecr_client
from .engine import (
    AioDockerImageEngine,
    ImageEngine,
    ImageEngineFactory,
    docker_engine,
)
from .errors import (
    AuthTokenError,
    ConfigurationError,
    RegistryLookupError,
    RegistrySyncError,
    TransferError,
)
from .pagination import enumerate_pages
from .pipeline import SyncPipeline, SyncRun
from .token_codec import decode_authorization_token, registry_auth
from .types import (
    Deadline,
    ImageReference,
    Page,
    PromoteRequest,
    RegistryCredential,
    Repository,
    SyncOptions,
    SyncState,
)

__all__ = [
    # Protocols
    "CredentialProvider",
    "ImageEngine",
    "ImageEngineFactory",
    # Implementations
    "ECRCredentialProvider",
    "AioDockerImageEngine",
    "RegistryCatalog",
    "SyncPipeline",
    "docker_engine",
    # Types
    "Deadline",
    "ImageReference",
    "Page",
    "PromoteRequest",
    "RegistryCredential",
    "Repository",
    "SyncOptions",
    "SyncRun",
    "SyncState",
    # Errors
    "RegistrySyncError",
    "ConfigurationError",
    "AuthTokenError",
    "RegistryLookupError",
    "TransferError",
    # Utilities
    "decode_authorization_token",
    "enumerate_pages",
    "open_ecr_client",
    "registry_auth",
    "sort_images",
    "sort_repositories",
    "tag_contains",
]
