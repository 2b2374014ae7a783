"""Registry sync types and data structures.

This module contains shared types used across the registry package.
No dependencies on imagesync.* modules outside this package.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class RegistryCredential:
    """Short-lived registry login, minted per operation and never persisted.

    Attributes:
        identity: Registry username (for ECR always the configured "AWS")
        secret: Password decoded from the authorization token
        registry: Registry endpoint the token was issued for, if reported.
            Informational only; Docker receives the image reference host.
    """

    identity: str
    secret: str = field(repr=False)
    registry: Optional[str] = None


@dataclass(frozen=True)
class Repository:
    name: str


@dataclass(frozen=True)
class ImageReference:
    digest: str
    tag: str


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of a cursor-based listing.

    A next_cursor of None means there are no more pages.
    """

    items: list[T]
    next_cursor: Optional[str] = None


@dataclass(frozen=True)
class SyncOptions:
    """Configuration for listing and promoting images.

    Attributes:
        registry_host_template: Registry host without the account prefix,
            formatted with the region (e.g. "dkr.ecr.{region}.amazonaws.com")
        registry_username: Fixed identity used for registry logins
        promotion_tag: Tag the promoted image is pushed under
        tag_filter: Substring a tag must contain to be listed ("" keeps all)
        page_size: Maximum items requested per page
        timeout_seconds: Deadline for a single enumeration or promotion,
            None disables it
    """

    registry_host_template: str = "dkr.ecr.{region}.amazonaws.com"
    registry_username: str = "AWS"
    promotion_tag: str = "latest"
    tag_filter: str = "1.0.0"
    page_size: int = 10
    timeout_seconds: Optional[float] = 900.0

    def registry_host(self, account_id: str, region: str) -> str:
        host = self.registry_host_template.format(region=region)
        return f"{account_id}.{host}"

    def image_reference(
        self, account_id: str, region: str, repository_name: str, tag: str
    ) -> str:
        """Build the fully-qualified reference of an image.

        Example:
          656715373819.dkr.ecr.us-east-1.amazonaws.com/my-service:1.0.0-dev-2693
        """
        return f"{self.registry_host(account_id, region)}/{repository_name}:{tag}"


class Deadline:
    """Monotonic deadline shared by the steps of one invocation."""

    def __init__(self, seconds: Optional[float]):
        self.seconds = seconds
        self._expires_at = None if not seconds else time.monotonic() + seconds

    def remaining(self) -> Optional[float]:
        """Seconds left, None when unbounded. Never negative."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0


@dataclass(frozen=True)
class PromoteRequest:
    region: str
    repository_name: str
    tag: str
    account_id: str
    profile: Optional[str] = None


class SyncState(str, Enum):
    IDLE = "idle"
    AUTHENTICATING = "authenticating"
    PULLING = "pulling"
    TAGGING = "tagging"
    PUSHING = "pushing"
    DONE = "done"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (SyncState.DONE, SyncState.FAILED)
