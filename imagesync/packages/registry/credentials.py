"""Registry credential providers.

This module provides the CredentialProvider protocol and the ECR
implementation, which trades ambient AWS configuration for a short-lived
registry login.
"""

import asyncio
from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol

import boto3
import structlog
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    InvalidConfigError,
    NoCredentialsError,
    NoRegionError,
    PartialCredentialsError,
    ProfileNotFound,
)

from .errors import AuthTokenError, ConfigurationError
from .token_codec import decode_authorization_token
from .types import RegistryCredential

if TYPE_CHECKING:
    from mypy_boto3_ecr.client import ECRClient

logger = structlog.stdlib.get_logger(__name__)

SessionFactory = Callable[[str, Optional[str]], boto3.Session]

# Raised by botocore while resolving the identity source
CONFIGURATION_ERRORS = (
    ProfileNotFound,
    NoRegionError,
    NoCredentialsError,
    PartialCredentialsError,
    InvalidConfigError,
)


def default_session_factory(region: str, profile: Optional[str]) -> boto3.Session:
    return boto3.Session(region_name=region, profile_name=profile or None)


def open_ecr_client(
    region: str,
    profile: Optional[str] = None,
    session_factory: SessionFactory = default_session_factory,
) -> "ECRClient":
    """Load AWS configuration for an identity source and create an ECR client.

    Raises:
        ConfigurationError: if the region is empty or the profile/region
            cannot be resolved
    """
    if not region:
        raise ConfigurationError("region must not be empty")

    try:
        session = session_factory(region, profile)
        return session.client("ecr")
    except BotoCoreError as e:
        logger.error(
            "Failed to load aws config",
            region=region,
            profile=profile,
            error=str(e),
        )
        raise ConfigurationError(f"failed to load aws config: {e}") from e


class CredentialProvider(Protocol):
    """Protocol for registry credential providers."""

    async def acquire_credential(
        self, region: str, profile: Optional[str] = None
    ) -> RegistryCredential:
        """Mint a fresh registry credential for the region.

        Raises:
            ConfigurationError: if the identity source cannot be resolved
            AuthTokenError: if the registry returns unusable authorization data
        """
        ...


class ECRCredentialProvider:
    """Credential provider backed by ECR GetAuthorizationToken."""

    def __init__(
        self,
        username: str = "AWS",
        session_factory: SessionFactory = default_session_factory,
    ):
        """Initialize the provider.

        Args:
            username: Identity used for registry logins. ECR tokens decode to
                "AWS:<password>"; the decoded principal is not used.
            session_factory: Builds a boto3 session from (region, profile)
        """
        self.username = username
        self.session_factory = session_factory

    async def acquire_credential(
        self, region: str, profile: Optional[str] = None
    ) -> RegistryCredential:
        return await asyncio.to_thread(self._acquire_credential, region, profile)

    def _acquire_credential(
        self, region: str, profile: Optional[str]
    ) -> RegistryCredential:
        ecr_client = open_ecr_client(region, profile, self.session_factory)

        try:
            response = ecr_client.get_authorization_token()
        except ClientError as e:
            error_code = e.response["Error"]["Code"]
            logger.error(
                "Failed to retrieve ecr token",
                region=region,
                error_code=error_code,
            )
            raise AuthTokenError(f"failed to retrieve ecr token: {e}") from e
        except BotoCoreError as e:
            if isinstance(e, CONFIGURATION_ERRORS):
                raise ConfigurationError(f"failed to load aws config: {e}") from e
            logger.error("Failed to retrieve ecr token", region=region, error=str(e))
            raise AuthTokenError(f"failed to retrieve ecr token: {e}") from e

        auth_data = self._single_authorization_entry(response)

        _principal, secret = decode_authorization_token(auth_data["authorizationToken"])

        logger.debug(
            "Retrieved ECR authorization token",
            region=region,
            registry=auth_data.get("proxyEndpoint"),
        )
        return RegistryCredential(
            identity=self.username,
            secret=secret,
            registry=auth_data.get("proxyEndpoint"),
        )

    @staticmethod
    def _single_authorization_entry(response: dict[str, Any]) -> dict[str, Any]:
        entries = response.get("authorizationData") or []

        if len(entries) == 0:
            raise AuthTokenError("ecr token is empty")
        if len(entries) > 1:
            # One entry per registry; never choose between them
            raise AuthTokenError(f"multiple ecr tokens: length: {len(entries)}")
        if not entries[0].get("authorizationToken"):
            raise AuthTokenError("ecr token is nil")

        return entries[0]
