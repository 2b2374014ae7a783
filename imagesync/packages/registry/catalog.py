"""ECR repository and image listings.

Specializes the generic enumerator for the two ECR list operations and
applies the sort rules: repositories ascending by name, images descending by
raw tag string.
"""

import asyncio
from typing import TYPE_CHECKING, Any, Callable, Optional

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from .credentials import (
    CONFIGURATION_ERRORS,
    SessionFactory,
    default_session_factory,
    open_ecr_client,
)
from .errors import ConfigurationError, RegistryLookupError
from .pagination import enumerate_pages
from .types import Deadline, ImageReference, Page, Repository, SyncOptions

if TYPE_CHECKING:
    from mypy_boto3_ecr.client import ECRClient

logger = structlog.stdlib.get_logger(__name__)

NOT_FOUND_CODES = ("RepositoryNotFoundException", "RegistryNotFoundException")


def tag_contains(substring: str) -> Callable[[ImageReference], bool]:
    """Filter keeping images whose tag contains `substring`."""

    def keep(image: ImageReference) -> bool:
        return bool(image.tag) and substring in image.tag

    return keep


def sort_repositories(repositories: list[Repository]) -> list[Repository]:
    return sorted(repositories, key=lambda repository: repository.name)


def sort_images(images: list[ImageReference]) -> list[ImageReference]:
    # Lexicographic on the raw tag, newest-looking first. Not semver aware.
    return sorted(images, key=lambda image: image.tag, reverse=True)


def _call_ecr(operation: Callable[..., dict[str, Any]], **kwargs) -> dict[str, Any]:
    try:
        return operation(**kwargs)
    except ClientError as e:
        error_code = e.response["Error"]["Code"]
        logger.error(
            "ECR list operation failed",
            operation=getattr(operation, "__name__", "ecr"),
            error_code=error_code,
        )
        raise RegistryLookupError(
            str(e), not_found=error_code in NOT_FOUND_CODES
        ) from e
    except BotoCoreError as e:
        if isinstance(e, CONFIGURATION_ERRORS):
            raise ConfigurationError(f"failed to load aws config: {e}") from e
        logger.error(
            "ECR list operation failed",
            operation=getattr(operation, "__name__", "ecr"),
            error=str(e),
        )
        raise RegistryLookupError(str(e)) from e


class RegistryCatalog:
    """Lists repositories and tagged images of an ECR registry."""

    def __init__(
        self,
        options: SyncOptions,
        session_factory: SessionFactory = default_session_factory,
    ):
        self.options = options
        self.session_factory = session_factory

    async def _open_client(
        self, region: str, profile: Optional[str], deadline: Deadline
    ) -> "ECRClient":
        try:
            async with asyncio.timeout(deadline.remaining()):
                return await asyncio.to_thread(
                    open_ecr_client, region, profile, self.session_factory
                )
        except TimeoutError as e:
            raise RegistryLookupError("listing timed out") from e

    def _page_args(self, cursor: Optional[str]) -> dict[str, Any]:
        args: dict[str, Any] = {"maxResults": self.options.page_size}
        if cursor is not None:
            args["nextToken"] = cursor
        return args

    async def list_repositories(
        self, region: str, profile: Optional[str] = None
    ) -> list[Repository]:
        """List every repository in the region, sorted ascending by name."""
        deadline = Deadline(self.options.timeout_seconds)
        ecr_client = await self._open_client(region, profile, deadline)

        async def list_page(cursor: Optional[str]) -> Page[Repository]:
            response = await asyncio.to_thread(
                _call_ecr, ecr_client.describe_repositories, **self._page_args(cursor)
            )
            return Page(
                items=[
                    Repository(name=repository["repositoryName"])
                    for repository in response.get("repositories", [])
                ],
                next_cursor=response.get("nextToken"),
            )

        repositories = await enumerate_pages(list_page, deadline=deadline)
        logger.info("Listed repositories", region=region, count=len(repositories))
        return sort_repositories(repositories)

    async def list_images(
        self, region: str, repository_name: str, profile: Optional[str] = None
    ) -> list[ImageReference]:
        """List tagged images matching the tag filter, sorted descending by tag."""
        deadline = Deadline(self.options.timeout_seconds)
        ecr_client = await self._open_client(region, profile, deadline)

        async def list_page(cursor: Optional[str]) -> Page[ImageReference]:
            response = await asyncio.to_thread(
                _call_ecr,
                ecr_client.list_images,
                repositoryName=repository_name,
                filter={"tagStatus": "TAGGED"},
                **self._page_args(cursor),
            )
            return Page(
                items=[
                    ImageReference(
                        digest=image_id.get("imageDigest", ""),
                        tag=image_id.get("imageTag", ""),
                    )
                    for image_id in response.get("imageIds", [])
                ],
                next_cursor=response.get("nextToken"),
            )

        images = await enumerate_pages(
            list_page, keep=tag_contains(self.options.tag_filter), deadline=deadline
        )
        logger.info(
            "Listed images",
            region=region,
            repository=repository_name,
            tag_filter=self.options.tag_filter,
            count=len(images),
        )
        return sort_images(images)
