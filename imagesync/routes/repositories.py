"""ECR repository routes.

Thin adapters over the registry package: list repositories, list promotable
images of a repository, and promote an image to the promotion tag.
"""

import structlog
from fastapi import APIRouter, Response, status
from pydantic import BaseModel, ConfigDict, Field

from imagesync.deps.registry import CatalogDep, PipelineDep
from imagesync.packages.registry import ConfigurationError, PromoteRequest
from imagesync.settings import settings

logger = structlog.stdlib.get_logger(__name__)

router = APIRouter(prefix="/repo", tags=["Repositories"])


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RetrieveImagesRequest(CamelModel):
    region: str = Field(min_length=1)
    repository_name: str = Field(alias="repositoryName", min_length=1)


class RetagImagesRequest(CamelModel):
    region: str = Field(min_length=1)
    repository_name: str = Field(alias="repositoryName", min_length=1)
    new_latest_tag: str = Field(alias="newLatestTag", min_length=1)
    account_id: str | None = Field(default=None, alias="accountID")


class ImageId(CamelModel):
    image_digest: str = Field(alias="imageDigest")
    image_tag: str = Field(alias="imageTag")


class ImageIds(CamelModel):
    image_ids: list[ImageId] = Field(alias="imageIds")


class RepositoryItem(CamelModel):
    repository_name: str = Field(alias="repositoryName")


class Repositories(CamelModel):
    repositories: list[RepositoryItem]


@router.post("/images", response_model=ImageIds)
async def retrieve_images(body: RetrieveImagesRequest, catalog: CatalogDep):
    """List tagged images matching the tag filter, newest tag first."""
    images = await catalog.list_images(
        region=body.region,
        repository_name=body.repository_name,
        profile=settings.AWS_PROFILE,
    )
    return ImageIds(
        image_ids=[
            ImageId(image_digest=image.digest, image_tag=image.tag)
            for image in images
        ]
    )


@router.get("/{region}", response_model=Repositories)
async def get_repositories(region: str, catalog: CatalogDep):
    """List all repositories of the region in ascending name order."""
    repositories = await catalog.list_repositories(
        region=region, profile=settings.AWS_PROFILE
    )
    return Repositories(
        repositories=[
            RepositoryItem(repository_name=repository.name)
            for repository in repositories
        ]
    )


@router.post("/retag", status_code=status.HTTP_204_NO_CONTENT)
async def retag_image(body: RetagImagesRequest, pipeline: PipelineDep):
    """Promote `repositoryName:newLatestTag` to the promotion tag.

    Pulls the image, tags it and pushes the new tag. Returns 204 on success;
    failures are rendered by the registry error handler.
    """
    account_id = body.account_id or settings.AWS_ACCOUNT_ID
    if not account_id:
        raise ConfigurationError("accountID is required when AWS_ACCOUNT_ID is unset")

    run = await pipeline.promote(
        PromoteRequest(
            region=body.region,
            repository_name=body.repository_name,
            tag=body.new_latest_tag,
            account_id=account_id,
            profile=settings.AWS_PROFILE,
        )
    )
    run.raise_for_state()

    logger.info(
        "Image retagged",
        source=run.source_reference,
        destination=run.destination_reference,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
