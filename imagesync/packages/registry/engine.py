"""Image engine adapters.

The image engine is the boundary through which pull, tag and push are issued.
Pull and push return progress event streams which callers must drain to the
end and close.
"""

from contextlib import aclosing, asynccontextmanager
from typing import Any, AsyncContextManager, AsyncIterator, Callable, Protocol

import aiodocker
import structlog
from aiodocker.exceptions import DockerError

from .errors import TransferError

logger = structlog.stdlib.get_logger(__name__)

ProgressEvent = dict[str, Any]


class ImageEngine(Protocol):
    """Protocol for image engine implementations."""

    def pull(
        self, reference: str, auth: dict[str, str]
    ) -> AsyncIterator[ProgressEvent]:
        """Pull a fully-qualified reference, yielding progress events.

        Raises:
            TransferError: if the engine rejects the pull
        """
        ...

    async def tag(self, source: str, destination: str) -> None:
        """Point the fully-qualified `destination` at the local `source` image.

        Raises:
            TransferError: if the engine rejects the tag
        """
        ...

    def push(
        self, reference: str, auth: dict[str, str]
    ) -> AsyncIterator[ProgressEvent]:
        """Push a fully-qualified reference, yielding progress events.

        Raises:
            TransferError: if the engine rejects the push
        """
        ...


ImageEngineFactory = Callable[[], AsyncContextManager[ImageEngine]]


def split_reference(reference: str) -> tuple[str, str]:
    """Split "host/repository:tag" into ("host/repository", "tag")."""
    repository, sep, tag = reference.rpartition(":")
    if not sep or "/" in tag:
        return reference, "latest"
    return repository, tag


class AioDockerImageEngine:
    """Image engine backed by the local Docker daemon."""

    def __init__(self, docker: aiodocker.Docker):
        self.docker = docker

    async def pull(
        self, reference: str, auth: dict[str, str]
    ) -> AsyncIterator[ProgressEvent]:
        logger.info("Pulling image", reference=reference)
        try:
            events = self.docker.images.pull(reference, auth=auth, stream=True)
        except ValueError as e:
            # aiodocker rejects auth for references without a registry host
            raise TransferError(str(e), step="pull") from e

        async with aclosing(_relay(events, step="pull")) as relayed:
            async for event in relayed:
                yield event

    async def tag(self, source: str, destination: str) -> None:
        repository, tag = split_reference(destination)
        logger.info("Tagging image", source=source, destination=destination)
        try:
            await self.docker.images.tag(source, repository, tag=tag)
        except DockerError as e:
            raise TransferError(e.message, step="tag") from e

    async def push(
        self, reference: str, auth: dict[str, str]
    ) -> AsyncIterator[ProgressEvent]:
        repository, tag = split_reference(reference)
        logger.info("Pushing image", reference=reference)
        try:
            events = self.docker.images.push(
                repository, auth=auth, tag=tag, stream=True
            )
        except ValueError as e:
            raise TransferError(str(e), step="push") from e

        async with aclosing(_relay(events, step="push")) as relayed:
            async for event in relayed:
                yield event


async def _relay(
    events: AsyncIterator[ProgressEvent], step: str
) -> AsyncIterator[ProgressEvent]:
    async with aclosing(events):
        try:
            async for event in events:
                yield event
        except DockerError as e:
            raise TransferError(e.message, step=step) from e


@asynccontextmanager
async def docker_engine() -> AsyncIterator[AioDockerImageEngine]:
    """Open a Docker connection for one pipeline invocation."""
    try:
        docker = aiodocker.Docker()
    except (DockerError, ValueError) as e:
        raise TransferError(
            f"failed to create docker client: {e}", step="connect"
        ) from e

    async with docker:
        yield AioDockerImageEngine(docker)
