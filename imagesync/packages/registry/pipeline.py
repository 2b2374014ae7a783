"""Image promotion pipeline.

Promotes an image by pulling `{repository}:{tag}`, tagging it with the
promotion tag in the same repository and pushing the result:

    IDLE -> AUTHENTICATING -> PULLING -> TAGGING -> PUSHING -> DONE

Any failure moves the run to FAILED. Completed steps are not undone: a pulled
image or a local tag left behind is harmless, and re-running the pipeline with
the same inputs overwrites instead of failing.
"""

import asyncio
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import AsyncIterator, Optional

import structlog

from .credentials import CredentialProvider
from .engine import ImageEngine, ImageEngineFactory, ProgressEvent
from .errors import AuthTokenError, RegistrySyncError, TransferError
from .token_codec import registry_auth
from .types import Deadline, PromoteRequest, RegistryCredential, SyncOptions, SyncState

logger = structlog.stdlib.get_logger(__name__)

# Allowed transitions; FAILED is reachable from every non-terminal state
_NEXT_STATE = {
    SyncState.IDLE: SyncState.AUTHENTICATING,
    SyncState.AUTHENTICATING: SyncState.PULLING,
    SyncState.PULLING: SyncState.TAGGING,
    SyncState.TAGGING: SyncState.PUSHING,
    SyncState.PUSHING: SyncState.DONE,
}


@dataclass
class SyncRun:
    """Record of one pipeline invocation."""

    request: PromoteRequest
    source_reference: str
    destination_reference: str
    state: SyncState = SyncState.IDLE
    history: list[SyncState] = field(default_factory=lambda: [SyncState.IDLE])
    error: Optional[RegistrySyncError] = None

    def advance(self, state: SyncState) -> None:
        if self.state.terminal:
            raise RuntimeError(f"run already finished in state {self.state.value}")
        if state != SyncState.FAILED and _NEXT_STATE[self.state] != state:
            raise RuntimeError(
                f"invalid transition {self.state.value} -> {state.value}"
            )
        self.state = state
        self.history.append(state)

    def fail(self, error: RegistrySyncError) -> None:
        self.error = error
        self.advance(SyncState.FAILED)

    @property
    def succeeded(self) -> bool:
        return self.state == SyncState.DONE

    def raise_for_state(self) -> None:
        """Re-raise the error of a failed run."""
        if self.error is not None:
            raise self.error


class SyncPipeline:
    """Pull -> tag -> push promotion of an image within one repository."""

    def __init__(
        self,
        credential_provider: CredentialProvider,
        engine_factory: ImageEngineFactory,
        options: SyncOptions,
    ):
        self.credential_provider = credential_provider
        self.engine_factory = engine_factory
        self.options = options

    def new_run(self, request: PromoteRequest) -> SyncRun:
        return SyncRun(
            request=request,
            source_reference=self.options.image_reference(
                request.account_id,
                request.region,
                request.repository_name,
                request.tag,
            ),
            destination_reference=self.options.image_reference(
                request.account_id,
                request.region,
                request.repository_name,
                self.options.promotion_tag,
            ),
        )

    async def promote(self, request: PromoteRequest) -> SyncRun:
        """Run the pipeline to completion.

        Registry errors do not propagate; they are stored on the returned run,
        whose state is DONE or FAILED. Use `SyncRun.raise_for_state()` to turn
        a failed run back into an exception.
        """
        run = self.new_run(request)
        deadline = Deadline(self.options.timeout_seconds)
        log = logger.bind(
            repository=request.repository_name,
            source=run.source_reference,
            destination=run.destination_reference,
        )

        try:
            run.advance(SyncState.AUTHENTICATING)
            credential = await self._with_deadline(
                self.credential_provider.acquire_credential(
                    request.region, request.profile
                ),
                deadline,
                step="authenticate",
            )

            async with self.engine_factory() as engine:
                await self._transfer(run, engine, credential, deadline)

        except RegistrySyncError as e:
            log.error(
                "Image promotion failed",
                state=run.state.value,
                stage=e.stage,
                error=e.message,
            )
            run.fail(e)
            return run

        log.info("Image promotion finished")
        return run

    async def _transfer(
        self,
        run: SyncRun,
        engine: ImageEngine,
        credential: RegistryCredential,
        deadline: Deadline,
    ) -> None:
        run.advance(SyncState.PULLING)
        await self._with_deadline(
            self._drain(
                engine.pull(run.source_reference, registry_auth(credential)),
                step="pull",
            ),
            deadline,
            step="pull",
        )

        run.advance(SyncState.TAGGING)
        await self._with_deadline(
            engine.tag(run.source_reference, run.destination_reference),
            deadline,
            step="tag",
        )

        run.advance(SyncState.PUSHING)
        await self._with_deadline(
            self._drain(
                engine.push(run.destination_reference, registry_auth(credential)),
                step="push",
            ),
            deadline,
            step="push",
        )

        run.advance(SyncState.DONE)

    @staticmethod
    async def _drain(events: AsyncIterator[ProgressEvent], step: str) -> int:
        """Consume a progress stream to the end, relaying it to the log."""
        count = 0
        async with aclosing(events):
            async for event in events:
                count += 1
                if event.get("error"):
                    raise TransferError(str(event["error"]), step=step)
                logger.debug(
                    "Image progress",
                    step=step,
                    layer=event.get("id"),
                    status=event.get("status"),
                    progress=event.get("progress"),
                )
        return count

    @staticmethod
    async def _with_deadline(awaitable, deadline: Deadline, step: str):
        try:
            async with asyncio.timeout(deadline.remaining()):
                return await awaitable
        except TimeoutError as e:
            if step == "authenticate":
                raise AuthTokenError("timed out acquiring registry credential") from e
            raise TransferError("deadline exceeded", step=step) from e
