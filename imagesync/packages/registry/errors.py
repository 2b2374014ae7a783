"""Error taxonomy for registry synchronization.

Every error raised by the registry package derives from RegistrySyncError and
names the stage it failed in, so that the boundary owning the request (HTTP
handler or CLI command) can decide the user-visible response.
"""

from typing import Optional


class RegistrySyncError(Exception):
    """Base class for all registry synchronization failures."""

    title = "Registry sync error"
    stage = "unknown"
    status_code = 500

    def __init__(self, message: str, *, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if stage is not None:
            self.stage = stage

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "description": self.message,
            "stage": self.stage,
        }


class ConfigurationError(RegistrySyncError):
    """Identity or region configuration cannot be resolved."""

    title = "Configuration error"
    stage = "configuration"
    status_code = 400


class AuthTokenError(RegistrySyncError):
    """Authorization data is missing, ambiguous or malformed."""

    title = "Authorization token error"
    stage = "authentication"
    status_code = 400


class RegistryLookupError(RegistrySyncError):
    """A list operation against the registry control plane failed."""

    title = "Registry lookup error"
    stage = "enumeration"

    def __init__(self, message: str, *, not_found: bool = False):
        super().__init__(message)
        self.not_found = not_found

    @property
    def status_code(self) -> int:  # type: ignore[override]
        return 404 if self.not_found else 502


class TransferError(RegistrySyncError):
    """Pull, tag or push against the image engine failed."""

    title = "Image transfer error"
    status_code = 502

    def __init__(self, message: str, *, step: str):
        super().__init__(f"{step} failed: {message}", stage=step)
        self.step = step
