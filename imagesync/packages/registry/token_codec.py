"""Encoding and decoding of registry credentials.

ECR hands out a single base64url token holding "principal:secret". The Docker
engine expects the opposite direction: a JSON auth config attached to every pull
and push.
"""

import base64
import binascii

from .errors import AuthTokenError
from .types import RegistryCredential


def _b64url_decode(raw: str) -> bytes:
    padded = raw + "=" * (-len(raw) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def decode_authorization_token(raw_token: str) -> tuple[str, str]:
    """Split a base64url authorization token into (principal, secret).

    Raises:
        AuthTokenError: if the token is not valid base64url/UTF-8 or does not
            contain exactly one ":" separator
    """
    try:
        decoded = _b64url_decode(raw_token).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise AuthTokenError(f"failed to decode ecr token: {e}") from e

    parts = decoded.split(":")
    if len(parts) != 2:
        raise AuthTokenError("unexpected ecr token format")

    principal, secret = parts
    return principal, secret


def registry_auth(credential: RegistryCredential) -> dict[str, str]:
    """Package a credential as a Docker registry auth config.

    A new dict is returned on every call so that no auth object is shared
    between engine operations. The server address is left out: aiodocker sets
    it from the host of the image reference being pulled or pushed.
    """
    return {
        "username": credential.identity,
        "password": credential.secret,
    }

