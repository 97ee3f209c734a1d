"""PKCE code verifier and S256 challenge (:rfc:`7636`).

A :class:`CodeVerifier` is 32 bytes from the operating system's secure random
source, base64url-encoded without padding (43 characters). Its challenge is
the SHA-256 digest of that *encoded* text, encoded the same way.

The random source can be swapped through the ``source`` argument so tests can
observe how many bytes are requested; production code always uses
:func:`secrets.token_bytes`.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
from dataclasses import dataclass
from typing import Callable, Optional

from oauthflow.exceptions import RandomnessUnavailable

VERIFIER_BYTES = 32

RandomSource = Callable[[int], bytes]
"""A callable returning *n* unpredictable bytes."""


def b64url(data: bytes) -> str:
    """Base64url-encode *data* without ``=`` padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def random_bytes(n: int, source: Optional[RandomSource] = None) -> bytes:
    """Draw *n* bytes from *source* (default :func:`secrets.token_bytes`).

    Raises:
        RandomnessUnavailable: If the source fails or returns short.
    """
    draw = source or secrets.token_bytes
    try:
        data = draw(n)
    except (OSError, NotImplementedError) as exc:
        raise RandomnessUnavailable(f"Secure random source failed: {exc}") from exc
    if len(data) != n:
        raise RandomnessUnavailable(
            f"Secure random source returned {len(data)} bytes, expected {n}"
        )
    return data


def code_challenge(verifier: str) -> str:
    """Return the S256 challenge for an encoded *verifier* string."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return b64url(digest)


@dataclass(frozen=True)
class CodeVerifier:
    """An encoded PKCE code verifier."""

    value: str

    def challenge(self) -> str:
        return code_challenge(self.value)

    def __str__(self) -> str:
        return self.value


def create_verifier(source: Optional[RandomSource] = None) -> CodeVerifier:
    """Create a new code verifier from 32 secure random bytes."""
    return CodeVerifier(b64url(random_bytes(VERIFIER_BYTES, source)))
