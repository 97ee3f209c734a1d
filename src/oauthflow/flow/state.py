"""Anti-CSRF ``state`` values for authorization requests."""

from __future__ import annotations

import hmac
from typing import Optional

from oauthflow.flow.pkce import RandomSource, b64url, random_bytes

STATE_BYTES = 20


def generate_state(source: Optional[RandomSource] = None) -> str:
    """Return 20 secure random bytes, base64url-encoded without padding."""
    return b64url(random_bytes(STATE_BYTES, source))


def states_match(expected: str, received: Optional[str]) -> bool:
    """Compare a stored state with the one echoed on the callback."""
    if received is None:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), received.encode("utf-8"))
