"""Exception hierarchy for oauthflow.

All exceptions inherit from :class:`OAuthFlowError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`oauthflow.exit_codes`.
The top-level error handler in :func:`oauthflow.app.main` catches
``OAuthFlowError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Errors fall into two groups. *Orchestration* errors abort a whole batch of
login flows before or during setup. *Per-flow* errors (:class:`FlowError`
and :class:`TokenEndpointError` subclasses) are confined to the result of the
flow that produced them.

Subclass hierarchy::

    OAuthFlowError               (exit 1)
    +-- RandomnessUnavailable    (exit 1)
    +-- ConfigError              (exit 2)
    |   +-- InvalidEndpointURL   (exit 2)
    +-- ListenerError            (exit 4)
    |   +-- NoPortAvailable      (exit 4)
    +-- BrowserLaunchFailed      (exit 8)
    |   +-- UnsupportedPlatform  (exit 8)
    +-- FlowError                (exit 3)
    |   +-- StateMismatch
    |   +-- MissingCode
    |   +-- AuthorizationDenied
    |   +-- FlowTimeout
    |   +-- FlowAborted
    +-- TokenEndpointError       (exit 3)
    |   +-- OAuthServerError     (exit 5)
    |   +-- MalformedResponse
    |   +-- TokenRequestFailed   (exit 6)
    +-- RenderFailed             (never fatal)
"""

from __future__ import annotations

from typing import Optional

from oauthflow.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_BROWSER_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_LISTENER_ERROR,
    EXIT_SERVER_ERROR,
)


class OAuthFlowError(Exception):
    """Base exception for all oauthflow errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`oauthflow.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class RandomnessUnavailable(OAuthFlowError):
    """Raised when the secure random source fails to deliver bytes."""


class ConfigError(OAuthFlowError):
    """Raised for configuration problems (missing profiles, invalid JSON, bad credential sources)."""

    exit_code = EXIT_INVALID_USAGE


class InvalidEndpointURL(ConfigError):
    """Raised when an authorization, token, revoke, or redirect URL cannot be used."""


class ListenerError(OAuthFlowError):
    """Raised when the local callback listener cannot be bound."""

    exit_code = EXIT_LISTENER_ERROR


class NoPortAvailable(ListenerError):
    """Raised when every port of the configured range is already in use."""


class BrowserLaunchFailed(OAuthFlowError):
    """Raised when the browser capability fails to open the authorization URLs."""

    exit_code = EXIT_BROWSER_ERROR


class UnsupportedPlatform(BrowserLaunchFailed):
    """Raised when no system browser command is known for the running platform."""


class FlowError(OAuthFlowError):
    """Base class for failures confined to a single login flow."""

    exit_code = EXIT_AUTH_FAILURE


class StateMismatch(FlowError):
    """Raised when the callback ``state`` differs from the flow's stored state."""


class MissingCode(FlowError):
    """Raised when the callback carries no authorization ``code``."""


class AuthorizationDenied(FlowError):
    """Raised when the authorization server redirects back with an ``error``.

    Attributes:
        error: The OAuth error code (e.g. ``access_denied``).
        description: The optional ``error_description`` sent along.
    """

    def __init__(self, error: str, description: str = ""):
        self.error = error
        self.description = description
        message = f"Authorization denied [{error}]"
        if description:
            message += f": {description}"
        super().__init__(message)


class FlowTimeout(FlowError):
    """Raised when no callback arrives before the flow's deadline."""


class FlowAborted(FlowError):
    """Raised for flows that were still waiting when the orchestration was torn down."""


class TokenEndpointError(OAuthFlowError):
    """Base class for failures talking to the token or revoke endpoint."""

    exit_code = EXIT_AUTH_FAILURE


class OAuthServerError(TokenEndpointError):
    """Raised when the authorization server answers with an OAuth error body.

    Attributes:
        error: The OAuth error code (e.g. ``invalid_grant``).
        description: The ``error_description`` field, empty if absent.
        status_code: The HTTP status of the response.
    """

    exit_code = EXIT_SERVER_ERROR

    def __init__(self, error: str, description: str = "", status_code: Optional[int] = None):
        self.error = error
        self.description = description
        self.status_code = status_code
        super().__init__(f"Got error from OAuth server [{error}]: {description}")


class MalformedResponse(TokenEndpointError):
    """Raised when the token or revoke endpoint returns a body that cannot be decoded."""


class TokenRequestFailed(TokenEndpointError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused)."""

    exit_code = EXIT_CONNECTION_ERROR


class RenderFailed(OAuthFlowError):
    """Raised when the callback page cannot be rendered or written to the browser.

    Never changes a flow's outcome; it is logged and reported next to the
    flow's result.
    """
