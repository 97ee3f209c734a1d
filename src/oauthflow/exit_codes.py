"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~oauthflow.exceptions.OAuthFlowError` subclass.
Shell wrappers can inspect the exit code to tell a rejected login from a
busy port or a missing browser without parsing stderr.

Example::

    $ oauthflow login myidp
    $ echo $?
    4   # EXIT_LISTENER_ERROR -- no callback port could be bound
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Invalid arguments, an unknown profile, or a malformed endpoint URL."""

EXIT_AUTH_FAILURE = 3
"""The login flow failed (state mismatch, missing code, timeout, bad token response)."""

EXIT_LISTENER_ERROR = 4
"""No local callback listener could be bound."""

EXIT_SERVER_ERROR = 5
"""The authorization server answered with an OAuth error response."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred talking to the token or revoke endpoint."""

EXIT_BROWSER_ERROR = 8
"""The browser could not be launched."""
