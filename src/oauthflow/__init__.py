"""oauthflow -- OAuth2 authorization code + PKCE logins for command-line tools.

Runs one or more browser-based login flows at once. Each flow gets its own
loopback callback server, unguessable state and PKCE verifier; the browser
is opened once for all of them and every flow resolves to a token or an
error independently.

Typical workflow::

    oauthflow profile add work --authorization-endpoint ... --token-endpoint ...
    oauthflow login work --json

Modules:
    app: Typer application and CLI entry point.
    flow: The concurrent login flow machinery.
    client: Token endpoint calls (exchange, refresh, revoke).
    models: Pydantic models for options, tokens, profiles and config.
    config: XDG-aware configuration and profile management.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes.
    output: stdout/stderr formatting with Rich support.
"""

__version__ = "0.1.0"
