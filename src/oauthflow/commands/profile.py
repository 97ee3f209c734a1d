"""Profile commands -- manage login profiles.

A profile names an authorization server and the client to log in with.
Secrets are never stored directly: the client id and secret are *credential
sources* (``env:VAR``, ``file:/path``, ``prompt`` or ``value:literal``)
resolved at login time.

Typical workflow::

    oauthflow profile add work \\
        --authorization-endpoint https://id.example.com/oauth/authorize \\
        --token-endpoint https://id.example.com/oauth/token \\
        --client-id-source value:my-cli --scope openid --scope offline_access
    oauthflow profile list
    oauthflow profile show work
"""

from __future__ import annotations

from typing import Optional

import typer
from pydantic import ValidationError

from oauthflow.exceptions import OAuthFlowError
from oauthflow.exit_codes import EXIT_INVALID_USAGE
from oauthflow.output import error, format_response, info, print_table, success, suggest


profile_app = typer.Typer(no_args_is_help=True)


def _parse_port_range(value: str) -> dict[str, int]:
    """Parse ``START-END`` or a single ``PORT`` into PortRange fields."""
    start, _, end = value.partition("-")
    try:
        first = int(start)
        last = int(end) if end else first
    except ValueError:
        raise typer.BadParameter(f"Expected PORT or START-END, got: {value}") from None
    return {"start": first, "end": last}


def _parse_params(values: list[str]) -> dict[str, str]:
    params: dict[str, str] = {}
    for item in values:
        key, sep, val = item.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected KEY=VALUE, got: {item}")
        params[key] = val
    return params


@profile_app.command("add")
def profile_add(
    ctx: typer.Context,
    name: str = typer.Argument(help="Profile name."),
    authorization_endpoint: str = typer.Option(
        ..., "--authorization-endpoint", help="Authorization endpoint URL."
    ),
    token_endpoint: str = typer.Option(..., "--token-endpoint", help="Token endpoint URL."),
    revoke_endpoint: Optional[str] = typer.Option(
        None, "--revoke-endpoint", help="Token revocation endpoint URL."
    ),
    client_id_source: str = typer.Option(
        ...,
        "--client-id-source",
        help="Client id source: env:VAR, file:/path, prompt, or value:literal.",
    ),
    client_secret_source: Optional[str] = typer.Option(
        None, "--client-secret-source", help="Client secret source (same formats)."
    ),
    scopes: Optional[list[str]] = typer.Option(
        None, "--scope", help="Scope to request (repeatable)."
    ),
    redirect_uri: Optional[str] = typer.Option(
        None, "--redirect-uri", help="Fixed redirect URI (default: synthesised per login)."
    ),
    port_range: Optional[str] = typer.Option(
        None, "--port-range", help="Callback port or START-END range (default: any free port)."
    ),
    params: Optional[list[str]] = typer.Option(
        None, "--param", help="Extra authorization URL parameter KEY=VALUE (repeatable)."
    ),
    timeout: float = typer.Option(30.0, "--timeout", help="Token endpoint timeout in seconds."),
) -> None:
    """Create or replace a login profile.

    Endpoint URLs are validated before anything is written. An existing
    profile is only replaced with ``--force``.

    Raises:
        typer.Exit: With code 2 on invalid input or an existing profile.
    """
    from oauthflow.config import profile_exists, save_profile
    from oauthflow.flow.authorize import parse_http_url
    from oauthflow.models import Profile

    force = ctx.obj.get("force", False) if ctx.obj else False
    if profile_exists(name) and not force:
        error(f"Profile '{name}' already exists.")
        suggest("Use --force to replace it.")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    data = {
        "name": name,
        "authorization_endpoint": authorization_endpoint,
        "token_endpoint": token_endpoint,
        "revoke_endpoint": revoke_endpoint,
        "client_id_source": client_id_source,
        "client_secret_source": client_secret_source,
        "scopes": list(scopes or []),
        "redirect_uri": redirect_uri,
        "authorization_params": _parse_params(list(params or [])),
        "timeout": timeout,
    }
    if port_range:
        data["port_range"] = _parse_port_range(port_range)

    try:
        parse_http_url(authorization_endpoint, "authorization endpoint")
        parse_http_url(token_endpoint, "token endpoint")
        if revoke_endpoint:
            parse_http_url(revoke_endpoint, "revoke endpoint")
        if redirect_uri:
            parse_http_url(redirect_uri, "redirect")
        profile = Profile.model_validate(data)
    except OAuthFlowError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    except ValidationError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    save_profile(profile)
    success(f"Saved profile '{name}'.")
    suggest(f"Log in with: oauthflow login {name}")


@profile_app.command("list")
def profile_list() -> None:
    """List saved profiles.

    The default profile (from the global config) is marked with ``*``.
    """
    from oauthflow.config import list_profiles, load_global_config, load_profile

    names = list_profiles()
    if not names:
        info("No profiles saved.")
        suggest("Create one with: oauthflow profile add NAME ...")
        return

    try:
        default = load_global_config().default_profile
        rows = []
        for name in names:
            profile = load_profile(name)
            rows.append(
                [
                    name,
                    "*" if name == default else "",
                    profile.authorization_endpoint,
                    " ".join(profile.scopes),
                ]
            )
    except OAuthFlowError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    print_table(["Name", "Default", "Authorization endpoint", "Scopes"], rows, title="Profiles")


@profile_app.command("show")
def profile_show(
    name: str = typer.Argument(help="Profile name."),
) -> None:
    """Show a profile's settings. Credential sources are shown, never their values."""
    from oauthflow.config import load_profile

    try:
        profile = load_profile(name)
    except OAuthFlowError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    format_response(profile.model_dump(mode="json"))


@profile_app.command("remove")
def profile_remove(
    ctx: typer.Context,
    name: str = typer.Argument(help="Profile name."),
) -> None:
    """Delete a profile. Asks for confirmation unless ``--force`` is active."""
    from oauthflow.config import delete_profile

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm(f"Remove profile '{name}'?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    try:
        delete_profile(name)
    except OAuthFlowError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    success(f"Removed profile '{name}'.")
