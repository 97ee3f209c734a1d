"""Token commands -- log in, refresh, and revoke.

``oauthflow login`` runs one browser login per profile, all at once, and
prints one record per profile. ``refresh`` and ``revoke`` are single calls
against the profile's token and revocation endpoints.

Typical workflow::

    oauthflow login work personal     # two logins, one browser launch
    oauthflow --json login work | jq -r '.[0].access_token'
    oauthflow refresh work --refresh-token "$RT"
    oauthflow revoke work "$RT" --hint refresh_token
"""

from __future__ import annotations

from typing import Any, Optional

import typer

from oauthflow.exceptions import OAuthFlowError
from oauthflow.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INVALID_USAGE, EXIT_SUCCESS
from oauthflow.models import TokenTypeHint
from oauthflow.output import (
    OutputFormat,
    error,
    format_response,
    get_output,
    info,
    print_table,
    success,
    suggest,
    warning,
)


def _select_profile(ctx: typer.Context, name: Optional[str]) -> str:
    """Return *name* or the active profile, exiting with usage help if none."""
    from oauthflow.config import resolve_profile_name

    try:
        selected = name or resolve_profile_name(ctx.obj.get("profile") if ctx.obj else None)
    except OAuthFlowError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    if not selected:
        error("No profile selected.")
        suggest("Create one with: oauthflow profile add NAME --authorization-endpoint URL ...")
        raise typer.Exit(code=EXIT_INVALID_USAGE)
    return selected


def _token_record(profile: str, result: Any) -> dict[str, Any]:
    if result.ok:
        record: dict[str, Any] = {"profile": profile, "status": "ok"}
        record.update(result.token.model_dump(exclude_none=True))
        return record
    return {"profile": profile, "status": "failed", "error": str(result.error)}


def _print_records(records: list[dict[str, Any]]) -> None:
    if get_output().format == OutputFormat.JSON:
        format_response(records)
        return
    headers = ["Profile", "Status", "Token type", "Expires in", "Access token"]
    rows = [
        [
            r["profile"],
            r["status"],
            str(r.get("token_type", "")),
            str(r.get("expires_in", "")),
            r.get("access_token", r.get("error", "")),
        ]
        for r in records
    ]
    print_table(headers, rows, title="Tokens")


def login_command(
    ctx: typer.Context,
    profiles: Optional[list[str]] = typer.Argument(
        None, help="Profiles to log in with (default: the active profile)."
    ),
    no_browser: bool = typer.Option(
        False, "--no-browser", help="Print the authorization URLs instead of opening a browser."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", min=1, help="Seconds to wait for each login (default: config flow_timeout)."
    ),
) -> None:
    """Log in through the browser with one or more profiles.

    Every profile gets its own local callback server and PKCE pair; the
    browser is opened once for all of them. A failing profile does not stop
    the others. The command exits with the exit code of the first failed
    login, or 0 if all succeeded.

    Example::

        oauthflow login
        oauthflow login work personal --timeout 60
        oauthflow --json login work
    """
    from oauthflow.config import build_options, load_global_config, load_profile
    from oauthflow.flow import run_flows
    from oauthflow.flow.browser import default_browser

    names = list(profiles) if profiles else [_select_profile(ctx, None)]

    try:
        cfg = load_global_config()
        options = [build_options(load_profile(name)) for name in names]
        browser = default_browser(cfg.browser_command, no_browser=no_browser)
        info(f"Waiting for {len(names)} browser login(s)...")
        results = run_flows(options, browser, timeout=timeout or cfg.flow_timeout)
    except OAuthFlowError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    exit_code = EXIT_SUCCESS
    records = []
    for name, result in zip(names, results):
        if result.render_error is not None:
            warning(f"{name}: {result.render_error}")
        if result.ok:
            success(f"Logged in with profile '{name}'.")
        else:
            error(f"Login with profile '{name}' failed: {result.error}")
            if exit_code == EXIT_SUCCESS:
                exit_code = getattr(result.error, "exit_code", EXIT_GENERIC_FAILURE)
        records.append(_token_record(name, result))

    _print_records(records)
    if exit_code != EXIT_SUCCESS:
        raise typer.Exit(code=exit_code)


def refresh_command(
    ctx: typer.Context,
    profile: Optional[str] = typer.Argument(None, help="Profile name (default: the active profile)."),
    refresh_token: str = typer.Option(
        ...,
        "--refresh-token",
        envvar="OAUTHFLOW_REFRESH_TOKEN",
        help="Refresh token to exchange.",
    ),
) -> None:
    """Exchange a refresh token for new tokens.

    Example::

        oauthflow refresh work --refresh-token "$RT"
    """
    from oauthflow.client import refresh_token as do_refresh
    from oauthflow.config import build_options, load_profile

    name = _select_profile(ctx, profile)
    try:
        options = build_options(load_profile(name))
        token = do_refresh(options, refresh_token)
    except OAuthFlowError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    success(f"Refreshed tokens for profile '{name}'.")
    format_response(token.model_dump(exclude_none=True))


def revoke_command(
    profile: str = typer.Argument(help="Profile name."),
    token: str = typer.Argument(help="Token to revoke."),
    hint: TokenTypeHint = typer.Option(
        TokenTypeHint.ACCESS_TOKEN, "--hint", help="Type of the token being revoked."
    ),
) -> None:
    """Revoke an access or refresh token.

    Example::

        oauthflow revoke work "$AT"
        oauthflow revoke work "$RT" --hint refresh_token
    """
    from oauthflow.client import revoke_token
    from oauthflow.config import build_options, load_profile

    try:
        options = build_options(load_profile(profile))
        revoke_token(options, token, hint)
    except OAuthFlowError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    success(f"Revoked {hint.value} for profile '{profile}'.")
