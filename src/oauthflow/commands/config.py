"""Config commands -- view and modify global configuration.

Provides the ``oauthflow config`` sub-command group for reading, updating,
and resetting :class:`~oauthflow.models.GlobalConfig`: the default profile,
the per-login callback timeout, the browser command, and the default output
format.
"""

from __future__ import annotations

import shlex

import typer
from pydantic import ValidationError

from oauthflow.exceptions import OAuthFlowError
from oauthflow.exit_codes import EXIT_INVALID_USAGE
from oauthflow.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show current configuration.

    Example::

        oauthflow config show
        oauthflow --json config show
    """
    from oauthflow.config import get_config_dir, load_global_config

    try:
        config = load_global_config()
    except OAuthFlowError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    info(f"Config directory: {get_config_dir()}")
    format_response(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'output.format')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    Uses dot notation for nested keys. The value is coerced to the
    existing field's type: integers for ``flow_timeout``, a shell-split
    argument list for ``browser_command``, text otherwise. The updated
    config is validated before saving.

    Raises:
        typer.Exit: With code 2 if the key path is invalid, the value
            cannot be coerced, or validation fails.

    Example::

        oauthflow config set default_profile work
        oauthflow config set flow_timeout 60
        oauthflow config set browser_command "firefox --new-window {url}"
        oauthflow config set output.format json
    """
    from oauthflow.config import load_global_config, save_global_config
    from oauthflow.models import GlobalConfig

    try:
        config = load_global_config()
    except OAuthFlowError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    data = config.model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=EXIT_INVALID_USAGE)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target:
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    current = target[final_key]
    if final_key == "browser_command":
        coerced = shlex.split(value) or None
    elif isinstance(current, bool):
        coerced = value.lower() in ("true", "1", "yes")
    elif isinstance(current, int):
        try:
            coerced = int(value)
        except ValueError:
            error(f"Expected integer for {key}, got: {value}")
            raise typer.Exit(code=EXIT_INVALID_USAGE) from None
    else:
        coerced = value

    target[final_key] = coerced

    try:
        new_config = GlobalConfig.model_validate(data)
    except ValidationError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    save_global_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(
    ctx: typer.Context,
) -> None:
    """Reset configuration to defaults.

    Asks for confirmation unless ``--force`` is active.

    Example::

        oauthflow config reset
        oauthflow --force config reset
    """
    from oauthflow.config import save_global_config
    from oauthflow.models import GlobalConfig

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
