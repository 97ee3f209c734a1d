"""Typer application and CLI entry point for oauthflow.

Registers the ``login``, ``refresh`` and ``revoke`` commands plus the
``profile`` and ``config`` groups. The root callback turns the global flags
into an :class:`~oauthflow.output.OutputManager` and a logging handler; the
:func:`main` console-script entry point maps
:class:`~oauthflow.exceptions.OAuthFlowError` to its exit code and writes a
crash log for anything else.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from oauthflow import __version__
from oauthflow.exit_codes import EXIT_GENERIC_FAILURE

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="oauthflow",
    help="OAuth2 authorization code + PKCE logins from the terminal.",
    no_args_is_help=True,
    add_completion=True,
    rich_markup_mode="rich",
)

# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #

from oauthflow.commands.config import config_app  # noqa: E402
from oauthflow.commands.login import login_command, refresh_command, revoke_command  # noqa: E402
from oauthflow.commands.profile import profile_app  # noqa: E402

app.command("login")(login_command)
app.command("refresh")(refresh_command)
app.command("revoke")(revoke_command)
app.add_typer(profile_app, name="profile", help="Manage login profiles.")
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"oauthflow {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool, no_color: bool) -> None:
    """Route ``oauthflow.*`` log records to stderr through Rich."""
    handler = RichHandler(
        console=Console(stderr=True, no_color=no_color),
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    pkg_logger = logging.getLogger("oauthflow")
    for existing in list(pkg_logger.handlers):
        if isinstance(existing, RichHandler):
            pkg_logger.removeHandler(existing)
    pkg_logger.addHandler(handler)
    pkg_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Profile name to use."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Skip confirmations."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Configures logging and the global
    :class:`~oauthflow.output.OutputManager` from the CLI flags, then
    stores shared options in ``ctx.obj`` for the sub-commands.

    Without ``--json`` or ``--plain`` the output format comes from the
    global config's ``output.format``.
    """
    from oauthflow.config import load_global_config
    from oauthflow.exceptions import ConfigError
    from oauthflow.output import OutputFormat, OutputManager, set_output

    _configure_logging(verbose, no_color)

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        try:
            fmt = OutputFormat(load_global_config().output.format)
        except ConfigError as exc:
            logger.warning("Ignoring global config: %s", exc)

    set_output(
        OutputManager(
            format=fmt,
            no_color=no_color,
            quiet=quiet,
        )
    )

    ctx.ensure_object(dict)
    ctx.obj["profile"] = profile
    ctx.obj["force"] = force
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write the current traceback under the data directory and return its path."""
    from oauthflow.config import get_data_dir

    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = get_data_dir() / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``oauthflow`` console script.

    Unhandled :class:`~oauthflow.exceptions.OAuthFlowError` instances exit
    with the error's ``exit_code``. All other exceptions produce a crash log
    and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from oauthflow.exceptions import OAuthFlowError
        from oauthflow.output import error

        if isinstance(exc, OAuthFlowError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
