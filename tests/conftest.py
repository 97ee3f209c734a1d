"""Shared test fixtures for oauthflow.

Provides isolated config environments, output state management, flow option
builders, and a helper for playing the browser's part in a login by sending
the redirect to a local callback server.
"""

from __future__ import annotations

from http.client import HTTPConnection
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlencode, urlsplit

import pytest

from oauthflow.models import FlowOptions, Profile
from oauthflow.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams the cached
    references go stale once the test finishes.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Flow helpers
# ---------------------------------------------------------------------------


def _make_options(**kwargs: Any) -> FlowOptions:
    defaults: dict[str, Any] = {
        "authorization_endpoint": "https://id.example.com/oauth/authorize",
        "token_endpoint": "https://id.example.com/oauth/token",
        "client_id": "cli-client",
        "scopes": ["openid", "profile"],
    }
    defaults.update(kwargs)
    return FlowOptions(**defaults)


def _query_of(url: str) -> dict[str, str]:
    """Return the single-valued query parameters of *url*."""
    return {k: v[0] for k, v in parse_qs(urlsplit(url).query, keep_blank_values=True).items()}


def _send_callback(
    port: int,
    path: str = "/oauth/callback",
    params: dict[str, str] | None = None,
) -> tuple[int, bytes]:
    """Send the browser's redirect to a local callback server.

    Returns:
        ``(status, body)`` of the server's answer.
    """
    target = path
    if params is not None:
        target = f"{path}?{urlencode(params)}"
    conn = HTTPConnection("127.0.0.1", port, timeout=5)
    try:
        conn.request("GET", target)
        response = conn.getresponse()
        return response.status, response.read()
    finally:
        conn.close()


@pytest.fixture
def options() -> FlowOptions:
    return _make_options()


@pytest.fixture
def make_options():
    """Factory for FlowOptions with test defaults."""
    return _make_options


@pytest.fixture
def send_callback():
    """Callable that plays the browser redirect against a callback server."""
    return _send_callback


@pytest.fixture
def query_of():
    return _query_of


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path so
    that tests never touch real user config, clears ``OAUTHFLOW_*``
    variables and changes the working directory to tmp_path.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("oauthflow.config._is_xdg_platform", lambda: True)

    for var in ["OAUTHFLOW_PROFILE", "OAUTHFLOW_REFRESH_TOKEN"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def sample_profile() -> Profile:
    return Profile(
        name="work",
        authorization_endpoint="https://id.example.com/oauth/authorize",
        token_endpoint="https://id.example.com/oauth/token",
        revoke_endpoint="https://id.example.com/oauth/revoke",
        client_id_source="value:cli-client",
        scopes=["openid", "offline_access"],
    )


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet PLAIN-format output manager."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def json_output() -> OutputManager:
    """Install a JSON-format output manager."""
    output = OutputManager(format=OutputFormat.JSON)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
