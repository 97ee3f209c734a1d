"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline
- Quiet mode suppression rules
- JSON and plain record output
- print_table in all three modes
- Global instance management
"""

from __future__ import annotations

import json
import re

import pytest

from oauthflow import output as output_module
from oauthflow.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
)


@pytest.fixture()
def non_tty(monkeypatch):
    monkeypatch.setattr("oauthflow.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    monkeypatch.setattr("oauthflow.output._is_tty", lambda: True)


class TestOutputFormatResolution:
    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.RICH

    def test_no_color_flag_forces_plain_on_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager(format=OutputFormat.AUTO, no_color=True).format == OutputFormat.PLAIN

    def test_explicit_format_is_kept(self, non_tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON
        assert OutputManager(format=OutputFormat.RICH).format == OutputFormat.RICH

    def test_string_format_is_accepted(self, non_tty):
        assert OutputManager(format="json").format == OutputFormat.JSON


class TestColorDisabling:
    def test_no_color_any_value(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


class TestStdoutStderrDiscipline:
    def test_records_go_to_stdout(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True)
        mgr.format_response({"access_token": "at"})
        captured = capfd.readouterr()
        assert json.loads(captured.out) == {"access_token": "at"}
        assert captured.err == ""

    @pytest.mark.parametrize(
        ("method", "expected"),
        [
            ("info", "Open this URL"),
            ("success", "Open this URL"),
            ("warning", "Warning: Open this URL"),
            ("error", "Error: Open this URL"),
            ("suggest", "→ Open this URL"),
        ],
    )
    def test_diagnostics_go_to_stderr(self, capfd, non_tty, method, expected):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        getattr(mgr, method)("Open this URL")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert expected in captured.err


class TestMarkupEscaping:
    """OAuth error codes are bracketed and must survive Rich rendering."""

    @pytest.fixture(autouse=True)
    def _color_enabled(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")

    @pytest.mark.parametrize("method", ["info", "success", "warning", "error", "suggest"])
    def test_brackets_are_printed_literally(self, capfd, non_tty, method):
        mgr = OutputManager(format=OutputFormat.PLAIN)
        getattr(mgr, method)("Got error from OAuth server [invalid_grant]: expired")
        assert "[invalid_grant]" in capfd.readouterr().err

    def test_rich_table_cells_are_printed_literally(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.RICH)
        mgr.print_table(["Profile", "Error"], [["work", "Authorization denied [access_denied]"]])
        out = re.sub(r"\x1b\[[0-9;]*m", "", capfd.readouterr().out)
        assert "[access_denied]" in out


class TestQuietMode:
    def test_quiet_suppresses_info_success_suggest(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.info("info")
        mgr.success("done")
        mgr.suggest("next")
        assert capfd.readouterr().err == ""

    def test_quiet_keeps_warnings_and_errors(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.warning("careful")
        mgr.error("broken")
        err = capfd.readouterr().err
        assert "careful" in err
        assert "broken" in err

    def test_quiet_keeps_data(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.print_data("token")
        assert capfd.readouterr().out == "token\n"


class TestPlainRecords:
    def test_dict_is_key_tab_value(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.format_response({"token_type": "Bearer", "expires_in": 3600})
        assert capfd.readouterr().out == "token_type\tBearer\nexpires_in\t3600\n"

    def test_list_of_dicts_is_one_row_each(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.format_response([{"profile": "a", "status": "ok"}, {"profile": "b", "status": "failed"}])
        assert capfd.readouterr().out == "a\tok\nb\tfailed\n"


class TestPrintTable:
    HEADERS = ["Name", "Scopes"]
    ROWS = [["work", "openid"], ["home", "openid email"]]

    def test_json(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).print_table(self.HEADERS, self.ROWS)
        assert json.loads(capfd.readouterr().out) == [
            {"Name": "work", "Scopes": "openid"},
            {"Name": "home", "Scopes": "openid email"},
        ]

    def test_plain(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).print_table(self.HEADERS, self.ROWS)
        lines = capfd.readouterr().out.splitlines()
        assert lines == ["Name\tScopes", "work\topenid", "home\topenid email"]

    def test_rich(self, capfd, non_tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        OutputManager(format=OutputFormat.RICH).print_table(self.HEADERS, self.ROWS, title="Profiles")
        out = capfd.readouterr().out
        assert "Profiles" in out
        assert "work" in out


class TestGlobalInstance:
    def test_get_output_creates_default_lazily(self, non_tty):
        reset_output()
        first = get_output()
        assert get_output() is first

    def test_set_output_is_used_by_helpers(self, capfd, non_tty):
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        output_module.error("boom")
        output_module.print_table(["A"], [["1"]])
        captured = capfd.readouterr()
        assert "Error: boom" in captured.err
        assert captured.out == "A\n1\n"
