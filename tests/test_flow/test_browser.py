"""Tests for the browser launchers."""

from __future__ import annotations

import signal
from unittest.mock import MagicMock, patch

import pytest

from oauthflow.exceptions import BrowserLaunchFailed, UnsupportedPlatform
from oauthflow.flow.browser import (
    CommandBrowser,
    PrintBrowser,
    SystemBrowser,
    default_browser,
    system_open_command,
)

URL = "https://id.example.com/oauth/authorize?state=abc"


class TestSystemOpenCommand:
    @pytest.mark.parametrize(
        ("platform", "expected"),
        [
            ("linux", ["xdg-open"]),
            ("freebsd13", ["xdg-open"]),
            ("darwin", ["open"]),
            ("win32", ["rundll32", "url.dll,FileProtocolHandler"]),
        ],
    )
    def test_known_platforms(self, platform: str, expected: list[str]) -> None:
        assert system_open_command(platform) == expected

    def test_unsupported_platform(self) -> None:
        with pytest.raises(UnsupportedPlatform, match="aix"):
            system_open_command("aix")

    def test_unsupported_platform_is_launch_failure(self) -> None:
        with pytest.raises(BrowserLaunchFailed):
            SystemBrowser(platform="aix").open([URL])


class TestSystemBrowser:
    def test_opens_each_url(self) -> None:
        with patch("oauthflow.flow.browser.subprocess.Popen") as mock_popen:
            SystemBrowser(platform="linux").open([URL, URL + "2"])

        argv = [c.args[0] for c in mock_popen.call_args_list]
        assert argv == [["xdg-open", URL], ["xdg-open", URL + "2"]]

    def test_destroy_reaps_openers_without_interrupting(self) -> None:
        opener = MagicMock()
        opener.poll.return_value = None

        with patch("oauthflow.flow.browser.subprocess.Popen", return_value=opener):
            browser = SystemBrowser(platform="linux")
            browser.open([URL])
        assert browser.processes == [opener]

        browser.destroy()

        opener.poll.assert_called_once_with()
        opener.send_signal.assert_not_called()
        opener.terminate.assert_not_called()
        assert browser.processes == []

    def test_spawn_error(self) -> None:
        with patch("oauthflow.flow.browser.subprocess.Popen", side_effect=FileNotFoundError("xdg-open")):
            with pytest.raises(BrowserLaunchFailed, match="xdg-open"):
                SystemBrowser(platform="linux").open([URL])


class TestCommandBrowser:
    def test_placeholder_substituted(self) -> None:
        browser = CommandBrowser(["firefox", "--new-window", "{url}"])
        assert browser.command_for(URL) == ["firefox", "--new-window", URL]

    def test_url_appended_without_placeholder(self) -> None:
        assert CommandBrowser(["chromium"]).command_for(URL) == ["chromium", URL]

    def test_empty_command_rejected(self) -> None:
        with pytest.raises(BrowserLaunchFailed):
            CommandBrowser([])

    def test_destroy_interrupts_running_processes(self) -> None:
        running = MagicMock()
        running.poll.return_value = None
        finished = MagicMock()
        finished.poll.return_value = 0

        with patch("oauthflow.flow.browser.subprocess.Popen", side_effect=[running, finished]):
            browser = CommandBrowser(["browser"])
            browser.open([URL, URL])
        browser.destroy()

        running.send_signal.assert_called_once_with(signal.SIGINT)
        finished.send_signal.assert_not_called()
        assert browser.processes == []

    def test_destroy_falls_back_to_terminate(self) -> None:
        proc = MagicMock()
        proc.poll.return_value = None
        proc.send_signal.side_effect = ValueError("Unsupported signal")

        with patch("oauthflow.flow.browser.subprocess.Popen", return_value=proc):
            browser = CommandBrowser(["browser"])
            browser.open([URL])
        browser.destroy()

        proc.terminate.assert_called_once_with()


class TestPrintBrowser:
    def test_prints_urls(self) -> None:
        lines: list[str] = []
        PrintBrowser(printer=lines.append).open([URL])
        assert lines[-1].strip() == URL


class TestDefaultBrowser:
    def test_no_browser(self) -> None:
        assert isinstance(default_browser(["firefox"], no_browser=True), PrintBrowser)

    def test_configured_command(self) -> None:
        browser = default_browser(["firefox", "{url}"])
        assert isinstance(browser, CommandBrowser)
        assert browser.argv == ["firefox", "{url}"]

    def test_system_default(self) -> None:
        assert isinstance(default_browser(None), SystemBrowser)
