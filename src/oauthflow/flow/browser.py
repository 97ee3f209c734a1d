"""Ways of sending the user to the authorization URLs.

The coordinator only needs the :class:`Browser` protocol: ``open(urls)``
raises :class:`~oauthflow.exceptions.BrowserLaunchFailed` when nothing could
be launched, and ``destroy()`` cleans up whatever ``open`` started.
"""

from __future__ import annotations

import logging
import signal
import subprocess
import sys
from typing import Callable, Optional, Protocol, Sequence

from oauthflow import output
from oauthflow.exceptions import BrowserLaunchFailed, UnsupportedPlatform

logger = logging.getLogger(__name__)

URL_PLACEHOLDER = "{url}"


class Browser(Protocol):
    def open(self, urls: Sequence[str]) -> None: ...

    def destroy(self) -> None: ...


def system_open_command(platform: Optional[str] = None) -> list[str]:
    """Return the argv prefix that opens a URL in the default browser.

    Raises:
        UnsupportedPlatform: For platforms without a known opener.
    """
    platform = platform or sys.platform
    if platform.startswith(("linux", "freebsd", "openbsd", "netbsd")):
        return ["xdg-open"]
    if platform == "darwin":
        return ["open"]
    if platform in ("win32", "cygwin"):
        return ["rundll32", "url.dll,FileProtocolHandler"]
    raise UnsupportedPlatform(f"Cannot open a browser on unsupported platform '{platform}'")


def _spawn(argv: list[str]) -> subprocess.Popen:
    try:
        return subprocess.Popen(
            argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except OSError as exc:
        raise BrowserLaunchFailed(f"Failed to start browser '{argv[0]}': {exc}") from exc


class SystemBrowser:
    """Open each URL with the platform's default URL handler.

    The openers hand the URL to the desktop and exit on their own, so
    :meth:`destroy` only reaps them and never interrupts one.
    """

    def __init__(self, platform: Optional[str] = None) -> None:
        self.platform = platform
        self.processes: list[subprocess.Popen] = []

    def open(self, urls: Sequence[str]) -> None:
        prefix = system_open_command(self.platform)
        for url in urls:
            logger.debug("Opening authorization URL with %s", prefix[0])
            self.processes.append(_spawn([*prefix, url]))

    def destroy(self) -> None:
        running = [proc for proc in self.processes if proc.poll() is None]
        if running:
            logger.debug("%d URL opener(s) still running", len(running))
        self.processes.clear()


class CommandBrowser:
    """Run a user-configured browser command once per URL.

    Every ``{url}`` in *argv* is replaced with the authorization URL; if
    there is none, the URL is appended as the last argument. Processes that
    are still running when :meth:`destroy` is called are interrupted.
    """

    def __init__(self, argv: Sequence[str]) -> None:
        if not argv:
            raise BrowserLaunchFailed("Browser command is empty")
        self.argv = list(argv)
        self.processes: list[subprocess.Popen] = []

    def command_for(self, url: str) -> list[str]:
        if any(URL_PLACEHOLDER in arg for arg in self.argv):
            return [arg.replace(URL_PLACEHOLDER, url) for arg in self.argv]
        return [*self.argv, url]

    def open(self, urls: Sequence[str]) -> None:
        for url in urls:
            self.processes.append(_spawn(self.command_for(url)))
        logger.debug("Started %d browser process(es) with '%s'", len(urls), self.argv[0])

    def destroy(self) -> None:
        for proc in self.processes:
            if proc.poll() is not None:
                continue
            try:
                proc.send_signal(signal.SIGINT)
            except (OSError, ValueError):
                # SIGINT is not deliverable on every platform.
                proc.terminate()
        self.processes.clear()


class PrintBrowser:
    """Open nothing; show the URLs so the user can visit them by hand."""

    def __init__(self, printer: Optional[Callable[[str], None]] = None) -> None:
        self._printer = printer or output.info

    def open(self, urls: Sequence[str]) -> None:
        self._printer("Open the following URL(s) in a browser to continue:")
        for url in urls:
            self._printer(f"  {url}")

    def destroy(self) -> None:
        pass


def default_browser(
    browser_command: Optional[Sequence[str]] = None,
    no_browser: bool = False,
) -> Browser:
    """Pick the browser implementation for the CLI's settings."""
    if no_browser:
        return PrintBrowser()
    if browser_command:
        return CommandBrowser(browser_command)
    return SystemBrowser()
