"""Per-flow HTTP callback server.

Each login flow owns one :class:`CallbackServer`: an
:class:`~http.server.ThreadingHTTPServer` running on the flow's pre-bound listener,
with a single route (the redirect URI's path) and its own completion
:class:`~concurrent.futures.Future`. Nothing is shared between flows, so a
callback for one flow can never be routed to another.

The server walks a small state machine::

    WAITING -> VALIDATING -> EXCHANGING -> SUCCEEDED
                   |              |
                   +--------------+------> FAILED

A callback request is checked in this order: ``state`` must match exactly,
an ``error`` parameter means the user or server denied the request, and a
``code`` must be present. Only then is the code exchanged for tokens.

Connections are served on their own daemon threads with a read timeout,
so an idle connection (a browser preconnect) never holds up the callback or
shutdown. Callback requests are still handled one at a time. The outcome is
published before the page is chosen: if the flow was aborted (for example
by its timeout) while the callback was being processed, the browser gets
the failure page. Once a terminal state is reached every further request to
the callback path gets the cached terminal page; the future is resolved
exactly once.
"""

from __future__ import annotations

import enum
import logging
import socket
import threading
from concurrent.futures import Future
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable, Optional
from urllib.parse import parse_qs, urlsplit

from oauthflow.client.token_client import exchange_code
from oauthflow.exceptions import (
    AuthorizationDenied,
    MissingCode,
    RenderFailed,
    StateMismatch,
)
from oauthflow.flow.authorize import AuthorizeRequest
from oauthflow.flow.listener import CALLBACK_HOST
from oauthflow.flow.page import PAGE_COPY, PageOutcome, PageRenderer, RenderedPage
from oauthflow.flow.state import states_match
from oauthflow.models import FlowOptions, TokenResponse

logger = logging.getLogger(__name__)

ExchangeFunc = Callable[[str, AuthorizeRequest, FlowOptions], TokenResponse]

SUCCESS_STATUS = 200
FAILURE_STATUS = 400

# Seconds a connection may sit idle before its request line arrives.
REQUEST_TIMEOUT = 5.0


class FlowState(str, enum.Enum):
    WAITING = "waiting"
    VALIDATING = "validating"
    EXCHANGING = "exchanging"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class _CallbackHandler(BaseHTTPRequestHandler):
    server: "_CallbackHTTPServer"
    timeout = REQUEST_TIMEOUT

    def do_GET(self) -> None:  # noqa: N802
        self.server.flow.handle(self)

    def log_message(self, format: str, *args) -> None:  # noqa: A002
        logger.debug("callback %s - %s", self.address_string(), format % args)


class _CallbackHTTPServer(ThreadingHTTPServer):
    """A threading HTTP server that adopts an already-listening socket."""

    daemon_threads = True

    def __init__(self, flow: "CallbackServer", listener: socket.socket, port: int):
        super().__init__((CALLBACK_HOST, port), _CallbackHandler, bind_and_activate=False)
        self.socket.close()
        self.socket = listener
        self.server_name = "localhost"
        self.server_port = port
        self.flow = flow


class CallbackServer:
    """Callback endpoint and completion channel for one login flow.

    Args:
        listener: Listening socket from :func:`~oauthflow.flow.listener.bind_listener`.
            The server takes ownership and closes it in :meth:`close`.
        port: The listener's bound port.
        request: The flow's authorization request.
        options: The flow's options, passed through to *exchange*.
        exchange: Token exchange callable. Defaults to
            :func:`~oauthflow.client.token_client.exchange_code`.
        renderer: Page renderer. Defaults to a :class:`PageRenderer` over
            the bundled template.
    """

    def __init__(
        self,
        listener: socket.socket,
        port: int,
        request: AuthorizeRequest,
        options: FlowOptions,
        exchange: Optional[ExchangeFunc] = None,
        renderer: Optional[PageRenderer] = None,
    ) -> None:
        self.port = port
        self.request = request
        self.options = options
        self.future: Future[TokenResponse] = Future()
        self.render_error: Optional[RenderFailed] = None
        self.exchange_count = 0

        self._exchange = exchange or exchange_code
        self._renderer = renderer or PageRenderer()
        self._state = FlowState.WAITING
        self._lock = threading.Lock()
        self._handle_lock = threading.Lock()
        self._cached: Optional[tuple[int, RenderedPage]] = None
        self._httpd = _CallbackHTTPServer(self, listener, port)
        self._thread: Optional[threading.Thread] = None
        self._closed = False

    @property
    def state(self) -> FlowState:
        return self._state

    def start(self) -> None:
        """Serve callback requests on a daemon thread."""
        self._thread = threading.Thread(
            target=self._httpd.serve_forever,
            kwargs={"poll_interval": 0.1},
            name=f"oauthflow-callback-{self.port}",
            daemon=True,
        )
        self._thread.start()
        logger.debug("Callback server on port %d waiting at %s", self.port, self.request.callback_path)

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    def handle(self, handler: BaseHTTPRequestHandler) -> None:
        """Answer one GET request from the browser."""
        parts = urlsplit(handler.path)
        if parts.path != self.request.callback_path:
            handler.send_error(404)
            return

        with self._handle_lock:
            if self._cached is None and not self._advance(FlowState.VALIDATING):
                # Aborted before any callback arrived.
                self._cached = (FAILURE_STATUS, self._render(PageOutcome.FAILURE))
            if self._cached is not None:
                logger.debug("Repeat callback on port %d, replaying terminal page", self.port)
                self._write(handler, *self._cached)
                return

            params = {k: v[0] for k, v in parse_qs(parts.query, keep_blank_values=True).items()}
            token, error = self._check_and_exchange(params)
            self._cached = self._finish(token, error)
            self._write(handler, *self._cached)

    def _check_and_exchange(
        self, params: dict[str, str]
    ) -> tuple[Optional[TokenResponse], Optional[BaseException]]:
        if not states_match(self.request.state, params.get("state")):
            return None, StateMismatch("State does not match!")
        if params.get("error"):
            return None, AuthorizationDenied(params["error"], params.get("error_description", ""))
        if not params.get("code"):
            return None, MissingCode("No code returned from the authorization server")

        if not self._advance(FlowState.EXCHANGING):
            return None, None
        self.exchange_count += 1
        try:
            return self._exchange(params["code"], self.request, self.options), None
        except Exception as exc:
            return None, exc

    def _advance(self, state: FlowState) -> bool:
        """Move to a non-terminal *state* unless the flow already finished."""
        with self._lock:
            if self.future.done():
                return False
            self._state = state
            return True

    def _finish(
        self, token: Optional[TokenResponse], error: Optional[BaseException]
    ) -> tuple[int, RenderedPage]:
        """Publish the outcome and return the page matching what was published."""
        with self._lock:
            if self.future.done():
                logger.debug("Flow on port %d ended while its callback was handled", self.port)
                return FAILURE_STATUS, self._render(PageOutcome.FAILURE)
            if error is None:
                page = self._render(PageOutcome.SUCCESS)
                self._state = FlowState.SUCCEEDED
                self.future.set_result(token)
                return SUCCESS_STATUS, page
            logger.debug("Flow on port %d failed: %s", self.port, error)
            page = self._render(PageOutcome.FAILURE)
            self._state = FlowState.FAILED
            self.future.set_exception(error)
            return FAILURE_STATUS, page

    def _render(self, outcome: PageOutcome) -> RenderedPage:
        try:
            page = self._renderer.render_page(outcome)
        except Exception as exc:
            page = RenderedPage(
                body=PAGE_COPY[outcome].message.encode("utf-8"),
                content_type="text/plain; charset=utf-8",
                error=RenderFailed(f"Cannot render {outcome.value} page: {exc}"),
            )
            logger.warning("%s", page.error)
        if page.error is not None and self.render_error is None:
            self.render_error = page.error
        return page

    def _write(self, handler: BaseHTTPRequestHandler, status: int, page: RenderedPage) -> None:
        try:
            handler.send_response(status)
            handler.send_header("Content-Type", page.content_type)
            handler.send_header("Content-Length", str(len(page.body)))
            handler.send_header("Cache-Control", "no-store")
            handler.end_headers()
            handler.wfile.write(page.body)
        except OSError as exc:
            err = RenderFailed(f"Cannot write callback page: {exc}")
            logger.warning("%s", err)
            if self.render_error is None:
                self.render_error = err

    # ------------------------------------------------------------------
    # Completion channel
    # ------------------------------------------------------------------

    def abort(self, error: BaseException) -> bool:
        """Fail an unfinished flow with *error*. Returns False if it already finished.

        A callback being handled at that moment answers with the failure page.
        """
        with self._lock:
            if self.future.done():
                return False
            self._state = FlowState.FAILED
            self.future.set_exception(error)
        logger.debug("Flow on port %d aborted: %s", self.port, error)
        return True

    def close(self) -> None:
        """Stop serving and release the listener. Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        if self._thread is not None:
            self._httpd.shutdown()
            self._thread.join()
        self._httpd.server_close()
        logger.debug("Callback server on port %d closed", self.port)
