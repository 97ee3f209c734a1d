"""Run one or more authorization code flows concurrently.

:func:`run_flows` is the entry point. For every option set it binds a
loopback listener, builds the authorization request and starts a
:class:`~oauthflow.flow.callback.CallbackServer`. It then opens the browser
once with every authorization URL while each flow is awaited on its own
worker thread.

Failure handling is split in two:

* Problems with a single flow (bad state, missing code, token endpoint
  errors, timeouts) end up in that flow's :class:`FlowResult`. The other
  flows keep going.
* Problems with the batch (no randomness, bad endpoint URL, no free port,
  browser launch failure) are raised from :func:`run_flows` after every
  listener has been released.
"""

from __future__ import annotations

import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Iterable, Optional

from oauthflow.exceptions import BrowserLaunchFailed, FlowAborted, FlowTimeout, RenderFailed
from oauthflow.flow.authorize import AuthorizeRequest, build_authorize_request
from oauthflow.flow.browser import Browser, SystemBrowser
from oauthflow.flow.callback import CallbackServer, ExchangeFunc
from oauthflow.flow.listener import bind_listener
from oauthflow.flow.page import PageRenderer
from oauthflow.flow.pkce import RandomSource
from oauthflow.models import FlowOptions, TokenResponse

logger = logging.getLogger(__name__)

FLOW_TIMEOUT = 180.0
"""Seconds each flow waits for its browser callback."""


@dataclass
class FlowResult:
    """Outcome of one flow, in the position of its option set.

    Exactly one of ``token`` and ``error`` is set. ``render_error`` records
    a problem showing the browser page; it never changes the outcome.
    """

    index: int
    token: Optional[TokenResponse] = None
    error: Optional[BaseException] = None
    render_error: Optional[RenderFailed] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.token is not None


@dataclass
class Flow:
    index: int
    options: FlowOptions
    request: AuthorizeRequest
    server: CallbackServer


def _setup_flow(
    index: int,
    options: FlowOptions,
    renderer: PageRenderer,
    exchange: Optional[ExchangeFunc],
    source: Optional[RandomSource],
) -> Flow:
    listener, port = bind_listener(options.port_range)
    try:
        request = build_authorize_request(options, port, source)
        server = CallbackServer(
            listener, port, request, options, exchange=exchange, renderer=renderer
        )
    except BaseException:
        listener.close()
        raise
    logger.debug(
        "Flow %d listening on port %d for %s (state %s...)",
        index, port, request.callback_path, request.state[:8],
    )
    return Flow(index=index, options=options, request=request, server=server)


def _await_flow(flow: Flow, timeout: float) -> FlowResult:
    future = flow.server.future
    try:
        future.exception(timeout=timeout)
    except FutureTimeout:
        # A callback may publish between the timeout and the abort.
        if flow.server.abort(FlowTimeout(f"No callback received within {timeout:g} seconds")):
            logger.debug("Flow %d timed out", flow.index)

    error = future.exception()
    result = FlowResult(index=flow.index, render_error=flow.server.render_error)
    if error is not None:
        result.error = error
    else:
        result.token = future.result()
    return result


def _abort_all(flows: Iterable[Flow], error: BaseException) -> None:
    for flow in flows:
        flow.server.abort(error)


def _close_all(flows: Iterable[Flow]) -> None:
    for flow in flows:
        flow.server.close()


def run_flows(
    options_list: Iterable[FlowOptions],
    browser: Optional[Browser] = None,
    *,
    timeout: float = FLOW_TIMEOUT,
    renderer: Optional[PageRenderer] = None,
    exchange: Optional[ExchangeFunc] = None,
    source: Optional[RandomSource] = None,
) -> list[FlowResult]:
    """Run a login flow for each option set and collect the results.

    Args:
        options_list: One :class:`~oauthflow.models.FlowOptions` per flow.
        browser: Browser used to open the authorization URLs. Defaults to
            :class:`~oauthflow.flow.browser.SystemBrowser`.
        timeout: Seconds each flow waits for its callback.
        renderer: Page renderer shared by every callback server.
        exchange: Token exchange callable, mainly for tests.
        source: Random source for states and verifiers, mainly for tests.

    Returns:
        One :class:`FlowResult` per option set, in input order.

    Raises:
        RandomnessUnavailable: If state or verifier generation fails.
        InvalidEndpointURL: If an endpoint or redirect URI is invalid.
        NoPortAvailable: If a flow's port range is exhausted.
        ListenerError: For any other listener failure.
        BrowserLaunchFailed: If the browser cannot be opened.
    """
    options_list = list(options_list)
    if not options_list:
        return []

    browser = browser or SystemBrowser()
    renderer = renderer or PageRenderer()
    flows: list[Flow] = []
    launched = False

    try:
        for index, options in enumerate(options_list):
            flows.append(_setup_flow(index, options, renderer, exchange, source))
        for flow in flows:
            flow.server.start()

        with ThreadPoolExecutor(
            max_workers=len(flows) + 1, thread_name_prefix="oauthflow"
        ) as pool:
            launched = True
            try:
                launch = pool.submit(browser.open, [flow.request.url for flow in flows])
                waiters = [pool.submit(_await_flow, flow, timeout) for flow in flows]
                wait([launch, *waiters], return_when=FIRST_EXCEPTION)
                launch_error = launch.exception() if launch.done() else None
                if launch_error is not None:
                    logger.debug("Browser launch failed, aborting %d flow(s)", len(flows))
                    _abort_all(flows, FlowAborted(f"Login aborted: {launch_error}"))
                    if isinstance(launch_error, BrowserLaunchFailed):
                        raise launch_error
                    raise BrowserLaunchFailed(
                        f"Failed to open browser: {launch_error}"
                    ) from launch_error

                results = [waiter.result() for waiter in waiters]
            except BaseException:
                # Waiters must return before the pool shuts down.
                _abort_all(flows, FlowAborted("Login interrupted"))
                raise
    finally:
        _close_all(flows)
        if launched:
            try:
                browser.destroy()
            except Exception as exc:
                logger.warning("Failed to clean up browser: %s", exc)

    logger.debug(
        "%d of %d flow(s) succeeded", sum(1 for r in results if r.ok), len(results)
    )
    return results


def run_flow(
    options: FlowOptions,
    browser: Optional[Browser] = None,
    **kwargs,
) -> FlowResult:
    """Run a single login flow. See :func:`run_flows` for the arguments."""
    return run_flows([options], browser, **kwargs)[0]
