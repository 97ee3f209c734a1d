"""Concurrent OAuth2 authorization code + PKCE login flows.

Typical usage::

    from oauthflow.flow import run_flows

    results = run_flows([options_a, options_b])
    for result in results:
        if result.ok:
            print(result.token.access_token)

Modules:
    pkce: Code verifier and S256 challenge.
    state: Anti-CSRF state values.
    authorize: Authorization request and URL builder.
    listener: Loopback listener allocation over a port range.
    page: Browser-facing success and failure pages.
    callback: Per-flow callback server and completion channel.
    browser: Browser launchers.
    coordinator: Runs flows concurrently and collects their results.
"""

from oauthflow.flow.authorize import AuthorizeRequest, build_authorize_request
from oauthflow.flow.browser import Browser, CommandBrowser, PrintBrowser, SystemBrowser
from oauthflow.flow.callback import CallbackServer, FlowState
from oauthflow.flow.coordinator import FLOW_TIMEOUT, FlowResult, run_flow, run_flows
from oauthflow.flow.listener import bind_listener
from oauthflow.flow.page import PageOutcome, PageRenderer
from oauthflow.flow.pkce import CodeVerifier, code_challenge, create_verifier
from oauthflow.flow.state import generate_state, states_match

__all__ = [
    "AuthorizeRequest",
    "Browser",
    "CallbackServer",
    "CodeVerifier",
    "CommandBrowser",
    "FLOW_TIMEOUT",
    "FlowResult",
    "FlowState",
    "PageOutcome",
    "PageRenderer",
    "PrintBrowser",
    "SystemBrowser",
    "bind_listener",
    "build_authorize_request",
    "code_challenge",
    "create_verifier",
    "generate_state",
    "run_flow",
    "run_flows",
    "states_match",
]
