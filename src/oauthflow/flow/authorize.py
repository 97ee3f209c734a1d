"""Authorization request builder.

:func:`build_authorize_request` generates a flow's state and PKCE verifier
together, decides the redirect URI, and composes the authorization URL. The
resulting :class:`AuthorizeRequest` is the only thing the callback phase
needs to know about the request phase, and it never changes after it is
built.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import SplitResult, parse_qsl, urlencode, urlsplit, urlunsplit

from oauthflow.exceptions import InvalidEndpointURL
from oauthflow.flow.pkce import RandomSource, create_verifier
from oauthflow.flow.state import generate_state
from oauthflow.models import FlowOptions

DEFAULT_CALLBACK_PATH = "/oauth/callback"


@dataclass(frozen=True)
class AuthorizeRequest:
    """Everything about one authorization request the callback phase needs.

    Attributes:
        url: Authorization URL with every query parameter applied.
        redirect_uri: The redirect URI sent in the request (and again in the
            token exchange).
        callback_path: Path component of ``redirect_uri``; the only route
            the flow's callback server answers.
        state: The anti-CSRF state sent in the request.
        code_verifier: The PKCE verifier whose challenge was sent.
    """

    url: str
    redirect_uri: str
    callback_path: str
    state: str
    code_verifier: str


def parse_http_url(url: str, what: str) -> SplitResult:
    """Split *url*, insisting on an http(s) scheme and a host."""
    try:
        parts = urlsplit(url)
        parts.port  # raises ValueError on a non-numeric port
    except ValueError as exc:
        raise InvalidEndpointURL(f"Invalid {what} URL '{url}': {exc}") from exc
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise InvalidEndpointURL(
            f"Invalid {what} URL '{url}': expected an absolute http(s) URL"
        )
    return parts


def resolve_redirect_uri(redirect_uri: Optional[str], bound_port: int) -> tuple[str, str]:
    """Return ``(redirect_uri, callback_path)`` for a flow.

    A caller-supplied redirect URI is used verbatim; otherwise
    ``http://localhost:<bound_port>/oauth/callback`` is synthesised.
    """
    if redirect_uri:
        parts = parse_http_url(redirect_uri, "redirect")
        return redirect_uri, parts.path or "/"
    return f"http://localhost:{bound_port}{DEFAULT_CALLBACK_PATH}", DEFAULT_CALLBACK_PATH


def build_authorize_request(
    options: FlowOptions,
    bound_port: int,
    source: Optional[RandomSource] = None,
) -> AuthorizeRequest:
    """Build the immutable request descriptor for one flow.

    Query parameters already present on the authorization endpoint are kept.
    The standard parameters are set next, and
    ``options.authorization_params`` last, so an extension parameter with the
    same name as a standard one replaces it.

    Args:
        options: Resolved flow options.
        bound_port: Port of the flow's callback listener.
        source: Optional random source for the state and verifier.

    Raises:
        InvalidEndpointURL: If the authorization endpoint or redirect URI
            cannot be parsed.
        RandomnessUnavailable: If the random source fails.
    """
    endpoint = parse_http_url(options.authorization_endpoint, "authorization endpoint")
    redirect_uri, callback_path = resolve_redirect_uri(options.redirect_uri, bound_port)

    state = generate_state(source)
    verifier = create_verifier(source)

    query: dict[str, str] = dict(parse_qsl(endpoint.query, keep_blank_values=True))
    query.update(
        {
            "client_id": options.client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "code_challenge": verifier.challenge(),
            "code_challenge_method": "S256",
            "state": state,
            "scope": " ".join(options.scopes),
        }
    )
    query.update(options.authorization_params)

    url = urlunsplit(endpoint._replace(query=urlencode(query)))
    return AuthorizeRequest(
        url=url,
        redirect_uri=redirect_uri,
        callback_path=callback_path,
        state=state,
        code_verifier=verifier.value,
    )
