"""Token endpoint calls: code exchange, refresh, and revocation.

Each call is a single form-encoded ``POST`` with ``Accept: application/json``
and the profile's timeout. The three calls share one response policy:

- HTTP status >= 400 -- the body is decoded as ``{error, error_description}``
  and raised as :class:`~oauthflow.exceptions.OAuthServerError`.
- Any body that is not the expected JSON object --
  :class:`~oauthflow.exceptions.MalformedResponse`.
- Transport failures (timeout, DNS, connection refused) --
  :class:`~oauthflow.exceptions.TokenRequestFailed`.

No call is retried.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

from oauthflow.exceptions import (
    InvalidEndpointURL,
    MalformedResponse,
    OAuthServerError,
    TokenRequestFailed,
)
from oauthflow.models import FlowOptions, OAuthErrorResponse, TokenResponse, TokenTypeHint

if TYPE_CHECKING:
    from oauthflow.flow.authorize import AuthorizeRequest

logger = logging.getLogger(__name__)


def _post_form(url: str, data: dict[str, str], timeout: float) -> httpx.Response:
    """POST *data* form-encoded to *url*, mapping transport errors."""
    try:
        return httpx.post(
            url,
            data=data,
            headers={"Accept": "application/json"},
            timeout=timeout,
        )
    except httpx.InvalidURL as exc:
        raise InvalidEndpointURL(f"Invalid endpoint URL '{url}': {exc}") from exc
    except httpx.HTTPError as exc:
        raise TokenRequestFailed(f"Request to {url} failed: {exc}") from exc


def _decode_object(response: httpx.Response) -> dict[str, Any]:
    """Decode a JSON object body or raise :class:`MalformedResponse`."""
    try:
        body = response.json()
    except ValueError as exc:
        raise MalformedResponse(
            f"Response from {response.request.url} (HTTP {response.status_code}) "
            f"is not valid JSON: {exc}"
        ) from exc
    if not isinstance(body, dict):
        raise MalformedResponse(
            f"Response from {response.request.url} (HTTP {response.status_code}) "
            "is not a JSON object"
        )
    return body


def raise_for_oauth_error(response: httpx.Response) -> None:
    """Raise :class:`OAuthServerError` for HTTP >= 400 responses.

    Raises:
        OAuthServerError: With the ``error`` / ``error_description`` fields.
        MalformedResponse: If the error body cannot be decoded.
    """
    if response.status_code < 400:
        return
    body = _decode_object(response)
    try:
        err = OAuthErrorResponse.model_validate(body)
    except ValidationError as exc:
        raise MalformedResponse(f"Unexpected OAuth error body: {exc}") from exc
    raise OAuthServerError(err.error, err.error_description, response.status_code)


def parse_token_response(response: httpx.Response) -> TokenResponse:
    """Turn a token endpoint response into a :class:`TokenResponse`."""
    raise_for_oauth_error(response)
    body = _decode_object(response)
    try:
        return TokenResponse.model_validate(body)
    except ValidationError as exc:
        raise MalformedResponse(f"Unexpected token response: {exc}") from exc


def exchange_code(code: str, request: AuthorizeRequest, options: FlowOptions) -> TokenResponse:
    """Exchange an authorization code for tokens.

    Sends the flow's original PKCE verifier so the server can check it
    against the challenge from the authorization request.

    Args:
        code: The authorization code from the callback.
        request: The flow's authorization request.
        options: The flow's options (token endpoint, client, timeout).

    Returns:
        The decoded :class:`TokenResponse`.

    Raises:
        OAuthServerError: If the server rejects the exchange.
        MalformedResponse: If the response body cannot be decoded.
        TokenRequestFailed: On network errors.
    """
    data = {
        "grant_type": "authorization_code",
        "code": code,
        "client_id": options.client_id,
        "client_secret": options.client_secret,
        "code_verifier": request.code_verifier,
        "redirect_uri": request.redirect_uri,
    }
    logger.debug("Exchanging authorization code at %s", options.token_endpoint)
    response = _post_form(options.token_endpoint, data, options.timeout)
    return parse_token_response(response)


def refresh_token(options: FlowOptions, refresh_token: str) -> TokenResponse:
    """Obtain new tokens with a refresh token.

    Raises:
        OAuthServerError: If the server rejects the refresh token.
        MalformedResponse: If the response body cannot be decoded.
        TokenRequestFailed: On network errors.
    """
    data = {
        "grant_type": "refresh_token",
        "client_id": options.client_id,
        "refresh_token": refresh_token,
    }
    logger.debug("Refreshing token at %s", options.token_endpoint)
    response = _post_form(options.token_endpoint, data, options.timeout)
    return parse_token_response(response)


def revoke_token(
    options: FlowOptions,
    token: str,
    hint: TokenTypeHint = TokenTypeHint.ACCESS_TOKEN,
) -> None:
    """Revoke an access or refresh token (:rfc:`7009`).

    Raises:
        InvalidEndpointURL: If the options carry no revoke endpoint.
        OAuthServerError: If the server answers with an OAuth error.
        MalformedResponse: If an error body cannot be decoded.
        TokenRequestFailed: On network errors.
    """
    if not options.revoke_endpoint:
        raise InvalidEndpointURL("No revoke endpoint configured")

    data = {
        "client_id": options.client_id,
        "token": token,
        "token_type_hint": TokenTypeHint(hint).value,
    }
    logger.debug("Revoking %s at %s", data["token_type_hint"], options.revoke_endpoint)
    response = _post_form(options.revoke_endpoint, data, options.timeout)
    raise_for_oauth_error(response)
