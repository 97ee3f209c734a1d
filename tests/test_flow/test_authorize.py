"""Tests for the authorization request builder."""

from __future__ import annotations

import pytest

from oauthflow.exceptions import InvalidEndpointURL
from oauthflow.flow.authorize import (
    DEFAULT_CALLBACK_PATH,
    build_authorize_request,
    resolve_redirect_uri,
)
from oauthflow.flow.pkce import code_challenge


class TestBuildAuthorizeRequest:
    def test_standard_parameters(self, options, query_of) -> None:
        request = build_authorize_request(options, 8400)
        query = query_of(request.url)

        assert request.url.startswith("https://id.example.com/oauth/authorize?")
        assert query["client_id"] == "cli-client"
        assert query["redirect_uri"] == "http://localhost:8400/oauth/callback"
        assert query["response_type"] == "code"
        assert query["code_challenge_method"] == "S256"
        assert query["scope"] == "openid profile"
        assert query["state"] == request.state
        assert query["code_challenge"] == code_challenge(request.code_verifier)

    def test_synthesised_redirect(self, options) -> None:
        request = build_authorize_request(options, 51234)
        assert request.redirect_uri == "http://localhost:51234/oauth/callback"
        assert request.callback_path == DEFAULT_CALLBACK_PATH

    def test_caller_redirect_used_verbatim(self, make_options) -> None:
        options = make_options(redirect_uri="http://127.0.0.1:9000/done")
        request = build_authorize_request(options, 8400)
        assert request.redirect_uri == "http://127.0.0.1:9000/done"
        assert request.callback_path == "/done"

    def test_extension_params_override(self, make_options, query_of) -> None:
        options = make_options(
            authorization_params={"prompt": "consent", "response_type": "code id_token"}
        )
        query = query_of(build_authorize_request(options, 8400).url)
        assert query["prompt"] == "consent"
        assert query["response_type"] == "code id_token"

    def test_existing_endpoint_query_preserved(self, make_options, query_of) -> None:
        options = make_options(
            authorization_endpoint="https://id.example.com/authorize?tenant=acme&client_id=old"
        )
        query = query_of(build_authorize_request(options, 8400).url)
        assert query["tenant"] == "acme"
        assert query["client_id"] == "cli-client"

    def test_empty_scopes(self, make_options, query_of) -> None:
        query = query_of(build_authorize_request(make_options(scopes=[]), 8400).url)
        assert query["scope"] == ""

    def test_each_request_has_fresh_material(self, options) -> None:
        first = build_authorize_request(options, 8400)
        second = build_authorize_request(options, 8401)
        assert first.state != second.state
        assert first.code_verifier != second.code_verifier

    @pytest.mark.parametrize(
        "endpoint",
        ["not a url", "ftp://id.example.com/authorize", "/relative/path", "https://host:port/x"],
    )
    def test_invalid_endpoint(self, make_options, endpoint: str) -> None:
        with pytest.raises(InvalidEndpointURL):
            build_authorize_request(make_options(authorization_endpoint=endpoint), 8400)

    def test_invalid_redirect(self, make_options) -> None:
        with pytest.raises(InvalidEndpointURL, match="redirect"):
            build_authorize_request(make_options(redirect_uri="localhost:9000/cb"), 8400)


class TestResolveRedirectUri:
    def test_empty_path_becomes_root(self) -> None:
        assert resolve_redirect_uri("http://localhost:9000", 1) == ("http://localhost:9000", "/")

    def test_none_synthesises(self) -> None:
        uri, path = resolve_redirect_uri(None, 8080)
        assert uri == "http://localhost:8080/oauth/callback"
        assert path == "/oauth/callback"
