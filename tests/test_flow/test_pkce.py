"""Tests for PKCE verifiers, challenges and anti-CSRF state values."""

from __future__ import annotations

import pytest

from oauthflow.exceptions import RandomnessUnavailable
from oauthflow.flow.pkce import (
    VERIFIER_BYTES,
    CodeVerifier,
    b64url,
    code_challenge,
    create_verifier,
    random_bytes,
)
from oauthflow.flow.state import STATE_BYTES, generate_state, states_match


class RecordingSource:
    """Random source that records every request size."""

    def __init__(self) -> None:
        self.requests: list[int] = []

    def __call__(self, n: int) -> bytes:
        self.requests.append(n)
        return bytes([len(self.requests)]) * n


class TestCodeChallenge:
    def test_rfc7636_appendix_b_vector(self) -> None:
        verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
        assert code_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"

    def test_challenge_is_deterministic(self) -> None:
        verifier = create_verifier()
        assert verifier.challenge() == verifier.challenge()
        assert verifier.challenge() == code_challenge(verifier.value)

    def test_b64url_has_no_padding(self) -> None:
        assert b64url(b"\xff\xfe") == "__4"


class TestCreateVerifier:
    def test_requests_32_bytes(self) -> None:
        source = RecordingSource()
        create_verifier(source)
        assert source.requests == [VERIFIER_BYTES] == [32]

    def test_encoded_length_is_43(self) -> None:
        verifier = create_verifier()
        assert len(verifier.value) == 43
        assert "=" not in verifier.value

    def test_str_is_value(self) -> None:
        assert str(CodeVerifier("abc")) == "abc"

    def test_verifiers_are_distinct(self) -> None:
        values = {create_verifier().value for _ in range(5)}
        assert len(values) == 5


class TestRandomSource:
    def test_failing_source_raises(self) -> None:
        def broken(n: int) -> bytes:
            raise OSError("no entropy")

        with pytest.raises(RandomnessUnavailable, match="no entropy"):
            random_bytes(8, broken)

    def test_short_source_raises(self) -> None:
        with pytest.raises(RandomnessUnavailable, match="returned 4 bytes"):
            random_bytes(8, lambda n: b"\x00" * 4)

    def test_verifier_propagates_failure(self) -> None:
        def broken(n: int) -> bytes:
            raise NotImplementedError

        with pytest.raises(RandomnessUnavailable):
            create_verifier(broken)


class TestState:
    def test_requests_20_bytes(self) -> None:
        source = RecordingSource()
        generate_state(source)
        assert source.requests == [STATE_BYTES] == [20]

    def test_encoded_length(self) -> None:
        assert len(generate_state()) == 27

    def test_states_are_distinct(self) -> None:
        assert generate_state() != generate_state()

    def test_states_match(self) -> None:
        state = generate_state()
        assert states_match(state, state)
        assert not states_match(state, state[:-1])
        assert not states_match(state, None)
        assert not states_match(state, "")
