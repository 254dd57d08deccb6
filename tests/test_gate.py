"""Unit tests for auth/dependencies.py -- Bearer extraction and the session gate.

Every rejection must be the same AuthenticationError: no header, wrong
scheme, garbage, tampered, expired, or a subject that does not exist.
"""

from __future__ import annotations

import pytest

from auth import service
from auth.dependencies import extract_bearer_token, gate
from auth.errors import AuthenticationError
from auth.models import Identity
from auth.tokens import issue_token


def _rejection(token, store, config) -> tuple[str, str, int]:
    with pytest.raises(AuthenticationError) as excinfo:
        gate(token, store, config)
    return excinfo.value.code, excinfo.value.message, excinfo.value.status_code


class TestExtractBearerToken:
    def test_bearer(self):
        assert extract_bearer_token("Bearer abc.def.ghi") == "abc.def.ghi"

    @pytest.mark.parametrize(
        "header",
        [None, "", "Token abc", "bearer abc", "BEARER abc", "Bearer", "Bearer ", "Basic dXNlcjpwYXNz", "abc"],
    )
    def test_anything_else_is_none(self, header):
        assert extract_bearer_token(header) is None


class TestGate:
    def test_valid_token_yields_identity(self, store, auth_config):
        registered = service.register(
            store, auth_config, "a@example.com", "Passw0rd1", "Ada", "Lovelace", "Acme"
        )
        identity = gate(registered.token.token, store, auth_config)
        assert identity == Identity(
            user_id=registered.user.id,
            email="a@example.com",
            organization_id=registered.organization.id,
        )
        assert identity.user.id == registered.user.id
        assert identity.user.first_name == "Ada"

    def test_wrong_scheme_is_rejected_like_missing_header(self, store, auth_config):
        missing = _rejection(extract_bearer_token(None), store, auth_config)
        wrong_scheme = _rejection(extract_bearer_token("Token abc"), store, auth_config)
        assert missing == wrong_scheme == ("invalid_token", "Invalid or expired token", 401)

    def test_every_failure_cause_is_indistinguishable(self, store, auth_config, clock):
        registered = service.register(store, auth_config, "a@example.com", "Passw0rd1", "Ada", "Lovelace")
        token = registered.token.token
        head, sig = token.rsplit(".", 1)
        tampered = f"{head}.{'A' if sig[0] != 'A' else 'B'}{sig[1:]}"
        unknown_subject = issue_token("00000000-0000-0000-0000-000000000000", auth_config).token

        outcomes = {
            _rejection(None, store, auth_config),
            _rejection("garbage", store, auth_config),
            _rejection(tampered, store, auth_config),
            _rejection(unknown_subject, store, auth_config),
        }
        clock.advance(auth_config.token_ttl_seconds)
        outcomes.add(_rejection(token, store, auth_config))

        assert outcomes == {("invalid_token", "Invalid or expired token", 401)}

    def test_rejection_does_not_chain_the_cause(self, store, auth_config):
        with pytest.raises(AuthenticationError) as excinfo:
            gate("garbage", store, auth_config)
        assert excinfo.value.__cause__ is None
