"""
Tests for bearer token verification
"""
from unittest.mock import MagicMock

import pytest
import requests

from hymnal.auth import IDENTITY_LOOKUP_URL, FirebaseTokenAuthProvider, create_auth_provider


def make_response(status_code=200, payload=None, invalid_json=False):
    resp = MagicMock()
    resp.status_code = status_code
    if invalid_json:
        resp.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        resp.json.return_value = payload or {}
    return resp


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def provider(session):
    return FirebaseTokenAuthProvider("api-key", timeout=5, session=session)


class TestFirebaseTokenAuthProvider:
    def test_valid_token(self, provider, session):
        session.post.return_value = make_response(payload={"users": [{"localId": "u-free", "email": "free@example.org"}]})

        state = provider.verify("id-token")

        assert state.uid == "u-free"
        assert state.email == "free@example.org"
        assert state.is_authenticated
        session.post.assert_called_once_with(
            IDENTITY_LOOKUP_URL, params={"key": "api-key"}, json={"idToken": "id-token"}, timeout=5
        )

    @pytest.mark.parametrize(
        "response",
        [
            make_response(status_code=400),
            make_response(payload={"users": []}),
            make_response(payload={"users": [{"email": "x@example.org"}]}),
            make_response(invalid_json=True),
        ],
    )
    def test_rejected(self, provider, session, response):
        session.post.return_value = response
        assert provider.verify("id-token") is None

    def test_network_error(self, provider, session):
        session.post.side_effect = requests.ConnectionError("unreachable")
        assert provider.verify("id-token") is None

    def test_empty_token_skips_lookup(self, provider, session):
        assert provider.verify("") is None
        session.post.assert_not_called()

    def test_api_key_required(self):
        with pytest.raises(ValueError):
            FirebaseTokenAuthProvider("")


class TestCreateAuthProvider:
    def test_without_api_key(self):
        assert create_auth_provider({"remote": {}}) is None

    def test_with_api_key(self):
        provider = create_auth_provider({"remote": {"api_key": "k", "timeout": 3}})
        assert isinstance(provider, FirebaseTokenAuthProvider)
        assert provider.timeout == 3
