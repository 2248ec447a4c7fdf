"""
Tests for the Firebase REST backend with a mocked requests session
"""
import json
from unittest.mock import MagicMock

import pytest
import requests

from hymnal.exceptions import RemoteUnavailableException, TransactionConflictException
from hymnal.firebase_rest import FirebaseRestStore


def make_response(status_code=200, payload=None, etag=None, text=""):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload
    resp.headers = {"ETag": etag} if etag else {}
    resp.text = text
    resp.reason = "reason"
    return resp


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def store(session):
    return FirebaseRestStore("https://db.example.org/", auth_token="secret", timeout=5, session=session)


class TestReads:
    def test_get_builds_json_url_with_auth(self, store, session):
        session.request.return_value = make_response(payload={"role": "admin"})

        assert store.ref("users/u1").get().value == {"role": "admin"}

        method, url = session.request.call_args.args
        assert method == "GET"
        assert url == "https://db.example.org/users/u1.json"
        assert session.request.call_args.kwargs["params"] == {"auth": "secret"}
        assert session.request.call_args.kwargs["timeout"] == 5

    def test_query_sends_quoted_order_and_sorts_locally(self, store, session):
        session.request.return_value = make_response(
            payload={"b": {"sort_order": 2}, "a": {"sort_order": 1}}
        )

        snapshot = store.ref("song_collections").order_by_child("sort_order").get()

        params = session.request.call_args.kwargs["params"]
        assert params["orderBy"] == '"sort_order"'
        assert [c.key for c in snapshot.children()] == ["a", "b"]

    def test_http_error_raises_remote_unavailable(self, store, session):
        session.request.return_value = make_response(status_code=401, text="Permission denied")
        with pytest.raises(RemoteUnavailableException) as excinfo:
            store.ref("users").get()
        assert "401" in excinfo.value.message

    def test_network_error_raises_remote_unavailable(self, store, session):
        session.request.side_effect = requests.ConnectionError("unreachable")
        with pytest.raises(RemoteUnavailableException):
            store.ref("songs").get()

    def test_invalid_json_raises_remote_unavailable(self, store, session):
        resp = make_response()
        resp.json.side_effect = ValueError("bad json")
        session.request.return_value = resp
        with pytest.raises(RemoteUnavailableException):
            store.ref("songs").get()


class TestWrites:
    def test_set_puts_pruned_payload(self, store, session):
        session.request.return_value = make_response()
        store.ref("users/u1").set({"role": "user", "note": None})

        method, url = session.request.call_args.args
        assert method == "PUT"
        assert json.loads(session.request.call_args.kwargs["data"]) == {"role": "user"}

    def test_set_none_deletes(self, store, session):
        session.request.return_value = make_response()
        store.ref("users/u1").set(None)
        assert session.request.call_args.args[0] == "DELETE"

    def test_update_patches_multi_path(self, store, session):
        session.request.return_value = make_response()
        store.ref().update({"/song_collections/x/": None, "collection_songs/x": None})

        method, url = session.request.call_args.args
        assert method == "PATCH"
        assert url == "https://db.example.org/.json"
        assert json.loads(session.request.call_args.kwargs["data"]) == {
            "song_collections/x": None,
            "collection_songs/x": None,
        }


class TestTransactions:
    def test_retries_on_conflict_with_fresh_value(self, store, session):
        session.request.side_effect = [
            make_response(payload=None, etag="e1"),
            make_response(status_code=412, payload=True, etag="e2"),
            make_response(payload=None),
        ]
        seen = []

        def flip(current):
            seen.append(current)
            return None if current is True else True

        committed = store.ref("users/u1/favorites/global/001").transaction(flip)

        assert seen == [None, True]
        assert committed is None
        last = session.request.call_args
        assert last.kwargs["headers"]["if-match"] == "e2"
        assert last.kwargs["data"] == "null"

    def test_gives_up_after_max_attempts(self, store, session):
        session.request.side_effect = [make_response(payload=None, etag="e1")] + [
            make_response(status_code=412, payload=None, etag="e1") for _ in range(3)
        ]
        with pytest.raises(TransactionConflictException):
            store.ref("counter").transaction(lambda current: 1, max_attempts=3)


class TestConstruction:
    def test_requires_database_url(self):
        with pytest.raises(ValueError):
            FirebaseRestStore("")
