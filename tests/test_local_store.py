"""
Tests for the local key-value store backends
"""
import json

import pytest

from hymnal.local_store import RedisLocalStore, SqlLocalStore, create_local_store


class FakeRedis:
    """Dict-backed stand-in for the handful of redis client calls the store makes"""

    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value

    def delete(self, key):
        return 1 if self.data.pop(key, None) is not None else 0

    def scan_iter(self, match=None):
        prefix = (match or "*").rstrip("*")
        return [k for k in list(self.data) if k.startswith(prefix)]


@pytest.fixture(params=["sql", "redis"])
def store(request):
    if request.param == "sql":
        return SqlLocalStore("sqlite://")
    return RedisLocalStore(FakeRedis(), prefix="test:")


class TestTypedAccessors:
    """Values come back with the type they were stored with"""

    def test_round_trip_each_type(self, store):
        store.set_bool("flag", True)
        store.set_int("count", 42)
        store.set_double("ratio", 0.75)
        store.set_string("name", "Kidung")
        store.set_string_list("recent", ["001", "010"])

        assert store.get_bool("flag") is True
        assert store.get_int("count") == 42
        assert store.get_double("ratio") == 0.75
        assert store.get_string("name") == "Kidung"
        assert store.get_string_list("recent") == ["001", "010"]

    def test_missing_key_returns_default(self, store):
        assert store.get_string("absent") is None
        assert store.get_bool("absent", False) is False
        assert store.get_int("absent", 7) == 7

    def test_type_mismatch_returns_default(self, store):
        store.set_string("name", "x")
        assert store.get_bool("name", False) is False
        assert store.get_int("name", -1) == -1

    def test_int_reads_as_double(self, store):
        store.set_int("size", 3)
        assert store.get_double("size") == 3.0

    def test_rejects_wrong_value_type(self, store):
        with pytest.raises(TypeError):
            store.set_bool("flag", "yes")
        with pytest.raises(TypeError):
            store.set_string_list("recent", ["a", 1])

    def test_overwrite_changes_type(self, store):
        store.set_int("k", 1)
        store.set_string("k", "one")
        assert store.get_string("k") == "one"
        assert store.get_int("k") is None


class TestKeyManagement:
    """contains, remove, keys and clear"""

    def test_remove(self, store):
        store.set_string("a", "1")
        assert store.contains("a")
        assert store.remove("a") is True
        assert store.remove("a") is False
        assert not store.contains("a")

    def test_keys_sorted_and_clear(self, store):
        store.set_string("b", "2")
        store.set_string("a", "1")
        assert store.keys() == ["a", "b"]
        assert store.clear() == 2
        assert store.keys() == []


class TestRedisLayout:
    """Redis documents are namespaced JSON with type and value"""

    def test_document_format(self):
        client = FakeRedis()
        store = RedisLocalStore(client, prefix="hymnal:")
        store.set_int("count", 5)
        assert json.loads(client.data["hymnal:count"]) == {"type": "int", "value": 5}

    def test_unreadable_document_is_a_miss(self):
        client = FakeRedis()
        client.data["hymnal:broken"] = "{not json"
        store = RedisLocalStore(client, prefix="hymnal:")
        assert store.get_string("broken", "fallback") == "fallback"


class TestFactory:
    def test_sql_backend_by_default(self):
        store = create_local_store({"local_store": {"backend": "sql", "url": "sqlite://"}})
        assert isinstance(store, SqlLocalStore)

    def test_sql_file_backend(self, tmp_path):
        url = f"sqlite:///{tmp_path}/nested/store.db"
        store = create_local_store({"local_store": {"backend": "sql", "url": url}})
        store.set_string("persisted", "yes")
        assert SqlLocalStore(url).get_string("persisted") == "yes"
