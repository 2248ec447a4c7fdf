"""
Local key-value store
Persisted map of string keys to primitive values (bool/int/double/string/string-list),
used for user preferences and as the backing store of the time-stamped JSON cache.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from hymnal.db import init_db
from hymnal.models.kv_entry import KeyValueEntry

logger = logging.getLogger("main")

TYPE_BOOL = "bool"
TYPE_INT = "int"
TYPE_DOUBLE = "double"
TYPE_STRING = "string"
TYPE_STRING_LIST = "string_list"


def _matches(value_type: str, value: Any) -> bool:
    if value_type == TYPE_BOOL:
        return isinstance(value, bool)
    if value_type == TYPE_INT:
        return isinstance(value, int) and not isinstance(value, bool)
    if value_type == TYPE_DOUBLE:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if value_type == TYPE_STRING:
        return isinstance(value, str)
    if value_type == TYPE_STRING_LIST:
        return isinstance(value, list) and all(isinstance(v, str) for v in value)
    return False


class LocalStore(ABC):
    """Typed accessors over a raw (type, value) storage primitive"""

    @abstractmethod
    def _read(self, key: str) -> Optional[Tuple[str, Any]]:
        pass

    @abstractmethod
    def _write(self, key: str, value_type: str, value: Any) -> None:
        pass

    @abstractmethod
    def remove(self, key: str) -> bool:
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        pass

    def contains(self, key: str) -> bool:
        return self._read(key) is not None

    def clear(self) -> int:
        count = 0
        for key in self.keys():
            if self.remove(key):
                count += 1
        return count

    def _get(self, key: str, value_type: str, default):
        entry = self._read(key)
        if entry is None:
            return default
        stored_type, value = entry
        if stored_type != value_type and not (value_type == TYPE_DOUBLE and stored_type == TYPE_INT):
            logger.debug(f"Local store type mismatch for {key}: stored {stored_type}, requested {value_type}")
            return default
        return value

    def _set(self, key: str, value_type: str, value: Any) -> None:
        if not _matches(value_type, value):
            raise TypeError(f"Value for {key} is not a valid {value_type}: {value!r}")
        self._write(key, value_type, value)

    def get_bool(self, key: str, default: Optional[bool] = None) -> Optional[bool]:
        return self._get(key, TYPE_BOOL, default)

    def get_int(self, key: str, default: Optional[int] = None) -> Optional[int]:
        return self._get(key, TYPE_INT, default)

    def get_double(self, key: str, default: Optional[float] = None) -> Optional[float]:
        value = self._get(key, TYPE_DOUBLE, default)
        return float(value) if value is not None else None

    def get_string(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._get(key, TYPE_STRING, default)

    def get_string_list(self, key: str, default: Optional[List[str]] = None) -> Optional[List[str]]:
        value = self._get(key, TYPE_STRING_LIST, default)
        return list(value) if value is not None else None

    def set_bool(self, key: str, value: bool) -> None:
        self._set(key, TYPE_BOOL, value)

    def set_int(self, key: str, value: int) -> None:
        self._set(key, TYPE_INT, value)

    def set_double(self, key: str, value: float) -> None:
        self._set(key, TYPE_DOUBLE, float(value) if isinstance(value, int) and not isinstance(value, bool) else value)

    def set_string(self, key: str, value: str) -> None:
        self._set(key, TYPE_STRING, value)

    def set_string_list(self, key: str, value: List[str]) -> None:
        self._set(key, TYPE_STRING_LIST, list(value))


class SqlLocalStore(LocalStore):
    """Local store persisted in a SQL table (SQLite by default)"""

    def __init__(self, url: str = "sqlite://"):
        self.url = url
        self._session_factory = init_db(url)
        self._lock = threading.Lock()

    def _read(self, key):
        with self._session_factory() as session:
            entry = session.get(KeyValueEntry, key)
            if entry is None:
                return None
            try:
                return entry.value_type, json.loads(entry.value)
            except json.JSONDecodeError:
                logger.warning(f"Unreadable local store value for {key}, ignoring")
                return None

    def _write(self, key, value_type, value):
        with self._lock, self._session_factory() as session:
            try:
                entry = session.get(KeyValueEntry, key)
                if entry is None:
                    session.add(KeyValueEntry(key=key, value_type=value_type, value=json.dumps(value)))
                else:
                    entry.value_type = value_type
                    entry.value = json.dumps(value)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise e

    def remove(self, key):
        with self._lock, self._session_factory() as session:
            entry = session.get(KeyValueEntry, key)
            if entry is None:
                return False
            session.delete(entry)
            session.commit()
            return True

    def keys(self):
        with self._session_factory() as session:
            return [row[0] for row in session.query(KeyValueEntry.key).order_by(KeyValueEntry.key).all()]


class RedisLocalStore(LocalStore):
    """Local store kept in Redis, one JSON document per key under a namespace prefix"""

    def __init__(self, client, prefix: str = "hymnal:"):
        self.client = client
        self.prefix = prefix

    def _full_key(self, key):
        return f"{self.prefix}{key}"

    def _read(self, key):
        raw = self.client.get(self._full_key(key))
        if raw is None:
            return None
        try:
            doc = json.loads(raw)
            return doc["type"], doc["value"]
        except (json.JSONDecodeError, KeyError, TypeError):
            logger.warning(f"Unreadable redis local store value for {key}, ignoring")
            return None

    def _write(self, key, value_type, value):
        self.client.set(self._full_key(key), json.dumps({"type": value_type, "value": value}))

    def remove(self, key):
        return self.client.delete(self._full_key(key)) > 0

    def keys(self):
        keys = []
        for raw in self.client.scan_iter(match=f"{self.prefix}*"):
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8")
            keys.append(raw[len(self.prefix):])
        return sorted(keys)


def create_local_store(settings: dict) -> LocalStore:
    """Build the configured local store backend"""
    config = settings.get("local_store", {})
    backend = config.get("backend", "sql")
    if backend == "redis":
        import redis

        url = config.get("url") or ""
        if not url.startswith(("redis://", "rediss://", "unix://")):
            url = "redis://localhost:6379/0"
        client = redis.from_url(url, decode_responses=True)
        logger.info(f"Local store using redis at {url}")
        return RedisLocalStore(client, prefix=config.get("prefix", "hymnal:"))
    url = config.get("url") or "sqlite://"
    logger.info(f"Local store using SQL database {url}")
    return SqlLocalStore(url)
