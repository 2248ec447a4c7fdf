"""
Cache Layer
Wraps remote collection fetches with a time-to-live, backed by the local store.

Entries are JSON objects of shape {<entity_key>: [...], "timestamp": ISO-8601}.
Stale entries are never evicted, only overwritten by the next successful fetch.
"""

import json
import logging
import threading
from datetime import timedelta
from typing import Any, Callable, Dict, Iterable, Optional, TypeVar

from hymnal.exceptions import CacheCorruptException
from hymnal.local_store import LocalStore
from hymnal.metrics import cache_operations_total
from hymnal.utils import now_utc, parse_datetime

logger = logging.getLogger("main")

T = TypeVar("T")

DEFAULT_ENTITY_KEY = "items"


class CacheLayer:
    """Time-stamped JSON blob cache over a LocalStore"""

    def __init__(self, local_store: LocalStore, clock: Callable = now_utc):
        self.local_store = local_store
        self.clock = clock
        self._stats = {
            "hits": 0,
            "misses": 0,
            "writes": 0,
            "corrupt": 0,
        }
        self._lock = threading.Lock()

    def _count(self, stat: str) -> None:
        with self._lock:
            self._stats[stat] += 1
        cache_operations_total.labels(operation=stat).inc()

    def _load_entry(self, key: str, entity_key: str) -> Optional[Dict[str, Any]]:
        """Decode a stored entry; corrupt entries are logged and treated as absent"""
        raw = self.local_store.get_string(key)
        if raw is None:
            return None
        try:
            return self._decode_entry(key, raw, entity_key)
        except CacheCorruptException:
            self._count("corrupt")
            logger.warning(f"Treating corrupt cache entry {key} as a miss")
            return None

    @staticmethod
    def _decode_entry(key: str, raw: str, entity_key: str) -> Dict[str, Any]:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CacheCorruptException(key, f"invalid JSON ({e.msg})")
        if not isinstance(data, dict):
            raise CacheCorruptException(key, "entry is not an object")
        if entity_key not in data:
            raise CacheCorruptException(key, f"missing '{entity_key}'")
        fetched_at = parse_datetime(data.get("timestamp"))
        if fetched_at is None:
            raise CacheCorruptException(key, "missing or invalid timestamp")
        return {"value": data[entity_key], "fetched_at": fetched_at}

    def is_fresh(self, fetched_at, ttl: timedelta) -> bool:
        return self.clock() - fetched_at < ttl

    def read(self, key: str, ttl: timedelta, entity_key: str = DEFAULT_ENTITY_KEY) -> Optional[Any]:
        """Return the cached value when it is still valid, else None"""
        entry = self._load_entry(key, entity_key)
        if entry is not None and self.is_fresh(entry["fetched_at"], ttl):
            return entry["value"]
        return None

    def read_stale(self, key: str, entity_key: str = DEFAULT_ENTITY_KEY) -> Optional[Any]:
        """Return the last stored value regardless of its age"""
        entry = self._load_entry(key, entity_key)
        return entry["value"] if entry is not None else None

    def write(self, key: str, value: Any, entity_key: str = DEFAULT_ENTITY_KEY) -> None:
        payload = {entity_key: value, "timestamp": self.clock().isoformat()}
        self.local_store.set_string(key, json.dumps(payload))
        self._count("writes")
        logger.debug(f"Cache SET: {key}")

    def fetch_with_cache(
        self,
        key: str,
        ttl: timedelta,
        remote_fetch: Callable[[], T],
        entity_key: str = DEFAULT_ENTITY_KEY,
    ) -> T:
        """
        Return the cached value for key while younger than ttl, otherwise call
        remote_fetch, store its result with the current timestamp and return it.

        Exceptions raised by remote_fetch propagate and nothing is written.
        """
        entry = self._load_entry(key, entity_key)
        if entry is not None and self.is_fresh(entry["fetched_at"], ttl):
            self._count("hits")
            logger.debug(f"Cache HIT: {key}")
            return entry["value"]

        self._count("misses")
        logger.debug(f"Cache MISS: {key}")
        value = remote_fetch()
        self.write(key, value, entity_key)
        return value

    def invalidate(self, key: str) -> bool:
        removed = self.local_store.remove(key)
        if removed:
            logger.debug(f"Cache DELETE: {key}")
        return removed

    def clear_cache(self, prefixes: Iterable[str]) -> int:
        """Remove every key that starts with one of the known prefixes"""
        prefixes = tuple(prefixes)
        count = 0
        for key in self.local_store.keys():
            if key.startswith(prefixes):
                if self.local_store.remove(key):
                    count += 1
        if count:
            logger.info(f"Cache cleared: {count} entries ({', '.join(prefixes)})")
        return count

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._stats)

    def reset_stats(self) -> None:
        with self._lock:
            for stat in self._stats:
                self._stats[stat] = 0
