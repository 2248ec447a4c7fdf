"""
Shared plumbing for the cached repositories
"""

import logging
from datetime import timedelta
from typing import Any, Callable

from hymnal.cache import DEFAULT_ENTITY_KEY, CacheLayer
from hymnal.exceptions import RemoteUnavailableException
from hymnal.remote_store import RemoteDocumentStore
from hymnal.result import Result

logger = logging.getLogger("main")

DEFAULT_TTL = timedelta(hours=24)


class CachedRepository:
    """Remote reads go through the cache; a failed fetch falls back to the stale entry"""

    def __init__(self, remote: RemoteDocumentStore, cache: CacheLayer, ttl: timedelta = DEFAULT_TTL):
        self.remote = remote
        self.cache = cache
        self.ttl = ttl

    @property
    def clock(self):
        return self.cache.clock

    def _cached(
        self,
        key: str,
        fetch: Callable[[], Any],
        entity_key: str = DEFAULT_ENTITY_KEY,
        empty: Any = None,
    ) -> Result:
        try:
            return Result.success(self.cache.fetch_with_cache(key, self.ttl, fetch, entity_key))
        except RemoteUnavailableException as e:
            stale = self.cache.read_stale(key, entity_key)
            if stale is not None:
                logger.warning(f"Remote unavailable, serving stale cache for {key}")
                return Result.success(stale, is_online=False)
            return Result.unavailable(e.message, empty=empty)

    def _remote(self, operation: Callable[[], Any], empty: Any = None) -> Result:
        """Run a direct remote call, mapping store failures to REMOTE_UNAVAILABLE"""
        try:
            return Result.success(operation())
        except RemoteUnavailableException as e:
            return Result.unavailable(e.message, empty=empty)
