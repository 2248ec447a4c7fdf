"""
Repository for song collections
Metadata lives under song_collections/<id>, songs under collection_songs/<id>/<number>.
"""

import logging
from typing import Callable, List, Optional

from hymnal.cache import CacheLayer
from hymnal.constants import (
    COLLECTION_INDEX_CACHE_KEY,
    COLLECTION_SONGS_CACHE_PREFIX,
    COLLECTION_SONGS_PATH,
    COLLECTIONS_PATH,
)
from hymnal.models.access import AuthState
from hymnal.models.collection import CollectionStats, SongCollection
from hymnal.models.song import Song
from hymnal.remote_store import RemoteDocumentStore
from hymnal.repositories.base import DEFAULT_TTL, CachedRepository
from hymnal.result import Result
from hymnal.services.access_gate import AccessGate, AccessState

logger = logging.getLogger("main")

# Locked collections still listed so the caller can offer a login or upgrade
PREVIEW_STATES = (AccessState.LOGIN_REQUIRED, AccessState.PREMIUM_REQUIRED)


def songs_cache_key(collection_id: str) -> str:
    return f"{COLLECTION_SONGS_CACHE_PREFIX}{collection_id}"


def _sort_key(collection: SongCollection):
    return (collection.sort_order, collection.name.casefold())


class CollectionRepository(CachedRepository):
    def __init__(self, remote: RemoteDocumentStore, cache: CacheLayer, gate: AccessGate, ttl=DEFAULT_TTL):
        super().__init__(remote, cache, ttl)
        self.gate = gate

    def _fetch_index(self) -> List[dict]:
        snapshot = self.remote.ref(COLLECTIONS_PATH).order_by_child("sort_order").get()
        rows = []
        for child in snapshot.children():
            if isinstance(child.value, dict):
                rows.append(dict(child.value, id=child.key))
        logger.info(f"Fetched {len(rows)} song collections")
        return rows

    def get_all(
        self,
        include_inactive: bool = False,
        access_filter: Optional[Callable[[SongCollection], bool]] = None,
    ) -> Result:
        """Collections ordered by sort_order then name"""
        result = self._cached(COLLECTION_INDEX_CACHE_KEY, self._fetch_index, entity_key="collections", empty=[])
        if not result.ok:
            return result
        collections = [SongCollection.from_json(row, str(row.get("id", ""))) for row in result.value]
        if not include_inactive:
            collections = [c for c in collections if c.is_active]
        if access_filter is not None:
            collections = [c for c in collections if access_filter(c)]
        collections.sort(key=_sort_key)
        return Result.success(collections, is_online=result.is_online)

    def get_for_user(self, auth: AuthState, include_preview: bool = True) -> Result:
        """Active collections the caller may open, plus locked previews when asked"""

        def visible(collection):
            decision = self.gate.resolve(collection, auth)
            return decision.granted or (include_preview and decision.state in PREVIEW_STATES)

        return self.get_all(access_filter=visible)

    def get_by_id(self, collection_id: str) -> Result:
        result = self.get_all(include_inactive=True)
        if not result.ok:
            return result
        for collection in result.value:
            if collection.id == collection_id:
                return Result.success(collection, is_online=result.is_online)
        return Result.not_found(f"Collection {collection_id} not found")

    def _invalidate(self, collection_id: Optional[str] = None) -> None:
        self.cache.invalidate(COLLECTION_INDEX_CACHE_KEY)
        if collection_id:
            self.cache.invalidate(songs_cache_key(collection_id))

    def create(self, collection: SongCollection, actor: Optional[str] = None) -> Result:
        def write():
            ref = self.remote.ref(COLLECTIONS_PATH)
            ref = ref.child(collection.id) if collection.id else ref.push()
            now = self.clock()
            created = collection.with_changes(
                id=ref.key,
                created_at=collection.created_at or now,
                updated_at=now,
                created_by=collection.created_by or actor or "",
            )
            ref.set(created.to_json())
            return created

        result = self._remote(write)
        if result.ok:
            self._invalidate(result.value.id)
            logger.info(f"Created collection {result.value.id}")
        return result

    def update(self, collection: SongCollection, actor: Optional[str] = None) -> Result:
        def write():
            ref = self.remote.ref(COLLECTIONS_PATH).child(collection.id)
            if not ref.get().exists:
                return None
            updated = collection.with_changes(updated_at=self.clock(), updated_by=actor or collection.updated_by)
            ref.update(updated.to_json())
            return updated

        result = self._remote(write)
        if not result.ok:
            return result
        if result.value is None:
            return Result.not_found(f"Collection {collection.id} not found")
        self._invalidate(collection.id)
        return result

    def delete(self, collection_id: str) -> Result:
        def write():
            if not self.remote.ref(COLLECTIONS_PATH).child(collection_id).get().exists:
                return False
            self.remote.ref().update(
                {
                    f"{COLLECTIONS_PATH}/{collection_id}": None,
                    f"{COLLECTION_SONGS_PATH}/{collection_id}": None,
                }
            )
            return True

        result = self._remote(write)
        if not result.ok:
            return result
        if not result.value:
            return Result.not_found(f"Collection {collection_id} not found")
        self._invalidate(collection_id)
        logger.info(f"Deleted collection {collection_id}")
        return result

    def _refresh_song_count(self, collection_id: str) -> int:
        songs = self.remote.ref(COLLECTION_SONGS_PATH).child(collection_id).get().to_dict()
        self.remote.ref(COLLECTIONS_PATH).child(collection_id).update(
            {"song_count": len(songs), "updated_at": self.clock().isoformat()}
        )
        return len(songs)

    def add_song(self, collection_id: str, song: Song) -> Result:
        def write():
            if not self.remote.ref(COLLECTIONS_PATH).child(collection_id).get().exists:
                return None
            self.remote.ref(COLLECTION_SONGS_PATH).child(collection_id).child(song.number).set(song.to_remote())
            self._refresh_song_count(collection_id)
            return song

        result = self._remote(write)
        if not result.ok:
            return result
        if result.value is None:
            return Result.not_found(f"Collection {collection_id} not found")
        self._invalidate(collection_id)
        return result

    def remove_song(self, collection_id: str, song_number: str) -> Result:
        def write():
            ref = self.remote.ref(COLLECTION_SONGS_PATH).child(collection_id).child(song_number)
            if not ref.get().exists:
                return False
            ref.remove()
            self._refresh_song_count(collection_id)
            return True

        result = self._remote(write)
        if not result.ok:
            return result
        if not result.value:
            return Result.not_found(f"Song {song_number} not in collection {collection_id}")
        self._invalidate(collection_id)
        return result

    def get_stats(self) -> Result:
        result = self.get_all(include_inactive=True)
        if not result.ok:
            return result
        return Result.success(CollectionStats.from_collections(result.value), is_online=result.is_online)
