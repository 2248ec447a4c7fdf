"""
Repository for songs

Legacy songs live under songs/<number> and are public. Collection songs live
under collection_songs/<collection>/<number> and are gated by the collection's
access level. Both are read through the local cache.
"""

import logging
import random
from typing import Dict, Iterable, List, Optional

from hymnal.cache import CacheLayer
from hymnal.constants import (
    COLLECTION_SONGS_PATH,
    LEGACY_SONGS_CACHE_KEY,
    LEGACY_SONGS_COLLECTION,
    SEARCH_FIELDS,
    SONG_CACHE_KEYS,
    SONGS_PATH,
    SORT_BY_NUMBER,
)
from hymnal.metrics import remote_online, track_remote_read
from hymnal.models.access import AuthState
from hymnal.models.song import Song, parse_songs, sort_songs
from hymnal.remote_store import RemoteDocumentStore
from hymnal.repositories.base import DEFAULT_TTL, CachedRepository
from hymnal.repositories.collection_repository import CollectionRepository, songs_cache_key
from hymnal.result import Result
from hymnal.services.access_gate import AccessGate

logger = logging.getLogger("main")

DEFAULT_SEARCH_LIMIT = 50


def _is_legacy(collection_id: Optional[str]) -> bool:
    return not collection_id or collection_id == LEGACY_SONGS_COLLECTION


def _songs_path(collection_id: Optional[str]) -> str:
    if _is_legacy(collection_id):
        return SONGS_PATH
    return f"{COLLECTION_SONGS_PATH}/{collection_id}"


def _matches(song: Song, needle: str, fields: Iterable[str]) -> bool:
    for field in fields:
        if field == "number" and needle in song.number.lower():
            return True
        if field == "title" and needle in song.title.lower():
            return True
        if field == "lyrics" and any(needle in v.lyrics.lower() for v in song.verses):
            return True
    return False


class SongRepository(CachedRepository):
    def __init__(
        self,
        remote: RemoteDocumentStore,
        cache: CacheLayer,
        gate: AccessGate,
        collections: CollectionRepository,
        ttl=DEFAULT_TTL,
        search_limit: int = DEFAULT_SEARCH_LIMIT,
    ):
        super().__init__(remote, cache, ttl)
        self.gate = gate
        self.collections = collections
        self.search_limit = search_limit

    def _fetch_songs(self, collection_id: Optional[str]) -> List[dict]:
        @track_remote_read("songs")
        def fetch():
            data = self.remote.ref(_songs_path(collection_id)).get().value
            songs = parse_songs(data, None if _is_legacy(collection_id) else collection_id)
            logger.info(f"Fetched {len(songs)} songs from {_songs_path(collection_id)}")
            return [s.to_json() for s in songs]

        return fetch()

    def _load(self, collection_id: Optional[str]) -> Result:
        key = LEGACY_SONGS_CACHE_KEY if _is_legacy(collection_id) else songs_cache_key(collection_id)
        result = self._cached(key, lambda: self._fetch_songs(collection_id), entity_key="songs", empty=[])
        if not result.ok:
            return result
        return Result.success([Song.from_json(row) for row in result.value], is_online=result.is_online)

    def _accessible(self, auth: AuthState, collection_id: Optional[str]) -> Result:
        """Songs in storage order once the collection's access level allows it"""
        if _is_legacy(collection_id):
            return self._load(None)
        found = self.collections.get_by_id(collection_id)
        if not found.ok:
            return found
        decision = self.gate.resolve(found.value, auth)
        if not decision.granted:
            return Result.denied(decision.reason, empty=[])
        return self._load(collection_id)

    def get_all(self, auth: AuthState, collection_id: Optional[str] = None, order: str = SORT_BY_NUMBER) -> Result:
        result = self._accessible(auth, collection_id)
        if not result.ok:
            return result
        return Result.success(sort_songs(result.value, order), is_online=result.is_online)

    def get_by_id(self, number: str, auth: AuthState, collection_id: Optional[str] = None) -> Result:
        result = self._accessible(auth, collection_id)
        if not result.ok:
            return result
        for song in result.value:
            if song.number == number:
                return Result.success(song, is_online=result.is_online)
        return Result.not_found(f"Song {number} not found")

    def search(
        self,
        query: str,
        auth: AuthState,
        collection_id: Optional[str] = None,
        limit: Optional[int] = None,
        fields: Iterable[str] = SEARCH_FIELDS,
    ) -> Result:
        """Case-insensitive substring match in storage order, at most limit songs"""
        needle = (query or "").strip().lower()
        if not needle:
            return Result.success([])
        result = self._accessible(auth, collection_id)
        if not result.ok:
            return result
        limit = self.search_limit if limit is None else limit
        fields = tuple(fields)
        matches = []
        for song in result.value:
            if len(matches) >= limit:
                break
            if _matches(song, needle, fields):
                matches.append(song)
        return Result.success(matches, is_online=result.is_online)

    def load_all_accessible(self, auth: AuthState) -> Result:
        """
        Load the legacy songs and every collection the caller may open.

        The value maps collection id to songs; is_online is True only when at
        least one collection came back with songs.
        """
        loaded: Dict[str, List[Song]] = {}
        online = False

        results = [(LEGACY_SONGS_COLLECTION, self._load(None))]
        index = self.collections.get_all()
        for collection in index.value or []:
            if self.gate.can_access(collection, auth):
                results.append((collection.id, self._load(collection.id)))

        for collection_id, result in results:
            songs = result.value or []
            loaded[collection_id] = songs
            if result.ok and result.is_online and songs:
                online = True

        remote_online.set(1 if online else 0)
        logger.info(f"Loaded {sum(len(s) for s in loaded.values())} songs from {len(loaded)} collections (online={online})")
        return Result.success(loaded, is_online=online)

    def _mutate(self, collection_id: Optional[str], updates: Dict[str, Optional[dict]]) -> Result:
        result = self._remote(lambda: self.remote.ref().update(updates))
        if result.ok:
            self.cache.invalidate(LEGACY_SONGS_CACHE_KEY if _is_legacy(collection_id) else songs_cache_key(collection_id))
        return result

    def _exists(self, number: str, collection_id: Optional[str]) -> Result:
        return self._remote(lambda: self.remote.ref(_songs_path(collection_id)).child(number).get().exists)

    def add(self, song: Song, collection_id: Optional[str] = None) -> Result:
        if not _is_legacy(collection_id):
            return self.collections.add_song(collection_id, song)
        result = self._mutate(None, {f"{SONGS_PATH}/{song.number}": song.to_remote()})
        return result.map(lambda _: song)

    def update(self, original_number: str, song: Song, collection_id: Optional[str] = None) -> Result:
        exists = self._exists(original_number, collection_id)
        if not exists.ok:
            return exists
        if not exists.value:
            return Result.not_found(f"Song {original_number} not found")

        path = _songs_path(collection_id)
        updates = {f"{path}/{song.number}": song.to_remote()}
        if original_number != song.number:
            updates[f"{path}/{original_number}"] = None
        result = self._mutate(collection_id, updates)
        return result.map(lambda _: song)

    def delete(self, number: str, collection_id: Optional[str] = None) -> Result:
        if not _is_legacy(collection_id):
            return self.collections.remove_song(collection_id, number)
        exists = self._exists(number, None)
        if not exists.ok:
            return exists
        if not exists.value:
            return Result.not_found(f"Song {number} not found")
        return self._mutate(None, {f"{SONGS_PATH}/{number}": None}).map(lambda _: True)

    def verse_of_the_day(self, auth: AuthState, rng: Optional[random.Random] = None) -> Result:
        """A random verse from the public songs, stable for the current day unless rng is given"""
        result = self._accessible(auth, None)
        if not result.ok:
            return result
        candidates = [s for s in sort_songs(result.value) if s.verses]
        if not candidates:
            return Result.not_found("No songs with verses")
        rng = rng or random.Random(self.clock().date().toordinal())
        song = rng.choice(candidates)
        verse = rng.choice(song.verses)
        return Result.success({"song": song, "verse": verse}, is_online=result.is_online)

    def clear_cache(self) -> int:
        return self.cache.clear_cache(SONG_CACHE_KEYS)
