"""
Repository for user favorites

Stored at users/<uid>/favorites as {"global": {"001": true}, "<collection>": {"004": true}}.
A favorite is present as true; an unfavorited song has no key at all.
Older clients wrote a flat {"001": true} map, which is moved under "global"
on first read.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from hymnal.constants import GLOBAL_FAVORITES, USERS_PATH
from hymnal.exceptions import RemoteUnavailableException
from hymnal.metrics import favorite_toggles_total
from hymnal.models.access import AuthState
from hymnal.models.song import Song
from hymnal.remote_store import DocumentRef, RemoteDocumentStore
from hymnal.result import AccessReason, ErrorKind, Result
from hymnal.utils import format_datetime, now_utc, to_int

logger = logging.getLogger("main")


def _is_flat(node: Any) -> bool:
    return isinstance(node, dict) and any(isinstance(v, bool) for v in node.values())


def migrate_flat(node: Any) -> Any:
    """Move flat {number: true} entries under "global"; structured nodes are returned as-is"""
    if not _is_flat(node):
        return node
    migrated = {k: dict(v) for k, v in node.items() if isinstance(v, dict)}
    legacy = {k: True for k, v in node.items() if v is True}
    if legacy:
        migrated.setdefault(GLOBAL_FAVORITES, {}).update(legacy)
    return migrated


def _numbers(entries: Any) -> List[str]:
    if not isinstance(entries, dict):
        return []
    return sorted((k for k, v in entries.items() if v is True), key=lambda n: (to_int(n, 0), n))


class FavoritesRepository:
    def __init__(self, remote: RemoteDocumentStore, clock=now_utc):
        self.remote = remote
        self.clock = clock

    def _ref(self, auth: AuthState) -> DocumentRef:
        return self.remote.ref(f"{USERS_PATH}/{auth.uid}/favorites")

    @staticmethod
    def _denied(empty=None) -> Result:
        return Result.denied(AccessReason.LOGIN_REQUIRED, empty=empty)

    def _read(self, auth: AuthState) -> Dict[str, Any]:
        """Current favorites node, migrating a flat legacy node first"""
        ref = self._ref(auth)
        node = ref.get().value
        if _is_flat(node):
            # Only rewrites a node that is still flat, so a concurrent migrator is a no-op
            node = ref.transaction(migrate_flat)
            logger.info(f"Migrated legacy favorites for {auth.uid}")
        return node if isinstance(node, dict) else {}

    def _guarded(self, auth: AuthState, operation, empty=None) -> Result:
        if not auth.is_authenticated:
            return self._denied(empty)
        try:
            return Result.success(operation())
        except RemoteUnavailableException as e:
            return Result.unavailable(e.message, empty=empty)

    def get_favorites(self, auth: AuthState, collection_id: Optional[str] = None) -> Result:
        """Favorite song numbers of one collection ("global" by default)"""
        collection_id = collection_id or GLOBAL_FAVORITES
        return self._guarded(auth, lambda: _numbers(self._read(auth).get(collection_id)), empty=[])

    def get_all_favorites(self, auth: AuthState) -> Result:
        def read():
            node = self._read(auth)
            return {cid: _numbers(entries) for cid, entries in node.items() if _numbers(entries)}

        return self._guarded(auth, read, empty={})

    def favorite_set(self, auth: AuthState) -> Result:
        def read():
            node = self._read(auth)
            return {(cid, number) for cid, entries in node.items() for number in _numbers(entries)}

        return self._guarded(auth, read, empty=set())

    def is_favorite(self, auth: AuthState, number: str, collection_id: str = GLOBAL_FAVORITES) -> Result:
        result = self.favorite_set(auth)
        if not result.ok:
            return Result.failure(result.error, result.reason, result.message, value=False, is_online=result.is_online)
        return Result.success((collection_id, number) in result.value)

    def toggle(self, auth: AuthState, number: str, collection_id: str = GLOBAL_FAVORITES) -> Result:
        """Flip one favorite atomically and return the new state"""

        def flip(current):
            return None if current is True else True

        def run():
            self._read(auth)
            committed = self._ref(auth).child(collection_id).child(number).transaction(flip)
            state = committed is True
            favorite_toggles_total.labels(state="added" if state else "removed").inc()
            logger.debug(f"Favorite {collection_id}/{number} for {auth.uid}: {state}")
            return state

        return self._guarded(auth, run, empty=False)

    def add_multiple(self, auth: AuthState, numbers: Iterable[str], collection_id: str = GLOBAL_FAVORITES) -> Result:
        numbers = list(numbers)

        def run():
            self._read(auth)
            if numbers:
                self._ref(auth).child(collection_id).update({n: True for n in numbers})
            return len(numbers)

        return self._guarded(auth, run, empty=0)

    def remove_multiple(self, auth: AuthState, numbers: Iterable[str], collection_id: str = GLOBAL_FAVORITES) -> Result:
        numbers = list(numbers)

        def run():
            self._read(auth)
            if numbers:
                self._ref(auth).child(collection_id).update({n: None for n in numbers})
            return len(numbers)

        return self._guarded(auth, run, empty=0)

    def clear_all(self, auth: AuthState, collection_id: Optional[str] = None) -> Result:
        def run():
            ref = self._ref(auth)
            (ref.child(collection_id) if collection_id else ref).remove()
            return True

        return self._guarded(auth, run, empty=False)

    def count(self, auth: AuthState) -> Result:
        result = self.favorite_set(auth)
        if not result.ok:
            return Result.failure(result.error, result.reason, result.message, value=0, is_online=result.is_online)
        return result.map(len)

    def export(self, auth: AuthState) -> Result:
        def run():
            node = self._read(auth)
            favorites = {cid: {n: True for n in _numbers(entries)} for cid, entries in node.items()}
            return {
                "favorites": {cid: entries for cid, entries in favorites.items() if entries},
                "count": sum(len(entries) for entries in favorites.values()),
                "exported_at": format_datetime(self.clock()),
            }

        return self._guarded(auth, run, empty={})

    def sync_from_data(self, auth: AuthState, data: Any) -> Result:
        """Replace the favorites with data, keeping only true entries (flat maps land in "global")"""
        if not auth.is_authenticated:
            return self._denied(0)
        if isinstance(data, dict) and isinstance(data.get("favorites"), dict):
            data = data["favorites"]
        if not isinstance(data, dict):
            return Result.failure(ErrorKind.CORRUPT, message="Favorites data must be an object", value=0)

        node = migrate_flat(data)
        cleaned = {}
        for cid, entries in node.items():
            kept = {n: True for n in _numbers(entries)}
            if kept:
                cleaned[str(cid)] = kept

        def run():
            self._ref(auth).set(cleaned)
            total = sum(len(v) for v in cleaned.values())
            logger.info(f"Synced {total} favorites for {auth.uid}")
            return total

        return self._guarded(auth, run, empty=0)

    def annotate(
        self, songs: Iterable[Song], auth: AuthState, collection_id: Optional[str] = None
    ) -> Result:
        """Pair each song with its favorite flag, looked up by membership"""
        songs = list(songs)
        collection_id = collection_id or GLOBAL_FAVORITES
        result = self.favorite_set(auth)
        if not result.ok:
            return Result.failure(
                result.error,
                result.reason,
                result.message,
                value=[(s, False) for s in songs],
                is_online=result.is_online,
            )
        favorites: Set[Tuple[str, str]] = result.value
        return Result.success([(s, (collection_id, s.number) in favorites) for s in songs])
