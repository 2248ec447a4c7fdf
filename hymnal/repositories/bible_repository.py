"""
Repository for Bible content, bookmarks and reading preferences

Remote layout:
    bible/collections/<collection>                      collection metadata
    bible/books/<collection>/<book>                     book metadata
    bible/chapters/<collection>/<book>/<n>/verses/<v>   verse text
    bible/bookmarks/<uid>/<bookmark>
    bible/preferences/<uid>
Book lists are cached for 24 hours. Bible content is premium unless a
collection is marked otherwise.
"""

import logging
from dataclasses import replace
from typing import List, Optional

from hymnal.cache import CacheLayer
from hymnal.constants import (
    BIBLE_BOOKMARKS_PATH,
    BIBLE_BOOKS_CACHE_KEY,
    BIBLE_BOOKS_PATH,
    BIBLE_CACHE_KEYS,
    BIBLE_CACHE_PREFIX,
    BIBLE_CHAPTERS_PATH,
    BIBLE_COLLECTIONS_CACHE_KEY,
    BIBLE_COLLECTIONS_PATH,
    BIBLE_PREFERENCES_PATH,
)
from hymnal.exceptions import RemoteUnavailableException
from hymnal.metrics import track_remote_read
from hymnal.models.access import AccessLevel, AuthState
from hymnal.models.bible import (
    BibleBook,
    BibleBookmark,
    BibleChapter,
    BibleCollection,
    BiblePreferences,
    BibleSearchResult,
    BibleVerse,
    parse_bookmarks,
)
from hymnal.remote_store import RemoteDocumentStore
from hymnal.repositories.base import DEFAULT_TTL, CachedRepository
from hymnal.result import AccessReason, Result
from hymnal.services.access_gate import AccessGate
from hymnal.utils import as_dict, to_int

logger = logging.getLogger("main")

DEFAULT_SEARCH_LIMIT = 50


def books_cache_key(collection_id: str) -> str:
    return f"{BIBLE_CACHE_PREFIX}{collection_id}_books"


def match_positions(text: str, query: str) -> List[int]:
    """Every offset of query in text, case-insensitive, overlapping matches included"""
    haystack, needle = text.lower(), query.lower()
    positions = []
    index = haystack.find(needle)
    while index != -1:
        positions.append(index)
        index = haystack.find(needle, index + 1)
    return positions


def _level(collection: BibleCollection) -> AccessLevel:
    return AccessLevel.PREMIUM if collection.is_premium else AccessLevel.PUBLIC


class BibleRepository(CachedRepository):
    def __init__(
        self,
        remote: RemoteDocumentStore,
        cache: CacheLayer,
        gate: AccessGate,
        ttl=DEFAULT_TTL,
        search_limit: int = DEFAULT_SEARCH_LIMIT,
    ):
        super().__init__(remote, cache, ttl)
        self.gate = gate
        self.search_limit = search_limit

    # Content

    def _fetch_collections(self) -> List[dict]:
        data = as_dict(self.remote.ref(BIBLE_COLLECTIONS_PATH).get().value)
        return [dict(v, id=k) for k, v in data.items() if isinstance(v, dict)]

    def get_collections(self) -> Result:
        result = self._cached(BIBLE_COLLECTIONS_CACHE_KEY, self._fetch_collections, entity_key="collections", empty=[])
        if not result.ok:
            return result
        collections = [BibleCollection.from_map(row, str(row.get("id", ""))) for row in result.value]
        return Result.success(collections, is_online=result.is_online)

    def _collection(self, collection_id: str) -> Result:
        result = self.get_collections()
        if not result.ok:
            return result
        for collection in result.value:
            if collection.id == collection_id:
                return Result.success(collection, is_online=result.is_online)
        return Result.not_found(f"Bible collection {collection_id} not found")

    def _gate(self, level: AccessLevel, auth: AuthState, empty=None) -> Optional[Result]:
        decision = self.gate.resolve(level, auth)
        if decision.granted:
            return None
        return Result.denied(decision.reason, empty=empty)

    @track_remote_read("bible_books")
    def _fetch_books(self, collection_id: str) -> List[dict]:
        data = as_dict(self.remote.ref(BIBLE_BOOKS_PATH).child(collection_id).get().value)
        books = [BibleBook.from_map(v, k, collection_id) for k, v in data.items() if isinstance(v, dict)]
        books.sort(key=lambda b: b.book_number)
        logger.info(f"Fetched {len(books)} Bible books for {collection_id}")
        return [dict(b.to_map(), id=b.id) for b in books]

    def _books(self, collection_id: str) -> Result:
        result = self._cached(
            books_cache_key(collection_id), lambda: self._fetch_books(collection_id), entity_key="books", empty=[]
        )
        if not result.ok:
            return result
        books = [BibleBook.from_map(row, str(row.get("id", "")), collection_id) for row in result.value]
        return Result.success(books, is_online=result.is_online)

    def get_books(self, collection_id: str, auth: AuthState) -> Result:
        found = self._collection(collection_id)
        if not found.ok:
            return found
        denied = self._gate(_level(found.value), auth, empty=[])
        if denied:
            return denied
        return self._books(collection_id)

    def get_all_books(self, auth: AuthState) -> Result:
        denied = self._gate(AccessLevel.PREMIUM, auth, empty=[])
        if denied:
            return denied

        def fetch():
            # Only a fully online read may overwrite the combined entry
            collections = self.get_collections()
            if not collections.ok or not collections.is_online:
                raise RemoteUnavailableException(
                    collections.message or "Bible collections unavailable", path=BIBLE_COLLECTIONS_PATH
                )
            rows = []
            for collection in collections.value:
                books = self._books(collection.id)
                if not books.ok or not books.is_online:
                    raise RemoteUnavailableException(
                        books.message or f"Bible books for {collection.id} unavailable",
                        path=f"{BIBLE_BOOKS_PATH}/{collection.id}",
                    )
                rows.extend(dict(b.to_map(), id=b.id) for b in books.value)
            rows.sort(key=lambda row: to_int(row.get("bookNumber"), 1))
            return rows

        result = self._cached(BIBLE_BOOKS_CACHE_KEY, fetch, entity_key="books", empty=[])
        if not result.ok:
            return result
        books = [BibleBook.from_map(row, str(row.get("id", ""))) for row in result.value]
        return Result.success(books, is_online=result.is_online)

    def get_book(self, book_id: str, auth: AuthState, collection_id: Optional[str] = None) -> Result:
        result = self.get_books(collection_id, auth) if collection_id else self.get_all_books(auth)
        if not result.ok:
            return result
        for book in result.value:
            if book.id == book_id:
                return Result.success(book, is_online=result.is_online)
        return Result.not_found(f"Bible book {book_id} not found")

    def get_chapter(self, collection_id: str, book_id: str, chapter_number: int, auth: AuthState) -> Result:
        """Chapter with its verses ordered by verse number"""
        book = self.get_book(book_id, auth, collection_id)
        if not book.ok:
            return book
        chapter_ref = self.remote.ref(BIBLE_CHAPTERS_PATH).child(collection_id).child(book_id).child(str(chapter_number))
        result = self._remote(lambda: chapter_ref.get().value)
        if not result.ok:
            return result
        if result.value is None:
            return Result.not_found(f"{book.value.name} {chapter_number} not found")
        return Result.success(BibleChapter.from_map(result.value, book.value, chapter_number))

    def search_verses(
        self,
        query: str,
        auth: AuthState,
        book_id: Optional[str] = None,
        testament: Optional[str] = None,
        language: Optional[str] = None,
        collection_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Result:
        """
        Case-insensitive substring search over verse text.

        Results come back in storage order with every match offset recorded;
        there is no ranking. Premium only.
        """
        denied = self._gate(AccessLevel.PREMIUM, auth, empty=[])
        if denied:
            return denied
        query = (query or "").strip()
        if not query:
            return Result.success([])
        limit = self.search_limit if limit is None else limit

        collections = self.get_collections()
        if not collections.ok:
            return collections
        targets = [
            c
            for c in collections.value
            if (collection_id is None or c.id == collection_id) and (language is None or c.language == language)
        ]

        results: List[BibleSearchResult] = []
        online = collections.is_online
        for collection in targets:
            if len(results) >= limit:
                break
            books = self._books(collection.id)
            if not books.ok:
                return Result.failure(books.error, books.reason, books.message, value=results, is_online=False)
            online = online and books.is_online
            books_by_id = {b.id: b for b in books.value}
            chapters = self._remote(lambda: self.remote.ref(BIBLE_CHAPTERS_PATH).child(collection.id).get().value)
            if not chapters.ok:
                return Result.failure(chapters.error, chapters.reason, chapters.message, value=results, is_online=False)

            for current_book_id, book_chapters in as_dict(chapters.value).items():
                if len(results) >= limit:
                    break
                book = books_by_id.get(current_book_id) or BibleBook.from_map({}, current_book_id, collection.id)
                if book_id is not None and current_book_id != book_id:
                    continue
                if testament is not None and book.testament != testament:
                    continue
                self._search_book(book, book_chapters, query, collection, limit, results)

        return Result.success(results, is_online=online)

    @staticmethod
    def _search_book(book, book_chapters, query, collection, limit, results) -> None:
        for chapter_key, chapter in as_dict(book_chapters).items():
            verses = as_dict(chapter.get("verses") if isinstance(chapter, dict) else None)
            for verse_key, data in verses.items():
                if len(results) >= limit:
                    return
                if not isinstance(data, dict):
                    continue
                verse = BibleVerse.from_map(data, verse_key)
                positions = match_positions(verse.searchable_text, query)
                if positions:
                    results.append(
                        BibleSearchResult(
                            book_id=book.id,
                            book_name=book.name,
                            chapter_number=to_int(chapter_key, 1),
                            verse=verse,
                            query=query,
                            match_positions=tuple(positions),
                            collection_id=collection.id,
                            translation=collection.translation,
                        )
                    )

    # User data

    def get_bookmarks(self, auth: AuthState) -> Result:
        """Bookmarks newest first"""
        denied = self._gate(AccessLevel.PREMIUM, auth, empty=[])
        if denied:
            return denied
        ref = self.remote.ref(BIBLE_BOOKMARKS_PATH).child(auth.uid)
        return self._remote(lambda: parse_bookmarks(ref.get().value), empty=[])

    def add_bookmark(self, auth: AuthState, bookmark: BibleBookmark) -> Result:
        if not auth.is_authenticated:
            return Result.denied(AccessReason.LOGIN_REQUIRED)
        now = self.clock()
        bookmark_id = bookmark.id or BibleBookmark.create_id(
            auth.uid, bookmark.book_id, bookmark.chapter_number, bookmark.verse_number
        )
        saved = BibleBookmark(
            id=bookmark_id,
            user_id=auth.uid,
            book_id=bookmark.book_id,
            book_name=bookmark.book_name,
            chapter_number=bookmark.chapter_number,
            verse_number=bookmark.verse_number,
            verse_text=bookmark.verse_text,
            note=bookmark.note,
            tags=bookmark.tags,
            created_at=bookmark.created_at or now,
            updated_at=now,
        )
        ref = self.remote.ref(BIBLE_BOOKMARKS_PATH).child(auth.uid).child(bookmark_id)
        return self._remote(lambda: ref.set(saved.to_map())).map(lambda _: saved)

    def remove_bookmark(self, auth: AuthState, bookmark_id: str) -> Result:
        if not auth.is_authenticated:
            return Result.denied(AccessReason.LOGIN_REQUIRED, empty=False)
        ref = self.remote.ref(BIBLE_BOOKMARKS_PATH).child(auth.uid).child(bookmark_id)

        def remove():
            if not ref.get().exists:
                return False
            ref.remove()
            return True

        result = self._remote(remove, empty=False)
        if result.ok and not result.value:
            return Result.not_found(f"Bookmark {bookmark_id} not found")
        return result

    def get_preferences(self, auth: AuthState) -> Result:
        """Reading preferences, defaults when none are stored"""
        if not auth.is_authenticated:
            return Result.denied(AccessReason.LOGIN_REQUIRED, empty=BiblePreferences(user_id=""))
        ref = self.remote.ref(BIBLE_PREFERENCES_PATH).child(auth.uid)
        return self._remote(
            lambda: BiblePreferences.from_map(ref.get().value, auth.uid), empty=BiblePreferences(user_id=auth.uid)
        )

    def update_preferences(self, auth: AuthState, preferences: BiblePreferences) -> Result:
        if not auth.is_authenticated:
            return Result.denied(AccessReason.LOGIN_REQUIRED)

        saved = replace(preferences, user_id=auth.uid, updated_at=self.clock())
        ref = self.remote.ref(BIBLE_PREFERENCES_PATH).child(auth.uid)
        return self._remote(lambda: ref.set(saved.to_map())).map(lambda _: saved)

    def clear_cache(self) -> int:
        return self.cache.clear_cache(BIBLE_CACHE_KEYS)
