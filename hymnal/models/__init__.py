"""
Models package

Immutable entities rebuilt from remote snapshots:
- song.py
- collection.py
- bible.py
- premium.py
- access.py

kv_entry.py holds the SQLAlchemy table behind the local store.
"""

from .access import AccessLevel, AuthState, UserRole
from .bible import (
    BibleBook,
    BibleBookmark,
    BibleChapter,
    BibleCollection,
    BiblePreferences,
    BibleSearchResult,
    BibleVerse,
    testament_for_book,
)
from .collection import CollectionStats, CollectionStatus, SongCollection
from .kv_entry import KeyValueEntry
from .premium import PremiumStatus, PremiumTier
from .song import Song, Verse, parse_songs, sort_songs
