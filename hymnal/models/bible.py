"""
Model: Bible collections, books, chapters, verses, bookmarks and preferences
Remote records use camelCase keys.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from hymnal.utils import as_dict, format_datetime, parse_datetime, to_int

OLD_TESTAMENT_BOOKS = 39

_MARKUP_RE = re.compile(r"<[^>]+>|\[[^\]]*\]")


def testament_for_book(book_number: int) -> str:
    return "old" if book_number <= OLD_TESTAMENT_BOOKS else "new"


def clean_verse_text(text: str) -> str:
    """Strip inline markup and footnote markers"""
    return " ".join(_MARKUP_RE.sub("", text or "").split())


def _str_list(value) -> Tuple[str, ...]:
    if isinstance(value, dict):
        value = list(value.values())
    if not isinstance(value, list):
        return ()
    return tuple(str(v) for v in value if v is not None)


def _to_float(value, default: float) -> float:
    if isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class BibleCollection:
    id: str
    name: str = ""
    language: str = "malay"
    translation: str = "TB"
    description: str = ""
    is_premium: bool = True
    available_books: Tuple[str, ...] = ()

    @classmethod
    def from_map(cls, data: Any, collection_id: str) -> "BibleCollection":
        data = data if isinstance(data, dict) else {}
        is_premium = data.get("isPremium")
        return cls(
            id=collection_id,
            name=str(data.get("name") or ""),
            language=str(data.get("language") or "malay"),
            translation=str(data.get("translation") or "TB"),
            description=str(data.get("description") or ""),
            is_premium=is_premium if isinstance(is_premium, bool) else True,
            available_books=_str_list(data.get("availableBooks")),
        )

    def to_map(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "language": self.language,
            "translation": self.translation,
            "description": self.description,
            "isPremium": self.is_premium,
            "availableBooks": list(self.available_books),
        }

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.to_map(), id=self.id)


@dataclass(frozen=True)
class BibleBook:
    id: str
    name: str = ""
    english_name: str = ""
    abbreviation: str = ""
    testament: str = "old"
    book_number: int = 1
    total_chapters: int = 1
    collection_id: str = ""
    language: str = "malay"
    translation: str = "TB"

    @classmethod
    def from_map(cls, data: Any, book_id: str, collection_id: Optional[str] = None) -> "BibleBook":
        data = data if isinstance(data, dict) else {}
        book_number = to_int(data.get("bookNumber"), 1)
        return cls(
            id=book_id,
            name=str(data.get("name") or book_id),
            english_name=str(data.get("englishName") or ""),
            abbreviation=str(data.get("abbreviation") or book_id[:3]),
            testament=str(data.get("testament") or testament_for_book(book_number)),
            book_number=book_number,
            total_chapters=to_int(data.get("totalChapters"), 1),
            collection_id=collection_id or str(data.get("collectionId") or ""),
            language=str(data.get("language") or "malay"),
            translation=str(data.get("translation") or "TB"),
        )

    def to_map(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "englishName": self.english_name,
            "abbreviation": self.abbreviation,
            "testament": self.testament,
            "bookNumber": self.book_number,
            "totalChapters": self.total_chapters,
            "collectionId": self.collection_id,
            "language": self.language,
            "translation": self.translation,
        }

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.to_map(), id=self.id)


@dataclass(frozen=True)
class BibleVerse:
    verse_number: int
    text: str = ""
    clean_text: str = ""

    @classmethod
    def from_map(cls, data: Any, verse_key: Optional[str] = None) -> "BibleVerse":
        data = data if isinstance(data, dict) else {}
        text = str(data.get("text") or "")
        clean = data.get("cleanText")
        return cls(
            verse_number=to_int(data.get("verseNumber", verse_key), 1),
            text=text,
            clean_text=str(clean) if clean else clean_verse_text(text),
        )

    def to_map(self) -> Dict[str, Any]:
        return {"verseNumber": self.verse_number, "text": self.text, "cleanText": self.clean_text}

    @property
    def id(self) -> str:
        return str(self.verse_number).zfill(3)

    @property
    def searchable_text(self) -> str:
        return self.clean_text or self.text

    def reference(self, book_name: str, chapter_number: int) -> str:
        return f"{book_name} {chapter_number}:{self.verse_number}"


@dataclass(frozen=True)
class BibleChapter:
    book_id: str
    book_name: str
    chapter_number: int
    verses: Tuple[BibleVerse, ...] = ()
    language: str = "malay"
    translation: str = "TB"

    @classmethod
    def from_map(cls, data: Any, book: BibleBook, chapter_number: int) -> "BibleChapter":
        data = data if isinstance(data, dict) else {}
        verses = [
            BibleVerse.from_map(v, k) for k, v in as_dict(data.get("verses")).items() if isinstance(v, dict)
        ]
        verses.sort(key=lambda v: v.verse_number)
        return cls(
            book_id=book.id,
            book_name=book.name,
            chapter_number=chapter_number,
            verses=tuple(verses),
            language=book.language,
            translation=book.translation,
        )

    @property
    def id(self) -> str:
        return f"{self.book_id}_{str(self.chapter_number).zfill(3)}"

    @property
    def total_verses(self) -> int:
        return len(self.verses)

    @property
    def reference(self) -> str:
        return f"{self.book_name} {self.chapter_number}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "bookId": self.book_id,
            "bookName": self.book_name,
            "chapterNumber": self.chapter_number,
            "totalVerses": self.total_verses,
            "verses": [v.to_map() for v in self.verses],
            "language": self.language,
            "translation": self.translation,
        }


@dataclass(frozen=True)
class BibleSearchResult:
    book_id: str
    book_name: str
    chapter_number: int
    verse: BibleVerse
    query: str
    match_positions: Tuple[int, ...] = ()
    collection_id: Optional[str] = None
    translation: Optional[str] = None

    @property
    def reference(self) -> str:
        return self.verse.reference(self.book_name, self.chapter_number)

    @property
    def highlighted_text(self) -> str:
        """Text with non-overlapping matches wrapped in **"""
        text = self.verse.searchable_text
        if not self.match_positions or not self.query:
            return text
        lowered, needle = text.lower(), self.query.lower()
        out, pos = [], 0
        while True:
            index = lowered.find(needle, pos)
            if index == -1:
                out.append(text[pos:])
                break
            out.append(text[pos:index])
            out.append(f"**{text[index:index + len(needle)]}**")
            pos = index + len(needle)
        return "".join(out)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bookId": self.book_id,
            "bookName": self.book_name,
            "chapterNumber": self.chapter_number,
            "verse": self.verse.to_map(),
            "query": self.query,
            "matchPositions": list(self.match_positions),
            "collectionId": self.collection_id,
            "translation": self.translation,
            "reference": self.reference,
        }


@dataclass(frozen=True)
class BibleBookmark:
    id: str
    user_id: str
    book_id: str
    book_name: str = ""
    chapter_number: int = 1
    verse_number: int = 1
    verse_text: str = ""
    note: Optional[str] = None
    tags: Tuple[str, ...] = ()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @staticmethod
    def create_id(user_id: str, book_id: str, chapter: int, verse: int) -> str:
        return f"{user_id}_{book_id}_{chapter}_{verse}"

    @classmethod
    def from_map(cls, data: Any, bookmark_id: str) -> "BibleBookmark":
        data = data if isinstance(data, dict) else {}
        return cls(
            id=bookmark_id,
            user_id=str(data.get("userId") or ""),
            book_id=str(data.get("bookId") or ""),
            book_name=str(data.get("bookName") or ""),
            chapter_number=to_int(data.get("chapterNumber"), 1),
            verse_number=to_int(data.get("verseNumber"), 1),
            verse_text=str(data.get("verseText") or ""),
            note=data.get("note") or None,
            tags=_str_list(data.get("tags")),
            created_at=parse_datetime(data.get("createdAt")),
            updated_at=parse_datetime(data.get("updatedAt")),
        )

    def to_map(self) -> Dict[str, Any]:
        data = {
            "userId": self.user_id,
            "bookId": self.book_id,
            "bookName": self.book_name,
            "chapterNumber": self.chapter_number,
            "verseNumber": self.verse_number,
            "verseText": self.verse_text,
            "note": self.note,
            "tags": list(self.tags),
            "createdAt": format_datetime(self.created_at),
            "updatedAt": format_datetime(self.updated_at),
        }
        return {k: v for k, v in data.items() if v is not None}

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.to_map(), id=self.id, reference=self.reference)

    @property
    def reference(self) -> str:
        return f"{self.book_name} {self.chapter_number}:{self.verse_number}"


@dataclass(frozen=True)
class BiblePreferences:
    user_id: str
    preferred_translation: str = "TB"
    preferred_language: str = "malay"
    font_size: float = 1.0
    font_family: str = "Default"
    show_verse_numbers: bool = True
    enable_night_mode: bool = False
    custom_settings: Dict[str, Any] = field(default_factory=dict)
    updated_at: Optional[datetime] = None

    @classmethod
    def from_map(cls, data: Any, user_id: str) -> "BiblePreferences":
        data = data if isinstance(data, dict) else {}
        show_numbers = data.get("showVerseNumbers")
        night_mode = data.get("enableNightMode")
        custom = data.get("customSettings")
        return cls(
            user_id=user_id,
            preferred_translation=str(data.get("preferredTranslation") or "TB"),
            preferred_language=str(data.get("preferredLanguage") or "malay"),
            font_size=_to_float(data.get("fontSize"), 1.0),
            font_family=str(data.get("fontFamily") or "Default"),
            show_verse_numbers=show_numbers if isinstance(show_numbers, bool) else True,
            enable_night_mode=night_mode if isinstance(night_mode, bool) else False,
            custom_settings=dict(custom) if isinstance(custom, dict) else {},
            updated_at=parse_datetime(data.get("updatedAt")),
        )

    def to_map(self) -> Dict[str, Any]:
        data = {
            "preferredTranslation": self.preferred_translation,
            "preferredLanguage": self.preferred_language,
            "fontSize": self.font_size,
            "fontFamily": self.font_family,
            "showVerseNumbers": self.show_verse_numbers,
            "enableNightMode": self.enable_night_mode,
            "customSettings": dict(self.custom_settings),
        }
        if self.updated_at:
            data["updatedAt"] = format_datetime(self.updated_at)
        return data


def parse_bookmarks(data: Any) -> List[BibleBookmark]:
    """Bookmarks newest first"""
    bookmarks = [BibleBookmark.from_map(v, k) for k, v in as_dict(data).items() if isinstance(v, dict)]
    bookmarks.sort(key=lambda b: b.created_at.timestamp() if b.created_at else 0, reverse=True)
    return bookmarks
