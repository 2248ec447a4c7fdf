"""
Model: Song, Verse
Immutable song records rebuilt from remote snapshots. Favorite state is not
stored on the song; it is looked up in the favorites set by song number.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from hymnal.constants import SORT_BY_ALPHABET, SORT_BY_NUMBER
from hymnal.utils import as_dict, to_int


@dataclass(frozen=True)
class Verse:
    number: str
    lyrics: str

    @classmethod
    def from_json(cls, data: Any) -> "Verse":
        data = data if isinstance(data, dict) else {}
        return cls(
            number=str(data.get("verse_number") or ""),
            lyrics=str(data.get("lyrics") or ""),
        )

    def to_json(self) -> Dict[str, Any]:
        return {"verse_number": self.number, "lyrics": self.lyrics}


@dataclass(frozen=True)
class Song:
    number: str
    title: str
    verses: Tuple[Verse, ...] = field(default_factory=tuple)
    audio_url: Optional[str] = None
    collection_id: Optional[str] = None

    @classmethod
    def from_json(cls, data: Any, collection_id: Optional[str] = None) -> "Song":
        data = data if isinstance(data, dict) else {}
        raw_verses = data.get("verses")
        if isinstance(raw_verses, dict):
            raw_verses = [raw_verses[k] for k in sorted(raw_verses, key=lambda k: to_int(k))]
        elif not isinstance(raw_verses, list):
            raw_verses = []
        verses = tuple(Verse.from_json(v) for v in raw_verses if isinstance(v, dict))
        audio_url = data.get("url") or None
        return cls(
            number=str(data.get("song_number") or ""),
            title=str(data.get("song_title") or ""),
            verses=verses,
            audio_url=str(audio_url) if audio_url else None,
            collection_id=collection_id or data.get("collection_id") or None,
        )

    def to_json(self) -> Dict[str, Any]:
        data = {
            "song_number": self.number,
            "song_title": self.title,
            "verses": [v.to_json() for v in self.verses],
        }
        if self.audio_url:
            data["url"] = self.audio_url
        if self.collection_id:
            data["collection_id"] = self.collection_id
        return data

    def to_remote(self) -> Dict[str, Any]:
        """Remote record; the collection is implied by the path"""
        data = self.to_json()
        data.pop("collection_id", None)
        return data

    @property
    def has_audio(self) -> bool:
        return bool(self.audio_url)

    @property
    def display_title(self) -> str:
        return f"{self.number}. {self.title}"

    @property
    def lyrics(self) -> str:
        return " ".join(v.lyrics for v in self.verses)

    @property
    def searchable_text(self) -> str:
        return f"{self.number} {self.title} {self.lyrics}"

    def formatted_lyrics(self) -> str:
        return "\n\n".join(f"{v.number}. {v.lyrics}" for v in self.verses)

    def numeric_key(self) -> int:
        return to_int(self.number, 0)


def parse_songs(data: Any, collection_id: Optional[str] = None) -> List[Song]:
    """Turn a songs subtree (object keyed by number, or array) into songs in storage order"""
    if isinstance(data, list):
        rows = [v for v in data if v is not None]
    else:
        rows = list(as_dict(data).values())
    return [Song.from_json(row, collection_id) for row in rows if isinstance(row, dict)]


def sort_songs(songs: Sequence[Song], order: str = SORT_BY_NUMBER) -> List[Song]:
    """Stable sort by integer song number or by case-insensitive title"""
    if order == SORT_BY_ALPHABET:
        return sorted(songs, key=lambda s: s.title.casefold())
    if order == SORT_BY_NUMBER:
        return sorted(songs, key=lambda s: s.numeric_key())
    raise ValueError(f"Unknown sort order: {order}")
