"""
Model: SongCollection, CollectionStats
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, Optional

from hymnal.models.access import AccessLevel
from hymnal.utils import format_datetime, parse_datetime, to_int


class CollectionStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"

    @classmethod
    def from_string(cls, value) -> "CollectionStatus":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.ACTIVE


@dataclass(frozen=True)
class SongCollection:
    id: str
    name: str = ""
    description: str = ""
    access_level: AccessLevel = AccessLevel.PUBLIC
    status: CollectionStatus = CollectionStatus.ACTIVE
    song_count: int = 0
    sort_order: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: str = ""
    updated_by: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: Any, collection_id: str) -> "SongCollection":
        data = data if isinstance(data, dict) else {}
        metadata = data.get("metadata")
        return cls(
            id=collection_id,
            name=str(data.get("name") or ""),
            description=str(data.get("description") or ""),
            access_level=AccessLevel.from_string(data.get("access_level", "public")),
            status=CollectionStatus.from_string(data.get("status", "active")),
            song_count=to_int(data.get("song_count"), 0),
            sort_order=to_int(data.get("sort_order"), 0),
            created_at=parse_datetime(data.get("created_at")),
            updated_at=parse_datetime(data.get("updated_at")),
            created_by=str(data.get("created_by") or ""),
            updated_by=data.get("updated_by") or None,
            metadata=dict(metadata) if isinstance(metadata, dict) else {},
        )

    def to_json(self) -> Dict[str, Any]:
        data = {
            "name": self.name,
            "description": self.description,
            "access_level": self.access_level.value,
            "status": self.status.value,
            "song_count": self.song_count,
            "sort_order": self.sort_order,
            "created_by": self.created_by,
        }
        if self.created_at:
            data["created_at"] = format_datetime(self.created_at)
        if self.updated_at:
            data["updated_at"] = format_datetime(self.updated_at)
        if self.updated_by:
            data["updated_by"] = self.updated_by
        if self.metadata:
            data["metadata"] = dict(self.metadata)
        return data

    def to_dict(self) -> Dict[str, Any]:
        data = self.to_json()
        data["id"] = self.id
        data["access_level_name"] = self.access_level.display_name
        return data

    @property
    def is_active(self) -> bool:
        return self.status == CollectionStatus.ACTIVE

    @property
    def is_public(self) -> bool:
        return self.access_level == AccessLevel.PUBLIC

    def with_changes(self, **changes) -> "SongCollection":
        return replace(self, **changes)


@dataclass(frozen=True)
class CollectionStats:
    total_collections: int = 0
    active_collections: int = 0
    public_collections: int = 0
    total_songs: int = 0
    access_level_counts: Dict[str, int] = field(default_factory=dict)
    status_counts: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_collections(cls, collections: Iterable[SongCollection]) -> "CollectionStats":
        collections = list(collections)
        access_counts: Dict[str, int] = {}
        status_counts: Dict[str, int] = {}
        for c in collections:
            access_counts[c.access_level.value] = access_counts.get(c.access_level.value, 0) + 1
            status_counts[c.status.value] = status_counts.get(c.status.value, 0) + 1
        return cls(
            total_collections=len(collections),
            active_collections=sum(1 for c in collections if c.is_active),
            public_collections=sum(1 for c in collections if c.is_public),
            total_songs=sum(c.song_count for c in collections),
            access_level_counts=access_counts,
            status_counts=status_counts,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_collections": self.total_collections,
            "active_collections": self.active_collections,
            "public_collections": self.public_collections,
            "total_songs": self.total_songs,
            "access_level_counts": dict(self.access_level_counts),
            "status_counts": dict(self.status_counts),
        }
