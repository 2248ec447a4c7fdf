"""
Model: PremiumTier, PremiumStatus
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from hymnal.utils import format_datetime

FREE_FEATURES = ("favorites", "basic_search")
PREMIUM_FEATURES = ("favorites", "advanced_search", "offline_audio", "unlimited_downloads", "custom_playlists")
PREMIUM_PLUS_FEATURES = PREMIUM_FEATURES + ("ad_free", "priority_support")


class PremiumTier(str, Enum):
    BASIC = "basic"
    PREMIUM = "premium"
    PREMIUM_PLUS = "premium_plus"

    @classmethod
    def from_string(cls, value) -> "PremiumTier":
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.BASIC


@dataclass(frozen=True)
class PremiumStatus:
    is_premium: bool
    tier: PremiumTier = PremiumTier.BASIC
    expiry: Optional[datetime] = None
    features: Tuple[str, ...] = FREE_FEATURES
    audio_download_limit: Optional[int] = None
    has_offline_access: bool = False

    @classmethod
    def free(cls) -> "PremiumStatus":
        return cls(is_premium=False)

    @classmethod
    def premium(cls, expiry: Optional[datetime] = None) -> "PremiumStatus":
        return cls(
            is_premium=True,
            tier=PremiumTier.PREMIUM,
            expiry=expiry,
            features=PREMIUM_FEATURES,
            audio_download_limit=100,
            has_offline_access=True,
        )

    @classmethod
    def premium_plus(cls, expiry: Optional[datetime] = None) -> "PremiumStatus":
        return cls(
            is_premium=True,
            tier=PremiumTier.PREMIUM_PLUS,
            expiry=expiry,
            features=PREMIUM_PLUS_FEATURES,
            has_offline_access=True,
        )

    @classmethod
    def for_tier(cls, tier, expiry: Optional[datetime] = None) -> "PremiumStatus":
        """Status for a stored tier name; unknown or basic tiers are free"""
        tier = PremiumTier.from_string(tier.value if isinstance(tier, PremiumTier) else tier)
        if tier == PremiumTier.PREMIUM:
            return cls.premium(expiry)
        if tier == PremiumTier.PREMIUM_PLUS:
            return cls.premium_plus(expiry)
        return cls.free()

    def has_feature(self, feature: str) -> bool:
        return feature in self.features

    def is_expired(self, now: datetime) -> bool:
        return self.expiry is not None and now >= self.expiry

    def effective(self, now: datetime) -> "PremiumStatus":
        """Degrade to free once the expiry has passed"""
        if self.is_premium and self.is_expired(now):
            return PremiumStatus.free()
        return self

    def has_reached_download_limit(self, current_downloads: int) -> bool:
        if self.audio_download_limit is None:
            return False
        return current_downloads >= self.audio_download_limit

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_premium": self.is_premium,
            "tier": self.tier.value,
            "expiry": format_datetime(self.expiry),
            "features": list(self.features),
            "audio_download_limit": self.audio_download_limit,
            "has_offline_access": self.has_offline_access,
        }
