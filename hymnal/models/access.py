"""
Model: AccessLevel, UserRole, AuthState
Access hierarchy for collections and the caller's authentication state
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class AccessLevel(str, Enum):
    PUBLIC = "public"
    REGISTERED = "registered"
    PREMIUM = "premium"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"

    @property
    def rank(self) -> int:
        return _ACCESS_RANKS[self]

    def has_access_to(self, required: "AccessLevel") -> bool:
        """True if this level is higher than or equal to the required one"""
        return self.rank >= required.rank

    @property
    def display_name(self) -> str:
        return _ACCESS_DISPLAY[self][0]

    @property
    def description(self) -> str:
        return _ACCESS_DISPLAY[self][1]

    @classmethod
    def from_string(cls, value) -> "AccessLevel":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.PUBLIC


_ACCESS_RANKS = {
    AccessLevel.PUBLIC: 0,
    AccessLevel.REGISTERED: 1,
    AccessLevel.PREMIUM: 2,
    AccessLevel.ADMIN: 3,
    AccessLevel.SUPERADMIN: 4,
}

_ACCESS_DISPLAY = {
    AccessLevel.PUBLIC: ("Public", "Visible to all users, including guests"),
    AccessLevel.REGISTERED: ("Registered Users", "Visible to authenticated users only"),
    AccessLevel.PREMIUM: ("Premium Users", "Visible to premium subscribers only"),
    AccessLevel.ADMIN: ("Administrators", "Visible to administrators only"),
    AccessLevel.SUPERADMIN: ("Super Administrators", "Visible to super administrators only"),
}


class UserRole(str, Enum):
    USER = "user"
    PREMIUM = "premium"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"

    @classmethod
    def from_string(cls, value) -> "UserRole":
        role = str(value or "").strip().lower().replace("_", "")
        if role == "superadmin":
            return cls.SUPERADMIN
        if role == "admin":
            return cls.ADMIN
        if role == "premium":
            return cls.PREMIUM
        return cls.USER

    @property
    def is_admin(self) -> bool:
        return self in (UserRole.ADMIN, UserRole.SUPERADMIN)

    @property
    def access_level(self) -> AccessLevel:
        return {
            UserRole.USER: AccessLevel.REGISTERED,
            UserRole.PREMIUM: AccessLevel.PREMIUM,
            UserRole.ADMIN: AccessLevel.ADMIN,
            UserRole.SUPERADMIN: AccessLevel.SUPERADMIN,
        }[self]


@dataclass(frozen=True)
class AuthState:
    """Read-only view of the current remote auth user"""

    uid: Optional[str] = None
    email: Optional[str] = None
    is_anonymous: bool = True

    @classmethod
    def anonymous(cls) -> "AuthState":
        return cls()

    @classmethod
    def user(cls, uid: str, email: Optional[str] = None) -> "AuthState":
        return cls(uid=uid, email=email, is_anonymous=False)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.uid) and not self.is_anonymous
