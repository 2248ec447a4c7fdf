"""
Role lookup for remote users, cached per uid
"""

import logging
import threading
from datetime import timedelta
from typing import Callable, Dict, Optional, Tuple

from hymnal.constants import USERS_PATH
from hymnal.exceptions import RemoteUnavailableException
from hymnal.models.access import AccessLevel, AuthState, UserRole
from hymnal.remote_store import RemoteDocumentStore
from hymnal.utils import now_utc

logger = logging.getLogger("main")

ROLE_CACHE_TTL = timedelta(minutes=1)


class AuthorizationService:
    def __init__(self, remote: RemoteDocumentStore, ttl: timedelta = ROLE_CACHE_TTL, clock: Callable = now_utc):
        self.remote = remote
        self.ttl = ttl
        self.clock = clock
        # uid -> (role, fetched_at)
        self._roles: Dict[str, Tuple[UserRole, object]] = {}
        self._lock = threading.Lock()

    def _cached(self, uid: str, fresh_only: bool = True) -> Optional[UserRole]:
        with self._lock:
            entry = self._roles.get(uid)
        if entry is None:
            return None
        role, fetched_at = entry
        if fresh_only and self.clock() - fetched_at >= self.ttl:
            return None
        return role

    def get_role(self, uid: Optional[str]) -> UserRole:
        """Role stored at users/<uid>/role; the last cached role (then USER) when offline"""
        if not uid:
            return UserRole.USER

        role = self._cached(uid)
        if role is not None:
            return role

        try:
            raw = self.remote.ref(f"{USERS_PATH}/{uid}/role").get().value
        except RemoteUnavailableException as e:
            fallback = self._cached(uid, fresh_only=False) or UserRole.USER
            logger.warning(f"Role lookup for {uid} failed ({e.message}), using {fallback.value}")
            return fallback

        role = UserRole.from_string(raw)
        with self._lock:
            self._roles[uid] = (role, self.clock())
        logger.debug(f"Role for {uid}: {role.value}")
        return role

    def cached_role(self, uid: Optional[str]) -> Optional[UserRole]:
        """Last known role without touching the remote store"""
        if not uid:
            return None
        return self._cached(uid, fresh_only=False)

    def user_level(self, auth: AuthState) -> AccessLevel:
        if not auth.is_authenticated:
            return AccessLevel.PUBLIC
        return self.get_role(auth.uid).access_level

    def check_admin_status(self, auth: AuthState) -> Dict[str, bool]:
        if not auth.is_authenticated:
            return {"is_admin": False, "is_super_admin": False}
        role = self.get_role(auth.uid)
        return {"is_admin": role.is_admin, "is_super_admin": role == UserRole.SUPERADMIN}

    def clear_cache(self, uid: Optional[str] = None) -> None:
        with self._lock:
            if uid:
                self._roles.pop(uid, None)
            else:
                self._roles.clear()
        logger.debug(f"Cleared role cache for {uid or 'all users'}")
