"""
Premium status provider

Resolution order for a signed-in user:
    1. in-memory status younger than the TTL
    2. admin / superadmin role -> premium_plus
    3. premium role or users/<uid>/isPremium == true -> premium
    4. users/<uid>/subscription {is_active, tier, expires_at}
The result is cached in memory and saved to the local store. When the remote
store is unavailable the cached admin role is honored first, then the locally
saved status, which degrades to free once its expiry has passed.
"""

import logging
import threading
from datetime import timedelta
from typing import Callable, Dict, Optional, Tuple

from hymnal.constants import PREFS_PREMIUM_EXPIRY, PREFS_PREMIUM_STATUS, PREFS_PREMIUM_TIER, USERS_PATH
from hymnal.exceptions import RemoteUnavailableException
from hymnal.local_store import LocalStore
from hymnal.models.access import AuthState, UserRole
from hymnal.models.premium import PremiumStatus, PremiumTier
from hymnal.remote_store import RemoteDocumentStore
from hymnal.services.authorization_service import AuthorizationService
from hymnal.utils import format_datetime, now_utc, parse_datetime

logger = logging.getLogger("main")

PREMIUM_CACHE_TTL = timedelta(hours=1)


def _prefs_key(key: str, uid: str) -> str:
    return f"{uid}:{key}"


class PremiumService:
    def __init__(
        self,
        remote: RemoteDocumentStore,
        local_store: LocalStore,
        authorization: AuthorizationService,
        ttl: timedelta = PREMIUM_CACHE_TTL,
        clock: Callable = now_utc,
    ):
        self.remote = remote
        self.local_store = local_store
        self.authorization = authorization
        self.ttl = ttl
        self.clock = clock
        # uid -> (status, cached_at)
        self._statuses: Dict[str, Tuple[PremiumStatus, object]] = {}
        self._lock = threading.Lock()

    def get_premium_status(self, auth: AuthState) -> PremiumStatus:
        if not auth.is_authenticated:
            return PremiumStatus.free()

        uid = auth.uid
        with self._lock:
            entry = self._statuses.get(uid)
        if entry is not None and self.clock() - entry[1] < self.ttl:
            return entry[0].effective(self.clock())

        try:
            status = self._remote_status(uid)
        except RemoteUnavailableException as e:
            logger.warning(f"Premium lookup for {uid} failed ({e.message}), using offline status")
            return self._offline_status(uid)

        with self._lock:
            self._statuses[uid] = (status, self.clock())
        self._save_locally(uid, status)
        return status

    def _remote_status(self, uid: str) -> PremiumStatus:
        user_ref = self.remote.ref(f"{USERS_PATH}/{uid}")
        role = self.authorization.get_role(uid)
        if role.is_admin:
            logger.debug(f"Admin role for {uid}, granting premium_plus")
            return PremiumStatus.premium_plus()
        if role == UserRole.PREMIUM or user_ref.child("isPremium").get().value is True:
            return PremiumStatus.premium()

        subscription = user_ref.child("subscription").get().value
        if not isinstance(subscription, dict):
            return PremiumStatus.free()
        if subscription.get("is_active") is not True:
            return PremiumStatus.free()
        expiry = parse_datetime(subscription.get("expires_at"))
        status = PremiumStatus.for_tier(subscription.get("tier", PremiumTier.BASIC.value), expiry)
        return status.effective(self.clock())

    def _offline_status(self, uid: str) -> PremiumStatus:
        role = self.authorization.cached_role(uid)
        if role is not None and role.is_admin:
            logger.debug(f"Cached admin role for {uid} (offline), granting premium_plus")
            return PremiumStatus.premium_plus()
        return self._local_status(uid)

    def _local_status(self, uid: str) -> PremiumStatus:
        if not self.local_store.get_bool(_prefs_key(PREFS_PREMIUM_STATUS, uid), False):
            return PremiumStatus.free()
        tier = self.local_store.get_string(_prefs_key(PREFS_PREMIUM_TIER, uid), PremiumTier.BASIC.value)
        expiry = parse_datetime(self.local_store.get_string(_prefs_key(PREFS_PREMIUM_EXPIRY, uid)))
        return PremiumStatus.for_tier(tier, expiry).effective(self.clock())

    def _save_locally(self, uid: str, status: PremiumStatus) -> None:
        self.local_store.set_bool(_prefs_key(PREFS_PREMIUM_STATUS, uid), status.is_premium)
        self.local_store.set_string(_prefs_key(PREFS_PREMIUM_TIER, uid), status.tier.value)
        if status.expiry is not None:
            self.local_store.set_string(_prefs_key(PREFS_PREMIUM_EXPIRY, uid), format_datetime(status.expiry))
        else:
            self.local_store.remove(_prefs_key(PREFS_PREMIUM_EXPIRY, uid))

    def is_premium(self, auth: AuthState) -> bool:
        return self.get_premium_status(auth).is_premium

    def can_access_audio(self, auth: AuthState) -> bool:
        if self.is_premium(auth):
            return True
        return auth.is_authenticated and self.authorization.get_role(auth.uid).is_admin

    def clear_cache(self, uid: Optional[str] = None) -> None:
        with self._lock:
            if uid:
                self._statuses.pop(uid, None)
            else:
                self._statuses.clear()
