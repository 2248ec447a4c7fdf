"""
Collection access resolution

resolve() is a pure function of the required level, the auth state and the
user's premium/role status, recomputed on every call:

    UNRESOLVED -> GRANTED | LOGIN_REQUIRED | PREMIUM_REQUIRED | ACCESS_DENIED
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from hymnal.metrics import access_denials_total
from hymnal.models.access import AccessLevel, AuthState
from hymnal.models.collection import SongCollection
from hymnal.result import AccessReason
from hymnal.services.authorization_service import AuthorizationService
from hymnal.services.premium_service import PremiumService

logger = logging.getLogger("main")


class AccessState(str, Enum):
    UNRESOLVED = "unresolved"
    GRANTED = "granted"
    LOGIN_REQUIRED = "login_required"
    PREMIUM_REQUIRED = "premium_required"
    ACCESS_DENIED = "access_denied"


_REASONS = {
    AccessState.LOGIN_REQUIRED: AccessReason.LOGIN_REQUIRED,
    AccessState.PREMIUM_REQUIRED: AccessReason.PREMIUM_REQUIRED,
    AccessState.ACCESS_DENIED: AccessReason.ACCESS_DENIED,
}


@dataclass(frozen=True)
class AccessDecision:
    state: AccessState

    @property
    def granted(self) -> bool:
        return self.state == AccessState.GRANTED

    @property
    def reason(self) -> Optional[str]:
        return _REASONS.get(self.state)


UNRESOLVED = AccessDecision(AccessState.UNRESOLVED)


def _level_of(target: Union[SongCollection, AccessLevel, str]) -> AccessLevel:
    if isinstance(target, SongCollection):
        return target.access_level
    if isinstance(target, AccessLevel):
        return target
    return AccessLevel.from_string(target)


class AccessGate:
    def __init__(self, premium: PremiumService, authorization: AuthorizationService):
        self.premium = premium
        self.authorization = authorization

    def resolve(self, required: Union[SongCollection, AccessLevel, str], auth: AuthState) -> AccessDecision:
        level = _level_of(required)
        decision = self._decide(level, auth)
        if not decision.granted:
            access_denials_total.labels(reason=decision.reason).inc()
            logger.debug(f"Access to {level.value} content refused for {auth.uid or 'anonymous'}: {decision.reason}")
        return decision

    def _decide(self, level: AccessLevel, auth: AuthState) -> AccessDecision:
        if level == AccessLevel.PUBLIC:
            return AccessDecision(AccessState.GRANTED)
        if not auth.is_authenticated:
            return AccessDecision(AccessState.LOGIN_REQUIRED)
        if level == AccessLevel.REGISTERED:
            return AccessDecision(AccessState.GRANTED)
        if level == AccessLevel.PREMIUM:
            if self.premium.is_premium(auth):
                return AccessDecision(AccessState.GRANTED)
            return AccessDecision(AccessState.PREMIUM_REQUIRED)
        if self.user_level(auth).has_access_to(level):
            return AccessDecision(AccessState.GRANTED)
        return AccessDecision(AccessState.ACCESS_DENIED)

    def can_access(self, required: Union[SongCollection, AccessLevel, str], auth: AuthState) -> bool:
        return self._decide(_level_of(required), auth).granted

    def user_level(self, auth: AuthState) -> AccessLevel:
        """Highest level the caller holds; premium status lifts a plain user to PREMIUM"""
        level = self.authorization.user_level(auth)
        if level.rank < AccessLevel.PREMIUM.rank and auth.is_authenticated and self.premium.is_premium(auth):
            return AccessLevel.PREMIUM
        return level
