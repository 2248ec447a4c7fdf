"""
Tests for collection access resolution
"""
import pytest

from hymnal.models.access import AccessLevel, AuthState
from hymnal.models.collection import SongCollection
from hymnal.services.access_gate import AccessState


@pytest.fixture
def gate(context):
    return context.gate


class TestResolve:
    @pytest.mark.parametrize(
        "level,expected",
        [
            (AccessLevel.PUBLIC, AccessState.GRANTED),
            (AccessLevel.REGISTERED, AccessState.LOGIN_REQUIRED),
            (AccessLevel.PREMIUM, AccessState.LOGIN_REQUIRED),
            (AccessLevel.ADMIN, AccessState.LOGIN_REQUIRED),
            (AccessLevel.SUPERADMIN, AccessState.LOGIN_REQUIRED),
        ],
    )
    def test_anonymous(self, gate, anonymous, level, expected):
        assert gate.resolve(level, anonymous).state == expected

    @pytest.mark.parametrize(
        "level,expected",
        [
            (AccessLevel.PUBLIC, AccessState.GRANTED),
            (AccessLevel.REGISTERED, AccessState.GRANTED),
            (AccessLevel.PREMIUM, AccessState.PREMIUM_REQUIRED),
            (AccessLevel.ADMIN, AccessState.ACCESS_DENIED),
            (AccessLevel.SUPERADMIN, AccessState.ACCESS_DENIED),
        ],
    )
    def test_free_user(self, gate, free_user, level, expected):
        assert gate.resolve(level, free_user).state == expected

    def test_premium_user(self, gate, premium_user):
        assert gate.resolve(AccessLevel.PREMIUM, premium_user).granted
        assert gate.resolve(AccessLevel.ADMIN, premium_user).state == AccessState.ACCESS_DENIED

    def test_admin(self, gate, admin_user):
        assert gate.resolve(AccessLevel.PREMIUM, admin_user).granted
        assert gate.resolve(AccessLevel.ADMIN, admin_user).granted
        assert gate.resolve(AccessLevel.SUPERADMIN, admin_user).state == AccessState.ACCESS_DENIED

    def test_superadmin_opens_everything(self, gate):
        superadmin = AuthState.user("u-super")
        assert all(gate.can_access(level, superadmin) for level in AccessLevel)

    def test_accepts_collection_or_level_name(self, gate, free_user):
        assert gate.resolve(SongCollection("PREM", access_level=AccessLevel.PREMIUM), free_user).reason == "premium_required"
        assert gate.resolve("registered", free_user).granted

    def test_reason_codes(self, gate, anonymous, free_user):
        assert gate.resolve(AccessLevel.PUBLIC, anonymous).reason is None
        assert gate.resolve(AccessLevel.REGISTERED, anonymous).reason == "login_required"
        assert gate.resolve(AccessLevel.ADMIN, free_user).reason == "access_denied"


class TestRecomputation:
    """Decisions follow the current premium status, never a stored one"""

    def test_upgrade_takes_effect_after_cache_clear(self, gate, context, remote, free_user):
        assert gate.resolve(AccessLevel.PREMIUM, free_user).state == AccessState.PREMIUM_REQUIRED

        remote.ref("users/u-free/isPremium").set(True)
        context.premium.clear_cache()

        assert gate.resolve(AccessLevel.PREMIUM, free_user).granted

    def test_subscription_expiry_revokes_access(self, gate, clock):
        subscriber = AuthState.user("u-sub")
        assert gate.can_access(AccessLevel.PREMIUM, subscriber)

        clock.advance(days=31)
        assert not gate.can_access(AccessLevel.PREMIUM, subscriber)


class TestUserLevel:
    def test_levels(self, gate, anonymous, free_user, premium_user, admin_user):
        assert gate.user_level(anonymous) == AccessLevel.PUBLIC
        assert gate.user_level(free_user) == AccessLevel.REGISTERED
        assert gate.user_level(premium_user) == AccessLevel.PREMIUM
        assert gate.user_level(admin_user) == AccessLevel.ADMIN
