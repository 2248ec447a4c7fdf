"""
Pytest fixtures and configuration for hymnal tests
"""
from datetime import datetime, timedelta, timezone

import pytest

from hymnal.auth import AuthProvider
from hymnal.context import build_context
from hymnal.local_store import SqlLocalStore
from hymnal.models.access import AuthState
from hymnal.remote_store import InMemoryDocumentStore

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def epoch_ms(dt):
    return int(dt.timestamp() * 1000)


class FakeClock:
    """Controllable clock passed wherever the code asks for now()"""

    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class StaticTokenProvider(AuthProvider):
    """Maps fixed bearer tokens to auth states"""

    def __init__(self, tokens):
        self.tokens = tokens

    def verify(self, token):
        return self.tokens.get(token)


def _verses(*lines):
    return [{"verse_number": str(i), "lyrics": text} for i, text in enumerate(lines, start=1)]


def sample_tree():
    """Remote database contents shared by the repository and API tests"""
    return {
        "songs": {
            "001": {
                "song_number": "001",
                "song_title": "Amazing Grace",
                "verses": _verses("Amazing grace how sweet the sound", "Twas grace that taught my heart to fear"),
            },
            "002": {
                "song_number": "002",
                "song_title": "Blessed Assurance",
                "verses": _verses("Blessed assurance Jesus is mine"),
            },
            "010": {
                "song_number": "010",
                "song_title": "Count Your Blessings",
                "verses": _verses("When upon life's billows you are tempest tossed"),
                "url": "https://cdn.example.org/audio/010.mp3",
            },
        },
        "song_collections": {
            "SRD": {"name": "Syair Rindu Dendam", "access_level": "public", "status": "active", "sort_order": 2, "song_count": 2},
            "JS": {"name": "Jemaat Sejati", "access_level": "registered", "status": "active", "sort_order": 1, "song_count": 1},
            "PREM": {"name": "Premium Hymns", "access_level": "premium", "status": "active", "sort_order": 3, "song_count": 1},
            "STAFF": {"name": "Staff Only", "access_level": "admin", "status": "active", "sort_order": 4, "song_count": 1},
            "OLD": {"name": "Retired", "access_level": "public", "status": "archived", "sort_order": 5, "song_count": 0},
        },
        "collection_songs": {
            "SRD": {
                "1": {"song_number": "1", "song_title": "Kasih Yesus", "verses": _verses("Kasih Yesus sungguh ajaib")},
                "2": {"song_number": "2", "song_title": "Bersyukur", "verses": _verses("Bersyukur kepada Tuhan")},
            },
            "JS": {
                "1": {"song_number": "1", "song_title": "Jemaat Bernyanyi", "verses": _verses("Mari bernyanyi")},
            },
            "PREM": {
                "7": {"song_number": "7", "song_title": "Premium Song", "verses": _verses("Only for supporters")},
            },
            "STAFF": {
                "1": {"song_number": "1", "song_title": "Staff Song", "verses": _verses("Behind the scenes")},
            },
        },
        "users": {
            "u-free": {"role": "user"},
            "u-premium": {"role": "user", "isPremium": True},
            "u-sub": {
                "role": "user",
                "subscription": {
                    "is_active": True,
                    "tier": "premium_plus",
                    "expires_at": epoch_ms(NOW + timedelta(days=30)),
                },
            },
            "u-admin": {"role": "admin"},
            "u-super": {"role": "super_admin"},
        },
        "bible": {
            "collections": {
                "TB": {"name": "Terjemahan Baru", "language": "malay", "translation": "TB", "isPremium": True},
                "KJV": {"name": "King James Version", "language": "english", "translation": "KJV", "isPremium": False},
            },
            "books": {
                "TB": {
                    "yohanes": {"name": "Yohanes", "bookNumber": 43, "totalChapters": 21},
                    "kejadian": {"name": "Kejadian", "bookNumber": 1, "totalChapters": 50},
                },
                "KJV": {
                    "genesis": {"name": "Genesis", "bookNumber": 1, "totalChapters": 50},
                },
            },
            "chapters": {
                "TB": {
                    "kejadian": {
                        "1": {
                            "verses": {
                                "2": {"verseNumber": 2, "text": "Bumi belum berbentuk dan kosong; Roh Allah melayang-layang."},
                                "1": {"verseNumber": 1, "text": "Pada mulanya Allah menciptakan langit dan bumi."},
                            }
                        }
                    },
                    "yohanes": {
                        "3": {
                            "verses": {
                                "16": {"verseNumber": 16, "text": "Karena begitu besar kasih Allah akan dunia ini."},
                            }
                        }
                    },
                },
                "KJV": {
                    "genesis": {
                        "1": {
                            "verses": {
                                "1": {"verseNumber": 1, "text": "In the beginning God created the heaven and the earth."},
                            }
                        }
                    }
                },
            },
        },
    }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def remote():
    return InMemoryDocumentStore(sample_tree())


@pytest.fixture
def local_store():
    return SqlLocalStore("sqlite://")


@pytest.fixture
def context(remote, local_store, clock):
    return build_context(settings={}, remote=remote, local_store=local_store, clock=clock)


@pytest.fixture
def anonymous():
    return AuthState.anonymous()


@pytest.fixture
def free_user():
    return AuthState.user("u-free", "free@example.org")


@pytest.fixture
def premium_user():
    return AuthState.user("u-premium", "premium@example.org")


@pytest.fixture
def admin_user():
    return AuthState.user("u-admin", "admin@example.org")


@pytest.fixture
def app(context):
    from hymnal.app import create_app

    provider = StaticTokenProvider(
        {
            "free-token": AuthState.user("u-free", "free@example.org"),
            "premium-token": AuthState.user("u-premium", "premium@example.org"),
            "admin-token": AuthState.user("u-admin", "admin@example.org"),
        }
    )
    return create_app(context=context, config={"TESTING": True}, auth_provider=provider)


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client