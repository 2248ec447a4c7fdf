import os

DATA_DIR = os.environ.get("HYMNAL_DATA_DIR", os.path.join(os.getcwd(), "data"))
CONFIG_DIR = os.environ.get("HYMNAL_CONFIG_DIR", os.path.join(os.getcwd(), "config"))
CONFIG_FILE = os.environ.get("HYMNAL_CONFIG", os.path.join(CONFIG_DIR, "settings.yaml"))
LOCAL_STORE_FILE = os.path.join(DATA_DIR, "local_store.db")
LOCAL_STORE_URL = "sqlite:///" + LOCAL_STORE_FILE

BUILD_VERSION = "20260301_1200"

# Remote database paths
SONGS_PATH = "songs"
COLLECTIONS_PATH = "song_collections"
COLLECTION_SONGS_PATH = "collection_songs"
USERS_PATH = "users"
BIBLE_COLLECTIONS_PATH = "bible/collections"
BIBLE_BOOKS_PATH = "bible/books"
BIBLE_CHAPTERS_PATH = "bible/chapters"
BIBLE_BOOKMARKS_PATH = "bible/bookmarks"
BIBLE_PREFERENCES_PATH = "bible/preferences"

GLOBAL_FAVORITES = "global"
LEGACY_SONGS_COLLECTION = "lpmi"

# Local cache keys
COLLECTION_CACHE_PREFIX = "collection_cache_"
COLLECTION_SONGS_CACHE_PREFIX = "collection_songs_cache_"
COLLECTION_INDEX_CACHE_KEY = "collection_cache_index"
LEGACY_SONGS_CACHE_KEY = "collection_cache_legacy_songs"
BIBLE_CACHE_PREFIX = "bible_cache_"
BIBLE_BOOKS_CACHE_KEY = "bible_books_cache"
BIBLE_COLLECTIONS_CACHE_KEY = "bible_collections_cache"

SONG_CACHE_KEYS = [COLLECTION_CACHE_PREFIX, COLLECTION_SONGS_CACHE_PREFIX]
BIBLE_CACHE_KEYS = [BIBLE_CACHE_PREFIX, BIBLE_BOOKS_CACHE_KEY, BIBLE_COLLECTIONS_CACHE_KEY]

# Local preference keys
PREFS_PREMIUM_STATUS = "premium_status"
PREFS_PREMIUM_TIER = "premium_tier"
PREFS_PREMIUM_EXPIRY = "premium_expiry"

SORT_BY_NUMBER = "number"
SORT_BY_ALPHABET = "alphabet"
SORT_ORDERS = [SORT_BY_NUMBER, SORT_BY_ALPHABET]

SEARCH_FIELDS = ("number", "title", "lyrics")

DEFAULT_SETTINGS = {
    "remote": {
        "backend": "memory",
        "database_url": "",
        "auth_token": "",
        "api_key": "",
        "timeout": 10,
    },
    "local_store": {
        "backend": "sql",
        "url": LOCAL_STORE_URL,
    },
    "cache": {
        "ttl_hours": 24,
        "premium_ttl_minutes": 60,
        "role_ttl_seconds": 60,
    },
    "search": {
        "default_limit": 50,
    },
    "connectivity": {
        "enabled": False,
        "online_interval_seconds": 300,
        "offline_interval_seconds": 30,
    },
}
