"""
Service context
Explicitly constructed container for the stores, services and repositories.
Tests build one with fakes instead of patching process-wide state.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Dict, Optional

from flask import current_app

from hymnal.cache import CacheLayer
from hymnal.local_store import LocalStore, create_local_store
from hymnal.remote_store import RemoteDocumentStore, create_remote_store
from hymnal.repositories.bible_repository import BibleRepository
from hymnal.repositories.collection_repository import CollectionRepository
from hymnal.repositories.favorites_repository import FavoritesRepository
from hymnal.repositories.song_repository import SongRepository
from hymnal.services.access_gate import AccessGate
from hymnal.services.authorization_service import AuthorizationService
from hymnal.services.premium_service import PremiumService
from hymnal.settings import load_settings, merge_settings
from hymnal.utils import now_utc

logger = logging.getLogger("main")


@dataclass
class ServiceContext:
    settings: Dict[str, Any]
    remote: RemoteDocumentStore
    local_store: LocalStore
    cache: CacheLayer
    authorization: AuthorizationService
    premium: PremiumService
    gate: AccessGate
    collections: CollectionRepository
    songs: SongRepository
    favorites: FavoritesRepository
    bible: BibleRepository

    def clear_caches(self) -> int:
        """Drop cached song and Bible data plus in-memory role and premium status"""
        removed = self.songs.clear_cache() + self.bible.clear_cache()
        self.authorization.clear_cache()
        self.premium.clear_cache()
        return removed


def build_context(
    settings: Optional[Dict[str, Any]] = None,
    remote: Optional[RemoteDocumentStore] = None,
    local_store: Optional[LocalStore] = None,
    clock: Optional[Callable] = None,
) -> ServiceContext:
    """Wire the default services; any collaborator may be injected"""
    settings = merge_settings(settings) if settings is not None else load_settings()
    clock = clock or now_utc
    cache_conf = settings["cache"]
    ttl = timedelta(hours=cache_conf["ttl_hours"])
    search_limit = settings["search"]["default_limit"]

    remote = remote if remote is not None else create_remote_store(settings)
    local_store = local_store if local_store is not None else create_local_store(settings)
    cache = CacheLayer(local_store, clock=clock)

    authorization = AuthorizationService(remote, ttl=timedelta(seconds=cache_conf["role_ttl_seconds"]), clock=clock)
    premium = PremiumService(
        remote, local_store, authorization, ttl=timedelta(minutes=cache_conf["premium_ttl_minutes"]), clock=clock
    )
    gate = AccessGate(premium, authorization)

    collections = CollectionRepository(remote, cache, gate, ttl=ttl)
    songs = SongRepository(remote, cache, gate, collections, ttl=ttl, search_limit=search_limit)
    favorites = FavoritesRepository(remote, clock=clock)
    bible = BibleRepository(remote, cache, gate, ttl=ttl, search_limit=search_limit)

    logger.debug("Service context ready")
    return ServiceContext(
        settings=settings,
        remote=remote,
        local_store=local_store,
        cache=cache,
        authorization=authorization,
        premium=premium,
        gate=gate,
        collections=collections,
        songs=songs,
        favorites=favorites,
        bible=bible,
    )


def get_context() -> ServiceContext:
    """Context of the running Flask app"""
    return current_app.extensions["hymnal"]
