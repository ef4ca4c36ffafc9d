"""
FastAPI dependencies for dependency injection.

Provides singleton instances of the settings store, option cache and viewer
identity strategy, and the request-scoped settings service built on them.
The middleware uses the same functions outside of FastAPI's Depends.
"""

from functools import lru_cache

from fastapi import Depends, HTTPException, Request, status

from tracker_app.cache.factory import CacheFactory, CacheBackend
from tracker_app.cache.strategies import CacheStrategy
from tracker_app.config import settings
from tracker_app.identity.factory import IdentityFactory, IdentityBackend
from tracker_app.identity.strategies import Viewer, ViewerIdentityStrategy
from tracker_app.services.settings_service import TrackerSettingsService
from tracker_app.store.factory import SettingsStoreFactory, SettingsStoreBackend
from tracker_app.store.strategies import SettingsStoreStrategy

PERMISSION_DENIED_MESSAGE = "You do not have sufficient permissions to access this page."


@lru_cache()
def get_settings_store() -> SettingsStoreStrategy:
    """Settings store instance (singleton), backend chosen by settings."""
    backend = SettingsStoreBackend(settings.settings_store_backend)
    return SettingsStoreFactory.create(backend)


@lru_cache()
def get_cache() -> CacheStrategy:
    """Option cache instance (singleton), backend chosen by settings."""
    backend = CacheBackend(settings.cache_backend)
    return CacheFactory.create(backend)


@lru_cache()
def get_identity() -> ViewerIdentityStrategy:
    """Viewer identity strategy (singleton), backend chosen by settings."""
    backend = IdentityBackend(settings.identity_backend)
    return IdentityFactory.create(backend)


def get_settings_service(
    store: SettingsStoreStrategy = Depends(get_settings_store),
    cache: CacheStrategy = Depends(get_cache),
) -> TrackerSettingsService:
    return TrackerSettingsService(store=store, cache=cache)


def get_viewer(
    request: Request,
    identity: ViewerIdentityStrategy = Depends(get_identity),
) -> Viewer:
    return identity.resolve(request)


def require_admin(viewer: Viewer = Depends(get_viewer)) -> Viewer:
    """Reject anyone without administrative capability with 403."""
    if not viewer.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=PERMISSION_DENIED_MESSAGE,
        )
    return viewer
