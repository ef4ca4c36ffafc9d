"""
Test configuration and fixtures for the tracker service.
This centralizes all test setup, making individual tests clean.
"""

import pytest
from fastapi import FastAPI
from fastapi.responses import HTMLResponse, PlainTextResponse, Response
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from main import app
from tracker_app.cache.strategies import InMemoryCache
from tracker_app.database.connection import Base
from tracker_app.dependencies import get_cache, get_identity, get_settings_store
from tracker_app.identity.strategies import TokenIdentity
from tracker_app.middleware import TrackingSnippetMiddleware
from tracker_app.store.strategies import (
    DatabaseSettingsStore,
    SettingsStoreError,
    SettingsStoreStrategy,
)

# Test database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

ADMIN_TOKEN = "test-admin-token"
ADMIN_HEADERS = {"Authorization": f"Bearer {ADMIN_TOKEN}"}
LOGGED_IN_HEADERS = {"Cookie": "session=user-session-id"}

SITE_PAGE = """<!DOCTYPE html>
<html>
<head>
<title>Home</title>
</head>
<body><h1>Hello</h1></body>
</html>"""


class UnavailableSettingsStore(SettingsStoreStrategy):
    """Settings store whose backend is down: every read and write fails."""

    async def get(self, key):
        raise SettingsStoreError(f"Could not read option {key}")

    async def set(self, key, value):
        raise SettingsStoreError(f"Could not save options {key}")

    async def set_many(self, values):
        raise SettingsStoreError(f"Could not save options {', '.join(values)}")


@pytest.fixture(scope="function")
def session_factory():
    """
    Fresh option tables for each test.
    This ensures tests are isolated and don't affect each other.
    """
    Base.metadata.create_all(bind=engine)
    try:
        yield TestingSessionLocal
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def store(session_factory):
    return DatabaseSettingsStore(session_factory=session_factory)


@pytest.fixture(scope="function")
def cache():
    return InMemoryCache()


@pytest.fixture(scope="function")
def identity():
    return TokenIdentity(admin_token=ADMIN_TOKEN, session_cookie_name="session")


def _override(target: FastAPI, store, cache, identity):
    target.dependency_overrides[get_settings_store] = lambda: store
    target.dependency_overrides[get_cache] = lambda: cache
    target.dependency_overrides[get_identity] = lambda: identity


@pytest.fixture(scope="function")
def client(store, cache, identity):
    """
    Test client for the tracker app with store, cache and identity overridden.
    This is the main fixture that tests will use.
    """
    _override(app, store, cache, identity)

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def site_app(store, cache, identity):
    """A small host site whose pages go through the snippet middleware."""
    site = FastAPI()
    site.add_middleware(TrackingSnippetMiddleware)

    @site.get("/", response_class=HTMLResponse)
    def home():
        return SITE_PAGE

    @site.get("/no-head", response_class=HTMLResponse)
    def no_head():
        return "<p>fragment</p>"

    @site.get("/plain", response_class=PlainTextResponse)
    def plain():
        return "</head>"

    @site.get("/data")
    def data():
        return {"html": SITE_PAGE}

    @site.post("/", response_class=HTMLResponse)
    def post_home():
        return SITE_PAGE

    @site.get("/admin/dashboard", response_class=HTMLResponse)
    def admin_dashboard():
        return SITE_PAGE

    @site.get("/legacy")
    def legacy_charset():
        return Response(SITE_PAGE, media_type="text/html; charset=x-unknown-8")

    _override(site, store, cache, identity)
    return site


@pytest.fixture(scope="function")
def site_client(site_app):
    with TestClient(site_app) as test_client:
        yield test_client
