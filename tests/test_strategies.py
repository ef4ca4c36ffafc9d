"""
Tests for store, cache and identity strategies, their factories, and nonces.
"""
import asyncio

import pytest
import redis
from sqlalchemy.exc import OperationalError
from starlette.requests import Request

from tracker_app.cache.factory import CacheFactory, CacheBackend
from tracker_app.cache import factory as cache_factory
from tracker_app.cache.strategies import InMemoryCache, NullCache, RedisCache
from tracker_app.identity.factory import IdentityFactory, IdentityBackend
from tracker_app.identity.strategies import AnonymousIdentity, TokenIdentity
from tracker_app.middleware import inject_snippet
from tracker_app.services.nonce import create_nonce, verify_nonce
from tracker_app.store.factory import SettingsStoreFactory, SettingsStoreBackend
from tracker_app.store.strategies import (
    DatabaseSettingsStore,
    InMemorySettingsStore,
    SettingsStoreError,
)


def make_request(headers=None) -> Request:
    raw_headers = [
        (key.lower().encode("latin-1"), value.encode("latin-1"))
        for key, value in (headers or {}).items()
    ]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw_headers})


def db_down(*args, **kwargs):
    raise OperationalError("SELECT", {}, Exception("database is locked"))


class UnreachableSession:
    """Session whose connection is gone"""

    query = staticmethod(db_down)

    def rollback(self):
        pass

    def close(self):
        pass


def failing_commit(session_factory):
    """Session factory whose sessions stage changes but cannot commit them."""
    def factory():
        db = session_factory()
        db.commit = db_down
        return db
    return factory


class UnreachableRedis:
    """Redis client whose every command fails to connect"""

    def __getattr__(self, name):
        def command(*args, **kwargs):
            raise redis.exceptions.ConnectionError("Error 111 connecting to 127.0.0.1:1")
        return command


class TestSettingsStores:
    """Test settings store strategies"""

    def test_database_store_get_missing(self, store):
        assert asyncio.run(store.get("umami_website_id")) is None

    def test_database_store_create_then_update(self, store):
        assert asyncio.run(store.set("umami_website_id", "abc")) is True
        assert asyncio.run(store.set("umami_website_id", "def")) is True
        assert asyncio.run(store.get("umami_website_id")) == "def"

    def test_database_store_keeps_keys_apart(self, store):
        asyncio.run(store.set("umami_website_id", "abc"))
        asyncio.run(store.set("umami_analytics_url", "https://x.com"))

        assert asyncio.run(store.get("umami_website_id")) == "abc"
        assert asyncio.run(store.get("umami_analytics_url")) == "https://x.com"

    def test_memory_store(self):
        store = InMemorySettingsStore({"umami_website_id": "abc"})
        assert asyncio.run(store.get("umami_website_id")) == "abc"
        assert asyncio.run(store.get("umami_analytics_url")) is None

        asyncio.run(store.set("umami_analytics_url", "https://x.com"))
        assert asyncio.run(store.get("umami_analytics_url")) == "https://x.com"

        asyncio.run(store.set_many({"umami_website_id": "def", "umami_analytics_url": ""}))
        assert asyncio.run(store.get("umami_website_id")) == "def"
        assert asyncio.run(store.get("umami_analytics_url")) == ""

    def test_database_store_set_many(self, store):
        asyncio.run(store.set("umami_website_id", "abc"))
        asyncio.run(store.set_many({"umami_website_id": "def", "umami_analytics_url": "https://x.com"}))

        assert asyncio.run(store.get("umami_website_id")) == "def"
        assert asyncio.run(store.get("umami_analytics_url")) == "https://x.com"

    def test_database_store_read_error(self):
        store = DatabaseSettingsStore(session_factory=UnreachableSession)
        with pytest.raises(SettingsStoreError):
            asyncio.run(store.get("umami_website_id"))

    def test_database_store_write_is_all_or_nothing(self, store, session_factory):
        asyncio.run(store.set("umami_website_id", "old"))
        broken = DatabaseSettingsStore(session_factory=failing_commit(session_factory))

        with pytest.raises(SettingsStoreError):
            asyncio.run(broken.set_many({"umami_website_id": "new", "umami_analytics_url": "https://x.com"}))

        assert asyncio.run(store.get("umami_website_id")) == "old"
        assert asyncio.run(store.get("umami_analytics_url")) is None


class TestCaches:
    """Test cache strategies"""

    def test_memory_cache_roundtrip_and_delete(self):
        cache = InMemoryCache()
        asyncio.run(cache.set("option:a", "1"))

        assert asyncio.run(cache.get("option:a")) == "1"
        assert asyncio.run(cache.exists("option:a")) is True
        assert asyncio.run(cache.delete("option:a")) is True
        assert asyncio.run(cache.get("option:a")) is None
        assert asyncio.run(cache.delete("option:a")) is False

    def test_memory_cache_expires(self):
        cache = InMemoryCache()
        asyncio.run(cache.set("option:a", "1", ttl=-1))
        assert asyncio.run(cache.get("option:a")) is None

    def test_null_cache_always_misses(self):
        cache = NullCache()
        asyncio.run(cache.set("option:a", "1"))
        assert asyncio.run(cache.get("option:a")) is None

    def test_redis_cache_roundtrip(self):
        class FakeRedis:
            def __init__(self):
                self.data = {}

            def get(self, key):
                return self.data.get(key)

            def setex(self, key, ttl, value):
                self.data[key] = value.encode("utf-8")
                return True

            def delete(self, key):
                return 1 if self.data.pop(key, None) is not None else 0

            def exists(self, key):
                return int(key in self.data)

        client = FakeRedis()
        cache = RedisCache(client)
        asyncio.run(cache.set("option:a", "1"))

        assert client.data == {"umami:option:a": b"1"}
        assert asyncio.run(cache.get("option:a")) == "1"
        assert asyncio.run(cache.exists("option:a")) is True
        assert asyncio.run(cache.delete("option:a")) is True

    def test_redis_errors_are_misses(self):
        cache = RedisCache(UnreachableRedis())

        assert asyncio.run(cache.get("option:a")) is None
        assert asyncio.run(cache.set("option:a", "1")) is False
        assert asyncio.run(cache.delete("option:a")) is False
        assert asyncio.run(cache.exists("option:a")) is False


class TestViewerIdentity:
    """Test viewer identity strategies"""

    def test_anonymous_request(self):
        identity = TokenIdentity(admin_token="secret")
        viewer = identity.resolve(make_request())
        assert viewer.is_anonymous

    def test_bearer_admin(self):
        identity = TokenIdentity(admin_token="secret")
        viewer = identity.resolve(make_request({"Authorization": "Bearer secret"}))
        assert viewer.is_admin and viewer.is_authenticated

    def test_header_admin(self):
        identity = TokenIdentity(admin_token="secret")
        viewer = identity.resolve(make_request({"X-Admin-Token": "secret"}))
        assert viewer.is_admin

    def test_wrong_token_is_not_admin(self):
        identity = TokenIdentity(admin_token="secret")
        viewer = identity.resolve(make_request({"Authorization": "Bearer nope"}))
        assert not viewer.is_admin

    def test_empty_admin_token_disables_admin(self):
        identity = TokenIdentity(admin_token="")
        viewer = identity.resolve(make_request({"Authorization": "Bearer "}))
        assert not viewer.is_admin

    def test_session_cookie_is_authenticated(self):
        identity = TokenIdentity(admin_token="secret", session_cookie_name="sid")
        viewer = identity.resolve(make_request({"Cookie": "sid=123"}))
        assert viewer.is_authenticated and not viewer.is_admin

    def test_anonymous_identity_ignores_credentials(self):
        viewer = AnonymousIdentity().resolve(make_request({"Authorization": "Bearer secret"}))
        assert viewer.is_anonymous


class TestFactories:
    """Test strategy factories"""

    @pytest.fixture(autouse=True)
    def reset_factories(self):
        SettingsStoreFactory.clear_instance()
        CacheFactory.clear_instance()
        IdentityFactory.clear_instance()
        yield
        SettingsStoreFactory.clear_instance()
        CacheFactory.clear_instance()
        IdentityFactory.clear_instance()

    def test_creates_memory_store(self):
        store = SettingsStoreFactory.create(SettingsStoreBackend.MEMORY)
        assert isinstance(store, InMemorySettingsStore)

    def test_creates_database_store(self):
        store = SettingsStoreFactory.create(SettingsStoreBackend.DATABASE)
        assert isinstance(store, DatabaseSettingsStore)

    def test_store_is_singleton(self):
        first = SettingsStoreFactory.create(SettingsStoreBackend.MEMORY)
        assert SettingsStoreFactory.create(SettingsStoreBackend.MEMORY) is first

    def test_creates_caches(self):
        assert isinstance(CacheFactory.create(CacheBackend.NULL), NullCache)
        CacheFactory.clear_instance()
        assert isinstance(CacheFactory.create(CacheBackend.MEMORY), InMemoryCache)

    def test_unreachable_redis_falls_back_to_memory(self, monkeypatch):
        monkeypatch.setattr(cache_factory.settings, "redis_url", "redis://127.0.0.1:1/0")

        cache = CacheFactory.create(CacheBackend.REDIS)
        assert isinstance(cache, InMemoryCache)
        assert CacheFactory.create(CacheBackend.REDIS) is cache

    def test_creates_identities(self):
        assert isinstance(IdentityFactory.create(IdentityBackend.ANONYMOUS), AnonymousIdentity)
        IdentityFactory.clear_instance()
        assert isinstance(IdentityFactory.create(IdentityBackend.TOKEN), TokenIdentity)

    def test_unknown_backend_name(self):
        with pytest.raises(ValueError):
            SettingsStoreBackend("mongo")


class TestNonce:
    """Test admin form nonces"""

    def test_valid_nonce(self):
        nonce = create_nonce("save", secret_key="k")
        assert verify_nonce(nonce, "save", secret_key="k", max_age=60)

    def test_wrong_action_or_key(self):
        nonce = create_nonce("save", secret_key="k")
        assert not verify_nonce(nonce, "delete", secret_key="k", max_age=60)
        assert not verify_nonce(nonce, "save", secret_key="other", max_age=60)

    def test_expired_nonce(self):
        nonce = create_nonce("save", secret_key="k")
        assert not verify_nonce(nonce, "save", secret_key="k", max_age=-1)

    def test_tampered_nonce(self):
        nonce = create_nonce("save", secret_key="k")
        assert not verify_nonce(nonce + "x", "save", secret_key="k", max_age=60)

    @pytest.mark.parametrize("nonce", [None, "", "garbage", "abc.def", "123.forged"])
    def test_malformed_nonce(self, nonce):
        assert not verify_nonce(nonce, "save", secret_key="k", max_age=60)


class TestInjectSnippet:
    """Test placement of the snippet in the page"""

    def test_before_head_close(self):
        html = b"<html><head><title>t</title></head><body></body></html>"
        assert inject_snippet(html, b"<script></script>") == (
            b"<html><head><title>t</title><script></script></head><body></body></html>"
        )

    def test_head_close_is_case_insensitive(self):
        html = b"<HTML><HEAD></HEAD ><BODY></BODY></HTML>"
        assert inject_snippet(html, b"<s>") == b"<HTML><HEAD><s></HEAD ><BODY></BODY></HTML>"

    def test_only_first_head_close(self):
        html = b"<head></head><body><pre>&lt;/head&gt;</pre><template></head></template></body>"
        result = inject_snippet(html, b"<s>")
        assert result.count(b"<s>") == 1
        assert result.startswith(b"<head><s></head>")

    def test_no_head_or_empty_snippet(self):
        assert inject_snippet(b"<p>fragment</p>", b"<s>") == b"<p>fragment</p>"
        assert inject_snippet(b"<head></head>", b"") == b"<head></head>"
