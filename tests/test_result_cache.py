import json
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
import redis
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config.settings import Settings, get_settings
from core.cache.backends import (
    DatabaseCacheBackend,
    NullCacheBackend,
    RedisCacheBackend,
    create_backend,
)
from core.cache.result_cache import ResultCache
from core.database.models import CacheEntry, utcnow
from core.database.operations import (
    get_cache_entry,
    init_db,
    purge_expired_entries,
    upsert_cache_entry,
)
from core.exceptions import CacheBackendError
from core.extraction.models import Product
from tests.fakes import MemoryBackend


def products(count):
    return [
        Product(
            name=f"Apple iPhone 15 128GB #{i}",
            price="Rp12.999.000",
            product_url=f"https://www.tokopedia.com/shop/iphone-{i}",
            rating="4.9",
        )
        for i in range(count)
    ]


def test_key_is_site_and_query():
    assert ResultCache.key("tokopedia", "iphone 15") == "tokopedia:iphone 15"


def test_short_results_are_not_cached(result_cache, memory_backend):
    assert result_cache.put("tokopedia", "iphone", products(7), limit=10) is False
    assert memory_backend.store == {}


def test_empty_results_are_not_cached(result_cache, memory_backend):
    assert result_cache.put("tokopedia", "iphone", [], limit=None) is False
    assert memory_backend.store == {}


def test_complete_results_are_cached_in_full_and_truncated_on_read(result_cache, memory_backend):
    assert result_cache.put("tokopedia", "iphone", products(7), limit=5) is True

    stored = json.loads(memory_backend.store["tokopedia:iphone"])
    assert len(stored) == 7
    assert memory_backend.ttls["tokopedia:iphone"] == 86400

    assert result_cache.get("tokopedia", "iphone", limit=5) == products(7)[:5]
    assert result_cache.get("tokopedia", "iphone") == products(7)


def test_miss_returns_none(result_cache):
    assert result_cache.get("blibli", "iphone", limit=5) is None


@pytest.mark.parametrize(
    "payload",
    ["not json", '{"name": "x"}', "[]", '[{"name": "", "price": "Rp1", "product_url": "u"}]', '[{"price": "Rp1"}]', "[1, 2]"],
)
def test_malformed_payloads_read_as_miss(result_cache, memory_backend, payload):
    memory_backend.store["tokopedia:iphone"] = payload
    assert result_cache.get("tokopedia", "iphone") is None


def test_unavailable_backend_never_raises():
    cache = ResultCache(MemoryBackend(fail=True), ttl_seconds=60)

    assert cache.get("tokopedia", "iphone") is None
    assert cache.put("tokopedia", "iphone", products(3), limit=1) is False
    assert cache.invalidate("tokopedia", "iphone") is False


def test_invalidate(result_cache):
    result_cache.put("blibli", "laptop", products(2), limit=2)

    assert result_cache.invalidate("blibli", "laptop") is True
    assert result_cache.get("blibli", "laptop") is None
    assert result_cache.invalidate("blibli", "laptop") is False


def test_redis_backend_uses_get_and_setex():
    client = MagicMock()
    client.get.return_value = b'[{"name": "x"}]'
    backend = RedisCacheBackend(client)

    backend.set_with_ttl("tokopedia:iphone", "[]", 86400)

    client.setex.assert_called_once_with("tokopedia:iphone", 86400, "[]")
    assert backend.get("tokopedia:iphone") == '[{"name": "x"}]'


def test_redis_errors_become_cache_backend_errors():
    client = MagicMock()
    client.get.side_effect = redis.exceptions.ConnectionError("Connection refused")
    client.setex.side_effect = redis.exceptions.TimeoutError("Timeout")
    backend = RedisCacheBackend(client)

    with pytest.raises(CacheBackendError):
        backend.get("k")
    with pytest.raises(CacheBackendError):
        backend.set_with_ttl("k", "v", 10)

    assert ResultCache(backend, ttl_seconds=10).get("tokopedia", "iphone") is None


def test_undecodable_redis_value_reads_as_miss():
    client = MagicMock()
    client.get.side_effect = UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
    backend = RedisCacheBackend(client)

    with pytest.raises(CacheBackendError):
        backend.get("tokopedia:iphone")
    assert ResultCache(backend, ttl_seconds=10).get("tokopedia", "iphone") is None


def test_explicit_zero_ttl_is_kept(memory_backend):
    assert ResultCache(memory_backend, ttl_seconds=0).ttl_seconds == 0
    assert ResultCache(memory_backend).ttl_seconds == get_settings().CACHE_TTL_SECONDS


def test_null_backend_stores_nothing():
    cache = ResultCache(NullCacheBackend(), ttl_seconds=10)
    assert cache.put("tokopedia", "iphone", products(2), limit=1) is True
    assert cache.get("tokopedia", "iphone") is None


def test_create_backend_follows_settings():
    app_settings = Settings()

    app_settings.CACHE_BACKEND = "none"
    assert isinstance(create_backend(app_settings), NullCacheBackend)

    app_settings.CACHE_BACKEND = "redis"
    assert isinstance(create_backend(app_settings), RedisCacheBackend)

    app_settings.CACHE_BACKEND = "database"
    assert isinstance(create_backend(app_settings), DatabaseCacheBackend)

    app_settings.CACHE_BACKEND = "memcached"
    with pytest.raises(ValueError):
        create_backend(app_settings)


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield sessionmaker(bind=engine)
    engine.dispose()


def test_database_backend_round_trip(session_factory):
    cache = ResultCache(DatabaseCacheBackend(session_factory), ttl_seconds=3600)

    assert cache.put("blibli", "iphone", products(3), limit=3) is True
    assert cache.get("blibli", "iphone", limit=2) == products(3)[:2]

    # Overwrite in place
    assert cache.put("blibli", "iphone", products(4), limit=3) is True
    assert len(cache.get("blibli", "iphone")) == 4


def test_expired_entries_are_misses_and_get_deleted(session_factory):
    db = session_factory()
    try:
        now = utcnow()
        upsert_cache_entry(db, "tokopedia:old", "[]", ttl_seconds=60, now=now)

        assert get_cache_entry(db, "tokopedia:old", now=now + timedelta(seconds=30)) is not None
        assert get_cache_entry(db, "tokopedia:old", now=now + timedelta(seconds=61)) is None
        assert db.query(CacheEntry).count() == 0
    finally:
        db.close()


def test_purge_removes_only_expired_entries(session_factory):
    db = session_factory()
    try:
        now = utcnow()
        upsert_cache_entry(db, "tokopedia:a", "[]", ttl_seconds=10, now=now)
        upsert_cache_entry(db, "tokopedia:b", "[]", ttl_seconds=1000, now=now)
        upsert_cache_entry(db, "blibli:a", "[]", ttl_seconds=1000, now=now)

        assert purge_expired_entries(db, now=now + timedelta(seconds=100)) == 1
        assert sorted(entry.key for entry in db.query(CacheEntry).all()) == ["blibli:a", "tokopedia:b"]
    finally:
        db.close()
