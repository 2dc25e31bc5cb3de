"""Key-value stores behind the search result cache.

Every backend exposes the same three calls (``get``, ``set_with_ttl``,
``delete``) and reports failures of the underlying store as
CacheBackendError, so callers never handle redis or SQLAlchemy errors.
"""

import logging
from typing import Optional

import redis
import sqlalchemy.exc

from config.settings import Settings, get_settings
from core.database import operations
from core.exceptions import CacheBackendError

logger = logging.getLogger("cache.backend")


class RedisCacheBackend:
    """Cache entries stored as plain redis strings with an expiry."""

    name = "redis"

    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_settings(cls, app_settings: Settings) -> "RedisCacheBackend":
        # Creating the client does not connect, so a down server only shows up on use
        client = redis.Redis.from_url(
            app_settings.REDIS_URL,
            socket_timeout=app_settings.REDIS_SOCKET_TIMEOUT,
            socket_connect_timeout=app_settings.REDIS_SOCKET_TIMEOUT,
            decode_responses=True,
        )
        return cls(client)

    def get(self, key: str) -> Optional[str]:
        try:
            value = self.client.get(key)
            if isinstance(value, bytes):
                value = value.decode("utf-8")
        except redis.exceptions.RedisError as e:
            raise CacheBackendError(f"Redis GET failed: {e}") from e
        except UnicodeDecodeError as e:
            raise CacheBackendError(f"Redis value for {key} is not UTF-8: {e}") from e
        return value

    def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            self.client.setex(key, ttl_seconds, value)
        except redis.exceptions.RedisError as e:
            raise CacheBackendError(f"Redis SETEX failed: {e}") from e

    def delete(self, key: str) -> bool:
        try:
            return bool(self.client.delete(key))
        except redis.exceptions.RedisError as e:
            raise CacheBackendError(f"Redis DEL failed: {e}") from e


class DatabaseCacheBackend:
    """Cache entries stored in the ``cache_entries`` SQL table."""

    name = "database"

    def __init__(self, session_factory=None):
        self.session_factory = session_factory or operations.SessionLocal

    def get(self, key: str) -> Optional[str]:
        db = self.session_factory()
        try:
            entry = operations.get_cache_entry(db, key)
            return entry.value if entry is not None else None
        except sqlalchemy.exc.SQLAlchemyError as e:
            raise CacheBackendError(f"Database cache read failed: {e}") from e
        finally:
            db.close()

    def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        db = self.session_factory()
        try:
            operations.upsert_cache_entry(db, key, value, ttl_seconds)
        except sqlalchemy.exc.SQLAlchemyError as e:
            db.rollback()
            raise CacheBackendError(f"Database cache write failed: {e}") from e
        finally:
            db.close()

    def delete(self, key: str) -> bool:
        db = self.session_factory()
        try:
            return operations.delete_cache_entry(db, key)
        except sqlalchemy.exc.SQLAlchemyError as e:
            db.rollback()
            raise CacheBackendError(f"Database cache delete failed: {e}") from e
        finally:
            db.close()


class NullCacheBackend:
    """Backend used when caching is switched off: nothing is ever stored."""

    name = "none"

    def get(self, key: str) -> Optional[str]:
        return None

    def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        return None

    def delete(self, key: str) -> bool:
        return False


def create_backend(app_settings: Optional[Settings] = None):
    """Build the cache backend selected by ``CACHE_BACKEND``.

    Args:
        app_settings: Settings to read, defaults to the application settings

    Returns:
        A redis, database or null backend

    Raises:
        ValueError: If the configured backend name is unknown
    """
    app_settings = app_settings or get_settings()
    backend_name = app_settings.CACHE_BACKEND

    if backend_name == "redis":
        logger.info("Using redis cache at %s:%s", app_settings.REDIS_HOST, app_settings.REDIS_PORT)
        return RedisCacheBackend.from_settings(app_settings)
    if backend_name in ("database", "db", "mysql"):
        logger.info("Using database cache on %s", app_settings.DB_NAME)
        return DatabaseCacheBackend()
    if backend_name in ("none", "off", "disabled"):
        logger.info("Result cache disabled")
        return NullCacheBackend()

    raise ValueError(f"Unknown cache backend '{backend_name}' (use redis, database or none)")
