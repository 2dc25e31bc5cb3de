# This file contains the database access layer that handles connections to the database
# and provides the CRUD operations behind the SQL cache backend

import logging
from datetime import timedelta
from typing import Generator, Optional

import pymysql
import sqlalchemy.exc
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker

from config.settings import get_settings
from .models import Base, CacheEntry, utcnow

# Get application settings
settings = get_settings()

logger = logging.getLogger("database")

# The engine owns the connection pool, no connection is opened until first use
engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True)

# Session factory, each session is one unit of work
SessionLocal = sessionmaker(bind=engine)


def ensure_database_exists():
    """Ensure that the database exists before attempting operations."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return
    except sqlalchemy.exc.OperationalError as e:
        # Connection problems include "Unknown database", the one case we can fix
        if "Unknown database" not in str(e):
            logger.error("Database connection error: %s", e)
            raise

    try:
        create_db_connection = pymysql.connect(
            host=settings.DB_HOST,
            user=settings.DB_USER,
            password=settings.DB_PASS,
            port=int(settings.DB_PORT)
        )
    except pymysql.Error as conn_err:
        logger.error("Failed to connect to MySQL server: %s", conn_err)
        raise

    try:
        with create_db_connection.cursor() as cursor:
            cursor.execute(f"CREATE DATABASE IF NOT EXISTS {settings.DB_NAME}")
        logger.info("Created database '%s'", settings.DB_NAME)
    except pymysql.Error as db_err:
        logger.error("Failed to create database: %s", db_err)
        raise
    finally:
        create_db_connection.close()


def init_db(bind=None):
    """Create database tables if they don't exist.

    Args:
        bind: Optional engine to create the tables on. Defaults to the
              configured MySQL engine, which is created first if missing.
    """
    if bind is None:
        ensure_database_exists()
        bind = engine
    Base.metadata.create_all(bind=bind)


def get_db() -> Generator:
    """Create and yield a database session.

    The session is closed even if the caller raises.

    Yields:
        A SQLAlchemy session object for database operations
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_cache_entry(db, key: str, now=None) -> Optional[CacheEntry]:
    """Get a cache entry that has not expired yet.

    An expired entry found on the way is deleted.

    Args:
        db: Database session
        key: Cache key
        now: Reference time, defaults to the current UTC time

    Returns:
        The CacheEntry, or None when it is missing or expired
    """
    now = now or utcnow()
    entry = db.query(CacheEntry).filter(CacheEntry.key == key).first()
    if entry is None:
        return None
    if entry.expires_at <= now:
        db.delete(entry)
        db.commit()
        return None
    return entry


def upsert_cache_entry(db, key: str, value: str, ttl_seconds: int, now=None) -> CacheEntry:
    """Insert or replace a cache entry.

    Args:
        db: Database session
        key: Cache key
        value: Serialized payload
        ttl_seconds: Lifetime of the entry
        now: Reference time, defaults to the current UTC time

    Returns:
        The stored CacheEntry
    """
    now = now or utcnow()
    expires_at = now + timedelta(seconds=ttl_seconds)

    entry = db.query(CacheEntry).filter(CacheEntry.key == key).first()
    if entry is None:
        entry = CacheEntry(key=key, value=value, created_at=now, expires_at=expires_at)
        db.add(entry)
    else:
        entry.value = value
        entry.created_at = now
        entry.expires_at = expires_at

    db.commit()
    db.refresh(entry)
    return entry


def delete_cache_entry(db, key: str) -> bool:
    """Delete a cache entry, returning whether one existed."""
    deleted = db.query(CacheEntry).filter(CacheEntry.key == key).delete()
    db.commit()
    return deleted > 0


def purge_expired_entries(db, now=None) -> int:
    """Remove expired cache entries.

    Args:
        db: Database session
        now: Reference time, defaults to the current UTC time

    Returns:
        Number of deleted rows
    """
    now = now or utcnow()
    deleted = db.query(CacheEntry)\
        .filter(CacheEntry.expires_at <= now)\
        .delete(synchronize_session=False)
    db.commit()
    return deleted
