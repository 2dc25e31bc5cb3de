# This file defines the database schema for our application using SQLAlchemy's Object Relational Mapper (ORM)
# It creates the structure used by the SQL cache backend to store serialized search results

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.orm import declarative_base

# Base class for all ORM models, holds the metadata used to create the tables
Base = declarative_base()


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form stored in DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class CacheEntry(Base):
    """A cached search result keyed by site and query.

    The value holds the JSON-serialized product list exactly as the result
    cache produced it. A new scrape overwrites the whole row. An expired row
    is treated as missing: reads delete it, and the purge job sweeps the rest.
    """
    __tablename__ = "cache_entries"

    # "<site>:<query>", queries are stored verbatim
    key = Column(String(512), primary_key=True)

    value = Column(Text, nullable=False)

    created_at = Column(DateTime, default=utcnow)

    # Indexed so expired rows can be purged with a range scan
    expires_at = Column(DateTime, nullable=False, index=True)
