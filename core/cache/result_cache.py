import json
import logging
from typing import List, Optional

from config.settings import get_settings
from core.exceptions import CacheBackendError
from core.extraction.models import Product

logger = logging.getLogger("cache")


class ResultCache:
    """Read-through cache of search results per site and query.

    The cache never fails a request: an unreachable backend or a payload that
    no longer deserializes reads as a miss, and a failed write is only logged.
    Results shorter than the requested limit are never stored, because they
    may come from a page that had not finished rendering.
    """

    def __init__(self, backend, ttl_seconds: Optional[int] = None):
        self.backend = backend
        self.ttl_seconds = get_settings().CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds

    @staticmethod
    def key(site: str, query: str) -> str:
        return f"{site}:{query}"

    def get(self, site: str, query: str, limit: Optional[int] = None) -> Optional[List[Product]]:
        """Return the cached products, truncated to the limit, or None on a miss."""
        cache_key = self.key(site, query)
        try:
            payload = self.backend.get(cache_key)
        except CacheBackendError as e:
            logger.warning("Cache unavailable, continuing without cache: %s", e)
            return None

        if not payload:
            logger.debug("Cache miss for %s", cache_key)
            return None

        try:
            items = json.loads(payload)
            if not isinstance(items, list):
                raise ValueError(f"expected a list, got {type(items).__name__}")
            products = [Product.from_dict(item) for item in items]
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Ignoring malformed cache entry %s: %s", cache_key, e)
            return None

        if not products:
            return None

        if limit is not None:
            products = products[:limit]
        logger.info("Cache hit for %s, returning %d products", cache_key, len(products))
        return products

    def put(self, site: str, query: str, products: List[Product], limit: Optional[int] = None) -> bool:
        """Store a scrape result if it is complete enough.

        Args:
            site: Site name
            query: Search term the products were found for
            products: Full extraction result, stored untruncated
            limit: Limit the caller asked for, None when unbounded

        Returns:
            True if the result was written
        """
        if not products:
            return False
        if limit is not None and len(products) < limit:
            logger.info("Not caching %d products for '%s', fewer than the requested %d",
                        len(products), query, limit)
            return False

        cache_key = self.key(site, query)
        payload = json.dumps([product.to_dict() for product in products], ensure_ascii=False)
        try:
            self.backend.set_with_ttl(cache_key, payload, self.ttl_seconds)
        except CacheBackendError as e:
            logger.warning("Failed to cache result for %s: %s", cache_key, e)
            return False

        logger.info("Cached %d products for %s (TTL: %ds)", len(products), cache_key, self.ttl_seconds)
        return True

    def invalidate(self, site: str, query: str) -> bool:
        """Remove the entry for a site and query, returning whether one existed."""
        cache_key = self.key(site, query)
        try:
            return self.backend.delete(cache_key)
        except CacheBackendError as e:
            logger.warning("Failed to delete cache entry %s: %s", cache_key, e)
            return False
