import logging
import time
from typing import List, Optional

from config.settings import Settings, get_settings
from core.cache.backends import create_backend
from core.cache.result_cache import ResultCache
from core.extraction.models import Product
from core.scrapers.scraper_factory import ScraperFactory

logger = logging.getLogger("search")


class SearchService:
    """Cache-aware entry point for product searches.

    A request checks the result cache first. On a miss the site is scraped
    without a limit, the full result is offered to the cache and the caller
    gets the first ``limit`` products.
    """

    def __init__(self,
                 cache: Optional[ResultCache] = None,
                 browser_factory=None,
                 app_settings: Optional[Settings] = None):
        """Initialize the service.

        Args:
            cache: Result cache, built from the configured backend if omitted
            browser_factory: Passed to every scraper, mainly to fake the browser
            app_settings: Settings for defaults and limits
        """
        self.settings = app_settings or get_settings()
        self.cache = cache or ResultCache(create_backend(self.settings), self.settings.CACHE_TTL_SECONDS)
        self.browser_factory = browser_factory

    def available_sites(self) -> List[str]:
        return ScraperFactory.available_sites()

    def normalize_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return self.settings.DEFAULT_LIMIT
        return max(0, min(limit, self.settings.MAX_LIMIT))

    def search(self, site: str, query: Optional[str] = None, limit: Optional[int] = None,
               use_cache: bool = True) -> List[Product]:
        """Search a site for products.

        Args:
            site: Site name, e.g. "tokopedia"
            query: Search term, the configured default when blank
            limit: Maximum number of products, the configured default when None
            use_cache: Skip both the cache lookup and the cache write when False

        Returns:
            Up to ``limit`` products

        Raises:
            ValueError: If the site is unknown
            ScraperError: If the search page could not be loaded
        """
        site = ScraperFactory.normalize_site(site)
        query = (query or "").strip() or self.settings.DEFAULT_QUERY
        limit = self.normalize_limit(limit)
        if limit == 0:
            return []

        start = time.perf_counter()
        if use_cache:
            cached = self.cache.get(site, query, limit)
            if cached is not None:
                logger.info("Served '%s' on %s from cache in %.2fs", query, site, time.perf_counter() - start)
                return cached

        kwargs = {}
        if self.browser_factory is not None:
            kwargs["browser_factory"] = self.browser_factory
        scraper = ScraperFactory.create_scraper(site, **kwargs)
        products = scraper.scrape(query)

        if use_cache:
            self.cache.put(site, query, products, limit)

        logger.info("Scraped '%s' on %s: %d products in %.2fs",
                    query, site, len(products), time.perf_counter() - start)
        return products[:limit]
