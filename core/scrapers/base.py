# This file defines the abstract base class for all scrapers in the system
# It establishes the common search interface every site integration implements

import abc
from typing import List, Optional

from core.extraction.models import Product


class BaseScraper(abc.ABC):
    """Base class for e-commerce search scrapers.

    A scraper turns a search term into a list of products for one site.
    The search service only talks to this interface, so caching and the
    HTTP/CLI layers stay independent of how a site is actually scraped.
    """

    def __init__(self, name: str, url: str):
        """Initialize the scraper with a name and URL.

        Args:
            name: Unique identifier for this site (e.g., "tokopedia", "blibli").
                 It also namespaces the site's cache entries.
            url: Base URL of the site, used to resolve relative product links
        """
        self.name = name
        self.url = url

    @abc.abstractmethod
    def scrape(self, query: str, limit: Optional[int] = None) -> List[Product]:
        """Search the site and return the products found.

        Args:
            query: Raw search term
            limit: Maximum number of products, None for everything rendered

        Returns:
            Products in page order with unique product URLs. An empty list
            is a valid outcome when the page shows no recognizable results.

        Raises:
            ScraperError: When the page cannot be loaded at all
        """
        raise NotImplementedError("Concrete scraper classes must implement scrape() method")
