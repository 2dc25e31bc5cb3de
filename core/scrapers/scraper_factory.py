from typing import Dict, List, Type

from core.scrapers.browser_scraper import BrowserScraper
from core.scrapers.profile import SiteProfile
from core.scrapers.websites.blibli_scraper import BlibliScraper
from core.scrapers.websites.tokopedia_scraper import TokopediaScraper


class ScraperFactory:
    """Factory for creating the scraper of a supported site.

    Callers only deal with site names. Adding a site means writing a
    SiteProfile, a thin BrowserScraper subclass, and registering it here.
    """

    # Map of site names to scraper classes
    SCRAPERS: Dict[str, Type[BrowserScraper]] = {
        "tokopedia": TokopediaScraper,
        "blibli": BlibliScraper,
    }

    @classmethod
    def normalize_site(cls, site: str) -> str:
        """Return the registered site name, raising ValueError if unknown."""
        key = (site or "").strip().lower()
        if key not in cls.SCRAPERS:
            raise ValueError(
                f"Unknown site '{site}'. Available sites: {', '.join(cls.available_sites())}"
            )
        return key

    @classmethod
    def available_sites(cls) -> List[str]:
        return sorted(cls.SCRAPERS)

    @classmethod
    def get_profile(cls, site: str) -> SiteProfile:
        return cls.SCRAPERS[cls.normalize_site(site)].profile

    @classmethod
    def create_scraper(cls, site: str, **kwargs) -> BrowserScraper:
        """Create and return a scraper for the specified site.

        Args:
            site: Site name (case-insensitive, must be in SCRAPERS)
            **kwargs: Passed to the scraper, e.g. ``browser_factory`` to
                      swap the browser in tests

        Raises:
            ValueError: If the site is not supported
        """
        scraper_class = cls.SCRAPERS[cls.normalize_site(site)]
        return scraper_class(**kwargs)
