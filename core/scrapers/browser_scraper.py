import logging
from typing import Callable, List, Optional

from playwright.sync_api import Error as PlaywrightError

from core.browser.client import BrowserClient
from core.browser.waiting import PageReadinessWaiter, ScrollExpander
from core.exceptions import ScraperError
from core.extraction.models import Product
from core.extraction.orchestrator import ExtractionOrchestrator
from core.scrapers.base import BaseScraper
from core.scrapers.profile import SiteProfile

TITLE_SCRIPT = "() => document.title"


class BrowserScraper(BaseScraper):
    """Base class for scrapers of client-side rendered search pages.

    This class extends the BaseScraper with the render-wait-extract pipeline
    shared by every site: open a browser tab, navigate, wait for the first
    product cards, scroll until lazy loading settles, then hand the HTML to
    the extraction orchestrator. Sites differ only in their SiteProfile.
    """

    profile: Optional[SiteProfile] = None

    def __init__(self,
                 profile: Optional[SiteProfile] = None,
                 browser_factory: Optional[Callable[[], BrowserClient]] = None,
                 orchestrator: Optional[ExtractionOrchestrator] = None):
        """Initialize the browser scraper.

        Args:
            profile: Site profile, defaults to the class-level profile
            browser_factory: Callable returning a browser context manager
                             with a ``new_page()`` method (BrowserClient)
            orchestrator: Extraction strategy, built from the profile if omitted
        """
        profile = profile or self.profile
        if profile is None:
            raise ValueError(f"{type(self).__name__} needs a SiteProfile")
        super().__init__(profile.name, profile.base_url)
        self.profile = profile
        self.browser_factory = browser_factory or BrowserClient
        self.orchestrator = orchestrator or ExtractionOrchestrator(profile)
        self.logger = logging.getLogger(f"scraper.{profile.name}")
        self.waiter = PageReadinessWaiter(profile.card_count_script, profile.timings, self.logger)
        self.expander = ScrollExpander(profile.card_count_script, profile.timings, self.logger)

    def build_search_url(self, query: str) -> str:
        return self.profile.search_url(query)

    def load_page(self, page, url: str) -> str:
        """Navigate a page to the URL and return its HTML once rendering settles.

        Args:
            page: Playwright page owned by this request
            url: Search page URL

        Returns:
            The page HTML after readiness polling and scroll expansion

        Raises:
            ScraperError: If navigation, the load check or content retrieval fails
        """
        self.logger.info("Navigating to %s", url)
        try:
            page.goto(url, wait_until="domcontentloaded")
        except PlaywrightError as e:
            raise ScraperError(f"Failed to navigate to {url}: {e}") from e

        try:
            title = page.evaluate(TITLE_SCRIPT)
        except PlaywrightError as e:
            raise ScraperError(f"Page failed to load: {e}") from e
        self.logger.info("Page title: %s", title or "(empty)")

        page.wait_for_timeout(self.profile.timings.initial_wait_ms)
        self.waiter.wait_until_ready(page)
        self.expander.expand(page)

        try:
            html = page.content()
        except PlaywrightError as e:
            raise ScraperError(f"Failed to get page content: {e}") from e
        self.logger.info("Got page content (%d bytes)", len(html))
        return html

    def fetch_search_page(self, query: str) -> str:
        """Render the search page for a query in a fresh browser tab."""
        url = self.build_search_url(query)
        with self.browser_factory() as browser, browser.new_page() as page:
            return self.load_page(page, url)

    def extract_products(self, html: str, limit: Optional[int] = None) -> List[Product]:
        marker = self.profile.data_marker
        if marker:
            if marker in html:
                self.logger.debug("Found %s in HTML", marker)
            else:
                self.logger.debug("No %s found in HTML", marker)
        return self.orchestrator.extract(html, limit)

    def scrape(self, query: str, limit: Optional[int] = None) -> List[Product]:
        """Render the search results for a query and extract its products."""
        self.logger.info("Searching for '%s' on %s", query, self.profile.display_name)
        html = self.fetch_search_page(query)
        products = self.extract_products(html, limit)

        for i, product in enumerate(products[:5], 1):
            self.logger.info("  %d. %s - %s", i, product.name, product.price)
        self.logger.info("Scraped %d products from %s", len(products), self.profile.display_name)
        return products
