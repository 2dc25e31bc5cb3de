import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page, sync_playwright

from config.settings import Settings, get_settings
from core.exceptions import BrowserError


class BrowserClient:
    """Headless Chromium driven through the Playwright sync API.

    Use it as a context manager; each ``new_page()`` opens an isolated
    browser context so pages never share cookies or storage.

        with BrowserClient() as browser, browser.new_page() as page:
            page.goto(url)
    """

    def __init__(self, app_settings: Optional[Settings] = None):
        self.settings = app_settings or get_settings()
        self.logger = logging.getLogger("browser")
        self._playwright = None
        self._browser = None

    def launch_args(self) -> List[str]:
        return [
            "--disable-blink-features=AutomationControlled",
            f"--lang={self.settings.BROWSER_LOCALE}",
            "--disable-gpu",
            "--no-sandbox",
            "--disable-dev-shm-usage",
        ]

    def start(self) -> "BrowserClient":
        """Start Playwright and launch the browser.

        Raises:
            BrowserError: If the browser cannot be launched
        """
        launch_options = {"headless": self.settings.HEADLESS, "args": self.launch_args()}
        if self.settings.CHROME_BIN:
            launch_options["executable_path"] = self.settings.CHROME_BIN
            self.logger.debug("Using browser executable %s", self.settings.CHROME_BIN)

        try:
            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(**launch_options)
        except PlaywrightError as e:
            self.close()
            raise BrowserError(f"Failed to launch browser: {e}") from e
        return self

    def close(self) -> None:
        if self._browser is not None:
            try:
                self._browser.close()
            except PlaywrightError as e:
                self.logger.warning("Error closing browser: %s", e)
            self._browser = None
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None

    def __enter__(self) -> "BrowserClient":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @contextmanager
    def new_page(self) -> Iterator[Page]:
        """Open a new tab with the configured viewport, user agent and locale."""
        if self._browser is None:
            raise BrowserError("Browser is not running")

        self.logger.debug("Creating new browser tab")
        try:
            context = self._browser.new_context(
                viewport={"width": self.settings.WINDOW_WIDTH, "height": self.settings.WINDOW_HEIGHT},
                user_agent=self.settings.USER_AGENT,
                locale=self.settings.BROWSER_LOCALE,
                extra_http_headers={"Accept-Language": self.settings.BROWSER_LOCALE},
            )
            page = context.new_page()
        except PlaywrightError as e:
            raise BrowserError(f"Failed to create new tab: {e}") from e

        page.set_default_timeout(self.settings.PAGE_LOAD_TIMEOUT_SECS * 1000)
        try:
            yield page
        finally:
            context.close()
