"""Waiting strategies for search pages that render and lazy-load client side.

Both loops are bounded by attempt counters and fixed sleeps and never raise:
a page that renders slowly or not at all degrades into fewer products, it
does not fail the request.
"""

import logging
from typing import Optional

from playwright.sync_api import Error as PlaywrightError

from config.settings import ScrapeTimings

SCROLL_TO_BOTTOM_SCRIPT = "() => window.scrollTo(0, document.body.scrollHeight)"
SCROLL_TO_TOP_SCRIPT = "() => window.scrollTo(0, 0)"

logger = logging.getLogger("browser.waiting")


def count_cards(page, probe_script: str) -> int:
    """Run the card-count probe, reading any failure as zero cards."""
    try:
        value = page.evaluate(probe_script)
    except PlaywrightError as e:
        logger.debug("Card count probe failed: %s", e)
        return 0
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def run_script(page, script: str) -> None:
    try:
        page.evaluate(script)
    except PlaywrightError as e:
        logger.debug("Script failed: %s", e)


class PageReadinessWaiter:
    """Poll a page until at least one product card has rendered."""

    def __init__(self, probe_script: str, timings: ScrapeTimings, log: Optional[logging.Logger] = None):
        self.probe_script = probe_script
        self.timings = timings
        self.logger = log or logger

    def wait_until_ready(self, page) -> bool:
        """Poll the card count at a fixed interval.

        Returns:
            True once a card is present, False when the attempts run out
        """
        interval = self.timings.poll_interval_ms
        for attempt in range(1, self.timings.ready_max_attempts + 1):
            count = count_cards(page, self.probe_script)
            if count >= 1:
                self.logger.info("%d product cards ready after %.1fs", count, attempt * interval / 1000)
                return True
            if attempt % self.timings.progress_every == 0:
                self.logger.info("Still loading... %d products found so far", count)
            page.wait_for_timeout(interval)

        self.logger.warning("Timeout waiting for products, proceeding with what we have")
        return False


class ScrollExpander:
    """Scroll to the bottom until the number of rendered cards stops growing.

    A round scrolls to the bottom, waits for lazy content and re-counts the
    cards. Scrolling ends once the count has stayed the same (and non-zero)
    for ``stable_rounds`` consecutive rounds, or after ``scroll_rounds``.
    The page is then scrolled back to the top so the captured DOM is in a
    consistent position.
    """

    def __init__(self, probe_script: str, timings: ScrapeTimings, log: Optional[logging.Logger] = None):
        self.probe_script = probe_script
        self.timings = timings
        self.logger = log or logger

    def expand(self, page) -> int:
        """Run the scroll loop and return the last observed card count."""
        max_rounds = self.timings.scroll_rounds
        previous_count = 0
        stable_count = 0
        current_count = 0

        for scroll_round in range(1, max_rounds + 1):
            run_script(page, SCROLL_TO_BOTTOM_SCRIPT)
            page.wait_for_timeout(self.timings.scroll_settle_ms)

            current_count = count_cards(page, self.probe_script)
            self.logger.info("Scroll %d/%d: %d products detected", scroll_round, max_rounds, current_count)

            if current_count == previous_count and current_count > 0:
                stable_count += 1
                if stable_count >= self.timings.stable_rounds:
                    self.logger.info("Product count stable at %d, stopping scroll", current_count)
                    break
            else:
                stable_count = 0
                previous_count = current_count

            if scroll_round < max_rounds:
                page.wait_for_timeout(self.timings.scroll_pause_ms)

        run_script(page, SCROLL_TO_TOP_SCRIPT)
        page.wait_for_timeout(self.timings.scroll_top_wait_ms)
        return current_count
