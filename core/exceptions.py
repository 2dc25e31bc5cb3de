class ScraperError(Exception):
    """Infrastructure failure that makes a search request impossible.

    Raised for navigation failures, pages that never load and content that
    cannot be retrieved. Degraded extraction (few or no products) is never
    reported through this exception.
    """


class BrowserError(ScraperError):
    """The headless browser could not be launched or a page could not be opened."""


class CacheBackendError(Exception):
    """The cache backend is unreachable or rejected an operation."""
