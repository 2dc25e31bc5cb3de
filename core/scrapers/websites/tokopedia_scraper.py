from config.settings import settings
from core.scrapers.browser_scraper import BrowserScraper
from core.scrapers.profile import LOCATION_LAST, SiteProfile

# Substrings that identify the shop location line on a Tokopedia card
TOKOPEDIA_LOCATIONS = (
    "Jakarta",
    "Bandung",
    "Surabaya",
    "Malang",
    "Kab.",
    "Kota",
    "Semarang",
    "Yogyakarta",
    "Medan",
    "Makassar",
    "Bali",
)

TOKOPEDIA_PROFILE = SiteProfile(
    name="tokopedia",
    display_name="Tokopedia",
    base_url="https://www.tokopedia.com",
    search_url_template="https://www.tokopedia.com/search?st=product&q={query}",
    container_selector='div[data-testid="divSRPContentProducts"]',
    card_selector="a[href*='tokopedia.com']",
    text_selector="span",
    image_selector="img[alt='product-image']",
    name_min_length=15,
    location_keywords=TOKOPEDIA_LOCATIONS,
    # The shop badge line can also mention a city, the real location comes last
    location_pick=LOCATION_LAST,
    excluded_url_parts=("/search", "/discovery/", "/top-ads/", "/promo/"),
    price_excluded_markers=("Cashback", "%"),
    data_marker="__NEXT_DATA__",
    min_card_text_length=11,
    timings=settings.default_timings(initial_wait_ms=3000),
)


class TokopediaScraper(BrowserScraper):
    """Scraper for Tokopedia search results.

    Tokopedia renders its result grid client side and ships the first page of
    results as JSON in the ``__NEXT_DATA__`` script block, so structured
    extraction usually succeeds and the DOM heuristics act as a fallback.
    """

    profile = TOKOPEDIA_PROFILE
