from config.settings import settings
from core.scrapers.browser_scraper import BrowserScraper
from core.scrapers.profile import LOCATION_FIRST, SiteProfile

BLIBLI_PROFILE = SiteProfile(
    name="blibli",
    display_name="Blibli",
    base_url="https://www.blibli.com",
    search_url_template="https://www.blibli.com/cari/{query}",
    card_selector="a.elf-product-card",
    text_selector="div",
    image_selector="img",
    price_selector=".els-product__fixed-price",
    name_min_length=10,
    location_keywords=("Kab.", "Kota", "Jakarta", "Bandung", "Surabaya"),
    location_pick=LOCATION_FIRST,
    timings=settings.default_timings(initial_wait_ms=4000),
)


class BlibliScraper(BrowserScraper):
    """Scraper for Blibli search results.

    Blibli has no embedded JSON block worth reading, every product comes from
    the rendered product cards. Cards show a struck-through list price next
    to the discounted one, so the price is read from the fixed-price element.
    """

    profile = BLIBLI_PROFILE
