import json
from dataclasses import dataclass, field
from typing import Optional, Tuple
from urllib.parse import quote, urljoin

from config.settings import ScrapeTimings, settings
from core.extraction.prices import DEFAULT_CURRENCY_PREFIX

LOCATION_FIRST = "first"
LOCATION_LAST = "last"

# Counts distinct, non-excluded product links inside the result grid. The
# same probe drives both the readiness wait and the scroll stability check.
CARD_COUNT_SCRIPT = r"""
() => {
  const containerSelector = %(container)s;
  const root = containerSelector ? document.querySelector(containerSelector) : document;
  if (!root) return 0;

  const excluded = %(excluded)s;
  const minText = %(min_text)d;
  const seen = new Set();
  let count = 0;

  for (const card of root.querySelectorAll(%(card)s)) {
    const link = card.matches('a[href]') ? card : card.querySelector('a[href]');
    const href = link ? (link.getAttribute('href') || '') : '';
    if (!href) continue;

    let url;
    try {
      url = new URL(href, %(base_url)s).href;
    } catch (err) {
      continue;
    }
    if (seen.has(url) || excluded.some((part) => url.includes(part))) continue;
    seen.add(url);

    if ((card.textContent || '').trim().length >= minText) count++;
  }
  return count;
}
"""


@dataclass(frozen=True)
class FieldKeys:
    """Alternative key names per logical product field in embedded data.

    Keys are tried in order and the first one that resolves to a usable value
    wins. Dotted entries walk nested objects (``shop.location``).
    """

    name: Tuple[str, ...] = ("name", "title", "product_name", "productName")
    price: Tuple[str, ...] = ("price", "priceInt", "product_price", "priceText")
    rating: Tuple[str, ...] = ("rating", "ratingScore", "ratingAverage")
    image_url: Tuple[str, ...] = ("imageUrl", "image", "imageURL", "image_url")
    product_url: Tuple[str, ...] = ("url", "link", "productUrl", "product_url")
    shop_location: Tuple[str, ...] = ("shop.location", "shopLocation", "location", "shop.city")
    sold: Tuple[str, ...] = ("sold", "soldCount", "totalSold", "countSold")


@dataclass(frozen=True)
class SiteProfile:
    """Everything the generic scrape pipeline needs to know about one site.

    Attributes:
        name: Site identifier, also the cache key namespace ("tokopedia")
        display_name: Human readable site name
        base_url: Scheme and host used to canonicalize relative links
        search_url_template: Search page URL with a ``{query}`` placeholder
        card_selector: CSS selector of one product card
        container_selector: Optional result grid that bounds the card search
        text_selector: Elements whose text is classified into card fields
        image_selector: Selector of the product image inside a card
        price_selector: Optional dedicated (discounted) price element
        currency_prefix: Literal that starts every price token
        sold_marker: Lower-case word marking the units-sold text
        name_min_length: Name candidates must be longer than this
        location_keywords: City/region substrings that mark the shop location
        location_pick: Take the first or the last matching location text
        excluded_url_parts: Links containing any of these are not products
        price_excluded_markers: Price texts containing these are ignored
        data_marker: Id of the script block holding embedded JSON, if any
        product_keys: Keys that mark an object as product-shaped
        field_keys: Alternative keys per field for embedded data
        min_card_text_length: Cards with shorter text are not counted as ready
        timings: Polling and scrolling thresholds
    """

    name: str
    display_name: str
    base_url: str
    search_url_template: str
    card_selector: str
    container_selector: Optional[str] = None
    text_selector: str = "span"
    image_selector: str = "img"
    price_selector: Optional[str] = None
    currency_prefix: str = DEFAULT_CURRENCY_PREFIX
    sold_marker: str = "terjual"
    name_min_length: int = 10
    location_keywords: Tuple[str, ...] = ()
    location_pick: str = LOCATION_FIRST
    excluded_url_parts: Tuple[str, ...] = ()
    price_excluded_markers: Tuple[str, ...] = ()
    data_marker: Optional[str] = None
    product_keys: Tuple[str, ...] = ("name", "title", "id", "productName")
    field_keys: FieldKeys = field(default_factory=FieldKeys)
    min_card_text_length: int = 0
    timings: ScrapeTimings = field(default_factory=settings.default_timings)

    def __post_init__(self):
        if self.location_pick not in (LOCATION_FIRST, LOCATION_LAST):
            raise ValueError(f"location_pick must be 'first' or 'last', got {self.location_pick!r}")

    def search_url(self, query: str) -> str:
        """Build the search page URL for a raw query."""
        return self.search_url_template.format(query=quote(query.strip(), safe=""))

    def canonical_url(self, href: Optional[str]) -> str:
        """Resolve a card link to its absolute form; empty links stay empty."""
        href = (href or "").strip()
        if not href:
            return ""
        return urljoin(self.base_url.rstrip("/") + "/", href)

    def is_excluded_url(self, url: str) -> bool:
        return any(part in url for part in self.excluded_url_parts)

    @property
    def card_count_script(self) -> str:
        """JavaScript probe returning the number of product cards rendered so far."""
        return CARD_COUNT_SCRIPT % {
            "container": json.dumps(self.container_selector),
            "excluded": json.dumps(list(self.excluded_url_parts)),
            "min_text": self.min_card_text_length,
            "card": json.dumps(self.card_selector),
            "base_url": json.dumps(self.base_url),
        }
