import json
import logging
import math
from typing import Any, Callable, Iterator, List, Optional, Sequence

from bs4 import BeautifulSoup, SoupStrainer

from core.extraction.models import Product, parse_rating
from core.extraction.prices import format_price, scan_price_amount
from core.scrapers.profile import SiteProfile

MIN_NAME_LENGTH = 3


def iter_matching_arrays(value: Any, predicate: Callable[[list], bool]) -> Iterator[list]:
    """Yield every list in a JSON tree that satisfies the predicate.

    The walk is pre-order: an outer list is yielded before any list nested in
    it, and siblings keep their document order. Matching lists are still
    descended into.
    """
    if isinstance(value, list):
        if predicate(value):
            yield value
        for item in value:
            yield from iter_matching_arrays(item, predicate)
    elif isinstance(value, dict):
        for child in value.values():
            yield from iter_matching_arrays(child, predicate)


def resolve_path(obj: Any, path: str) -> Any:
    """Follow a dotted key path through nested objects, None when it breaks."""
    current = obj
    for key in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _as_name(value: Any) -> Optional[str]:
    text = _as_text(value)
    if text is None or len(text) < MIN_NAME_LENGTH:
        return None
    return text


def _as_rating(value: Any) -> Optional[str]:
    if _is_number(value):
        text = f"{value:.1f}" if math.isfinite(value) else None
    else:
        text = _as_text(value)
    if text is None or parse_rating(text) is None:
        return None
    return text


def _as_sold(value: Any) -> Optional[str]:
    if _is_number(value):
        if isinstance(value, float) and not value.is_integer():
            return str(value)
        return str(int(value))
    return _as_text(value)


class StructuredDataExtractor:
    """Extract products from the JSON blob a site embeds in its markup.

    Next.js style pages ship their initial state in a ``<script>`` block
    (``__NEXT_DATA__``). Rather than hard-coding a path into that state, the
    extractor searches the whole tree for arrays of product-shaped objects,
    so it survives schema moves inside the payload.
    """

    def __init__(self, profile: SiteProfile):
        self.profile = profile
        self.keys = profile.field_keys
        self.logger = logging.getLogger("extraction.structured")

    def locate_payload(self, html: str) -> Optional[str]:
        """Return the raw text of the embedded data block, if the page has one."""
        marker = self.profile.data_marker
        if not marker or marker not in html:
            return None
        scripts = BeautifulSoup(html, "lxml", parse_only=SoupStrainer("script"))
        node = scripts.find("script", id=marker)
        if node is None:
            return None
        payload = node.get_text().strip()
        return payload or None

    def load_tree(self, html: str) -> Optional[Any]:
        payload = self.locate_payload(html)
        if payload is None:
            self.logger.debug("No %s block found", self.profile.data_marker)
            return None
        try:
            return json.loads(payload)
        except ValueError as e:
            self.logger.warning("Embedded data is not valid JSON: %s", e)
            return None

    def is_product_array(self, value: list) -> bool:
        """A list is a candidate when its first element looks like a product."""
        if not value or not isinstance(value[0], dict):
            return False
        first = value[0]
        return any(key in first for key in self.profile.product_keys)

    def _first(self, obj: dict, keys: Sequence[str], convert: Callable[[Any], Optional[str]]) -> Optional[str]:
        for key in keys:
            converted = convert(resolve_path(obj, key))
            if converted:
                return converted
        return None

    def _as_price(self, value: Any) -> Optional[str]:
        prefix = self.profile.currency_prefix
        if _is_number(value):
            if not math.isfinite(value) or value < 0:
                return None
            return format_price(int(value), prefix)
        text = _as_text(value)
        if text is None:
            return None
        if not (text.startswith(prefix) or text[0].isdigit()):
            return None
        amount = scan_price_amount(text, prefix)
        if amount is None:
            return None
        return format_price(amount, prefix)

    def parse_product(self, obj: dict) -> Optional[Product]:
        """Build a product from one data object, or None when it lacks the essentials."""
        name = self._first(obj, self.keys.name, _as_name)
        price = self._first(obj, self.keys.price, self._as_price)
        if not name or not price:
            return None

        product_url = self.profile.canonical_url(self._first(obj, self.keys.product_url, _as_text))

        try:
            return Product(
                name=name,
                price=price,
                product_url=product_url,
                image_url=self._first(obj, self.keys.image_url, _as_text) or "",
                rating=self._first(obj, self.keys.rating, _as_rating),
                shop_location=self._first(obj, self.keys.shop_location, _as_text),
                sold=self._first(obj, self.keys.sold, _as_sold),
            )
        except ValueError as e:
            self.logger.debug("Skipping %r: %s", name, e)
            return None

    def products_from_array(self, items: list, limit: Optional[int] = None) -> List[Product]:
        products: List[Product] = []
        seen_urls = set()
        for item in items:
            if limit is not None and len(products) >= limit:
                break
            if not isinstance(item, dict):
                continue
            product = self.parse_product(item)
            if product is None or (product.product_url and product.product_url in seen_urls):
                continue
            seen_urls.add(product.product_url)
            products.append(product)
        return products

    def extract(self, html: str, limit: Optional[int] = None) -> Optional[List[Product]]:
        """Extract products from the embedded data blob.

        Args:
            html: Full page HTML
            limit: Optional cap on the number of products returned

        Returns:
            Products of the first candidate array that yields any, or None
            when the page has no usable embedded data
        """
        tree = self.load_tree(html)
        if tree is None:
            return None

        for candidate in iter_matching_arrays(tree, self.is_product_array):
            products = self.products_from_array(candidate, limit)
            if products:
                self.logger.info("JSON parsing extracted %d products", len(products))
                return products

        self.logger.info("Embedded data holds no product arrays")
        return None
