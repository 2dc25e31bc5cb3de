import logging
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from core.extraction.models import Product, parse_rating
from core.extraction.prices import format_price, parse_plain_amount, scan_price_amount, zero_price
from core.scrapers.profile import LOCATION_LAST, SiteProfile


def normalize_text(text: str) -> str:
    """Collapse runs of whitespace and trim."""
    return " ".join(text.split())


def is_numeric_text(text: str) -> bool:
    return all(char.isdigit() or char in ".," for char in text)


class HeuristicDomExtractor:
    """Classify the texts of rendered product cards into product fields.

    This is the fallback used when a page carries no usable embedded data.
    Each card is read independently: its link gives the product URL, and the
    texts of its leaf elements are sorted into name, price, rating, sold count
    and shop location with pattern rules tuned per site through the profile.
    """

    def __init__(self, profile: SiteProfile):
        self.profile = profile
        self.logger = logging.getLogger("extraction.dom")

    def find_cards(self, soup: BeautifulSoup) -> List[Tag]:
        """Return candidate cards in document order.

        When the profile names a result container the search is limited to
        it, falling back to the whole document if the container is missing.
        """
        root = soup
        if self.profile.container_selector:
            container = soup.select_one(self.profile.container_selector)
            if container is not None:
                root = container
            else:
                self.logger.debug("Container not found, searching entire document")
        return root.select(self.profile.card_selector)

    def card_url(self, card: Tag) -> str:
        link = card if card.name == "a" else card.find("a", href=True)
        href = link.get("href") if link is not None else None
        return self.profile.canonical_url(href)

    def text_candidates(self, card: Tag) -> List[str]:
        """Texts of the innermost elements matching the profile text selector."""
        selector = self.profile.text_selector
        texts = []
        for element in card.select(selector):
            if element.select_one(selector) is not None:
                continue
            text = normalize_text(element.get_text())
            if text:
                texts.append(text)
        return texts

    def pick_name(self, texts: List[str]) -> str:
        """Longest text that is neither a price nor a sold count.

        On equal lengths the earlier text wins.
        """
        best = ""
        for text in texts:
            if len(text) <= self.profile.name_min_length:
                continue
            if text.startswith(self.profile.currency_prefix):
                continue
            if self.profile.sold_marker in text.lower() or is_numeric_text(text):
                continue
            if len(text) > len(best):
                best = text
        return best

    def pick_price(self, card: Tag) -> str:
        """Price from the dedicated element, else the first price token, else zero."""
        prefix = self.profile.currency_prefix
        if self.profile.price_selector:
            element = card.select_one(self.profile.price_selector)
            if element is not None:
                amount = parse_plain_amount(normalize_text(element.get_text()), prefix)
                if amount is not None:
                    return format_price(amount, prefix)

        for text in card.stripped_strings:
            if not text.startswith(prefix):
                continue
            if any(marker in text for marker in self.profile.price_excluded_markers):
                continue
            amount = scan_price_amount(text, prefix)
            if amount is not None:
                return format_price(amount, prefix)

        return zero_price(prefix)

    def pick_rating(self, texts: List[str]) -> Optional[str]:
        for text in texts:
            if "." in text and parse_rating(text) is not None:
                return text
        return None

    def pick_sold(self, texts: List[str]) -> Optional[str]:
        marker = self.profile.sold_marker
        return next((text for text in texts if marker in text.lower()), None)

    def pick_location(self, texts: List[str]) -> Optional[str]:
        keywords = self.profile.location_keywords
        matches = [text for text in texts if any(keyword in text for keyword in keywords)]
        if not matches:
            return None
        return matches[-1] if self.profile.location_pick == LOCATION_LAST else matches[0]

    def pick_image(self, card: Tag) -> str:
        image = card.select_one(self.profile.image_selector)
        if image is None:
            return ""
        return image.get("src") or image.get("data-src") or ""

    def extract(self, html: str, limit: Optional[int] = None) -> List[Product]:
        """Extract products from rendered HTML.

        Args:
            html: Full page HTML
            limit: Optional maximum number of products

        Returns:
            Products in card order, deduplicated by product URL
        """
        products: List[Product] = []
        if limit is not None and limit <= 0:
            return products

        soup = BeautifulSoup(html, "lxml")
        cards = self.find_cards(soup)
        self.logger.info("Found %d potential product cards", len(cards))

        seen_urls = set()
        for card in cards:
            product_url = self.card_url(card)
            if not product_url or product_url in seen_urls or self.profile.is_excluded_url(product_url):
                continue
            seen_urls.add(product_url)

            texts = self.text_candidates(card)
            name = self.pick_name(texts)
            price = self.pick_price(card)
            if not name or not price:
                self.logger.debug("Skipping card without name or price: %s", product_url)
                continue

            try:
                product = Product(
                    name=name,
                    price=price,
                    product_url=product_url,
                    image_url=self.pick_image(card),
                    rating=self.pick_rating(texts),
                    shop_location=self.pick_location(texts),
                    sold=self.pick_sold(texts),
                )
            except ValueError as e:
                self.logger.debug("Skipping card %s: %s", product_url, e)
                continue

            products.append(product)
            self.logger.debug("Found: %s - %s", product.name, product.price)
            if limit is not None and len(products) >= limit:
                break

        self.logger.info("DOM parsing extracted %d products", len(products))
        return products
