import logging
from typing import Iterable, List, Optional

from core.extraction.heuristic import HeuristicDomExtractor
from core.extraction.models import Product
from core.extraction.structured import StructuredDataExtractor
from core.scrapers.profile import SiteProfile


def deduplicate(products: Iterable[Product], limit: Optional[int] = None) -> List[Product]:
    """Keep the first product per URL, up to an optional limit.

    Products without a URL have no identity to compare, so each one is kept.
    """
    unique: List[Product] = []
    seen_urls = set()
    for product in products:
        if limit is not None and len(unique) >= limit:
            break
        if product.product_url and product.product_url in seen_urls:
            continue
        seen_urls.add(product.product_url)
        unique.append(product)
    return unique


class ExtractionOrchestrator:
    """Run structured extraction first and fall back to DOM heuristics.

    The two strategies are never merged: whichever produces products first
    supplies the whole result.
    """

    def __init__(self,
                 profile: SiteProfile,
                 structured: Optional[StructuredDataExtractor] = None,
                 heuristic: Optional[HeuristicDomExtractor] = None):
        self.profile = profile
        self.structured = structured or StructuredDataExtractor(profile)
        self.heuristic = heuristic or HeuristicDomExtractor(profile)
        self.logger = logging.getLogger(f"extraction.{profile.name}")

    def extract(self, html: str, limit: Optional[int] = None) -> List[Product]:
        if limit is not None and limit <= 0:
            return []

        products = self.structured.extract(html, limit)
        if products:
            self.logger.info("Using %d products from embedded data", len(products))
        else:
            self.logger.info("Embedded data unusable, falling back to DOM parsing")
            products = self.heuristic.extract(html, limit)

        if not products:
            self.logger.warning("No products extracted")
        return deduplicate(products, limit)
