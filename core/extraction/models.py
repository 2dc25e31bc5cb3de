import math
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

MAX_RATING = 5.0


def parse_rating(text: Optional[str]) -> Optional[float]:
    """Return the rating as a float when the text is a valid 0-5 score."""
    if text is None:
        return None
    try:
        value = float(str(text).strip())
    except ValueError:
        return None
    if not math.isfinite(value) or value < 0 or value > MAX_RATING:
        return None
    return value


@dataclass(frozen=True)
class Product:
    """A single product listing extracted from a search-result page.

    Instances are built once per matched card or data object and never
    mutated. Construction enforces the invariants every extractor relies on:
    a non-empty name and price, plus a rating within the 0-5 range when one
    is present. The product URL is empty only for embedded-data objects
    that carry no link.
    """

    name: str
    price: str
    product_url: str
    image_url: str = ""
    rating: Optional[str] = None
    shop_location: Optional[str] = None
    sold: Optional[str] = None

    def __post_init__(self):
        if not self.name:
            raise ValueError("Product name must not be empty")
        if not self.price:
            raise ValueError("Product price must not be empty")
        if self.rating is not None and parse_rating(self.rating) is None:
            raise ValueError(f"Invalid product rating: {self.rating!r}")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the product, leaving out optional fields that are unset."""
        data = asdict(self)
        for key in ("rating", "shop_location", "sold"):
            if data[key] is None:
                del data[key]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Product":
        """Rebuild a product from its serialized form.

        Raises:
            KeyError: If a required field is missing
            ValueError: If the data violates a product invariant
        """
        return cls(
            name=data["name"],
            price=data["price"],
            product_url=data["product_url"],
            image_url=data.get("image_url") or "",
            rating=data.get("rating"),
            shop_location=data.get("shop_location"),
            sold=data.get("sold"),
        )
