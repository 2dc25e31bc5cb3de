from typing import List, Optional
from pydantic import BaseModel, Field


# Response Models
class ProductItem(BaseModel):
    """API representation of a scraped product."""

    name: str
    price: str = Field(description="Formatted price, e.g. Rp15.999.000")
    product_url: str
    image_url: str = ""
    rating: Optional[str] = None
    shop_location: Optional[str] = None
    sold: Optional[str] = None

    class Config:
        from_attributes = True


class ApiResponse(BaseModel):
    """Envelope returned by the scraper endpoints.

    ``data`` is set on success and ``error`` on failure; whichever is unset
    is left out of the JSON body.
    """

    success: bool
    data: Optional[List[ProductItem]] = None
    error: Optional[str] = None
    count: int = 0


class SiteInfo(BaseModel):
    """API representation of a supported site."""

    name: str
    display_name: str
    base_url: str
    search_url: str = Field(description="Search URL for the default query")
    structured_data: bool = Field(description="Whether the site embeds product JSON in its pages")
