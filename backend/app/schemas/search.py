"""
Search schemas — request/response models for federated product search.

Request models are deliberately lenient about `query` so that a missing or
blank query surfaces as a domain ValidationError (HTTP 400) from the
service rather than a schema error.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.products import Product, ProductOptionFilter


SearchScope = Literal["global", "shop", "both"]
DetailScope = Literal["global", "shop"]

DEFAULT_LIMIT = 10


class SearchRequest(BaseModel):
    """Request model for the authenticated search endpoint."""
    query: Optional[str] = None
    context: Optional[str] = None
    scope: SearchScope = "both"
    limit: int = DEFAULT_LIMIT
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    ships_to: Optional[str] = Field(default=None, description="ISO 3166-1 alpha-2 country code")
    include_secondhand: Optional[bool] = None


class WidgetSearchRequest(BaseModel):
    """Request model for the public storefront widget (global catalog only)."""
    query: Optional[str] = None
    context: Optional[str] = None
    limit: int = DEFAULT_LIMIT
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    ships_to: Optional[str] = None
    include_secondhand: Optional[bool] = None


class SourceResults(BaseModel):
    """Products from one source (or the merged list) with their count."""
    count: int = 0
    products: List[Product] = []

    @classmethod
    def of(cls, products: List[Product]) -> "SourceResults":
        return cls(count=len(products), products=list(products))


class SearchResultSet(BaseModel):
    """Per-source lists plus the combined, availability-ordered list."""
    model_config = ConfigDict(populate_by_name=True)

    global_results: SourceResults = Field(default_factory=SourceResults, alias="global")
    shop: SourceResults = Field(default_factory=SourceResults)
    combined: SourceResults = Field(default_factory=SourceResults)
    instructions: str = ""


class SearchResponse(BaseModel):
    success: bool = True
    query: str
    scope: SearchScope
    results: SearchResultSet


class WidgetSearchResponse(BaseModel):
    success: bool = True
    query: str
    count: int
    products: List[Product]
    instructions: str = ""


class ProductDetailsRequest(BaseModel):
    """Body of POST /api/products/details."""
    upid: Optional[str] = None
    product_options: List[ProductOptionFilter] = []
    scope: DetailScope = "global"


class ProductDetailsResponse(BaseModel):
    success: bool = True
    product: Product
