"""
Canonical product schemas.

Source-agnostic product model shared by the catalog service (global scope)
and the tenant catalog (shop scope). Instances are built once by the
normalizer and are frozen afterwards.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


ProductScope = Literal["global", "shop"]

DEFAULT_CURRENCY = "USD"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class Origin(_Frozen):
    """Where the product is sold."""
    shop_name: str = ""
    store_url: Optional[str] = None
    shop_id: Optional[str] = None


class Image(_Frozen):
    """Product or variant image."""
    url: str
    alt_text: Optional[str] = None
    origin: Optional[Origin] = None


class Money(_Frozen):
    """Decimal amount as a string with two fractional digits."""
    amount: str = "0.00"
    currency_code: str = DEFAULT_CURRENCY


class PriceRange(_Frozen):
    min: Money = Field(default_factory=Money)
    max: Money = Field(default_factory=Money)


class OptionValue(_Frozen):
    value: str
    available_for_sale: bool = True
    exists: bool = True


class Option(_Frozen):
    """Declared product option (e.g. Color) and its permissible values."""
    name: str
    values: List[OptionValue] = []


class SelectedOption(_Frozen):
    """A variant's value for one option."""
    name: str
    value: str


class Variant(_Frozen):
    id: str = ""
    title: str = ""
    price: str = "0.00"
    available_for_sale: bool = True
    options: List[SelectedOption] = []
    image: Optional[Image] = None


class ProductOptionFilter(_Frozen):
    """Requested option constraint: the variant's `key` option must be one of `values`."""
    key: str
    values: List[str] = []


class SelectionState(_Frozen):
    """How a selected variant was matched against the requested options."""
    type: Literal["match"] = "match"
    requested_filters: List[ProductOptionFilter] = []


class SharedAttribute(_Frozen):
    name: str
    values: List[str] = []


class ExtendedAttributes(_Frozen):
    """Catalog-service enrichment; only present on global products."""
    unique_selling_point: Optional[str] = None
    top_features: List[str] = []
    tech_specs: List[str] = []
    shared_attributes: List[SharedAttribute] = []


class Product(_Frozen):
    """Canonical product returned by search and detail lookups."""
    id: str
    title: str = ""
    description: str = ""
    images: List[Image] = []
    price_range: PriceRange = Field(default_factory=PriceRange)
    available_for_sale: bool = True
    scope: ProductScope
    origin: Origin = Field(default_factory=Origin)
    variants: List[Variant] = []
    options: List[Option] = []
    selected_variant: Optional[Variant] = None
    selection_state: Optional[SelectionState] = None
    extended: Optional[ExtendedAttributes] = None
    featured_image: Optional[Image] = None
    online_store_url: Optional[str] = None
    checkout_url: Optional[str] = None
    handle: Optional[str] = None
    tags: List[str] = []
