"""
Upstream document shapes.

Typed views of the raw JSON each source returns. Every key is optional:
upstream documents are routinely partial, so consumers read them with
`.get()` and never assume presence.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, TypedDict, Union


class RawMoney(TypedDict, total=False):
    amount: Union[str, float, int, None]
    currencyCode: str


class RawImage(TypedDict, total=False):
    url: str
    altText: str


class RawShop(TypedDict, total=False):
    id: str
    name: str
    onlineStoreUrl: str


# -- Catalog service (global scope) ----------------------------------------

class GlobalRawVariant(TypedDict, total=False):
    id: str
    title: str
    price: Union[str, RawMoney, None]
    availableForSale: bool
    options: List[Dict[str, Any]]
    image: RawImage


class GlobalRawListing(TypedDict, total=False):
    """One shop's listing of an offer (`offer.products[n]`)."""
    id: str
    title: str
    description: str
    featuredImage: RawImage
    onlineStoreUrl: str
    checkoutUrl: str
    price: RawMoney
    availableForSale: bool
    shop: RawShop
    selectedProductVariant: GlobalRawVariant
    variants: List[GlobalRawVariant]


class GlobalRawProduct(TypedDict, total=False):
    """Offer as returned by `search_global_products` / `get_global_product_details`."""
    id: str
    title: str
    description: str
    images: List[RawImage]
    options: List[Dict[str, Any]]
    priceRange: Dict[str, RawMoney]
    availableForSale: bool
    products: List[GlobalRawListing]
    uniqueSellingPoint: str
    topFeatures: List[str]
    techSpecs: List[str]
    sharedAttributes: List[Dict[str, Any]]


# -- Tenant catalog (shop scope) -------------------------------------------

class TenantRawVariant(TypedDict, total=False):
    id: str
    title: str
    price: Union[str, None]
    availableForSale: bool
    selectedOptions: List[Dict[str, str]]
    image: RawImage


class TenantRawProduct(TypedDict, total=False):
    """GraphQL `Product` node after edge/node flattening (images and variants are plain lists)."""
    id: str
    title: str
    description: str
    handle: str
    status: str
    featuredImage: RawImage
    images: List[RawImage]
    priceRange: Dict[str, RawMoney]
    variants: List[TenantRawVariant]
    options: List[Dict[str, Any]]
    onlineStoreUrl: str
    tags: List[str]


@dataclass
class GlobalSearchResult:
    """Decoded payload of a `search_global_products` call."""
    offers: List[GlobalRawProduct] = field(default_factory=list)
    instructions: str = ""
