"""
Product normalization — maps catalog-service offers and tenant GraphQL
products onto the canonical Product model.

This is the only module that knows both upstream schemas. Absent or
malformed fields become empty/zero values, so a partial upstream document
still yields a complete Product.
"""
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from app.schemas.products import (
    DEFAULT_CURRENCY,
    ExtendedAttributes,
    Image,
    Money,
    Option,
    OptionValue,
    Origin,
    PriceRange,
    Product,
    SelectedOption,
    SharedAttribute,
    Variant,
)
from app.schemas.upstream import GlobalRawProduct, TenantRawProduct

_CENTS = Decimal("0.01")
ZERO_AMOUNT = "0.00"


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _opt_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _nodes(value: Any) -> List[Dict[str, Any]]:
    """Accept either a plain list or a GraphQL `{edges: [{node}]}` connection."""
    if isinstance(value, dict):
        value = [_as_dict(edge).get("node") for edge in _as_list(value.get("edges"))]
    return [item for item in _as_list(value) if isinstance(item, dict)]


def _to_decimal(value: Any) -> Optional[Decimal]:
    if isinstance(value, dict):
        value = value.get("amount")
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or amount < 0:
        return None
    return amount


def to_amount(value: Any) -> str:
    """Coerce an upstream amount (string, number or {amount}) to a non-negative 2dp string."""
    amount = _to_decimal(value)
    if amount is None:
        return ZERO_AMOUNT
    try:
        return str(amount.quantize(_CENTS, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        # more digits than the decimal context can hold
        return ZERO_AMOUNT


def _to_money(raw: Any, currency: Optional[str] = None) -> Money:
    raw = _as_dict(raw)
    return Money(
        amount=to_amount(raw.get("amount")),
        currency_code=_opt_str(raw.get("currencyCode")) or currency or DEFAULT_CURRENCY,
    )


def _to_image(raw: Any, fallback_alt: Optional[str] = None, origin: Optional[Origin] = None) -> Optional[Image]:
    raw = _as_dict(raw)
    url = raw.get("url")
    if not url or not isinstance(url, str):
        return None
    return Image(url=url, alt_text=_opt_str(raw.get("altText")) or fallback_alt, origin=origin)


def _images(raw_images: Any, fallback_alt: Optional[str] = None, origin: Optional[Origin] = None) -> List[Image]:
    images = []
    for raw in _nodes(raw_images):
        image = _to_image(raw, fallback_alt, origin)
        if image is not None:
            images.append(image)
    return images


def _selected_options(raw_options: Any) -> List[SelectedOption]:
    options = []
    for raw in _as_list(raw_options):
        raw = _as_dict(raw)
        name = raw.get("name")
        if not name:
            continue
        options.append(SelectedOption(name=_as_str(name), value=_as_str(raw.get("value"))))
    return options


def _variant(raw: Any, options_key: str, fallback_alt: Optional[str], default_available: bool) -> Variant:
    raw = _as_dict(raw)
    available = raw.get("availableForSale")
    return Variant(
        id=_as_str(raw.get("id")),
        title=_as_str(raw.get("title")),
        price=to_amount(raw.get("price")),
        available_for_sale=available if isinstance(available, bool) else default_available,
        options=_selected_options(raw.get(options_key)),
        image=_to_image(raw.get("image"), fallback_alt),
    )


def _option_value(raw: Any) -> Optional[OptionValue]:
    if isinstance(raw, dict):
        value = raw.get("value")
        if value is None:
            return None
        available = raw.get("availableForSale")
        exists = raw.get("exists")
        return OptionValue(
            value=_as_str(value),
            available_for_sale=available if isinstance(available, bool) else True,
            exists=exists if isinstance(exists, bool) else True,
        )
    if raw is None:
        return None
    return OptionValue(value=_as_str(raw))


def _options(raw_options: Any) -> List[Option]:
    options = []
    for raw in _as_list(raw_options):
        raw = _as_dict(raw)
        name = raw.get("name")
        if not name:
            continue
        values = [v for v in (_option_value(item) for item in _as_list(raw.get("values"))) if v is not None]
        options.append(Option(name=_as_str(name), values=values))
    return options


def _strings(values: Any) -> List[str]:
    return [_as_str(v) for v in _as_list(values) if v is not None]


def _derive_availability(explicit: Any, variants: List[Variant]) -> bool:
    if explicit is False:
        return False
    if variants and not any(v.available_for_sale for v in variants):
        return False
    return True


def from_global(raw_offer: GlobalRawProduct) -> Product:
    """Normalize a catalog-service offer (scope `global`)."""
    raw = _as_dict(raw_offer)
    listings = [item for item in _as_list(raw.get("products")) if isinstance(item, dict)]
    listing = listings[0] if listings else {}
    shop = _as_dict(listing.get("shop"))

    title = _as_str(raw.get("title") or listing.get("title"))
    origin = Origin(
        shop_name=_as_str(shop.get("name")),
        store_url=_opt_str(shop.get("onlineStoreUrl")),
        shop_id=_opt_str(shop.get("id")),
    )

    price_range_raw = _as_dict(raw.get("priceRange"))
    listing_price = listing.get("price")
    price_range = PriceRange(
        min=_to_money(price_range_raw.get("min") or listing_price),
        max=_to_money(price_range_raw.get("max") or listing_price),
    )

    variants = [
        _variant(v, "options", title, default_available=True)
        for v in _as_list(listing.get("variants"))
        if isinstance(v, dict)
    ]
    selected_raw = listing.get("selectedProductVariant")
    selected_variant = (
        _variant(selected_raw, "options", title, default_available=True)
        if isinstance(selected_raw, dict)
        else None
    )

    explicit = raw.get("availableForSale")
    if explicit is None:
        explicit = listing.get("availableForSale")

    images = []
    for raw_image in _as_list(raw.get("images")):
        image_shop = _as_dict(_as_dict(_as_dict(raw_image).get("product")).get("shop"))
        image_origin = (
            Origin(shop_name=_as_str(image_shop.get("name")), store_url=_opt_str(image_shop.get("onlineStoreUrl")))
            if image_shop
            else None
        )
        image = _to_image(raw_image, origin=image_origin)
        if image is not None:
            images.append(image)

    extended = ExtendedAttributes(
        unique_selling_point=_opt_str(raw.get("uniqueSellingPoint")),
        top_features=_strings(raw.get("topFeatures")),
        tech_specs=_strings(raw.get("techSpecs")),
        shared_attributes=[
            SharedAttribute(name=_as_str(attr.get("name")), values=_strings(attr.get("values")))
            for attr in _as_list(raw.get("sharedAttributes"))
            if isinstance(attr, dict) and attr.get("name")
        ],
    )

    return Product(
        id=_as_str(raw.get("id") or listing.get("id")),
        title=title,
        description=_as_str(raw.get("description") or listing.get("description")),
        images=images,
        price_range=price_range,
        available_for_sale=_derive_availability(explicit, variants),
        scope="global",
        origin=origin,
        variants=variants,
        options=_options(raw.get("options")),
        selected_variant=selected_variant,
        extended=extended,
        featured_image=_to_image(listing.get("featuredImage"), title),
        online_store_url=_opt_str(listing.get("onlineStoreUrl")),
        checkout_url=_opt_str(listing.get("checkoutUrl")),
    )


def _tenant_price_range(raw: Dict[str, Any], variants: List[Variant]) -> PriceRange:
    price_range_raw = _as_dict(raw.get("priceRange"))
    min_raw = _as_dict(price_range_raw.get("minVariantPrice"))
    max_raw = _as_dict(price_range_raw.get("maxVariantPrice"))
    currency = _opt_str(min_raw.get("currencyCode")) or _opt_str(max_raw.get("currencyCode")) or DEFAULT_CURRENCY

    # Upstream range covers every variant; the fetched variant page may not.
    low = _to_decimal(min_raw.get("amount"))
    high = _to_decimal(max_raw.get("amount"))
    if variants:
        prices = [Decimal(v.price) for v in variants]
        low = min(prices) if low is None else low
        high = max(prices) if high is None else high
    return PriceRange(
        min=Money(amount=to_amount(low), currency_code=currency),
        max=Money(amount=to_amount(high), currency_code=currency),
    )


def from_tenant(raw_product: TenantRawProduct, tenant_shop_name: str) -> Product:
    """Normalize a tenant GraphQL product (scope `shop`)."""
    raw = _as_dict(raw_product)
    shop_name = _as_str(tenant_shop_name)
    title = _as_str(raw.get("title"))

    origin = Origin(
        shop_name=shop_name,
        store_url=f"https://{shop_name}" if shop_name else None,
        shop_id=f"gid://shopify/Shop/{shop_name}" if shop_name else None,
    )

    variants = [_variant(v, "selectedOptions", title, default_available=False) for v in _nodes(raw.get("variants"))]

    return Product(
        id=_as_str(raw.get("id")),
        title=title,
        description=_as_str(raw.get("description")),
        images=_images(raw.get("images"), title, origin),
        price_range=_tenant_price_range(raw, variants),
        available_for_sale=any(v.available_for_sale for v in variants),
        scope="shop",
        origin=origin,
        variants=variants,
        options=_options(raw.get("options")),
        featured_image=_to_image(raw.get("featuredImage"), title, origin),
        online_store_url=_opt_str(raw.get("onlineStoreUrl")),
        handle=_opt_str(raw.get("handle")),
        tags=_strings(raw.get("tags")),
    )
