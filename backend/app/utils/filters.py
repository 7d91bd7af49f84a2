from decimal import Decimal, InvalidOperation
from typing import List, Optional

from app.schemas.products import Product


def _decimal(amount: str) -> Decimal:
    try:
        return Decimal(amount)
    except (InvalidOperation, TypeError, ValueError):
        return Decimal("0")


def filter_by_price(
    products: List[Product],
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
) -> List[Product]:
    """
    Keep products whose price range overlaps [min_price, max_price].

    A product is dropped when its most expensive variant is below
    `min_price` or its cheapest variant is above `max_price`.
    """
    low = Decimal(str(min_price)) if min_price is not None else None
    high = Decimal(str(max_price)) if max_price is not None else None

    kept = []
    for product in products:
        product_min = _decimal(product.price_range.min.amount)
        product_max = _decimal(product.price_range.max.amount)
        if low is not None and product_max < low:
            continue
        if high is not None and product_min > high:
            continue
        kept.append(product)
    return kept


def sort_by_availability(products: List[Product]) -> List[Product]:
    """Available products first; order within each class is preserved."""
    return sorted(products, key=lambda p: not p.available_for_sale)
