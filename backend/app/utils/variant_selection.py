"""
Variant selection against requested option constraints.

A variant matches when, for every constraint, it carries an option of that
name whose value is one of the permitted values. Options the request does
not mention are ignored. Variants are scanned in their given order and the
first match wins.
"""
from typing import Any, Iterable, List, Optional, Tuple

from app.schemas.products import Product, ProductOptionFilter, SelectionState, Variant


def _coerce_filters(requested_options: Optional[Iterable[Any]]) -> List[ProductOptionFilter]:
    filters = []
    for option in requested_options or []:
        if not isinstance(option, ProductOptionFilter):
            option = ProductOptionFilter.model_validate(option)
        filters.append(option)
    return filters


def variant_satisfies(variant: Variant, filters: List[ProductOptionFilter]) -> bool:
    for constraint in filters:
        if not any(opt.name == constraint.key and opt.value in constraint.values for opt in variant.options):
            return False
    return True


def select_variant(
    product: Product,
    requested_options: Optional[Iterable[Any]],
) -> Tuple[Optional[Variant], Optional[SelectionState]]:
    filters = _coerce_filters(requested_options)
    if not filters:
        return None, None

    for variant in product.variants:
        if variant_satisfies(variant, filters):
            return variant, SelectionState(type="match", requested_filters=filters)
    return None, None


def apply_variant_selection(product: Product, requested_options: Optional[Iterable[Any]]) -> Product:
    """Return a copy of `product` with the matched variant selected; unchanged when nothing matches."""
    variant, state = select_variant(product, requested_options)
    if variant is None:
        return product
    return product.model_copy(update={"selected_variant": variant, "selection_state": state})
