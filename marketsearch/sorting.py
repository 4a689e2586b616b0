"""Optional price/name ordering.

``order`` follows the public API flags: ``False`` sorts ascending, ``True``
descending and ``None`` leaves the sequence as it is. Both sorts are stable,
including descending ones, so ties keep their previous relative order.
"""
from __future__ import annotations

from typing import List, Optional

from .models import Product


def sort_by_price(products: List[Product], order: Optional[bool]) -> List[Product]:
    if order is None:
        return products
    return sorted(products, key=lambda product: product.price, reverse=order)


def sort_by_name(products: List[Product], order: Optional[bool]) -> List[Product]:
    if order is None:
        return products
    return sorted(products, key=lambda product: product.name, reverse=order)


def apply_sorting(products: List[Product], price_order: Optional[bool], name_order: Optional[bool]) -> List[Product]:
    # Name runs last, so it decides the final order when both flags are set.
    return sort_by_name(sort_by_price(products, price_order), name_order)
