"""Filter validation and the optional narrowing stages.

Every stage returns a new list and treats a missing parameter as a
pass-through, so stages can be chained in any order without side effects.
"""
from __future__ import annotations

from typing import List, Optional

from .errors import ValidationError
from .models import Product, SearchParams

MIN_RATING = 0.0
MAX_RATING = 5.0


def check_filters(low_price: Optional[int], high_price: Optional[int], rating: Optional[float]) -> None:
    if low_price is not None and low_price < 0:
        raise ValidationError(f"Lowest price value cannot be lower than zero. Provided {low_price}")
    if high_price is not None and high_price < 0:
        raise ValidationError(f"Highest price value cannot be lower than zero. Provided {high_price}")
    if low_price is not None and high_price is not None and low_price > high_price:
        raise ValidationError(
            f"Lowest price cannot be greater than highest price value. Provided {low_price} > {high_price}"
        )
    if rating is not None and not (MIN_RATING <= rating <= MAX_RATING):
        raise ValidationError(f"Rating filter must be in range [0, 5]. Provided: {rating}")


def apply_low_price_filter(products: List[Product], low_price: Optional[int]) -> List[Product]:
    if low_price is None:
        return products
    return [product for product in products if product.price >= low_price]


def apply_high_price_filter(products: List[Product], high_price: Optional[int]) -> List[Product]:
    if high_price is None:
        return products
    return [product for product in products if product.price <= high_price]


def filter_by_rating(products: List[Product], rating: Optional[float]) -> List[Product]:
    if rating is None:
        return products
    return [product for product in products if product.rating is not None and product.rating >= rating]


def filter_by_marketplace(products: List[Product], marketplace: Optional[str]) -> List[Product]:
    if marketplace is None:
        return products
    return [product for product in products if product.marketplace == marketplace]


def apply_filters(products: List[Product], params: SearchParams) -> List[Product]:
    """Run the price, rating and marketplace stages in their fixed order."""

    products = apply_low_price_filter(products, params.low_price)
    products = apply_high_price_filter(products, params.high_price)
    products = filter_by_rating(products, params.rating)
    return filter_by_marketplace(products, params.marketplace)
