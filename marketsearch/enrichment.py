"""Synthetic backfill for product fields the provider does not return.

The upstream listing has no rating and no marketplace tag, so every freshly
fetched product gets a rating drawn from ``0.0 .. 4.9`` and one of the known
marketplace labels. The random source is injectable to make the output
reproducible.
"""
from __future__ import annotations

import logging
import random
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import Iterable, Sequence

from .config import settings
from .models import Product

logger = logging.getLogger(__name__)

RATING_BUCKETS = 50
DEFAULT_MARKETPLACES: tuple[str, str] = ("Ситилинк", "DNS")
_RATING_CONTEXT = Context(prec=2, rounding=ROUND_HALF_UP)


def round_rating(value: float) -> float:
    """Round to two significant digits, half-up."""
    return float(_RATING_CONTEXT.create_decimal(Decimal(str(value))))


class Enricher:
    def __init__(self, rng: random.Random | None = None, marketplaces: Sequence[str] = DEFAULT_MARKETPLACES) -> None:
        if len(marketplaces) != 2:
            raise ValueError(f"Exactly two marketplace labels are expected, got {list(marketplaces)}")
        self.rng = rng or random.Random()
        self.marketplaces = tuple(marketplaces)

    def enrich(self, products: Iterable[Product]) -> None:
        count = 0
        for product in products:
            product.rating = round_rating(self.rng.randrange(RATING_BUCKETS) / 10)
            product.marketplace = self.marketplaces[self.rng.randrange(2)]
            count += 1
        logger.debug("enriched %s products", count)


def build_enricher() -> Enricher:
    return Enricher(random.Random(settings.enrichment_seed), settings.marketplaces)
