from __future__ import annotations

import random
from typing import List

import pytest

from marketsearch.cache import InMemoryCache, ResultCache
from marketsearch.enrichment import Enricher
from marketsearch.history import InMemoryHistory
from marketsearch.models import Product
from marketsearch.providers import StaticProvider
from marketsearch.search_service import SearchService

OFFERS = [
    {"name": "Mouse Logitech M185", "price": 1000},
    {"name": "Mouse Razer Viper", "price": 4500},
    {"name": "Mouse A4Tech OP-720", "price": 500},
    {"name": "Mouse Defender Optimum", "price": 300},
    {"name": "Mouse HP X200", "price": 1200},
    {"name": "Keyboard Logitech K120", "price": 1100},
]


class CountingEnricher(Enricher):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.calls = 0

    def enrich(self, products) -> None:
        self.calls += 1
        super().enrich(products)


def make_products(*pairs) -> List[Product]:
    return [Product(name=name, price=price) for name, price in pairs]


@pytest.fixture()
def provider() -> StaticProvider:
    return StaticProvider(OFFERS)


@pytest.fixture()
def enricher() -> CountingEnricher:
    return CountingEnricher(random.Random(42))


@pytest.fixture()
def history() -> InMemoryHistory:
    return InMemoryHistory()


@pytest.fixture()
def service(provider, enricher, history) -> SearchService:
    return SearchService(provider, ResultCache(InMemoryCache()), enricher, history)
