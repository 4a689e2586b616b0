"""Query orchestration: validate, fetch, enrich, filter, count, sort, page.

The flow mirrors the legacy marketplace search service, with each stage as a
pure step and the cache/enrichment/history collaborators injected.
"""
from __future__ import annotations

import logging
from time import perf_counter
from typing import List, Optional

from .cache import ResultCache, get_cache
from .config import settings
from .enrichment import Enricher, build_enricher
from .errors import ProviderError, ValidationError
from .filters import apply_filters, check_filters
from .history import HistoryRecorder, get_history
from .models import Product, ProductsAnswer, SearchParams
from .pagination import get_page
from .providers import ProductProvider, get_provider
from .sorting import apply_sorting

logger = logging.getLogger(__name__)


class SearchService:
    def __init__(
        self,
        provider: ProductProvider,
        cache: ResultCache,
        enricher: Enricher,
        history: Optional[HistoryRecorder] = None,
    ) -> None:
        self.provider = provider
        self.cache = cache
        self.enricher = enricher
        self.history = history

    def _fetch(self, term: str) -> List[Product]:
        try:
            return self.provider.search(term)
        except Exception as exc:
            logger.exception("Provider %s failed for %r", getattr(self.provider, "name", "?"), term)
            raise ProviderError(term, f"Product provider failed for {term!r}: {exc}") from exc

    def parse_products(self, term: str) -> List[Product]:
        """Enriched, unfiltered products for ``term``; enrichment runs on a cache miss only."""

        return self.cache.get_or_fetch(term, self._fetch, self.enricher.enrich)

    def search(self, params: SearchParams) -> ProductsAnswer:
        t0 = perf_counter()
        try:
            check_filters(params.low_price, params.high_price, params.rating)
        except ValidationError as exc:
            logger.warning("rejected q=%r: %s", params.term, exc.message)
            raise

        products = self.parse_products(params.term)
        t1 = perf_counter()

        products = apply_filters(products, params)
        count = len(products)
        products = apply_sorting(products, params.price_order, params.name_order)

        try:
            page = get_page(products, params.page, params.page_size)
        except ValidationError as exc:
            logger.warning("rejected q=%r: %s", params.term, exc.message)
            raise

        if params.user is not None:
            self._record_history(params.user, params.term)

        logger.info(
            "timing: total=%.2fms fetch=%.2fms q=%r count=%s page=%s page_size=%s returned=%s",
            (perf_counter() - t0) * 1000,
            (t1 - t0) * 1000,
            params.term,
            count,
            params.page,
            params.page_size,
            len(page),
        )
        return ProductsAnswer(count=count, products=page)

    def get_products_response(
        self,
        term: str,
        login: Optional[str] = None,
        low_price: Optional[int] = None,
        high_price: Optional[int] = None,
        price_order: Optional[bool] = None,
        name_order: Optional[bool] = None,
        page: int = 0,
        page_size: int = 10,
        rating: Optional[float] = None,
        marketplace: Optional[str] = None,
    ) -> ProductsAnswer:
        params = SearchParams(
            term=term,
            user=login,
            low_price=low_price,
            high_price=high_price,
            price_order=price_order,
            name_order=name_order,
            page=page,
            page_size=page_size,
            rating=rating,
            marketplace=marketplace,
        )
        return self.search(params)

    def _record_history(self, user: str, term: str) -> None:
        if self.history is None:
            return
        try:
            self.history.add_history(user, term)
        except Exception as exc:
            logger.warning("Could not record history for %r: %s", user, exc)


def build_service(provider: Optional[ProductProvider] = None) -> SearchService:
    return SearchService(
        provider=provider or get_provider(),
        cache=ResultCache(get_cache(), ttl=settings.cache_ttl_seconds),
        enricher=build_enricher(),
        history=get_history(),
    )
