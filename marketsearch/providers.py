"""Product providers: where raw search results come from.

A provider turns a term into a list of :class:`Product` records carrying only
``name`` and ``price``. Each call must return fresh objects because the
pipeline enriches them in place before caching.
"""
from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

from elasticsearch import Elasticsearch

from .config import settings
from .models import Product
from .phonetics import normalize_query, to_phonetic, transliterate_text

logger = logging.getLogger(__name__)

NAME_FIELDS = [
    "name^3",
    "name.russian^2",
    "name.english^2",
    "name.autocomplete^1.5",
]
TRANSLIT_FIELDS = ["nameTranslit^2", "nameTranslit.autocomplete^1.25"]
PHONETIC_FIELDS = ["name.phonetic^2", "phonetic"]


class ProductProvider(Protocol):
    name: str

    def search(self, term: str) -> List[Product]: ...


def _to_product(raw: Dict[str, Any]) -> Optional[Product]:
    name = raw.get("name") or raw.get("title")
    price = raw.get("price")
    if not name or price is None:
        return None
    try:
        return Product(name=str(name), price=int(price))
    except (TypeError, ValueError):
        return None


class StaticProvider:
    """Serves a fixed offer list; a product matches when it contains every query token."""

    name = "static"

    def __init__(self, offers: Iterable[Dict[str, Any]]) -> None:
        self._offers = [offer for offer in offers if _to_product(offer) is not None]

    @classmethod
    def from_file(cls, path: str | Path) -> "StaticProvider":
        with Path(path).open("r", encoding="utf-8") as fh:
            return cls(json.load(fh))

    def search(self, term: str) -> List[Product]:
        tokens = normalize_query(term).split()
        if not tokens:
            return []
        results: List[Product] = []
        for offer in self._offers:
            product = _to_product(offer)
            haystack = normalize_query(product.name)
            if all(token in haystack for token in tokens):
                results.append(product)
        logger.info("static search q=%r hits=%s", term, len(results))
        return results


def build_es_query(normalized_q: str, transliterated_q: str, phonetic_q: str, size: int) -> Dict[str, Any]:
    should: List[dict] = [
        {
            "multi_match": {
                "query": normalized_q,
                "fields": NAME_FIELDS,
                "type": "most_fields",
                "operator": "and",
                "fuzziness": "AUTO",
                "boost": 2.0,
            }
        }
    ]
    if transliterated_q:
        should.append(
            {
                "multi_match": {
                    "query": transliterated_q,
                    "fields": TRANSLIT_FIELDS,
                    "type": "most_fields",
                    "operator": "and",
                    "fuzziness": "AUTO",
                    "boost": 1.5,
                }
            }
        )
    if phonetic_q:
        should.append(
            {
                "multi_match": {
                    "query": phonetic_q,
                    "fields": PHONETIC_FIELDS,
                    "type": "most_fields",
                    "boost": 1.2,
                }
            }
        )
    return {
        "size": size,
        "_source": ["name", "title", "price"],
        "query": {"bool": {"should": should, "minimum_should_match": 1}},
    }


class ElasticsearchProvider:
    name = "elasticsearch"

    def __init__(self, es: Elasticsearch, index: str, size: int = 100) -> None:
        self.es = es
        self.index = index
        self.size = size

    def search(self, term: str) -> List[Product]:
        normalized_q = normalize_query(term)
        if not normalized_q:
            return []
        query_body = build_es_query(normalized_q, transliterate_text(normalized_q), to_phonetic(normalized_q), self.size)
        logger.debug("ES query payload=%s", query_body)
        response = self.es.search(index=self.index, body=query_body)
        hits = response.get("hits", {}).get("hits", [])
        products = [product for product in (_to_product(hit.get("_source", {})) for hit in hits) if product]
        skipped = len(hits) - len(products)
        logger.info(
            "search q=%r normalized=%r hits=%s skipped=%s took=%sms",
            term,
            normalized_q,
            len(hits),
            skipped,
            response.get("took", 0),
        )
        return products


@lru_cache(maxsize=1)
def get_client() -> Elasticsearch:
    logger.info("Connecting to Elasticsearch at %s", settings.es_host)
    return Elasticsearch(settings.es_host)


def get_provider() -> ElasticsearchProvider:
    return ElasticsearchProvider(get_client(), settings.es_index, settings.search_result_size)
