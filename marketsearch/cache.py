"""Search result caching with single-flight population per term.

Cached values are the enriched product lists. The first request for a term
fetches from the provider and enriches; every later request for the same term
gets the stored list back, so the synthetic fields stay stable. Concurrent
first requests for one term share a single fetch.
"""
from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass, field
from time import perf_counter
from typing import Callable, Dict, List, Optional, Protocol

import redis

from .config import settings
from .models import Product

logger = logging.getLogger(__name__)

Fetch = Callable[[str], List[Product]]
Prepare = Callable[[List[Product]], None]


class CacheBackend(Protocol):
    def get(self, key: str) -> Optional[List[Product]]: ...

    def set(self, key: str, value: List[Product], ttl: int) -> None: ...

    def clear(self) -> None: ...


@dataclass
class RedisCache:
    client: redis.Redis
    prefix: str = "search:"

    def get(self, key: str) -> Optional[List[Product]]:
        try:
            data = self.client.get(self.prefix + key)
        except redis.RedisError as exc:
            logger.warning("Redis get failed: %s", exc)
            return None
        if not data:
            return None
        try:
            return [Product.model_validate(item) for item in json.loads(data)]
        except (json.JSONDecodeError, ValueError):
            logger.warning("Discarding unreadable cache entry for %r", key)
            return None

    def set(self, key: str, value: List[Product], ttl: int) -> None:
        payload = json.dumps([product.model_dump() for product in value], ensure_ascii=False)
        try:
            if ttl > 0:
                self.client.setex(self.prefix + key, ttl, payload)
            else:
                self.client.set(self.prefix + key, payload)
        except redis.RedisError as exc:
            logger.warning("Redis set failed: %s", exc)

    def clear(self) -> None:
        try:
            for cache_key in self.client.scan_iter(match=self.prefix + "*"):
                self.client.delete(cache_key)
        except redis.RedisError as exc:
            logger.warning("Redis clear failed: %s", exc)


class InMemoryCache:
    """Process-local store; hits hand back the very list that was stored."""

    def __init__(self) -> None:
        self._store: Dict[str, tuple[Optional[float], List[Product]]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[List[Product]]:
        with self._lock:
            value = self._store.get(key)
            if value is None:
                return None
            expires_at, payload = value
            if expires_at is not None and expires_at < time.time():
                self._store.pop(key, None)
                return None
            return payload

    def set(self, key: str, value: List[Product], ttl: int) -> None:
        expires_at = time.time() + ttl if ttl > 0 else None
        with self._lock:
            self._store[key] = (expires_at, value)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)


@dataclass
class ResultCache:
    backend: CacheBackend
    ttl: int = 0
    # term -> (lock, callers currently holding or waiting on it)
    _locks: Dict[str, tuple[threading.Lock, int]] = field(default_factory=dict, init=False, repr=False)
    _locks_guard: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def _claim_lock(self, term: str) -> threading.Lock:
        with self._locks_guard:
            lock, refs = self._locks.get(term, (None, 0))
            if lock is None:
                lock = threading.Lock()
            self._locks[term] = (lock, refs + 1)
            return lock

    def _release_lock(self, term: str) -> None:
        with self._locks_guard:
            lock, refs = self._locks[term]
            if refs <= 1:
                del self._locks[term]
            else:
                self._locks[term] = (lock, refs - 1)

    def get_or_fetch(self, term: str, fetch: Fetch, prepare: Optional[Prepare] = None) -> List[Product]:
        """Return the cached products for ``term``, fetching them once on a miss.

        ``prepare`` runs on freshly fetched products before they are stored and
        never on a hit. The per-term lock lives only while callers use it.
        """

        start = perf_counter()
        cached = self.backend.get(term)
        if cached is not None:
            logger.info(
                "timing: total=%.2fms cache_hit=1 q=%r products=%s",
                (perf_counter() - start) * 1000,
                term,
                len(cached),
            )
            return cached

        lock = self._claim_lock(term)
        try:
            with lock:
                # Another request may have filled the entry while we waited.
                cached = self.backend.get(term)
                if cached is not None:
                    logger.info(
                        "timing: total=%.2fms cache_hit=1 waited=1 q=%r products=%s",
                        (perf_counter() - start) * 1000,
                        term,
                        len(cached),
                    )
                    return cached

                logger.info("Started fetching %r", term)
                t0 = perf_counter()
                products = fetch(term)
                t1 = perf_counter()
                if prepare is not None:
                    prepare(products)
                t2 = perf_counter()
                self.backend.set(term, products, self.ttl)
        finally:
            self._release_lock(term)

        logger.info(
            "timing: total=%.2fms fetch=%.2fms prepare=%.2fms cache_hit=0 q=%r products=%s",
            (perf_counter() - start) * 1000,
            (t1 - t0) * 1000,
            (t2 - t1) * 1000,
            term,
            len(products),
        )
        return products

    def clear(self) -> None:
        self.backend.clear()


_cache: CacheBackend | None = None


def get_cache() -> CacheBackend:
    global _cache
    if _cache is not None:
        return _cache
    if settings.cache_backend != "redis":
        logger.info("Using in-memory search cache")
        _cache = InMemoryCache()
        return _cache
    try:
        client = redis.Redis(host=settings.redis_host, port=settings.redis_port, decode_responses=False)
        client.ping()
        logger.info("Using Redis cache at %s:%s", settings.redis_host, settings.redis_port)
        _cache = RedisCache(client)
    except redis.RedisError:
        logger.warning("Redis not available, using in-memory cache")
        _cache = InMemoryCache()
    return _cache
