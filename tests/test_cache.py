"""Result cache: one fetch and one enrichment per term."""

import threading
import time

import pytest
import redis

from conftest import make_products
from marketsearch.cache import InMemoryCache, RedisCache, ResultCache


class CountingFetch:
    def __init__(self, *pairs):
        self.pairs = pairs
        self.calls = []

    def __call__(self, term):
        self.calls.append(term)
        return make_products(*self.pairs)


def test_hit_returns_stored_list_without_refetch():
    """A hit hands back the stored list without fetching or preparing again."""

    fetch = CountingFetch(("mouse", 100))
    prepared = []
    cache = ResultCache(InMemoryCache())

    first = cache.get_or_fetch("mouse", fetch, prepared.append)
    second = cache.get_or_fetch("mouse", fetch, prepared.append)

    assert first is second
    assert fetch.calls == ["mouse"]
    assert prepared == [first]


def test_terms_are_case_sensitive():
    """Terms are cache keys as typed, without normalization."""

    fetch = CountingFetch(("mouse", 100))
    cache = ResultCache(InMemoryCache())

    cache.get_or_fetch("mouse", fetch)
    cache.get_or_fetch("Mouse", fetch)
    cache.get_or_fetch("mouse ", fetch)

    assert fetch.calls == ["mouse", "Mouse", "mouse "]


def test_failed_fetch_is_not_cached():
    """A provider failure leaves no entry, so the next call fetches again."""

    cache = ResultCache(InMemoryCache())
    attempts = []

    def failing(term):
        attempts.append(term)
        raise RuntimeError("provider down")

    with pytest.raises(RuntimeError):
        cache.get_or_fetch("mouse", failing)

    fetch = CountingFetch(("mouse", 100))
    assert [p.name for p in cache.get_or_fetch("mouse", fetch)] == ["mouse"]
    assert attempts == ["mouse"]
    assert fetch.calls == ["mouse"]


def test_concurrent_misses_share_one_fetch():
    """Simultaneous misses for one term wait on a single fetch."""

    started = threading.Event()
    release = threading.Event()
    calls = []

    def slow_fetch(term):
        calls.append(term)
        started.set()
        release.wait(timeout=5)
        return make_products(("mouse", 100))

    cache = ResultCache(InMemoryCache())
    results = []
    threads = [
        threading.Thread(target=lambda: results.append(cache.get_or_fetch("mouse", slow_fetch)))
        for _ in range(5)
    ]
    for thread in threads:
        thread.start()
    assert started.wait(timeout=5)
    time.sleep(0.05)
    release.set()
    for thread in threads:
        thread.join(timeout=5)

    assert calls == ["mouse"]
    assert len(results) == 5
    assert all(result is results[0] for result in results)
    assert cache._locks == {}


def test_clear_forgets_entries():
    """clear() forces the next lookup to fetch."""

    fetch = CountingFetch(("mouse", 100))
    backend = InMemoryCache()
    cache = ResultCache(backend)

    cache.get_or_fetch("mouse", fetch)
    cache.clear()
    cache.get_or_fetch("mouse", fetch)

    assert fetch.calls == ["mouse", "mouse"]
    assert len(backend) == 1


def test_in_memory_ttl_expires_entries(monkeypatch):
    """Positive TTLs expire in-memory entries."""

    backend = InMemoryCache()
    now = [1000.0]
    monkeypatch.setattr("marketsearch.cache.time.time", lambda: now[0])

    backend.set("mouse", make_products(("mouse", 1)), ttl=10)
    assert backend.get("mouse") is not None

    now[0] += 11
    assert backend.get("mouse") is None


def test_zero_ttl_never_expires(monkeypatch):
    """A zero TTL keeps entries for the life of the process."""

    backend = InMemoryCache()
    now = [1000.0]
    monkeypatch.setattr("marketsearch.cache.time.time", lambda: now[0])

    backend.set("mouse", make_products(("mouse", 1)), ttl=0)
    now[0] += 10**9

    assert backend.get("mouse") is not None


class FakeRedis:
    def __init__(self, fail=False):
        self.store = {}
        self.ttls = {}
        self.fail = fail

    def _check(self):
        if self.fail:
            raise redis.ConnectionError("no redis")

    def get(self, key):
        self._check()
        return self.store.get(key)

    def set(self, key, value):
        self._check()
        self.store[key] = value.encode("utf-8")

    def setex(self, key, ttl, value):
        self.set(key, value)
        self.ttls[key] = ttl


def test_redis_cache_round_trips_enriched_products():
    """Redis entries keep the enriched fields."""

    client = FakeRedis()
    backend = RedisCache(client)
    products = make_products(("Мышь", 100))
    products[0].rating = 4.5
    products[0].marketplace = "DNS"

    backend.set("мышь", products, ttl=0)
    restored = backend.get("мышь")

    assert restored == products
    assert "search:мышь" in client.store
    assert client.ttls == {}


def test_redis_cache_errors_degrade_to_miss():
    """Redis outages read as cache misses."""

    backend = RedisCache(FakeRedis(fail=True))
    backend.set("mouse", make_products(("mouse", 1)), ttl=60)

    assert backend.get("mouse") is None


class ForgetfulBackend:
    def get(self, key):
        return None

    def set(self, key, value, ttl):
        pass

    def clear(self):
        pass


def test_lock_map_is_empty_after_population():
    """The per-term lock goes away once the entry is stored."""

    cache = ResultCache(InMemoryCache())

    cache.get_or_fetch("mouse", CountingFetch(("mouse", 100)))

    assert cache._locks == {}


def test_lock_map_does_not_grow_with_distinct_terms():
    """Many distinct terms leave no locks behind."""

    cache = ResultCache(ForgetfulBackend())
    fetch = CountingFetch(("mouse", 100))

    for i in range(1000):
        cache.get_or_fetch(f"term-{i}", fetch)

    assert len(fetch.calls) == 1000
    assert cache._locks == {}


def test_lock_released_after_failed_fetch():
    """A failing fetch still releases its per-term lock."""

    cache = ResultCache(InMemoryCache())

    def failing(term):
        raise RuntimeError("provider down")

    with pytest.raises(RuntimeError):
        cache.get_or_fetch("mouse", failing)

    assert cache._locks == {}
