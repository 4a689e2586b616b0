"""Per-user search history recorders.

History is best effort: a recorder that cannot persist an entry logs a warning
and lets the search succeed.
"""
from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Protocol

import redis

from .config import settings

logger = logging.getLogger(__name__)


class HistoryRecorder(Protocol):
    def add_history(self, user: str, term: str) -> None: ...


@dataclass
class RedisHistory:
    client: redis.Redis
    prefix: str = "history:"

    def add_history(self, user: str, term: str) -> None:
        try:
            self.client.rpush(self.prefix + user, term)
        except redis.RedisError as exc:
            logger.warning("Redis history write failed for %r: %s", user, exc)

    def get_history(self, user: str) -> List[str]:
        try:
            raw = self.client.lrange(self.prefix + user, 0, -1)
        except redis.RedisError as exc:
            logger.warning("Redis history read failed for %r: %s", user, exc)
            return []
        return [item.decode("utf-8") if isinstance(item, bytes) else item for item in raw]


class InMemoryHistory:
    def __init__(self) -> None:
        self._entries: Dict[str, List[str]] = defaultdict(list)
        self._lock = threading.Lock()

    def add_history(self, user: str, term: str) -> None:
        with self._lock:
            self._entries[user].append(term)

    def get_history(self, user: str) -> List[str]:
        with self._lock:
            return list(self._entries.get(user, []))


def get_history() -> HistoryRecorder:
    if settings.history_backend != "redis":
        return InMemoryHistory()
    try:
        client = redis.Redis(host=settings.redis_host, port=settings.redis_port, decode_responses=False)
        client.ping()
        logger.info("Recording search history in Redis at %s:%s", settings.redis_host, settings.redis_port)
        return RedisHistory(client)
    except redis.RedisError:
        logger.warning("Redis not available, keeping search history in memory")
        return InMemoryHistory()
