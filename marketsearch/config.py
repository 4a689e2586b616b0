"""Application configuration and constants."""
from __future__ import annotations

import os
from dataclasses import dataclass


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value is not None else default


def _get_optional_int(name: str) -> int | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return int(value)


@dataclass(frozen=True)
class Settings:
    """Simple settings container with environment variable overrides."""

    es_host: str = _get_env("ES_HOST", "http://localhost:9200")
    es_index: str = _get_env("ES_INDEX", "products")
    cache_backend: str = _get_env("CACHE_BACKEND", "memory").lower()
    history_backend: str = _get_env("HISTORY_BACKEND", "memory").lower()
    redis_host: str = _get_env("REDIS_HOST", "localhost")
    redis_port: int = int(_get_env("REDIS_PORT", "6379"))
    # 0 keeps cached results for the lifetime of the process.
    cache_ttl_seconds: int = int(_get_env("CACHE_TTL_SECONDS", "0"))
    search_result_size: int = int(_get_env("SEARCH_RESULT_SIZE", "100"))
    enrichment_seed: int | None = _get_optional_int("ENRICHMENT_SEED")
    marketplaces: tuple[str, ...] = tuple(
        label.strip() for label in _get_env("MARKETPLACES", "Ситилинк,DNS").split(",") if label.strip()
    )
    log_level: str = _get_env("LOG_LEVEL", "INFO")


settings = Settings()
