"""Application configuration and constants."""
from __future__ import annotations

import os
from dataclasses import dataclass


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value is not None else default


def _get_flag(name: str, default: str) -> bool:
    return _get_env(name, default).lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class Settings:
    """Simple settings container with environment variable overrides."""

    es_host: str = _get_env("ES_HOST", "http://localhost:9200")
    es_index: str = _get_env("ES_INDEX", "products")
    es_request_timeout: float = float(_get_env("ES_REQUEST_TIMEOUT", "5"))
    catalog_path: str = _get_env("CATALOG_PATH", "products.json")
    cache_backend: str = _get_env("CACHE_BACKEND", "memory")
    redis_host: str = _get_env("REDIS_HOST", "localhost")
    redis_port: int = int(_get_env("REDIS_PORT", "6379"))
    cache_ttl_seconds: int = int(_get_env("CACHE_TTL_SECONDS", "600"))
    suggestion_ttl_seconds: int = int(_get_env("SUGGESTION_TTL_SECONDS", "1800"))
    cache_bypass_page_size: int = int(_get_env("CACHE_BYPASS_PAGE_SIZE", "50"))
    default_page_size: int = int(_get_env("DEFAULT_PAGE_SIZE", "12"))
    max_page_size: int = int(_get_env("MAX_PAGE_SIZE", "100"))
    es_page_size: int = int(_get_env("ES_PAGE_SIZE", "500"))
    enable_fallback_on_error: bool = _get_flag("ENABLE_FALLBACK_ON_ERROR", "false")
    use_sample_data: bool = _get_flag("USE_SAMPLE_DATA", "false")
    price_keyword_hints: bool = _get_flag("PRICE_KEYWORD_HINTS", "false")
    load_on_startup: bool = _get_flag("LOAD_ON_STARTUP", "true")
    log_level: str = _get_env("LOG_LEVEL", "INFO")


settings = Settings()
