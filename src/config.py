"""Configuration and environment helpers for the project.

Provides small helpers to read typed environment variables and exposes
project-level configuration constants used across the codebase (e.g.
JELLYFIN_URL, HTTP_VERIFY, cache sizes and TTLs).
"""

from __future__ import annotations

import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


# Runtime
APP_ENV = os.environ.get("APP_ENV", "development").strip().lower()
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").strip().upper()
LOG_JSON = _env_bool("LOG_JSON", APP_ENV == "production")

# Network / HTTP
HTTP_VERIFY = _env_bool("HTTP_VERIFY", True)

# Jellyfin
JELLYFIN_URL = os.environ.get("JELLYFIN_URL", "http://localhost:8096").strip()
JELLYFIN_API_KEY = (os.environ.get("JELLYFIN_API_KEY") or "").strip() or None
JELLYFIN_TIMEOUT = _env_float("JELLYFIN_TIMEOUT", 30.0)

# Application cache (seconds / entry count)
CACHE_DEFAULT_TTL = _env_float("CACHE_DEFAULT_TTL", 300.0)
CACHE_MAX_SIZE = _env_int("CACHE_MAX_SIZE", 1000)
CACHE_ENABLE_STATS = _env_bool("CACHE_ENABLE_STATS", True)

# Jellyfin API response cache
API_CACHE_TTL = _env_float("API_CACHE_TTL", 300.0)
API_CACHE_MAX_SIZE = _env_int("API_CACHE_MAX_SIZE", 256)
