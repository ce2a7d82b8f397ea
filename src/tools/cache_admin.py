"""MCP tools for cache administration.

Registers 'cache_stats', 'cache_debug', 'cache_clear' and
'cache_reset_stats' over the named caches the server hands in
(e.g. "app" and "jellyfin-api").
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import structlog
from mcp.server.fastmcp import FastMCP

from core.cache import TTLCache
from core.errors import AccessDeniedError, NotFoundError

logger = structlog.get_logger(__name__)

# Returned by cache_clear when the whole cache was dropped
FULL_CLEAR = -1


def _resolve(caches: Mapping[str, TTLCache[Any]], name: str) -> TTLCache[Any]:
    key = (name or "").strip()
    cache = caches.get(key)
    if cache is None:
        known = ", ".join(sorted(caches)) or "none"
        raise NotFoundError(f"Unknown cache '{name}' (known: {known})")
    return cache


def register(
    mcp: FastMCP,
    *,
    caches: Mapping[str, TTLCache[Any]],
    default_cache: str = "app",
    app_env: str = "development",
) -> None:
    # Cached values include user records and policies
    debug_enabled = app_env != "production"

    @mcp.tool(name="cache_stats")
    async def cache_stats(cache: str = default_cache) -> Dict[str, Any]:
        """Return hit/miss/set/delete/eviction counters plus size and hit rate.

        Params:
          - cache: name of the cache to inspect (default: the application cache).
        """
        return _resolve(caches, cache).get_stats().to_dict()

    @mcp.tool(name="cache_debug")
    async def cache_debug(cache: str = default_cache) -> Dict[str, Any]:
        """Return the cache contents with hit counts, age and remaining TTL.

        Raises:
          AccessDeniedError in production.
        """
        if not debug_enabled:
            raise AccessDeniedError("Debug mode disabled in production")
        target = _resolve(caches, cache)
        entries = target.debug()
        return {"cache": target.name, "size": len(entries), "entries": entries}

    @mcp.tool(name="cache_clear")
    async def cache_clear(pattern: Optional[str] = None, cache: str = default_cache) -> Dict[str, Any]:
        """Clear the cache, or only keys matching a regular expression.

        Params:
          - pattern: optional regex searched in each key ('^user:' for a prefix).
          - cache: name of the cache to clear.

        Returns:
          {"cleared": <count>, "message": ...}; cleared is -1 after a full clear.

        Raises:
          ValidationError if the pattern is not a valid regular expression.
        """
        target = _resolve(caches, cache)
        if pattern:
            cleared = target.invalidate_pattern(pattern)
        else:
            target.clear()
            cleared = FULL_CLEAR

        logger.info("cache_cleared", cache=target.name, pattern=pattern, cleared=cleared)
        message = "Cache fully cleared" if cleared == FULL_CLEAR else f"Cleared {cleared} cache entries"
        return {"cleared": cleared, "message": message}

    @mcp.tool(name="cache_reset_stats")
    async def cache_reset_stats(cache: str = default_cache) -> Dict[str, Any]:
        """Zero the cache statistics without touching stored entries."""
        target = _resolve(caches, cache)
        target.reset_stats()
        logger.info("cache_stats_reset", cache=target.name)
        return {"message": "Cache statistics reset", "stats": target.get_stats().to_dict()}
