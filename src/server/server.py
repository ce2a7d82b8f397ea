"""Server bootstrap for the Jellyfin companion MCP service.

Configures logging, creates the FastMCP instance, builds the application
cache and the Jellyfin client (with its own response cache) once, wires
them into the tools and starts the MCP server (stdio transport).
"""

from typing import Any, Dict

import structlog
from mcp.server.fastmcp import FastMCP

from clients.jellyfin import JellyfinClient
from config import (
    API_CACHE_MAX_SIZE,
    API_CACHE_TTL,
    APP_ENV,
    CACHE_DEFAULT_TTL,
    CACHE_ENABLE_STATS,
    CACHE_MAX_SIZE,
    HTTP_VERIFY,
    JELLYFIN_API_KEY,
    JELLYFIN_TIMEOUT,
    JELLYFIN_URL,
    LOG_JSON,
    LOG_LEVEL,
)
from core.cache import TTLCache
from core.logging_config import configure_logging

from tools.cache_admin import register as register_cache_admin
from tools.jellyfin import register as register_jellyfin

logger = structlog.get_logger(__name__)

mcp = FastMCP("jellyfin-companion")


def build_caches() -> Dict[str, TTLCache[Any]]:
    app_cache: TTLCache[Any] = TTLCache(
        default_ttl_seconds=CACHE_DEFAULT_TTL,
        max_size=CACHE_MAX_SIZE,
        enable_stats=CACHE_ENABLE_STATS,
        name="app",
    )
    api_cache: TTLCache[Any] = TTLCache(
        default_ttl_seconds=API_CACHE_TTL,
        max_size=API_CACHE_MAX_SIZE,
        enable_stats=CACHE_ENABLE_STATS,
        name="jellyfin-api",
    )

    if APP_ENV != "production":
        for cache in (app_cache, api_cache):
            log = logger.bind(cache=cache.name)
            cache.on("evict", lambda key, log=log: log.debug("cache_evicted", key=key))
            cache.on("expired", lambda key, log=log: log.debug("cache_expired", key=key))

    return {app_cache.name: app_cache, api_cache.name: api_cache}


def register_tools() -> None:
    caches = build_caches()
    jellyfin_client = JellyfinClient(
        base_url=JELLYFIN_URL,
        api_key=JELLYFIN_API_KEY,
        timeout=JELLYFIN_TIMEOUT,
        verify=HTTP_VERIFY,
        cache=caches["jellyfin-api"],
        cache_ttl_seconds=API_CACHE_TTL,
    )

    register_cache_admin(mcp, caches=caches, default_cache="app", app_env=APP_ENV)
    register_jellyfin(mcp, jellyfin=jellyfin_client, cache=caches["app"])


def register_all() -> None:
    configure_logging(LOG_LEVEL, json_logs=LOG_JSON)
    register_tools()


register_all()


def main() -> None:
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
