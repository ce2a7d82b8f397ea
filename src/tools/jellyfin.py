"""MCP tools that read from the Jellyfin server.

Registers 'jellyfin_list_users', 'jellyfin_get_user',
'jellyfin_system_info' and 'jellyfin_activity_log'. User lookups are
served from the client's response cache; system info is memoized in the
application cache when one is injected.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from core.cache import TTLCache
from core.interfaces import MediaServer

SYSTEM_INFO_KEY = "jellyfin:system-info"
SYSTEM_INFO_TTL_SECONDS = 60.0


def _summarize_user(user: Dict[str, Any]) -> Dict[str, Any]:
    policy = user.get("Policy") or {}
    return {
        "id": user.get("Id"),
        "name": user.get("Name"),
        "is_administrator": bool(policy.get("IsAdministrator", False)),
        "is_disabled": bool(policy.get("IsDisabled", False)),
        "last_login": user.get("LastLoginDate"),
    }


def register(
    mcp: FastMCP,
    *,
    jellyfin: MediaServer,
    cache: Optional[TTLCache[Any]] = None,
) -> None:
    @mcp.tool(name="jellyfin_list_users")
    async def jellyfin_list_users() -> List[Dict[str, Any]]:
        """List Jellyfin users (id, name, admin/disabled flags, last login).

        Served from the response cache when fresh.
        """
        users = await jellyfin.get_users()
        return [_summarize_user(u) for u in users]

    @mcp.tool(name="jellyfin_get_user")
    async def jellyfin_get_user(user_id: str) -> Dict[str, Any]:
        """Return the full Jellyfin record for one user.

        Params:
          - user_id: Jellyfin user GUID (with or without dashes).

        Raises:
          ValidationError for a malformed id; NotFoundError if the user is gone.
        """
        return await jellyfin.get_user(user_id)

    @mcp.tool(name="jellyfin_system_info")
    async def jellyfin_system_info() -> Dict[str, Any]:
        """Return the server's public system info (name, version, id)."""
        if cache is None:
            return await jellyfin.test_connection()
        return await cache.get_or_set_async(
            SYSTEM_INFO_KEY, jellyfin.test_connection, SYSTEM_INFO_TTL_SECONDS
        )

    @mcp.tool(name="jellyfin_activity_log")
    async def jellyfin_activity_log(start_index: int = 0, limit: int = 50) -> Dict[str, Any]:
        """Return a page of the server activity log (never cached)."""
        return await jellyfin.get_activity_log(start_index=start_index, limit=limit)
