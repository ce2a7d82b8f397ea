"""Core protocol and interface definitions.

Defines the MediaServer protocol the Jellyfin tools depend on, so the
tools can be exercised with any client offering the same read API.
"""

from __future__ import annotations

from typing import Any, Dict, List, Protocol


class MediaServer(Protocol):
    """Contract for the media-server client used by the tools."""
    async def test_connection(self) -> Dict[str, Any]:
        ...

    async def get_users(self) -> List[Dict[str, Any]]:
        ...

    async def get_user(self, user_id: str) -> Dict[str, Any]:
        ...

    async def get_activity_log(
        self,
        *,
        start_index: int = 0,
        limit: int = 50,
    ) -> Dict[str, Any]:
        ...
