"""Jellyfin client module: read users/system data with response caching.

A small async client over the Jellyfin REST API. Read paths that change
rarely (user list, single users, system configuration) go through an
injected `core.cache.TTLCache`, using get_or_set_async so concurrent
identical reads share one HTTP request. Writes invalidate the keys they
affect.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import httpx
import structlog

from core.cache import TTLCache
from core.errors import AccessDeniedError, ExternalServiceError, NotFoundError

from .inputs import normalize_base_url, normalize_paging, normalize_user_id

logger = structlog.get_logger(__name__)


# Jellyfin requires a complete Policy object on update
DEFAULT_USER_POLICY: Dict[str, Any] = {
    "IsAdministrator": False,
    "IsHidden": False,
    "IsDisabled": False,
    "BlockedTags": [],
    "EnableSharedDeviceControl": False,
    "EnableRemoteControlOfOtherUsers": False,
    "EnableLiveTvManagement": False,
    "EnableLiveTvAccess": False,
    "EnableMediaPlayback": True,
    "EnableAudioPlaybackTranscoding": True,
    "EnableVideoPlaybackTranscoding": True,
    "EnablePlaybackRemuxing": True,
    "ForceRemoteSourceTranscoding": False,
    "EnableContentDeletion": False,
    "EnableContentDownloading": True,
    "EnableSyncTranscoding": True,
    "EnableMediaConversion": True,
    "InvalidLoginAttemptCount": 0,
    "LoginAttemptsBeforeLockout": -1,
    "MaxActiveSessions": 0,
    "EnableAllChannels": True,
    "EnableAllFolders": True,
    "EnableAllDevices": True,
}


class JellyfinClient:
    """Async Jellyfin client.

    Purpose:
      - test_connection() -> public system info
      - get_users() / get_user(user_id) -> cached user records
      - get_system_configuration() -> cached server configuration
      - get_activity_log(start_index, limit) -> activity entries
      - check_quick_connect_enabled() -> bool
      - update_user_policy(user_id, policy) / delete_user(user_id)

    Key behavior:
      - Cache keys: "users", "user:<id>", "system:configuration".
      - 401/403 -> AccessDeniedError, 404 -> NotFoundError, other failures
        -> ExternalServiceError.
    """

    USERS_KEY = "users"
    SYSTEM_CONFIG_KEY = "system:configuration"

    def __init__(
        self,
        *,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        verify: bool = True,
        cache: Optional[TTLCache[Any]] = None,
        cache_ttl_seconds: float = 300.0,
        cache_maxsize: int = 256,
    ) -> None:
        self._base_url = normalize_base_url(base_url)
        self._api_key = (api_key or "").strip() or None
        self._timeout = float(timeout)
        self._verify = bool(verify)

        self._headers = self._build_headers()

        self._cache_ttl = float(cache_ttl_seconds)
        self._cache: TTLCache[Any] = cache if cache is not None else TTLCache(
            default_ttl_seconds=self._cache_ttl,
            max_size=cache_maxsize,
            name="jellyfin-api",
        )

        logger.info(
            "jellyfin_client_initialized",
            base_url=self._base_url,
            has_api_key=self._api_key is not None,
        )

    @property
    def cache(self) -> TTLCache[Any]:
        return self._cache

    # --- Reads ---

    async def test_connection(self) -> Dict[str, Any]:
        """Public endpoint; works without an API key."""
        return await self._get_json("/System/Info/Public", context="test_connection")

    async def get_users(self) -> List[Dict[str, Any]]:
        return await self._cache.get_or_set_async(
            self.USERS_KEY,
            lambda: self._get_json("/Users", context="get_users"),
            self._cache_ttl,
        )

    async def get_user(self, user_id: str) -> Dict[str, Any]:
        uid = normalize_user_id(user_id)
        return await self._cache.get_or_set_async(
            self._user_key(uid),
            lambda: self._get_json(f"/Users/{uid}", context="get_user"),
            self._cache_ttl,
        )

    async def get_system_configuration(self) -> Dict[str, Any]:
        return await self._cache.get_or_set_async(
            self.SYSTEM_CONFIG_KEY,
            lambda: self._get_json("/System/Configuration", context="get_system_configuration"),
            self._cache_ttl,
        )

    async def get_activity_log(self, *, start_index: int = 0, limit: int = 50) -> Dict[str, Any]:
        start, size = normalize_paging(start_index, limit)
        return await self._get_json(
            "/System/ActivityLog/Entries",
            params={"startIndex": start, "limit": size},
            context="get_activity_log",
        )

    async def check_quick_connect_enabled(self) -> bool:
        data = await self._get_json("/QuickConnect/Enabled", context="check_quick_connect_enabled")
        return bool(data)

    # --- Writes ---

    async def update_user_policy(self, user_id: str, policy: Mapping[str, Any]) -> Dict[str, Any]:
        """Merge defaults -> current policy -> `policy` and post the result."""
        uid = normalize_user_id(user_id)

        # Read fresh so the merge never starts from a stale cached policy
        current = await self._get_json(f"/Users/{uid}", context="update_user_policy(read)")
        merged = {**DEFAULT_USER_POLICY, **(current.get("Policy") or {}), **dict(policy)}

        async with self._create_client() as client:
            resp = await self._send(client, "POST", f"/Users/{uid}/Policy", json=merged)
            self._raise_for_status(resp, context="update_user_policy")

        self._invalidate_user(uid)
        logger.info("jellyfin_user_policy_updated", user_id=uid)
        return merged

    async def delete_user(self, user_id: str) -> bool:
        uid = normalize_user_id(user_id)

        async with self._create_client() as client:
            resp = await self._send(client, "DELETE", f"/Users/{uid}")
            self._raise_for_status(resp, context="delete_user")

        self._invalidate_user(uid)
        logger.info("jellyfin_user_deleted", user_id=uid)
        return True

    # --- HTTP helpers ---

    def _build_headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "User-Agent": "jellyfin-companion",
        }
        if self._api_key:
            headers["X-Emby-Token"] = self._api_key
        return headers

    def _create_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers,
            timeout=self._timeout,
            verify=self._verify,
        )

    def _user_key(self, uid: str) -> str:
        return f"user:{uid}"

    def _invalidate_user(self, uid: str) -> None:
        self._cache.delete(self.USERS_KEY)
        self._cache.delete(self._user_key(uid))

    def _external(self, context: str, err: BaseException) -> ExternalServiceError:
        return ExternalServiceError(f"Jellyfin request failed ({context}): {err}")

    def _raise_for_status(self, resp: httpx.Response, *, context: str) -> None:
        if resp.status_code in (401, 403):
            logger.warning("jellyfin_auth_rejected", context=context, status=resp.status_code)
            raise AccessDeniedError(f"Jellyfin rejected the API key ({context})")
        if resp.status_code == 404:
            raise NotFoundError(f"Jellyfin resource not found ({context})")
        try:
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise self._external(context, e) from e

    async def _send(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
    ) -> httpx.Response:
        try:
            return await client.request(method, url, params=dict(params or {}), json=json)
        except httpx.HTTPError as e:
            logger.warning("jellyfin_request_failed", method=method, url=url, error=str(e))
            raise self._external(f"{method} {url}", e) from e

    async def _get_json(
        self,
        url: str,
        *,
        context: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        async with self._create_client() as client:
            resp = await self._send(client, "GET", url, params=params)
            self._raise_for_status(resp, context=context)
            return resp.json()
