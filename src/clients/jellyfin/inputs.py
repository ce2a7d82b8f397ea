from __future__ import annotations

import re
from typing import Tuple

from core.errors import ValidationError


# Jellyfin ids are GUIDs, with or without dashes
_USER_ID_RE = re.compile(r"^[0-9A-Fa-f]{8}-?[0-9A-Fa-f]{4}-?[0-9A-Fa-f]{4}-?[0-9A-Fa-f]{4}-?[0-9A-Fa-f]{12}$")

_MAX_PAGE_SIZE = 500


def normalize_base_url(base_url: str) -> str:
    url = (base_url or "").strip().rstrip("/")
    if not url:
        raise ValidationError("Jellyfin base URL is required")
    if not url.startswith(("http://", "https://")):
        raise ValidationError("Jellyfin base URL must start with http:// or https://")
    return url


def normalize_user_id(user_id: str) -> str:
    uid = (user_id or "").strip()
    if not uid:
        raise ValidationError("user_id must be non-empty")
    if not _USER_ID_RE.match(uid):
        raise ValidationError(f"Invalid Jellyfin user id: {uid}")
    # Jellyfin accepts both forms; cache keys use the compact one
    return uid.replace("-", "").lower()


def normalize_paging(start_index: int, limit: int) -> Tuple[int, int]:
    start = int(start_index)
    size = int(limit)
    if start < 0:
        raise ValidationError("start_index must be >= 0")
    if size <= 0:
        raise ValidationError("limit must be positive")
    return start, min(size, _MAX_PAGE_SIZE)
