from typing import Any, Dict, List, Optional

from fastapi import Query

from app.core.errors import AppError, ErrorCode

DEFAULT_LIMIT = 12
MAX_LIMIT = 100


class Pagination:
    """``page``/``limit`` query params; out-of-range values are clamped, not rejected."""

    def __init__(self, page: int = Query(1), limit: int = Query(DEFAULT_LIMIT)):
        self.page = max(page, 1)
        self.limit = min(max(limit, 1), MAX_LIMIT)


def pop_tag_ids(body: Dict[str, Any], key: str = "selectedTags") -> Optional[List[int]]:
    """Tag ids sent with an article payload, or None when the key is absent."""
    if key not in body:
        return None
    raw = body.pop(key)
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise AppError(ErrorCode.VALIDATION_ERROR, f"{key} must be a list of tag ids")

    tag_ids = []
    for item in raw:
        value = item.get("id") if isinstance(item, dict) else item
        try:
            tag_ids.append(int(value))
        except (TypeError, ValueError):
            raise AppError(ErrorCode.VALIDATION_ERROR, f"Invalid tag id in {key}: {value!r}")
    return tag_ids
