"""
Page/limit pagination used by the list endpoints.

Response shape: `{"total", "page", "limit", "totalPages", "hasNext", "hasPrev"}`.
"""

import math
from typing import Any, Dict, Tuple

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def _positive_int(value: Any, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def get_page_params(query_params, default_limit: int = DEFAULT_LIMIT) -> Tuple[int, int]:
    page = _positive_int(query_params.get("page"), 1)
    limit = min(_positive_int(query_params.get("limit"), default_limit), MAX_LIMIT)
    return page, limit


def paginate(queryset, page: int, limit: int) -> Tuple[list, Dict[str, Any]]:
    total = queryset.count()
    offset = (page - 1) * limit
    items = list(queryset[offset : offset + limit])
    total_pages = math.ceil(total / limit) if total else 0
    return items, {
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": total_pages,
        "hasNext": page < total_pages,
        "hasPrev": page > 1,
    }
