"""Pagination helpers for in-memory lists and SQLAlchemy queries"""

import math
from typing import Any, Callable, Optional


def _to_positive_int(value, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def paginate(data: list, page: Any = 1, per_page: Any = 10) -> dict:
    """
    Slice a list into one page.

    Args:
        data: Full dataset
        page: 1-based page number, clamped into range
        per_page: Items per page

    Returns:
        {"data": [...], "meta": {...}}

    Raises:
        TypeError: If data is not a list
    """
    if not isinstance(data, list):
        raise TypeError("Expected a list for data")

    page = _to_positive_int(page, 1)
    per_page = _to_positive_int(per_page, 10)

    total_items = len(data)
    total_pages = math.ceil(total_items / per_page)
    # An empty dataset still reports page 1
    current_page = min(max(1, page), max(total_pages, 1))
    offset = (current_page - 1) * per_page

    has_next = current_page < total_pages
    has_prev = current_page > 1

    return {
        "data": data[offset : offset + per_page],
        "meta": {
            "totalItems": total_items,
            "totalPages": total_pages,
            "currentPage": current_page,
            "perPage": per_page,
            "hasNext": has_next,
            "hasPrev": has_prev,
            "nextPage": current_page + 1 if has_next else None,
            "prevPage": current_page - 1 if has_prev else None,
            "from": offset + 1 if total_items > 0 else 0,
            "to": min(offset + per_page, total_items),
        },
    }


def empty_page(page: int, limit: int) -> dict:
    return {
        "docs": [],
        "totalDocs": 0,
        "limit": limit,
        "page": page,
        "totalPages": 0,
        "pagingCounter": 0,
        "hasPrevPage": False,
        "hasNextPage": False,
        "prevPage": None,
        "nextPage": None,
    }


def paginate_query(
    query,
    page: Any = 1,
    limit: Any = 10,
    serializer: Optional[Callable[[Any], Any]] = None,
) -> dict:
    """Run a SQLAlchemy query one page at a time (page-style envelope used by list endpoints)"""
    page = _to_positive_int(page, 1)
    limit = _to_positive_int(limit, 10)

    total = query.order_by(None).count()
    total_pages = math.ceil(total / limit)
    rows = query.offset((page - 1) * limit).limit(limit).all()

    return {
        "docs": [serializer(r) for r in rows] if serializer else rows,
        "totalDocs": total,
        "limit": limit,
        "page": page,
        "totalPages": total_pages,
        "pagingCounter": (page - 1) * limit + 1,
        "hasPrevPage": page > 1,
        "hasNextPage": page < total_pages,
        "prevPage": page - 1 if page > 1 else None,
        "nextPage": page + 1 if page < total_pages else None,
    }
