"""
Page window computation.

Results are always ordered by (chapter, verse) before the window is applied.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from core import config
from core.errors import InvalidArgument

DEFAULT_PAGE = 1
ORDER_BY = "chapter ASC, verse ASC"


@dataclass(frozen=True)
class PageRequest:
    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def page_request(
    page: int | None = None,
    limit: int | None = None,
    *,
    max_limit: int | None = None,
) -> PageRequest:
    page = DEFAULT_PAGE if page is None else page
    limit = config.DEFAULT_PAGE_LIMIT if limit is None else limit
    if page < 1:
        raise InvalidArgument("page must be at least 1")
    if limit < 1:
        raise InvalidArgument("limit must be at least 1")
    cap = max_limit if max_limit is not None else config.max_page_limit()
    return PageRequest(page=page, limit=min(limit, cap))


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if total > 0 else 0


def pagination_meta(request: PageRequest, total: int) -> dict[str, int]:
    return {
        "current_page": request.page,
        "total_pages": total_pages(total, request.limit),
        "total_items": total,
        "items_per_page": request.limit,
    }
