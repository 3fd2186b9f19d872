"""Page/limit arithmetic shared by every paginated listing."""

import math
from dataclasses import dataclass
from typing import Any

from app.errors import ValidationError

MAX_LIMIT = 50
# Installer search and sub-resource listings (reviews, favorites) use
# different page sizes.
SEARCH_DEFAULT_LIMIT = 12
SUB_RESOURCE_DEFAULT_LIMIT = 10


def _parse_int(field: str, raw: Any) -> int | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool):
        raise ValidationError(details=[{"field": field, "message": "Must be an integer"}])
    if isinstance(raw, int):
        return raw
    try:
        return int(str(raw).strip())
    except ValueError:
        raise ValidationError(details=[{"field": field, "message": "Must be an integer"}])


@dataclass(frozen=True)
class PageRequest:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def from_raw(cls, page: Any = None, limit: Any = None, default_limit: int = SEARCH_DEFAULT_LIMIT) -> "PageRequest":
        """Parse raw page/limit values (strings or ints).

        Non-integers are rejected; integers outside the allowed range are
        clamped to page >= 1 and 1 <= limit <= MAX_LIMIT.
        """
        parsed_page = _parse_int("page", page)
        parsed_limit = _parse_int("limit", limit)
        if parsed_page is None:
            parsed_page = 1
        if parsed_limit is None:
            parsed_limit = default_limit
        return cls(page=max(parsed_page, 1), limit=min(max(parsed_limit, 1), MAX_LIMIT))


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int
    total: int
    total_pages: int
    has_more: bool

    @classmethod
    def build(cls, request: PageRequest, total: int) -> "Pagination":
        total_pages = math.ceil(total / request.limit) if total > 0 else 0
        return cls(
            page=request.page,
            limit=request.limit,
            total=total,
            total_pages=total_pages,
            has_more=request.page < total_pages,
        )

    @classmethod
    def empty(cls, request: PageRequest) -> "Pagination":
        return cls.build(request, 0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "totalPages": self.total_pages,
            "hasMore": self.has_more,
        }
