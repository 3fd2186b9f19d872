"""Public installer search: filters, ranking, pagination and enrichment."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import SearchFailed
from app.metrics import INSTALLER_SEARCHES
from app.models.installer_profile import InstallerProfile
from app.models.user import User
from app.schemas.installer import InstallerSearchParams
from app.services.filters import build_installer_predicates, combine
from app.services.installer_queries import attach_collections, installer_select, row_to_dict
from app.services.ranking import installer_order_by
from app.utils.pagination import SEARCH_DEFAULT_LIMIT, PageRequest, Pagination

logger = structlog.get_logger()


@dataclass
class SearchResult:
    data: list[dict] = field(default_factory=list)
    pagination: Pagination | None = None

    @classmethod
    def empty(cls, page: PageRequest) -> "SearchResult":
        return cls(data=[], pagination=Pagination.empty(page))

    def to_dict(self) -> dict[str, Any]:
        return {"success": True, "data": self.data, "pagination": self.pagination.to_dict()}


class InstallerSearchService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def search(self, raw_params: Mapping[str, Any], *, strict: bool = False) -> SearchResult:
        """Run a search from raw query parameters.

        Invalid parameters raise ValidationError. Database failures are logged
        and yield an empty result, unless ``strict`` is set, in which case
        SearchFailed is raised.
        """
        params = InstallerSearchParams.from_raw(raw_params)
        page = PageRequest.from_raw(
            raw_params.get("page"), raw_params.get("limit"), default_limit=SEARCH_DEFAULT_LIMIT
        )
        try:
            result = await self._execute(params, page)
        except SearchFailed:
            INSTALLER_SEARCHES.labels(outcome="failed").inc()
            if strict:
                raise
            return SearchResult.empty(page)

        INSTALLER_SEARCHES.labels(outcome="ok").inc()
        return result

    async def _execute(self, params: InstallerSearchParams, page: PageRequest) -> SearchResult:
        predicates = build_installer_predicates(params)
        where = combine(predicates)

        try:
            total = await self.db.scalar(
                select(func.count(InstallerProfile.id))
                .select_from(InstallerProfile)
                .join(User, User.id == InstallerProfile.user_id)
                .where(where)
            )
            total = int(total or 0)
            if total == 0 or page.offset >= total:
                return SearchResult(data=[], pagination=Pagination.build(page, total))

            rows = await self.db.execute(
                installer_select()
                .where(where)
                .order_by(*installer_order_by(params.sort))
                .limit(page.limit)
                .offset(page.offset)
            )
            items = [row_to_dict(row) for row in rows.all()]
            await attach_collections(self.db, items)
        except SQLAlchemyError as exc:
            logger.exception(
                "installer_search_failed",
                filters=[p.name for p in predicates],
                page=page.page,
                error_type=type(exc).__name__,
            )
            await self.db.rollback()
            raise SearchFailed() from exc

        return SearchResult(data=items, pagination=Pagination.build(page, total))
