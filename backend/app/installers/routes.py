import uuid

import structlog
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_user
from app.errors import NotFound, UpdateFailed
from app.models.installer_profile import InstallerProfile
from app.models.review import Review
from app.models.user import User
from app.schemas.installer import (
    InstallerDetailResponse,
    InstallerSearchResponse,
    InstallerUpdateRequest,
)
from app.schemas.review import InstallerReviewsResponse
from app.services.installer_queries import get_installer_detail
from app.services.installer_search import InstallerSearchService
from app.services.profile_update import ProfileUpdateTransactor
from app.services.review_queries import list_reviews
from app.services.review_stats import stats_for
from app.utils.pagination import SUB_RESOURCE_DEFAULT_LIMIT, PageRequest
from app.utils.rate_limit import LIST_RATE_LIMIT, WRITE_RATE_LIMIT, limiter

logger = structlog.get_logger()
router = APIRouter()


@router.get("", response_model=InstallerSearchResponse)
@limiter.limit(LIST_RATE_LIMIT)
async def search_installers(request: Request, db: AsyncSession = Depends(get_db)):
    """Search completed installer profiles.

    Query parameters: search, service_id, city_id, region_id, rating_min,
    available, page, limit (max 50), sort (rating | reviews).
    """
    result = await InstallerSearchService(db).search(request.query_params)
    return result.to_dict()


@router.get("/{installer_id}", response_model=InstallerDetailResponse)
@limiter.limit(LIST_RATE_LIMIT)
async def get_installer(request: Request, installer_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return {"success": True, "data": await get_installer_detail(db, installer_id)}


@router.patch("/{installer_id}", response_model=InstallerDetailResponse)
@limiter.limit(WRITE_RATE_LIMIT)
async def update_installer(
    request: Request,
    installer_id: uuid.UUID,
    body: InstallerUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update the caller's own profile, offerings and service areas in one unit."""
    detail = await ProfileUpdateTransactor(db).update(installer_id, user.id, body)
    # The update is durable before the response is built.
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("installer_profile_commit_failed", installer_id=str(installer_id))
        raise UpdateFailed() from exc
    return {"success": True, "data": detail, "message": "Profile updated"}


@router.get("/{installer_id}/reviews", response_model=InstallerReviewsResponse)
@limiter.limit(LIST_RATE_LIMIT)
async def list_installer_reviews(
    request: Request,
    installer_id: uuid.UUID,
    page: str | None = Query(None),
    limit: str | None = Query(None),
    sort: str | None = Query(None),
    rating: int | None = Query(None, ge=1, le=5),
    db: AsyncSession = Depends(get_db),
):
    """Reviews of one installer, with rating stats over all of its reviews."""
    page_request = PageRequest.from_raw(page, limit, default_limit=SUB_RESOURCE_DEFAULT_LIMIT)

    exists = await db.scalar(select(InstallerProfile.id).where(InstallerProfile.id == installer_id))
    if exists is None:
        raise NotFound("Installer not found")

    conditions = [Review.installer_profile_id == installer_id]
    if rating is not None:
        conditions.append(Review.rating == rating)

    data, pagination = await list_reviews(db, conditions, page_request, sort)
    stats = await stats_for(db, installer_id)
    return {
        "success": True,
        "data": data,
        "pagination": pagination.to_dict(),
        "stats": stats.to_dict(),
    }
