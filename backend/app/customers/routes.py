"""Customer-owned resources: their reviews and favorite installers."""

import uuid

import structlog
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_user
from app.errors import ConflictError, Forbidden, NotFound, ValidationError
from app.metrics import FAVORITES_WRITTEN
from app.models.catalog import ServiceCategory
from app.models.favorite import CustomerFavorite
from app.models.installer_profile import InstallerProfile
from app.models.installer_service import InstallerService, InstallerServiceArea
from app.models.review import Review
from app.models.user import User
from app.schemas.common import MessageResponse
from app.schemas.favorite import FavoriteCreateRequest, FavoriteListResponse, FavoriteResponse
from app.schemas.review import ReviewListResponse
from app.services.review_queries import list_reviews
from app.services.review_stats import average_rating_expr, review_count_expr
from app.utils.display_name import installer_display_name
from app.utils.pagination import SUB_RESOURCE_DEFAULT_LIMIT, PageRequest, Pagination
from app.utils.rate_limit import LIST_RATE_LIMIT, WRITE_RATE_LIMIT, limiter

logger = structlog.get_logger()
router = APIRouter()


def _require_self(user: User, customer_id: uuid.UUID) -> None:
    if user.id != customer_id:
        raise Forbidden("You can only access your own data")


def _primary_service_expr():
    return (
        select(ServiceCategory.name_ro)
        .join(InstallerService, InstallerService.service_category_id == ServiceCategory.id)
        .where(
            InstallerService.installer_profile_id == InstallerProfile.id,
            InstallerService.is_primary == True,  # noqa: E712
        )
        .order_by(ServiceCategory.name_ro.asc())
        .limit(1)
        .correlate(InstallerProfile)
        .scalar_subquery()
    )


def _service_area_count_expr():
    return (
        select(func.count(InstallerServiceArea.id))
        .where(InstallerServiceArea.installer_profile_id == InstallerProfile.id)
        .correlate(InstallerProfile)
        .scalar_subquery()
    )


def _favorite_select():
    return (
        select(
            CustomerFavorite,
            InstallerProfile.business_name,
            InstallerProfile.is_verified,
            User.name.label("owner_name"),
            User.avatar_url,
            average_rating_expr().label("average_rating"),
            review_count_expr().label("review_count"),
            _primary_service_expr().label("primary_service"),
            _service_area_count_expr().label("service_area_count"),
        )
        .join(InstallerProfile, InstallerProfile.id == CustomerFavorite.installer_profile_id)
        .join(User, User.id == InstallerProfile.user_id)
    )


def _favorite_row_to_dict(row) -> dict:
    favorite: CustomerFavorite = row[0]
    return {
        "id": favorite.id,
        "customer_id": favorite.customer_id,
        "installer_profile_id": favorite.installer_profile_id,
        "created_at": favorite.created_at,
        "installer_name": installer_display_name(row.business_name, row.owner_name),
        "installer_business_name": row.business_name,
        "installer_avatar": row.avatar_url,
        "installer_verified": row.is_verified,
        "installer_rating": float(row.average_rating or 0),
        "installer_review_count": int(row.review_count or 0),
        "primary_service": row.primary_service,
        "service_area_count": int(row.service_area_count or 0),
    }


@router.get("/{customer_id}/reviews", response_model=ReviewListResponse)
@limiter.limit(LIST_RATE_LIMIT)
async def list_customer_reviews(
    request: Request,
    customer_id: uuid.UUID,
    page: str | None = Query(None),
    limit: str | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    _require_self(user, customer_id)
    page_request = PageRequest.from_raw(page, limit, default_limit=SUB_RESOURCE_DEFAULT_LIMIT)
    data, pagination = await list_reviews(db, [Review.customer_id == customer_id], page_request)
    return {"success": True, "data": data, "pagination": pagination.to_dict()}


@router.get("/{customer_id}/favorites", response_model=FavoriteListResponse)
@limiter.limit(LIST_RATE_LIMIT)
async def list_favorites(
    request: Request,
    customer_id: uuid.UUID,
    page: str | None = Query(None),
    limit: str | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    _require_self(user, customer_id)
    page_request = PageRequest.from_raw(page, limit, default_limit=SUB_RESOURCE_DEFAULT_LIMIT)

    condition = CustomerFavorite.customer_id == customer_id
    total = int(await db.scalar(select(func.count(CustomerFavorite.id)).where(condition)) or 0)
    rows = (
        await db.execute(
            _favorite_select()
            .where(condition)
            .order_by(CustomerFavorite.created_at.desc(), CustomerFavorite.id.desc())
            .limit(page_request.limit)
            .offset(page_request.offset)
        )
    ).all()
    return {
        "success": True,
        "data": [_favorite_row_to_dict(row) for row in rows],
        "pagination": Pagination.build(page_request, total).to_dict(),
    }


@router.post("/{customer_id}/favorites", response_model=FavoriteResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_RATE_LIMIT)
async def add_favorite(
    request: Request,
    customer_id: uuid.UUID,
    body: FavoriteCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    _require_self(user, customer_id)

    installer = await db.get(InstallerProfile, body.installer_profile_id)
    if installer is None:
        raise NotFound("Installer not found")
    if not installer.profile_completed:
        raise ValidationError("Installer profile is not completed")

    existing = await db.scalar(
        select(CustomerFavorite.id).where(
            CustomerFavorite.customer_id == customer_id,
            CustomerFavorite.installer_profile_id == installer.id,
        )
    )
    if existing is not None:
        raise ConflictError("Installer is already in favorites")

    favorite = CustomerFavorite(customer_id=customer_id, installer_profile_id=installer.id)
    db.add(favorite)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Installer is already in favorites")

    FAVORITES_WRITTEN.labels(action="added").inc()
    logger.info("favorite_added", customer_id=str(customer_id), installer_id=str(installer.id))

    row = (
        await db.execute(
            _favorite_select()
            .where(CustomerFavorite.id == favorite.id)
            .execution_options(populate_existing=True)
        )
    ).first()
    return {"success": True, "data": _favorite_row_to_dict(row), "message": "Installer added to favorites"}


@router.delete("/{customer_id}/favorites/{favorite_id}", response_model=MessageResponse)
@limiter.limit(WRITE_RATE_LIMIT)
async def remove_favorite(
    request: Request,
    customer_id: uuid.UUID,
    favorite_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    _require_self(user, customer_id)

    favorite = await db.get(CustomerFavorite, favorite_id)
    if favorite is None:
        raise NotFound("Favorite not found")
    if favorite.customer_id != customer_id:
        raise Forbidden("You can only remove your own favorites")

    await db.delete(favorite)
    await db.flush()

    FAVORITES_WRITTEN.labels(action="removed").inc()
    logger.info("favorite_removed", customer_id=str(customer_id), favorite_id=favorite_id)
    return {"success": True, "message": "Installer removed from favorites"}
