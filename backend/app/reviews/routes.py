import uuid

import structlog
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_customer, get_current_user
from app.errors import ConflictError, Forbidden, NotFound, ValidationError
from app.metrics import REVIEWS_WRITTEN
from app.models.catalog import ServiceCategory
from app.models.installer_profile import InstallerProfile
from app.models.review import Review
from app.models.user import User
from app.schemas.common import MessageResponse
from app.schemas.review import ReviewCreateRequest, ReviewResponse, ReviewUpdateRequest
from app.services.review_queries import get_review
from app.utils.rate_limit import LIST_RATE_LIMIT, WRITE_RATE_LIMIT, limiter

logger = structlog.get_logger()
router = APIRouter()

DUPLICATE_REVIEW_MESSAGE = "You have already reviewed this installer"


async def _get_own_review(db: AsyncSession, review_id: uuid.UUID, user: User, action: str) -> Review:
    review = await db.get(Review, review_id)
    if review is None:
        raise NotFound("Review not found")
    if review.customer_id != user.id:
        raise Forbidden(f"You cannot {action} this review")
    return review


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_RATE_LIMIT)
async def create_review(
    request: Request,
    body: ReviewCreateRequest,
    user: User = Depends(get_current_customer),
    db: AsyncSession = Depends(get_db),
):
    """Leave a review for an installer. One review per customer and installer."""
    installer = await db.get(InstallerProfile, body.installer_profile_id)
    if installer is None:
        raise NotFound("Installer not found")
    if not installer.profile_completed:
        raise ValidationError("Cannot review an incomplete profile")

    existing = await db.scalar(
        select(Review.id).where(
            Review.customer_id == user.id,
            Review.installer_profile_id == installer.id,
        )
    )
    if existing is not None:
        raise ConflictError(DUPLICATE_REVIEW_MESSAGE)

    category = await db.scalar(select(ServiceCategory.id).where(ServiceCategory.id == body.service_category_id))
    if category is None:
        raise ValidationError(
            details=[{"field": "service_category_id", "message": "Service category does not exist"}]
        )

    review = Review(
        installer_profile_id=installer.id,
        customer_id=user.id,
        service_category_id=body.service_category_id,
        rating=body.rating,
        title=body.title,
        comment=body.comment,
        work_completed_at=body.work_completed_at,
    )
    db.add(review)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(DUPLICATE_REVIEW_MESSAGE)

    REVIEWS_WRITTEN.labels(action="created").inc()
    logger.info(
        "review_created",
        review_id=str(review.id),
        installer_id=str(installer.id),
        rating=body.rating,
    )
    return {"success": True, "data": await get_review(db, review.id)}


@router.get("/{review_id}", response_model=ReviewResponse)
@limiter.limit(LIST_RATE_LIMIT)
async def read_review(request: Request, review_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    data = await get_review(db, review_id)
    if data is None:
        raise NotFound("Review not found")
    return {"success": True, "data": data}


@router.patch("/{review_id}", response_model=ReviewResponse)
@limiter.limit(WRITE_RATE_LIMIT)
async def update_review(
    request: Request,
    review_id: uuid.UUID,
    body: ReviewUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Edit rating, title or comment of the caller's own review."""
    review = await _get_own_review(db, review_id, user, "edit")

    for field in ("rating", "title", "comment"):
        value = getattr(body, field)
        if value is not None:
            setattr(review, field, value)
    await db.flush()

    REVIEWS_WRITTEN.labels(action="updated").inc()
    logger.info("review_updated", review_id=str(review_id))
    return {"success": True, "data": await get_review(db, review_id), "message": "Review updated"}


@router.delete("/{review_id}", response_model=MessageResponse)
@limiter.limit(WRITE_RATE_LIMIT)
async def delete_review(
    request: Request,
    review_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    review = await _get_own_review(db, review_id, user, "delete")
    await db.delete(review)
    await db.flush()

    REVIEWS_WRITTEN.labels(action="deleted").inc()
    logger.info("review_deleted", review_id=str(review_id))
    return {"success": True, "message": "Review deleted"}
