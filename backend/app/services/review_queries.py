from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from app.models.catalog import ServiceCategory
from app.models.installer_profile import InstallerProfile
from app.models.review import Review
from app.models.user import User
from app.services.ranking import review_order_by
from app.utils.display_name import installer_display_name
from app.utils.pagination import PageRequest, Pagination

InstallerOwner = aliased(User, name="installer_owner")


def review_select() -> Select:
    """Reviews with the author, the reviewed installer and the service named."""
    return (
        select(
            Review,
            User.name.label("customer_name"),
            User.avatar_url.label("customer_avatar"),
            ServiceCategory.name_ro.label("service_name"),
            ServiceCategory.slug.label("service_slug"),
            InstallerProfile.business_name.label("installer_business_name"),
            InstallerOwner.name.label("installer_owner_name"),
        )
        .join(User, User.id == Review.customer_id)
        .join(InstallerProfile, InstallerProfile.id == Review.installer_profile_id)
        .join(InstallerOwner, InstallerOwner.id == InstallerProfile.user_id)
        .outerjoin(ServiceCategory, ServiceCategory.id == Review.service_category_id)
    )


def review_row_to_dict(row) -> dict:
    review: Review = row[0]
    return {
        "id": review.id,
        "installer_profile_id": review.installer_profile_id,
        "customer_id": review.customer_id,
        "service_category_id": review.service_category_id,
        "rating": review.rating,
        "title": review.title,
        "comment": review.comment,
        "work_completed_at": review.work_completed_at,
        "is_verified": review.is_verified,
        "helpful_count": review.helpful_count,
        "created_at": review.created_at,
        "updated_at": review.updated_at,
        "customer_name": row.customer_name,
        "customer_avatar": row.customer_avatar,
        "service_name": row.service_name,
        "service_slug": row.service_slug,
        "installer_name": installer_display_name(row.installer_business_name, row.installer_owner_name),
    }


async def get_review(db: AsyncSession, review_id) -> dict | None:
    result = await db.execute(
        review_select().where(Review.id == review_id).execution_options(populate_existing=True)
    )
    row = result.first()
    return review_row_to_dict(row) if row is not None else None


async def list_reviews(
    db: AsyncSession, conditions: list, page: PageRequest, sort: str | None = None
) -> tuple[list[dict], Pagination]:
    """One page of reviews matching ``conditions``, counted under the same conditions."""
    total = await db.scalar(select(func.count(Review.id)).where(*conditions))
    total = int(total or 0)
    if total == 0:
        return [], Pagination.build(page, 0)

    result = await db.execute(
        review_select()
        .where(*conditions)
        .order_by(*review_order_by(sort))
        .limit(page.limit)
        .offset(page.offset)
    )
    return [review_row_to_dict(row) for row in result.all()], Pagination.build(page, total)
