"""Read-side queries shared by installer search and the profile endpoints."""

import uuid
from collections import defaultdict
from collections.abc import Sequence

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import NotFound
from app.models.catalog import City, Region, ServiceCategory
from app.models.installer_profile import InstallerProfile
from app.models.installer_service import InstallerService, InstallerServiceArea
from app.models.user import User
from app.services.review_stats import average_rating_expr, review_count_expr, stats_for


def installer_select() -> Select:
    """Installer rows joined to their owner, with live rating columns."""
    return (
        select(
            InstallerProfile,
            User.name,
            User.phone,
            User.avatar_url,
            average_rating_expr().label("average_rating"),
            review_count_expr().label("review_count"),
        )
        .join(User, User.id == InstallerProfile.user_id)
    )


def row_to_dict(row) -> dict:
    profile: InstallerProfile = row[0]
    return {
        "id": profile.id,
        "user_id": profile.user_id,
        "business_name": profile.business_name,
        "bio": profile.bio,
        "years_experience": profile.years_experience,
        "is_verified": profile.is_verified,
        "is_available": profile.is_available,
        "profile_completed": profile.profile_completed,
        "created_at": profile.created_at,
        "updated_at": profile.updated_at,
        "name": row.name,
        "phone": row.phone,
        "avatar_url": row.avatar_url,
        # avg() comes back as Decimal on PostgreSQL
        "average_rating": float(row.average_rating or 0),
        "review_count": int(row.review_count or 0),
        "services": [],
        "cities": [],
    }


async def load_services(db: AsyncSession, installer_ids: Sequence[uuid.UUID]) -> dict[uuid.UUID, list[dict]]:
    """Service offerings per installer, primary first then by Romanian name."""
    if not installer_ids:
        return {}
    result = await db.execute(
        select(
            InstallerService.installer_profile_id,
            ServiceCategory.id,
            ServiceCategory.name_ro,
            ServiceCategory.slug,
            InstallerService.is_primary,
        )
        .join(ServiceCategory, ServiceCategory.id == InstallerService.service_category_id)
        .where(InstallerService.installer_profile_id.in_(installer_ids))
        .order_by(InstallerService.is_primary.desc(), ServiceCategory.name_ro.asc(), ServiceCategory.id.asc())
    )
    grouped: dict[uuid.UUID, list[dict]] = defaultdict(list)
    for installer_id, category_id, name_ro, slug, is_primary in result.all():
        grouped[installer_id].append(
            {"id": category_id, "name_ro": name_ro, "slug": slug, "is_primary": bool(is_primary)}
        )
    return grouped


async def load_service_areas(db: AsyncSession, installer_ids: Sequence[uuid.UUID]) -> dict[uuid.UUID, list[dict]]:
    """Served cities per installer, alphabetical, with the region name."""
    if not installer_ids:
        return {}
    result = await db.execute(
        select(InstallerServiceArea.installer_profile_id, City.id, City.name, Region.name)
        .join(City, City.id == InstallerServiceArea.city_id)
        .join(Region, Region.id == City.region_id)
        .where(InstallerServiceArea.installer_profile_id.in_(installer_ids))
        .order_by(City.name.asc(), City.id.asc())
    )
    grouped: dict[uuid.UUID, list[dict]] = defaultdict(list)
    for installer_id, city_id, city_name, region_name in result.all():
        grouped[installer_id].append({"id": city_id, "name": city_name, "region_name": region_name})
    return grouped


async def attach_collections(db: AsyncSession, items: list[dict]) -> list[dict]:
    ids = [item["id"] for item in items]
    services = await load_services(db, ids)
    areas = await load_service_areas(db, ids)
    for item in items:
        item["services"] = services.get(item["id"], [])
        item["cities"] = areas.get(item["id"], [])
    return items


async def get_installer_detail(db: AsyncSession, installer_id: uuid.UUID) -> dict:
    """Full profile with offerings, areas and review stats. Raises NotFound."""
    result = await db.execute(
        installer_select()
        .where(InstallerProfile.id == installer_id)
        .execution_options(populate_existing=True)
    )
    row = result.first()
    if row is None:
        raise NotFound("Installer not found")

    item = row_to_dict(row)
    await attach_collections(db, [item])
    item["stats"] = (await stats_for(db, installer_id)).to_dict()
    return item
