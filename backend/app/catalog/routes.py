"""Reference data: service taxonomy, regions and cities."""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.catalog import City, Region, ServiceCategory
from app.schemas.catalog import (
    CityListResponse,
    RegionListResponse,
    RegionOut,
    ServiceCategoryOut,
    ServiceTreeResponse,
)
from app.utils.rate_limit import LIST_RATE_LIMIT, limiter

router = APIRouter()
locations_router = APIRouter()


def build_category_tree(categories: list[ServiceCategory]) -> list[dict]:
    """Group already-ordered categories under their top-level parents."""
    roots = [c for c in categories if c.parent_id is None]
    children: dict[int, list[dict]] = {}
    for cat in categories:
        if cat.parent_id is not None:
            children.setdefault(cat.parent_id, []).append(
                ServiceCategoryOut.model_validate(cat).model_dump()
            )
    return [
        {**ServiceCategoryOut.model_validate(root).model_dump(), "subcategories": children.get(root.id, [])}
        for root in roots
    ]


@router.get("", response_model=ServiceTreeResponse)
@limiter.limit(LIST_RATE_LIMIT)
async def list_services(request: Request, db: AsyncSession = Depends(get_db)):
    """Active service categories as a two-level tree."""
    result = await db.scalars(
        select(ServiceCategory)
        .where(ServiceCategory.is_active == True)  # noqa: E712
        .order_by(ServiceCategory.display_order.asc(), ServiceCategory.name_ro.asc())
    )
    categories = list(result.all())
    return {"success": True, "data": build_category_tree(categories), "count": len(categories)}


@locations_router.get("/regions", response_model=RegionListResponse)
@limiter.limit(LIST_RATE_LIMIT)
async def list_regions(request: Request, db: AsyncSession = Depends(get_db)):
    result = await db.scalars(select(Region).order_by(Region.name.asc()))
    regions = [RegionOut.model_validate(region) for region in result.all()]
    return {"success": True, "data": regions, "count": len(regions)}


@locations_router.get("/cities", response_model=CityListResponse)
@limiter.limit(LIST_RATE_LIMIT)
async def list_cities(
    request: Request,
    region_id: int | None = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
):
    """Cities, largest first, optionally limited to one region."""
    query = (
        select(City, Region.name, Region.code)
        .join(Region, Region.id == City.region_id)
        .order_by(City.population.desc().nulls_last(), City.name.asc())
    )
    if region_id is not None:
        query = query.where(City.region_id == region_id)

    rows = (await db.execute(query)).all()
    data = [
        {
            "id": city.id,
            "name": city.name,
            "region_id": city.region_id,
            "region_name": region_name,
            "region_code": region_code,
            "postal_code": city.postal_code,
            "latitude": float(city.latitude) if city.latitude is not None else None,
            "longitude": float(city.longitude) if city.longitude is not None else None,
            "population": city.population,
        }
        for city, region_name, region_code in rows
    ]
    return {"success": True, "data": data, "count": len(data)}
