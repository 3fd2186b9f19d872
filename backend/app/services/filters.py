"""Installer search filters as a list of typed predicates.

Each predicate owns its bound values through named ``bindparam``s, so the
caller only AND-s the clauses together: the same list can feed the COUNT and
the page SELECT without any positional parameter bookkeeping.
"""

from dataclasses import dataclass

from sqlalchemy import ColumnElement, and_, bindparam, or_, select

from app.models.catalog import City
from app.models.installer_profile import InstallerProfile
from app.models.installer_service import InstallerService, InstallerServiceArea
from app.models.user import User
from app.schemas.installer import InstallerSearchParams
from app.services.review_stats import average_rating_expr

LIKE_ESCAPE = "\\"


@dataclass(frozen=True)
class Predicate:
    name: str
    clause: ColumnElement[bool]


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user text is matched literally."""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def build_installer_predicates(params: InstallerSearchParams) -> list[Predicate]:
    """Translate validated search params into predicates over installer_profiles JOIN users.

    Only completed profiles are ever visible, so that predicate is always first.
    Absent params contribute nothing.
    """
    predicates = [Predicate("profile_completed", InstallerProfile.profile_completed == True)]  # noqa: E712

    if params.search:
        # One bound slot shared by the three comparisons.
        term = bindparam("search_term", f"%{escape_like(params.search)}%")
        predicates.append(
            Predicate(
                "search",
                or_(
                    InstallerProfile.business_name.ilike(term, escape=LIKE_ESCAPE),
                    User.name.ilike(term, escape=LIKE_ESCAPE),
                    InstallerProfile.bio.ilike(term, escape=LIKE_ESCAPE),
                ),
            )
        )

    if params.service_id is not None:
        offered = (
            select(InstallerService.id)
            .where(
                InstallerService.installer_profile_id == InstallerProfile.id,
                InstallerService.service_category_id == bindparam("service_id", params.service_id),
            )
            .exists()
        )
        predicates.append(Predicate("service", offered))

    if params.city_id is not None:
        serves_city = (
            select(InstallerServiceArea.id)
            .where(
                InstallerServiceArea.installer_profile_id == InstallerProfile.id,
                InstallerServiceArea.city_id == bindparam("city_id", params.city_id),
            )
            .exists()
        )
        predicates.append(Predicate("city", serves_city))

    if params.region_id is not None:
        serves_region = (
            select(InstallerServiceArea.id)
            .join(City, City.id == InstallerServiceArea.city_id)
            .where(
                InstallerServiceArea.installer_profile_id == InstallerProfile.id,
                City.region_id == bindparam("region_id", params.region_id),
            )
            .exists()
        )
        predicates.append(Predicate("region", serves_region))

    if params.rating_min is not None:
        predicates.append(
            Predicate("rating_min", average_rating_expr() >= bindparam("rating_min", params.rating_min))
        )

    if params.available:
        predicates.append(Predicate("available", InstallerProfile.is_available == True))  # noqa: E712

    return predicates


def combine(predicates: list[Predicate]) -> ColumnElement[bool]:
    return and_(*[p.clause for p in predicates])
