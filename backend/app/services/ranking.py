from sqlalchemy import ColumnElement

from app.models.enums import InstallerSort, ReviewSort
from app.models.installer_profile import InstallerProfile
from app.models.review import Review
from app.services.review_stats import average_rating_expr, review_count_expr


def _coerce(enum_cls, raw: str | None, default):
    try:
        return enum_cls(raw)
    except ValueError:
        return default


def resolve_installer_sort(raw: str | None) -> InstallerSort:
    """Unknown or missing keys fall back to rating order."""
    return _coerce(InstallerSort, raw, InstallerSort.RATING)


def installer_order_by(raw: str | None) -> list[ColumnElement]:
    """ORDER BY for installer search; always ends on the id so pages never reshuffle ties."""
    sort = resolve_installer_sort(raw)
    if sort is InstallerSort.REVIEWS:
        return [review_count_expr().desc(), InstallerProfile.id.asc()]
    return [
        average_rating_expr().desc(),
        InstallerProfile.is_verified.desc(),
        InstallerProfile.id.asc(),
    ]


def resolve_review_sort(raw: str | None) -> ReviewSort:
    return _coerce(ReviewSort, raw, ReviewSort.NEWEST)


def review_order_by(raw: str | None) -> list[ColumnElement]:
    sort = resolve_review_sort(raw)
    if sort is ReviewSort.HIGHEST:
        keys = [Review.rating.desc(), Review.created_at.desc()]
    elif sort is ReviewSort.LOWEST:
        keys = [Review.rating.asc(), Review.created_at.desc()]
    elif sort is ReviewSort.HELPFUL:
        keys = [Review.helpful_count.desc(), Review.created_at.desc()]
    else:
        keys = [Review.created_at.desc()]
    return keys + [Review.id.asc()]
