import uuid
from dataclasses import dataclass, field

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.installer_profile import InstallerProfile
from app.models.review import Review

RATING_VALUES = (1, 2, 3, 4, 5)


def average_rating_expr():
    """Correlated scalar subquery: live average rating of the outer installer row, 0 when unrated."""
    return (
        select(func.coalesce(func.avg(Review.rating), 0))
        .where(Review.installer_profile_id == InstallerProfile.id)
        .correlate(InstallerProfile)
        .scalar_subquery()
    )


def review_count_expr():
    """Correlated scalar subquery: number of reviews of the outer installer row."""
    return (
        select(func.count(Review.id))
        .where(Review.installer_profile_id == InstallerProfile.id)
        .correlate(InstallerProfile)
        .scalar_subquery()
    )


@dataclass
class ReviewStats:
    average_rating: float = 0.0
    total_reviews: int = 0
    distribution: dict[int, int] = field(default_factory=lambda: {r: 0 for r in RATING_VALUES})

    def to_dict(self) -> dict:
        return {
            "average_rating": self.average_rating,
            "total_reviews": self.total_reviews,
            "distribution": dict(self.distribution),
        }


async def stats_for(db: AsyncSession, installer_id: uuid.UUID) -> ReviewStats:
    """Average, count and 1..5 histogram for one installer, from live review rows."""
    result = await db.execute(
        select(Review.rating, func.count(Review.id))
        .where(Review.installer_profile_id == installer_id)
        .group_by(Review.rating)
    )
    stats = ReviewStats()
    rating_sum = 0
    for rating, count in result.all():
        if rating in stats.distribution:
            stats.distribution[rating] = int(count)
        rating_sum += rating * count
        stats.total_reviews += int(count)

    if stats.total_reviews:
        stats.average_rating = rating_sum / stats.total_reviews
    return stats
