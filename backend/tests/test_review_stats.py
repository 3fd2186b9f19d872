import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.installer_profile import InstallerProfile
from app.services.review_stats import stats_for
from tests.conftest import add_reviews, make_installer


@pytest.mark.asyncio
async def test_zero_reviews(db: AsyncSession, installer_profile: InstallerProfile):
    """No reviews: average is exactly 0 and all five buckets exist."""
    stats = await stats_for(db, installer_profile.id)
    assert stats.average_rating == 0
    assert isinstance(stats.average_rating, float)
    assert stats.total_reviews == 0
    assert stats.distribution == {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}


@pytest.mark.asyncio
async def test_unknown_installer_has_empty_stats(db: AsyncSession):
    stats = await stats_for(db, uuid.uuid4())
    assert stats.to_dict() == {
        "average_rating": 0.0,
        "total_reviews": 0,
        "distribution": {1: 0, 2: 0, 3: 0, 4: 0, 5: 0},
    }


@pytest.mark.asyncio
async def test_average_and_distribution(db: AsyncSession, installer_profile: InstallerProfile):
    await add_reviews(db, installer_profile, [5, 4, 4, 1])
    stats = await stats_for(db, installer_profile.id)
    assert stats.average_rating == pytest.approx(3.5)
    assert stats.total_reviews == 4
    assert stats.distribution == {1: 1, 2: 0, 3: 0, 4: 2, 5: 1}


@pytest.mark.asyncio
async def test_stats_only_count_own_reviews(db: AsyncSession, installer_profile: InstallerProfile):
    other = await make_installer(db, "Vlad Georgescu")
    await add_reviews(db, other, [1, 1])
    await add_reviews(db, installer_profile, [5])
    stats = await stats_for(db, installer_profile.id)
    assert stats.average_rating == 5.0
    assert stats.total_reviews == 1
