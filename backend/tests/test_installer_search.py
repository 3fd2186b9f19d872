import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import SearchFailed, ValidationError
from app.services.installer_search import InstallerSearchService
from tests.conftest import add_reviews, make_installer


async def _search(db: AsyncSession, **params):
    return await InstallerSearchService(db).search({k: str(v) for k, v in params.items()})


@pytest.mark.asyncio
async def test_service_and_rating_scenario(db: AsyncSession, catalog: dict):
    """Only installers offering service 3 with an average of at least 4.5 match."""
    top = await make_installer(db, "Ion Stan", services=[3])
    await add_reviews(db, top, [5, 5])
    edge = await make_installer(db, "Mihai Pop", services=[3, 5])
    await add_reviews(db, edge, [5, 4])
    too_low = await make_installer(db, "Dan Radu", services=[3])
    await add_reviews(db, too_low, [4])
    other_service = await make_installer(db, "Radu Ene", services=[5])
    await add_reviews(db, other_service, [5])
    hidden = await make_installer(db, "Ilie Neagu", services=[3], completed=False)
    await add_reviews(db, hidden, [5])

    result = await _search(db, service_id=3, rating_min=4.5, page=1, limit=12)

    assert len(result.data) == 2
    assert result.pagination.total == 2
    assert result.pagination.total_pages == 1
    assert [item["id"] for item in result.data] == [top.id, edge.id]
    assert result.data[0]["average_rating"] == 5.0
    assert result.data[1]["review_count"] == 2


@pytest.mark.asyncio
async def test_total_matches_rows_when_everything_fits(db: AsyncSession, catalog: dict):
    cluj = catalog["cities"]["cluj_napoca"].id
    for i in range(5):
        await make_installer(db, f"Instalator {i}", cities=[cluj], available=i % 2 == 0)
    await make_installer(db, "Altundeva", cities=[catalog["cities"]["timisoara"].id])

    for params in ({}, {"city_id": cluj}, {"available": "true"}, {"region_id": catalog["regions"]["cluj"].id}):
        result = await _search(db, limit=50, **params)
        assert result.pagination.total == len(result.data)

    assert (await _search(db, city_id=cluj)).pagination.total == 5
    assert (await _search(db, city_id=cluj, available="true")).pagination.total == 3
    assert (await _search(db, region_id=catalog["regions"]["timis"].id)).pagination.total == 1


@pytest.mark.asyncio
async def test_last_page_of_25(db: AsyncSession):
    for i in range(25):
        await make_installer(db, f"Instalator {i:02d}")

    result = await _search(db, page=3, limit=12)
    assert len(result.data) == 1
    assert result.pagination.total == 25
    assert result.pagination.total_pages == 3
    assert result.pagination.has_more is False


@pytest.mark.asyncio
async def test_pages_do_not_overlap_on_ties(db: AsyncSession):
    """Unrated installers all tie on rating; the id tie-break keeps pages disjoint."""
    for i in range(7):
        await make_installer(db, f"Instalator {i}")

    seen = []
    for page in (1, 2, 3):
        seen += [item["id"] for item in (await _search(db, page=page, limit=3)).data]
    assert len(seen) == 7
    assert len(set(seen)) == 7


@pytest.mark.asyncio
async def test_rating_sort_prefers_verified_on_equal_average(db: AsyncSession):
    plain = await make_installer(db, "Neverificat")
    verified = await make_installer(db, "Verificat", verified=True)
    best = await make_installer(db, "Cel mai bun")
    await add_reviews(db, plain, [4])
    await add_reviews(db, verified, [4])
    await add_reviews(db, best, [5])

    ids = [item["id"] for item in (await _search(db)).data]
    assert ids == [best.id, verified.id, plain.id]


@pytest.mark.asyncio
async def test_reviews_sort_and_unknown_sort(db: AsyncSession):
    few = await make_installer(db, "Putine")
    many = await make_installer(db, "Multe")
    await add_reviews(db, few, [5])
    await add_reviews(db, many, [3, 3, 3])

    by_reviews = [item["id"] for item in (await _search(db, sort="reviews")).data]
    assert by_reviews == [many.id, few.id]

    by_rating = [item["id"] for item in (await _search(db, sort="rating")).data]
    by_unknown = [item["id"] for item in (await _search(db, sort="price")).data]
    assert by_rating == by_unknown == [few.id, many.id]


@pytest.mark.asyncio
async def test_search_matches_business_owner_and_bio(db: AsyncSession):
    by_business = await make_installer(db, "Ion", business_name="Termo Expert")
    by_owner = await make_installer(db, "Termopan Ionescu")
    by_bio = await make_installer(db, "Vasile", bio="Specialist TERMOSISTEME si centrale")
    await make_installer(db, "Electrician", business_name="Electro SRL")

    ids = {item["id"] for item in (await _search(db, search="termo")).data}
    assert ids == {by_business.id, by_owner.id, by_bio.id}


@pytest.mark.asyncio
async def test_search_wildcards_are_literal(db: AsyncSession):
    await make_installer(db, "Ion", business_name="Reducere 50% Instal")
    await make_installer(db, "Ana", business_name="Instal Plus")

    assert (await _search(db, search="50%")).pagination.total == 1
    assert (await _search(db, search="%")).pagination.total == 1
    assert (await _search(db, search="_")).pagination.total == 0


@pytest.mark.asyncio
async def test_results_carry_ordered_services_and_cities(db: AsyncSession, catalog: dict):
    cities = catalog["cities"]
    profile = await make_installer(
        db,
        "Ion",
        services=[5, 3, 7],
        primary=5,
        cities=[cities["turda"].id, cities["cluj_napoca"].id, cities["timisoara"].id],
    )

    item = (await _search(db)).data[0]
    assert item["id"] == profile.id
    assert [s["id"] for s in item["services"]] == [5, 7, 3]
    assert [s["is_primary"] for s in item["services"]] == [True, False, False]
    assert [c["name"] for c in item["cities"]] == ["Cluj-Napoca", "Timișoara", "Turda"]
    assert item["cities"][1]["region_name"] == "Timiș"


@pytest.mark.asyncio
async def test_page_past_the_end_is_empty(db: AsyncSession):
    await make_installer(db, "Ion")
    result = await _search(db, page=5)
    assert result.data == []
    assert result.pagination.total == 1
    assert result.pagination.total_pages == 1


@pytest.mark.asyncio
async def test_validation_errors_propagate(db: AsyncSession):
    with pytest.raises(ValidationError):
        await _search(db, service_id="abc")
    with pytest.raises(ValidationError):
        await _search(db, page="two")


@pytest.mark.asyncio
async def test_database_failure_degrades_to_empty_result(db: AsyncSession, monkeypatch):
    await make_installer(db, "Ion")

    async def broken(*args, **kwargs):
        raise OperationalError("SELECT count(*)", {}, Exception("connection reset"))

    monkeypatch.setattr(AsyncSession, "scalar", broken)

    result = await _search(db, page=2, limit=5)
    assert result.data == []
    assert result.to_dict()["pagination"] == {
        "page": 2,
        "limit": 5,
        "total": 0,
        "totalPages": 0,
        "hasMore": False,
    }

    with pytest.raises(SearchFailed):
        await InstallerSearchService(db).search({}, strict=True)
