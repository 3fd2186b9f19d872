import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.catalog import City
from app.utils.rate_limit import LIST_RATE_LIMIT


@pytest.mark.asyncio
async def test_service_tree(client: AsyncClient, catalog: dict):
    response = await client.get("/services")
    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 3
    assert [node["slug"] for node in body["data"]] == ["instalatii-sanitare", "instalatii-electrice"]
    electrical = body["data"][1]
    assert [child["id"] for child in electrical["subcategories"]] == [7]
    assert electrical["subcategories"][0]["parent_id"] == 5
    assert body["data"][0]["subcategories"] == []


@pytest.mark.asyncio
async def test_inactive_categories_are_hidden(client: AsyncClient, catalog: dict):
    slugs = {node["slug"] for node in (await client.get("/services")).json()["data"]}
    assert "sobe" not in slugs


@pytest.mark.asyncio
async def test_regions(client: AsyncClient, catalog: dict):
    body = (await client.get("/locations/regions")).json()
    assert body["count"] == 2
    assert [(r["name"], r["code"], r["type"]) for r in body["data"]] == [
        ("Cluj", "CJ", "county"),
        ("Timiș", "TM", "county"),
    ]


@pytest.mark.asyncio
async def test_cities_largest_first(client: AsyncClient, db: AsyncSession, catalog: dict):
    db.add(City(name="Apahida", region_id=catalog["regions"]["cluj"].id))
    await db.flush()

    body = (await client.get("/locations/cities")).json()
    assert [c["name"] for c in body["data"]] == ["Cluj-Napoca", "Timișoara", "Turda", "Apahida"]
    assert body["data"][1]["region_code"] == "TM"


@pytest.mark.asyncio
async def test_cities_of_one_region(client: AsyncClient, catalog: dict):
    cluj = catalog["regions"]["cluj"]
    body = (await client.get("/locations/cities", params={"region_id": cluj.id})).json()
    assert body["count"] == 2
    assert {c["region_name"] for c in body["data"]} == {"Cluj"}


@pytest.mark.asyncio
async def test_cities_bad_region_id(client: AsyncClient, catalog: dict):
    response = await client.get("/locations/cities", params={"region_id": "0"})
    assert response.status_code == 400
    assert response.json()["details"][0]["field"] == "region_id"


@pytest.mark.asyncio
async def test_rate_limited_response_uses_error_envelope(client: AsyncClient, catalog: dict):
    allowed = int(LIST_RATE_LIMIT.split("/")[0])
    for _ in range(allowed):
        assert (await client.get("/locations/regions")).status_code == 200

    response = await client.get("/locations/regions")
    assert response.status_code == 429
    body = response.json()
    assert body["success"] is False
    assert body["error"].startswith("Rate limit exceeded")
