import os
import uuid
from collections.abc import AsyncGenerator

os.environ.setdefault("JWT_SECRET", "test-secret-for-unit-tests-minimum-32-chars")

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.auth.service import create_access_token
from app.database import Base, get_db
from app.main import app
from app.models.catalog import City, Region, ServiceCategory
from app.models.enums import RegionType, UserRole
from app.models.installer_profile import InstallerProfile
from app.models.installer_service import InstallerService, InstallerServiceArea
from app.models.review import Review
from app.models.user import User

# Use SQLite for tests (in-memory, one shared connection)
TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

engine = create_async_engine(TEST_DB_URL, echo=False, poolclass=StaticPool)
test_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


# pysqlite's own transaction handling breaks SAVEPOINT; take over BEGIN so
# nested transactions behave as on PostgreSQL.
@event.listens_for(engine.sync_engine, "connect")
def _sqlite_connect(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@event.listens_for(engine.sync_engine, "begin")
def _sqlite_begin(conn):
    conn.exec_driver_sql("BEGIN")


@pytest_asyncio.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with test_session() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    # Reset rate limiter storage between tests to avoid 429 errors
    from app.utils.rate_limit import limiter
    limiter.reset()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def make_user(db: AsyncSession, role: UserRole, name: str, **kwargs) -> User:
    user = User(
        id=uuid.uuid4(),
        email=f"{uuid.uuid4().hex[:8]}@example.ro",
        name=name,
        role=role,
        **kwargs,
    )
    db.add(user)
    await db.flush()
    return user


async def make_installer(
    db: AsyncSession,
    name: str = "Ion Stan",
    *,
    business_name: str | None = None,
    bio: str | None = None,
    completed: bool = True,
    verified: bool = False,
    available: bool = True,
    services: list[int] | None = None,
    primary: int | None = None,
    cities: list[int] | None = None,
) -> InstallerProfile:
    user = await make_user(db, UserRole.INSTALLER, name)
    profile = InstallerProfile(
        id=uuid.uuid4(),
        user_id=user.id,
        business_name=business_name,
        bio=bio,
        is_verified=verified,
        is_available=available,
        profile_completed=completed,
    )
    db.add(profile)
    await db.flush()
    for service_id in services or []:
        db.add(
            InstallerService(
                installer_profile_id=profile.id,
                service_category_id=service_id,
                is_primary=service_id == primary,
            )
        )
    for city_id in cities or []:
        db.add(InstallerServiceArea(installer_profile_id=profile.id, city_id=city_id))
    await db.flush()
    return profile


async def add_reviews(db: AsyncSession, profile: InstallerProfile, ratings: list[int]) -> list[Review]:
    reviews = []
    for rating in ratings:
        customer = await make_user(db, UserRole.CUSTOMER, "Client")
        review = Review(
            installer_profile_id=profile.id,
            customer_id=customer.id,
            rating=rating,
            title="Lucrare bună",
            comment="Totul a decurs foarte bine.",
        )
        db.add(review)
        reviews.append(review)
    await db.flush()
    return reviews


@pytest_asyncio.fixture
async def catalog(db: AsyncSession) -> dict:
    """Two regions with cities and a small service taxonomy.

    Category ids are fixed (3, 5, 7, 9) so tests can refer to them directly.
    """
    cluj = Region(name="Cluj", code="CJ", type=RegionType.COUNTY)
    timis = Region(name="Timiș", code="TM", type=RegionType.COUNTY)
    db.add_all([cluj, timis])
    await db.flush()

    cluj_napoca = City(name="Cluj-Napoca", region_id=cluj.id, population=286598)
    turda = City(name="Turda", region_id=cluj.id, population=47744)
    timisoara = City(name="Timișoara", region_id=timis.id, population=250849)
    db.add_all([cluj_napoca, turda, timisoara])
    await db.flush()

    plumbing = ServiceCategory(id=3, name_ro="Instalații sanitare", slug="instalatii-sanitare", display_order=0)
    electrical = ServiceCategory(id=5, name_ro="Instalații electrice", slug="instalatii-electrice", display_order=1)
    db.add_all([plumbing, electrical])
    await db.flush()
    lighting = ServiceCategory(id=7, name_ro="Iluminat", slug="iluminat", parent_id=5, display_order=0)
    retired = ServiceCategory(id=9, name_ro="Sobe", slug="sobe", is_active=False, display_order=2)
    db.add_all([lighting, retired])
    await db.flush()

    return {
        "regions": {"cluj": cluj, "timis": timis},
        "cities": {"cluj_napoca": cluj_napoca, "turda": turda, "timisoara": timisoara},
        "services": {"plumbing": plumbing, "electrical": electrical, "lighting": lighting, "retired": retired},
    }


@pytest_asyncio.fixture
async def customer_user(db: AsyncSession) -> User:
    return await make_user(db, UserRole.CUSTOMER, "Ana Popescu", phone="+40700000001")


@pytest_asyncio.fixture
async def installer_profile(db: AsyncSession, catalog: dict) -> InstallerProfile:
    return await make_installer(
        db,
        "Andrei Mureșan",
        business_name="Electro Mureșan",
        bio="Electrician autorizat",
        services=[5],
        primary=5,
        cities=[catalog["cities"]["cluj_napoca"].id],
    )


def token_for(user_id) -> str:
    return create_access_token(str(user_id))


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
