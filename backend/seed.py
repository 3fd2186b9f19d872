"""Seed script for the Instalatori backend.

Creates reference data and a small demo marketplace:
- a handful of counties with their main cities
- the service taxonomy (two levels)
- 3 installers with offerings and service areas, 2 customers, a few reviews

Idempotent: rows are looked up by their natural key before being created.
Run with: python seed.py
"""

import asyncio
import sys
import uuid

from app.config import settings

if settings.APP_ENV == "production":
    print("ERROR: Cannot seed production database.")
    sys.exit(1)

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import async_session
from app.models.catalog import City, Region, ServiceCategory
from app.models.enums import RegionType, UserRole
from app.models.installer_profile import InstallerProfile
from app.models.installer_service import InstallerService, InstallerServiceArea
from app.models.review import Review
from app.models.user import User

REGIONS = [
    {"name": "București", "code": "B", "type": RegionType.MUNICIPALITY,
     "cities": [("București", "010011", 44.426767, 26.102538, 1716961)]},
    {"name": "Cluj", "code": "CJ", "type": RegionType.COUNTY,
     "cities": [("Cluj-Napoca", "400001", 46.770439, 23.591423, 286598), ("Turda", "401001", 46.566667, 23.783333, 47744)]},
    {"name": "Iași", "code": "IS", "type": RegionType.COUNTY,
     "cities": [("Iași", "700001", 47.158455, 27.601442, 271692), ("Pașcani", "705200", 47.25, 26.716667, 33745)]},
    {"name": "Timiș", "code": "TM", "type": RegionType.COUNTY,
     "cities": [("Timișoara", "300001", 45.756064, 21.228757, 250849), ("Lugoj", "305500", 45.688611, 21.903056, 37321)]},
]

# (slug, name_ro, name_en, icon, children)
SERVICES = [
    ("instalatii-sanitare", "Instalații sanitare", "Plumbing", "droplet", [
        ("reparatii-tevi", "Reparații țevi", "Pipe repairs"),
        ("montaj-obiecte-sanitare", "Montaj obiecte sanitare", "Bathroom fixtures"),
    ]),
    ("instalatii-electrice", "Instalații electrice", "Electrical", "zap", [
        ("tablouri-electrice", "Tablouri electrice", "Electrical panels"),
        ("iluminat", "Iluminat", "Lighting"),
    ]),
    ("termice", "Instalații termice", "Heating", "flame", [
        ("centrale-termice", "Centrale termice", "Boilers"),
    ]),
    ("climatizare", "Climatizare", "Air conditioning", "wind", []),
]

CUSTOMERS = [
    {"email": "ana.popescu@example.ro", "name": "Ana Popescu", "phone": "+40700000001"},
    {"email": "mihai.ionescu@example.ro", "name": "Mihai Ionescu", "phone": "+40700000002"},
]

INSTALLERS = [
    {
        "email": "ion.stan@example.ro", "name": "Ion Stan", "phone": "+40700000010",
        "business_name": "Stan Instal SRL", "bio": "Instalații sanitare și termice în București.",
        "years_experience": 12, "is_verified": True,
        "services": ["instalatii-sanitare", "centrale-termice"], "primary": "instalatii-sanitare",
        "cities": ["București"],
    },
    {
        "email": "andrei.muresan@example.ro", "name": "Andrei Mureșan", "phone": "+40700000011",
        "business_name": "Electro Mureșan", "bio": "Electrician autorizat ANRE, Cluj și împrejurimi.",
        "years_experience": 8, "is_verified": False,
        "services": ["instalatii-electrice", "iluminat"], "primary": "instalatii-electrice",
        "cities": ["Cluj-Napoca", "Turda"],
    },
    {
        "email": "vlad.georgescu@example.ro", "name": "Vlad Georgescu", "phone": "+40700000012",
        "business_name": "Clima Vest", "bio": "Montaj și service aer condiționat.",
        "years_experience": 5, "is_verified": True,
        "services": ["climatizare"], "primary": "climatizare",
        "cities": ["Timișoara", "Lugoj"],
    },
]

# (customer email, installer email, rating, title, comment)
REVIEWS = [
    ("ana.popescu@example.ro", "ion.stan@example.ro", 5, "Foarte profesionist",
     "A venit la timp și a rezolvat problema rapid."),
    ("mihai.ionescu@example.ro", "ion.stan@example.ro", 4, "Recomand",
     "Lucrare curată, preț corect, a durat puțin mai mult."),
    ("ana.popescu@example.ro", "andrei.muresan@example.ro", 5, "Excelent",
     "Tabloul electric refăcut complet, totul funcționează perfect."),
]


async def _get_or_create_user(db: AsyncSession, data: dict, role: UserRole) -> User:
    user = await db.scalar(select(User).where(User.email == data["email"]))
    if user:
        print(f"  [skip] User {data['email']} already exists")
        return user
    user = User(id=uuid.uuid4(), email=data["email"], name=data["name"], phone=data["phone"], role=role)
    db.add(user)
    await db.flush()
    print(f"  [created] User {data['email']} ({role.value})")
    return user


async def seed() -> None:
    async with async_session() as db:
        cities: dict[str, City] = {}
        for region_data in REGIONS:
            region = await db.scalar(select(Region).where(Region.code == region_data["code"]))
            if region is None:
                region = Region(name=region_data["name"], code=region_data["code"], type=region_data["type"])
                db.add(region)
                await db.flush()
                print(f"  [created] Region {region.name}")
            for name, postal_code, lat, lng, population in region_data["cities"]:
                city = await db.scalar(select(City).where(City.name == name, City.region_id == region.id))
                if city is None:
                    city = City(
                        name=name, region_id=region.id, postal_code=postal_code,
                        latitude=lat, longitude=lng, population=population,
                    )
                    db.add(city)
                    await db.flush()
                cities[name] = city

        categories: dict[str, ServiceCategory] = {}
        for order, (slug, name_ro, name_en, icon, children) in enumerate(SERVICES):
            parent = await db.scalar(select(ServiceCategory).where(ServiceCategory.slug == slug))
            if parent is None:
                parent = ServiceCategory(slug=slug, name_ro=name_ro, name_en=name_en, icon=icon, display_order=order)
                db.add(parent)
                await db.flush()
                print(f"  [created] Service category {slug}")
            categories[slug] = parent
            for child_order, (child_slug, child_ro, child_en) in enumerate(children):
                child = await db.scalar(select(ServiceCategory).where(ServiceCategory.slug == child_slug))
                if child is None:
                    child = ServiceCategory(
                        slug=child_slug, name_ro=child_ro, name_en=child_en,
                        parent_id=parent.id, display_order=child_order,
                    )
                    db.add(child)
                    await db.flush()
                categories[child_slug] = child

        users: dict[str, User] = {}
        for data in CUSTOMERS:
            users[data["email"]] = await _get_or_create_user(db, data, UserRole.CUSTOMER)

        profiles: dict[str, InstallerProfile] = {}
        for data in INSTALLERS:
            user = await _get_or_create_user(db, data, UserRole.INSTALLER)
            profile = await db.scalar(select(InstallerProfile).where(InstallerProfile.user_id == user.id))
            if profile is None:
                profile = InstallerProfile(
                    id=uuid.uuid4(),
                    user_id=user.id,
                    business_name=data["business_name"],
                    bio=data["bio"],
                    years_experience=data["years_experience"],
                    is_verified=data["is_verified"],
                    profile_completed=True,
                )
                db.add(profile)
                await db.flush()
                for slug in data["services"]:
                    db.add(InstallerService(
                        installer_profile_id=profile.id,
                        service_category_id=categories[slug].id,
                        is_primary=slug == data["primary"],
                    ))
                for city_name in data["cities"]:
                    db.add(InstallerServiceArea(installer_profile_id=profile.id, city_id=cities[city_name].id))
                await db.flush()
                print(f"  [created] InstallerProfile {data['business_name']}")
            profiles[data["email"]] = profile

        for customer_email, installer_email, rating, title, comment in REVIEWS:
            customer = users[customer_email]
            profile = profiles[installer_email]
            existing = await db.scalar(
                select(Review.id).where(Review.customer_id == customer.id, Review.installer_profile_id == profile.id)
            )
            if existing:
                continue
            db.add(Review(
                installer_profile_id=profile.id,
                customer_id=customer.id,
                rating=rating,
                title=title,
                comment=comment,
            ))
        await db.flush()

        await db.commit()
        print("\nSeed completed successfully.")


if __name__ == "__main__":
    print("Seeding Instalatori database...")
    asyncio.run(seed())
