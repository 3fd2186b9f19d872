"""Atomic installer profile updates.

Scalar fields, service offerings and service areas are written in a single
unit: either every applicable step lands or none does.
"""

import time
import uuid

import structlog
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.database import transaction
from app.errors import ConflictError, Forbidden, NotFound, UpdateFailed, ValidationError
from app.metrics import PROFILE_UPDATE_DURATION, PROFILE_UPDATES
from app.models.catalog import City, ServiceCategory
from app.models.installer_profile import InstallerProfile
from app.models.installer_service import InstallerService, InstallerServiceArea
from app.schemas.installer import InstallerScalars, InstallerUpdateRequest
from app.services.installer_queries import get_installer_detail

logger = structlog.get_logger()


def dedupe(ids: list[int]) -> list[int]:
    """Drop repeated ids, keeping the first occurrence."""
    return list(dict.fromkeys(ids))


def merge_scalars(profile: InstallerProfile, patch: InstallerUpdateRequest) -> InstallerScalars | None:
    """Validate the full scalar set, filling absent fields from the stored row.

    Returns None when the patch carries no scalar field.
    """
    if not patch.scalar_fields_set:
        return None
    merged = {
        "business_name": profile.business_name,
        "bio": profile.bio,
        "years_experience": profile.years_experience,
        "is_available": profile.is_available,
    }
    merged.update(patch.model_dump(include=patch.scalar_fields_set))
    try:
        return InstallerScalars.model_validate(merged)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc)


class ProfileUpdateTransactor:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def update(
        self, installer_id: uuid.UUID, caller_user_id: uuid.UUID, patch: InstallerUpdateRequest
    ) -> dict:
        profile = await self.db.get(InstallerProfile, installer_id)
        if profile is None:
            raise NotFound("Installer not found")
        if profile.user_id != caller_user_id:
            PROFILE_UPDATES.labels(outcome="forbidden").inc()
            raise Forbidden("You can only edit your own profile")

        scalars = merge_scalars(profile, patch)
        service_ids = dedupe(patch.service_category_ids) if patch.service_category_ids is not None else None
        city_ids = dedupe(patch.city_ids) if patch.city_ids is not None else None
        await self._check_known(ServiceCategory, service_ids, "service_category_ids")
        await self._check_known(City, city_ids, "city_ids")

        if scalars is None and service_ids is None and city_ids is None:
            PROFILE_UPDATES.labels(outcome="noop").inc()
            return await get_installer_detail(self.db, installer_id)

        started = time.monotonic()
        try:
            async with transaction(self.db):
                await self._write_scalars(profile, scalars)
                if service_ids is not None:
                    await self._replace_services(installer_id, service_ids, patch.primary_service_id)
                if city_ids is not None:
                    await self._replace_service_areas(installer_id, city_ids)
        except StaleDataError as exc:
            PROFILE_UPDATES.labels(outcome="conflict").inc()
            logger.warning("installer_profile_update_conflict", installer_id=str(installer_id))
            raise ConflictError("Profile was modified by another request, please retry") from exc
        except SQLAlchemyError as exc:
            PROFILE_UPDATES.labels(outcome="failed").inc()
            logger.exception(
                "installer_profile_update_failed",
                installer_id=str(installer_id),
                error_type=type(exc).__name__,
            )
            raise UpdateFailed() from exc
        finally:
            PROFILE_UPDATE_DURATION.observe(time.monotonic() - started)

        PROFILE_UPDATES.labels(outcome="ok").inc()
        logger.info(
            "installer_profile_updated",
            installer_id=str(installer_id),
            scalars=sorted(patch.scalar_fields_set),
            services=len(service_ids) if service_ids is not None else None,
            cities=len(city_ids) if city_ids is not None else None,
        )
        return await get_installer_detail(self.db, installer_id)

    async def _check_known(self, model, ids: list[int] | None, field: str) -> None:
        if not ids:
            return
        found = set((await self.db.scalars(select(model.id).where(model.id.in_(ids)))).all())
        missing = [i for i in ids if i not in found]
        if missing:
            raise ValidationError(
                details=[{"field": field, "message": f"Unknown ids: {', '.join(map(str, missing))}"}]
            )

    async def _write_scalars(self, profile: InstallerProfile, scalars: InstallerScalars | None) -> None:
        if scalars is not None:
            profile.business_name = scalars.business_name
            profile.bio = scalars.bio
            profile.years_experience = scalars.years_experience
            profile.is_available = scalars.is_available
            profile.profile_completed = True
        # Always issue the UPDATE so the version counter moves even for
        # association-only patches.
        profile.updated_at = func.now()
        await self.db.flush()

    async def _replace_services(
        self, installer_id: uuid.UUID, service_ids: list[int], primary_service_id: int | None
    ) -> None:
        await self.db.execute(
            delete(InstallerService).where(InstallerService.installer_profile_id == installer_id)
        )
        if not service_ids:
            return
        await self.db.execute(
            insert(InstallerService),
            [
                {
                    "installer_profile_id": installer_id,
                    "service_category_id": service_id,
                    "is_primary": service_id == primary_service_id,
                }
                for service_id in service_ids
            ],
        )

    async def _replace_service_areas(self, installer_id: uuid.UUID, city_ids: list[int]) -> None:
        await self.db.execute(
            delete(InstallerServiceArea).where(InstallerServiceArea.installer_profile_id == installer_id)
        )
        if not city_ids:
            return
        await self.db.execute(
            insert(InstallerServiceArea),
            [{"installer_profile_id": installer_id, "city_id": city_id} for city_id in city_ids],
        )
