import uuid
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from app.errors import ValidationError
from app.schemas.common import PaginationOut, ReviewStatsOut


class InstallerSearchParams(BaseModel):
    """Raw query-string filters, validated before any predicate is built."""

    model_config = {"str_strip_whitespace": True, "extra": "ignore"}

    search: str | None = Field(None, max_length=255)
    service_id: int | None = Field(None, ge=1)
    city_id: int | None = Field(None, ge=1)
    region_id: int | None = Field(None, ge=1)
    rating_min: float | None = Field(None, ge=0, le=5, allow_inf_nan=False)
    available: bool | None = None
    sort: str | None = None

    @field_validator("*", mode="before")
    @classmethod
    def blank_as_absent(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "InstallerSearchParams":
        try:
            return cls.model_validate(dict(raw))
        except PydanticValidationError as exc:
            raise ValidationError.from_pydantic(exc)


class InstallerUpdateRequest(BaseModel):
    """PATCH body. Fields left out of the body are left untouched."""

    business_name: str | None = None
    bio: str | None = None
    years_experience: int | None = None
    is_available: bool | None = None
    service_category_ids: list[int] | None = None
    primary_service_id: int | None = None
    city_ids: list[int] | None = None

    @field_validator("service_category_ids", "city_ids")
    @classmethod
    def positive_ids(cls, v: list[int] | None) -> list[int] | None:
        if v is not None and any(i < 1 for i in v):
            raise ValueError("ids must be positive integers")
        return v

    @property
    def scalar_fields_set(self) -> set[str]:
        return self.model_fields_set & {"business_name", "bio", "years_experience", "is_available"}


class InstallerScalars(BaseModel):
    """The complete scalar field set written to an installer profile row."""

    business_name: str | None = Field(None, max_length=255)
    bio: str | None = Field(None, max_length=1000)
    years_experience: int | None = Field(None, ge=0, le=70)
    is_available: bool = True

    @field_validator("business_name")
    @classmethod
    def business_name_length(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            return None
        if len(v) < 2:
            raise ValueError("business_name must be at least 2 characters")
        return v

    @field_validator("bio")
    @classmethod
    def blank_bio(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v


class ServiceOfferingOut(BaseModel):
    id: int
    name_ro: str
    slug: str
    is_primary: bool


class ServiceAreaOut(BaseModel):
    id: int
    name: str
    region_name: str


class InstallerListItem(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    business_name: str | None = None
    bio: str | None = None
    years_experience: int | None = None
    is_verified: bool
    is_available: bool
    profile_completed: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None
    name: str
    phone: str | None = None
    avatar_url: str | None = None
    average_rating: float
    review_count: int
    services: list[ServiceOfferingOut] = []
    cities: list[ServiceAreaOut] = []


class InstallerDetail(InstallerListItem):
    stats: ReviewStatsOut


class InstallerSearchResponse(BaseModel):
    success: bool = True
    data: list[InstallerListItem]
    pagination: PaginationOut


class InstallerDetailResponse(BaseModel):
    success: bool = True
    data: InstallerDetail
    message: str | None = None
