import uuid
from datetime import datetime

from pydantic import BaseModel

from app.schemas.common import PaginationOut


class FavoriteCreateRequest(BaseModel):
    installer_profile_id: uuid.UUID


class FavoriteOut(BaseModel):
    id: int
    customer_id: uuid.UUID
    installer_profile_id: uuid.UUID
    created_at: datetime | None = None
    installer_name: str | None = None
    installer_business_name: str | None = None
    installer_avatar: str | None = None
    installer_verified: bool | None = None
    installer_rating: float | None = None
    installer_review_count: int | None = None
    primary_service: str | None = None
    service_area_count: int | None = None


class FavoriteResponse(BaseModel):
    success: bool = True
    data: FavoriteOut
    message: str | None = None


class FavoriteListResponse(BaseModel):
    success: bool = True
    data: list[FavoriteOut]
    pagination: PaginationOut
