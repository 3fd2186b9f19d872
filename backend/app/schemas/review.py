import uuid
from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from app.schemas.common import PaginationOut, ReviewStatsOut


class ReviewCreateRequest(BaseModel):
    model_config = {"str_strip_whitespace": True}

    installer_profile_id: uuid.UUID
    service_category_id: int = Field(ge=1)
    rating: int = Field(ge=1, le=5)
    title: str = Field(min_length=3, max_length=100)
    comment: str = Field(min_length=10, max_length=2000)
    work_completed_at: datetime | None = None


class ReviewUpdateRequest(BaseModel):
    model_config = {"str_strip_whitespace": True}

    rating: int | None = Field(None, ge=1, le=5)
    title: str | None = Field(None, min_length=3, max_length=100)
    comment: str | None = Field(None, min_length=10, max_length=2000)

    @model_validator(mode="after")
    def at_least_one_change(self) -> "ReviewUpdateRequest":
        if not any(getattr(self, f) is not None for f in ("rating", "title", "comment")):
            raise ValueError("No changes specified")
        return self


class ReviewOut(BaseModel):
    id: uuid.UUID
    installer_profile_id: uuid.UUID
    customer_id: uuid.UUID
    service_category_id: int | None = None
    rating: int
    title: str | None = None
    comment: str | None = None
    work_completed_at: datetime | None = None
    is_verified: bool
    helpful_count: int
    created_at: datetime | None = None
    updated_at: datetime | None = None
    customer_name: str | None = None
    customer_avatar: str | None = None
    service_name: str | None = None
    service_slug: str | None = None
    installer_name: str | None = None


class ReviewResponse(BaseModel):
    success: bool = True
    data: ReviewOut
    message: str | None = None


class ReviewListResponse(BaseModel):
    success: bool = True
    data: list[ReviewOut]
    pagination: PaginationOut


class InstallerReviewsResponse(ReviewListResponse):
    stats: ReviewStatsOut
