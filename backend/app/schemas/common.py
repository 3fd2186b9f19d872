from pydantic import BaseModel


class PaginationOut(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int
    hasMore: bool = False


class ReviewStatsOut(BaseModel):
    average_rating: float
    total_reviews: int
    distribution: dict[int, int]


class MessageResponse(BaseModel):
    success: bool = True
    message: str
