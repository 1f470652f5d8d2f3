"""Review schemas."""

from datetime import datetime
from typing import Annotated, Dict, List, Literal, Optional

from pydantic import Field

from ..models.review import TravelerType
from .common import ApiModel, Pagination

Score = Annotated[int, Field(ge=1, le=5)]

ReviewSort = Literal["recent", "helpful", "rating-high", "rating-low"]


class CreateReviewRequest(ApiModel):
    """Request schema for reviewing a completed stay."""

    property_id: str
    booking_id: str
    rating: Score
    cleanliness: Score
    accuracy: Score
    check_in: Score
    communication: Score
    location: Score
    value: Score
    comment: str = Field(..., min_length=1, max_length=5000)
    images: List[str] = Field(default_factory=list)
    traveler_type: Optional[TravelerType] = None
    would_recommend: bool = True


class UpdateReviewRequest(ApiModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    cleanliness: Optional[int] = Field(None, ge=1, le=5)
    accuracy: Optional[int] = Field(None, ge=1, le=5)
    check_in: Optional[int] = Field(None, ge=1, le=5)
    communication: Optional[int] = Field(None, ge=1, le=5)
    location: Optional[int] = Field(None, ge=1, le=5)
    value: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, min_length=1, max_length=5000)
    images: Optional[List[str]] = None
    traveler_type: Optional[TravelerType] = None
    would_recommend: Optional[bool] = None


class HostResponseRequest(ApiModel):
    text: str = Field(..., min_length=1, max_length=2000)


class ReviewAuthor(ApiModel):
    id: str
    first_name: str
    last_name: str
    profile_image: Optional[str] = None


class HostResponse(ApiModel):
    text: str
    date: datetime
    responder_id: Optional[str] = None


class Review(ApiModel):
    """Review response schema."""

    id: str
    property_id: str
    booking_id: str
    author: Optional[ReviewAuthor] = None
    rating: int
    cleanliness: int
    accuracy: int
    check_in: int
    communication: int
    location: int
    value: int
    comment: str
    images: List[str]
    traveler_type: Optional[str] = None
    would_recommend: bool
    verified: bool
    helpful_count: int
    host_response: Optional[HostResponse] = None
    created_at: datetime
    updated_at: datetime


class DimensionAverages(ApiModel):
    rating: float
    cleanliness: float
    accuracy: float
    check_in: float
    communication: float
    location: float
    value: float


class ReviewStats(ApiModel):
    """Aggregate over every review of a property."""

    total: int
    averages: DimensionAverages
    distribution: Dict[str, int] = Field(..., description="Review count per overall rating, keys 1..5")


class ReviewListResponse(ApiModel):
    reviews: List[Review]
    stats: ReviewStats
    pagination: Pagination
