"""Review and helpful vote model definitions."""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base, utcnow

if TYPE_CHECKING:
    from .user import User


class TravelerType(str, Enum):
    """Who the reviewer travelled with."""
    SOLO = "solo"
    COUPLE = "couple"
    FAMILY = "family"
    BUSINESS = "business"
    GROUP = "group"


# Sub-scores collected alongside the overall rating
RATING_DIMENSIONS = ("cleanliness", "accuracy", "check_in", "communication", "location", "value")


def _score_check(column: str) -> CheckConstraint:
    return CheckConstraint(f"{column} >= 1 AND {column} <= 5", name=f"ck_review_{column}_range")


class Review(Base):
    """Guest review of a property, tied to exactly one completed booking."""

    __tablename__ = "reviews"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    property_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    booking_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    cleanliness: Mapped[int] = mapped_column(Integer, nullable=False)
    accuracy: Mapped[int] = mapped_column(Integer, nullable=False)
    check_in: Mapped[int] = mapped_column(Integer, nullable=False)
    communication: Mapped[int] = mapped_column(Integer, nullable=False)
    location: Mapped[int] = mapped_column(Integer, nullable=False)
    value: Mapped[int] = mapped_column(Integer, nullable=False)

    comment: Mapped[str] = mapped_column(Text, nullable=False)
    images: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    traveler_type: Mapped[TravelerType | None] = mapped_column(String(20), nullable=True)
    would_recommend: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Host response
    host_response: Mapped[str | None] = mapped_column(Text, nullable=True)
    host_response_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    host_responder_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # Kept in step with the vote rows by the review service
    helpful_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        _score_check("rating"),
        *(_score_check(dimension) for dimension in RATING_DIMENSIONS),
        CheckConstraint("helpful_count >= 0", name="ck_review_helpful_count_non_negative"),
    )

    author: Mapped["User"] = relationship("User", foreign_keys=[user_id], lazy="selectin")
    helpful_votes: Mapped[list["ReviewHelpfulVote"]] = relationship(
        "ReviewHelpfulVote",
        back_populates="review",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Review(id={self.id}, property_id={self.property_id}, rating={self.rating})>"


class ReviewHelpfulVote(Base):
    """One user's "helpful" mark on a review."""

    __tablename__ = "review_helpful_votes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    review_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("review_id", "user_id", name="uq_review_helpful_vote"),
    )

    review: Mapped["Review"] = relationship("Review", back_populates="helpful_votes")
