"""Review service: review writes, property rating aggregation and helpful votes."""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import utcnow
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..core.identifiers import parse_uuid
from ..core.observability import metrics_collector
from ..core.permissions import authorize
from ..models.booking import Booking, BookingStatus, BookingType
from ..models.property import Property
from ..models.review import RATING_DIMENSIONS, Review, ReviewHelpfulVote
from ..models.user import User
from ..schemas.review import CreateReviewRequest, UpdateReviewRequest
from .query_builder import PageRequest

logger = logging.getLogger(__name__)

SCORE_FIELDS = ("rating",) + RATING_DIMENSIONS

REVIEW_ORDERINGS = {
    "recent": [Review.created_at.desc()],
    "helpful": [Review.helpful_count.desc(), Review.created_at.desc()],
    "rating-high": [Review.rating.desc(), Review.created_at.desc()],
    "rating-low": [Review.rating.asc(), Review.created_at.desc()],
}


@dataclass
class RatingSummary:
    """Aggregate over a property's reviews. Averages are unrounded."""

    total: int = 0
    averages: Dict[str, float] = field(default_factory=lambda: {name: 0.0 for name in SCORE_FIELDS})
    distribution: Dict[str, int] = field(default_factory=lambda: {str(score): 0 for score in range(1, 6)})


class ReviewService:
    """Service for review-related operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_review_by_id(self, review_id: UUID) -> Optional[Review]:
        return await self.db.get(Review, review_id)

    async def get_review_by_id_or_raise(self, review_id: str | UUID) -> Review:
        review = await self.get_review_by_id(parse_uuid(review_id, "review"))
        if not review:
            raise NotFoundError(resource_type="review", resource_id=str(review_id))
        return review

    async def summarize(self, property_id: UUID) -> RatingSummary:
        """Per-dimension means, overall mean and 1..5 histogram for a property."""
        columns = [func.avg(getattr(Review, name)) for name in SCORE_FIELDS]
        row = (
            await self.db.execute(
                select(func.count(Review.id), *columns).where(Review.property_id == property_id)
            )
        ).one()

        summary = RatingSummary(total=row[0] or 0)
        if summary.total:
            summary.averages = {name: float(avg) for name, avg in zip(SCORE_FIELDS, tuple(row)[1:])}

            histogram = await self.db.execute(
                select(Review.rating, func.count(Review.id))
                .where(Review.property_id == property_id)
                .group_by(Review.rating)
            )
            for score, count in histogram.all():
                summary.distribution[str(score)] = count

        return summary

    async def _refresh_property_rating(self, property_id: UUID) -> None:
        """
        Persist the property's review count and mean rating.

        Runs inside the caller's transaction, so the cached figures commit
        together with the review change that triggered them.
        """
        await self.db.flush()
        count, average = (
            await self.db.execute(
                select(func.count(Review.id), func.avg(Review.rating)).where(Review.property_id == property_id)
            )
        ).one()

        property_obj = await self.db.get(Property, property_id)
        if property_obj is None:
            return
        property_obj.review_count = count or 0
        property_obj.rating = float(average) if count else 0.0

        logger.debug(
            "Property rating recomputed",
            extra={"property_id": str(property_id), "rating": property_obj.rating, "review_count": count},
        )

    async def create_review(self, author: User, request: CreateReviewRequest) -> Review:
        """
        Review a completed property booking.

        Args:
            author: Authenticated guest
            request: Review content and scores

        Returns:
            Created review

        Raises:
            NotFoundError: If the booking or property does not exist
            ValidationError: If the booking is not the author's completed
                booking at this property
            ConflictError: If the booking has already been reviewed
        """
        booking_id = parse_uuid(request.booking_id, "booking")
        property_id = parse_uuid(request.property_id, "property")

        booking = await self.db.get(Booking, booking_id)
        if not booking:
            raise NotFoundError(resource_type="booking", resource_id=request.booking_id)

        if booking.user_id != author.id:
            raise ValidationError("You can only review your own bookings")
        if booking.booking_type != BookingType.PROPERTY.value or booking.property_id != property_id:
            raise ValidationError("Booking does not belong to this property")
        if booking.status != BookingStatus.COMPLETED.value:
            logger.warning(
                "Review rejected for booking that is not completed",
                extra={"booking_id": str(booking.id), "status": booking.status, "user_id": str(author.id)},
            )
            raise ValidationError(f"Only completed stays can be reviewed (booking is {booking.status})")

        existing = await self.db.scalar(select(Review.id).where(Review.booking_id == booking_id))
        if existing:
            raise ConflictError(
                "This booking has already been reviewed",
                conflicting_resource={"review_id": str(existing)},
                code="DUPLICATE_REVIEW",
            )

        review = Review(
            property_id=property_id,
            user_id=author.id,
            booking_id=booking_id,
            comment=request.comment,
            images=list(request.images),
            traveler_type=request.traveler_type.value if request.traveler_type else None,
            would_recommend=request.would_recommend,
            verified=True,
            helpful_votes=[],
            **{name: getattr(request, name) for name in SCORE_FIELDS},
        )
        self.db.add(review)

        try:
            await self._refresh_property_rating(property_id)
            await self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent review of the same booking
            await self.db.rollback()
            raise ConflictError("This booking has already been reviewed", code="DUPLICATE_REVIEW")

        metrics_collector.record_review_created()
        logger.info(
            "Review created",
            extra={
                "review_id": str(review.id),
                "property_id": str(property_id),
                "booking_id": str(booking_id),
                "rating": review.rating,
            },
        )
        return await self._reload(review.id)

    async def _reload(self, review_id: UUID) -> Review:
        result = await self.db.execute(
            select(Review).where(Review.id == review_id).execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def update_review(self, requester: User, review_id: str, request: UpdateReviewRequest) -> Review:
        """
        Edit a review. Author or admin only.

        Raises:
            NotFoundError: If the review does not exist
            AuthorizationError: If the requester is neither author nor admin
        """
        review = await self.get_review_by_id_or_raise(review_id)
        authorize(requester, review.user_id)

        changes = request.model_dump(exclude_unset=True, exclude_none=True)
        for name, value in changes.items():
            if name == "traveler_type":
                value = request.traveler_type.value
            setattr(review, name, value)

        await self._refresh_property_rating(review.property_id)
        await self.db.commit()

        logger.info(
            "Review updated",
            extra={"review_id": str(review.id), "fields": sorted(changes), "requester_id": str(requester.id)},
        )
        return await self._reload(review.id)

    async def delete_review(self, requester: User, review_id: str) -> None:
        review = await self.get_review_by_id_or_raise(review_id)
        authorize(requester, review.user_id)

        property_id = review.property_id
        await self.db.delete(review)
        await self._refresh_property_rating(property_id)
        await self.db.commit()

        logger.info(
            "Review deleted",
            extra={"review_id": str(review_id), "property_id": str(property_id), "requester_id": str(requester.id)},
        )

    async def list_property_reviews(
        self, property_id: str, page: PageRequest, sort: Optional[str] = None
    ) -> Tuple[List[Review], int, RatingSummary]:
        """
        Page of reviews for a property with its rating summary.

        Unknown sort keys fall back to most recent first.

        Raises:
            NotFoundError: If the property does not exist
        """
        property_uuid = parse_uuid(property_id, "property")
        if not await self.db.get(Property, property_uuid):
            raise NotFoundError(resource_type="property", resource_id=property_id)

        ordering = REVIEW_ORDERINGS.get(sort or "recent", REVIEW_ORDERINGS["recent"])
        result = await self.db.execute(
            select(Review)
            .where(Review.property_id == property_uuid)
            .order_by(*ordering, Review.id.asc())
            .offset(page.offset)
            .limit(page.limit)
        )
        summary = await self.summarize(property_uuid)
        return list(result.scalars().all()), summary.total, summary

    async def toggle_helpful(self, voter: User, review_id: str) -> Review:
        """
        Mark a review helpful, or remove the mark if ``voter`` already set it.

        Two consecutive calls by the same user leave ``helpful_count`` unchanged.
        """
        review = await self.get_review_by_id_or_raise(review_id)

        vote_id = await self.db.scalar(
            select(ReviewHelpfulVote.id).where(
                ReviewHelpfulVote.review_id == review.id,
                ReviewHelpfulVote.user_id == voter.id,
            )
        )
        if vote_id is not None:
            await self.db.execute(delete(ReviewHelpfulVote).where(ReviewHelpfulVote.id == vote_id))
            marked = False
        else:
            self.db.add(ReviewHelpfulVote(review_id=review.id, user_id=voter.id))
            marked = True

        await self.db.flush()
        review.helpful_count = await self.db.scalar(
            select(func.count(ReviewHelpfulVote.id)).where(ReviewHelpfulVote.review_id == review.id)
        ) or 0

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Helpful vote was changed concurrently, please retry", code="VOTE_CONFLICT")

        logger.info(
            "Helpful vote toggled",
            extra={"review_id": str(review.id), "user_id": str(voter.id), "marked": marked},
        )
        return await self._reload(review.id)

    async def respond(self, requester: User, review_id: str, text: str) -> Review:
        """
        Attach the host's public response. Property owner or admin only.

        Raises:
            AuthorizationError: If the requester does not own the property
        """
        review = await self.get_review_by_id_or_raise(review_id)
        property_obj = await self.db.get(Property, review.property_id)
        if property_obj is None:
            raise NotFoundError(resource_type="property", resource_id=str(review.property_id))
        authorize(requester, property_obj.owner_id)

        review.host_response = text
        review.host_response_at = utcnow()
        review.host_responder_id = requester.id
        await self.db.commit()

        logger.info(
            "Host responded to review",
            extra={"review_id": str(review.id), "responder_id": str(requester.id)},
        )
        return await self._reload(review.id)
