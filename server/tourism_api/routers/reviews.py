"""Review router."""

import logging
from typing import Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import DatabaseSession, RequiredAuth
from ..core.exceptions import InternalServerError, ProblemDetailsException
from ..models.user import User as UserModel
from ..schemas.common import MessageResponse
from ..schemas.review import (
    CreateReviewRequest,
    DimensionAverages,
    HostResponseRequest,
    Review,
    ReviewListResponse,
    ReviewStats,
    UpdateReviewRequest,
)
from ..services.query_builder import PageRequest
from ..services.review_service import RatingSummary, ReviewService
from .converters import pagination_to_schema, review_to_schema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reviews", tags=["reviews"])

SORT_QUERY = Query(None, description="recent (default), helpful, rating-high or rating-low")


def _stats_to_schema(summary: RatingSummary) -> ReviewStats:
    """Round averages for display; the stored aggregate stays unrounded."""
    return ReviewStats(
        total=summary.total,
        averages=DimensionAverages(**{name: round(avg, 2) for name, avg in summary.averages.items()}),
        distribution=summary.distribution,
    )


def _review_response(review, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=review_to_schema(review).to_json())


@router.get("/property/{property_id}", response_model=ReviewListResponse)
async def property_reviews(
    property_id: str,
    request: Request,
    sort: Optional[str] = SORT_QUERY,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    page = PageRequest.from_params(request.query_params)

    try:
        reviews, total, summary = await ReviewService(db).list_property_reviews(property_id, page, sort)
        response_data = ReviewListResponse(
            reviews=[review_to_schema(review) for review in reviews],
            stats=_stats_to_schema(summary),
            pagination=pagination_to_schema(total, page),
        )
        return JSONResponse(status_code=200, content=response_data.to_json())

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in review listing",
            extra={"property_id": property_id, "error": str(e)},
            exc_info=True,
        )
        raise InternalServerError()


@router.post("", response_model=Review, status_code=201)
async def create_review(
    request: CreateReviewRequest,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """
    Review a completed stay.

    The booking must be the caller's own and completed; a second review of
    the same booking fails with 409.
    """
    try:
        review = await ReviewService(db).create_review(current_user, request)
        return _review_response(review, 201)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in review creation",
            extra={"booking_id": request.booking_id, "error": str(e)},
            exc_info=True,
        )
        raise InternalServerError()


@router.put("/{review_id}", response_model=Review)
async def update_review(
    review_id: str,
    request: UpdateReviewRequest,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    try:
        review = await ReviewService(db).update_review(current_user, review_id, request)
        return _review_response(review)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in review update",
            extra={"review_id": review_id, "error": str(e)},
            exc_info=True,
        )
        raise InternalServerError()


@router.delete("/{review_id}", response_model=MessageResponse)
async def delete_review(
    review_id: str,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    try:
        await ReviewService(db).delete_review(current_user, review_id)
        return JSONResponse(status_code=200, content=MessageResponse(message="Review deleted").to_json())

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in review deletion",
            extra={"review_id": review_id, "error": str(e)},
            exc_info=True,
        )
        raise InternalServerError()


@router.post("/{review_id}/helpful", response_model=Review)
async def toggle_helpful(
    review_id: str,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Mark the review helpful, or undo the caller's earlier mark."""
    review = await ReviewService(db).toggle_helpful(current_user, review_id)
    return _review_response(review)


@router.post("/{review_id}/response", response_model=Review)
async def respond_to_review(
    review_id: str,
    request: HostResponseRequest,
    current_user: UserModel = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Publish the host's response. Property owner or admin only."""
    try:
        review = await ReviewService(db).respond(current_user, review_id, request.text)
        return _review_response(review)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in review response",
            extra={"review_id": review_id, "error": str(e)},
            exc_info=True,
        )
        raise InternalServerError()
