"""
BookSwap Backend — Review Route Handlers
=========================================

What:  /reviews endpoints: listing, creation, per-user received/given
       reviews and the average rating.
Who:   Called by the frontend profile pages. Only creation needs a session.
"""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from bookswap.database import get_db_session
from bookswap.middleware.auth import current_user
from bookswap.models.user import User
from bookswap.schemas.common import ErrorResponse
from bookswap.schemas.review import RatingResponse, ReviewCreate, ReviewResponse
from bookswap.services.review_service import review_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.get("", response_model=List[ReviewResponse], summary="All reviews, newest first")
async def list_reviews(db: AsyncSession = Depends(get_db_session)) -> List[ReviewResponse]:
    reviews = await review_service.list_reviews(db)
    return [ReviewResponse.model_validate(r) for r in reviews]


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=ReviewResponse,
    responses={
        400: {"description": "Self review or rating out of range", "model": ErrorResponse},
        404: {"description": "Reviewed user or publication not found", "model": ErrorResponse},
    },
    summary="Review another user",
)
async def create_review(
    body: ReviewCreate,
    user: User = Depends(current_user()),
    db: AsyncSession = Depends(get_db_session),
) -> ReviewResponse:
    review = await review_service.create(db, user, body)
    return ReviewResponse.model_validate(review)


@router.get("/received/{user_id}", response_model=List[ReviewResponse])
async def reviews_received(
    user_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> List[ReviewResponse]:
    reviews = await review_service.received_by(db, user_id)
    return [ReviewResponse.model_validate(r) for r in reviews]


@router.get("/given/{user_id}", response_model=List[ReviewResponse])
async def reviews_given(
    user_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> List[ReviewResponse]:
    reviews = await review_service.given_by(db, user_id)
    return [ReviewResponse.model_validate(r) for r in reviews]


@router.get("/rating/{user_id}", response_model=RatingResponse, summary="Average rating received")
async def rating(
    user_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> RatingResponse:
    average, count = await review_service.rating_of(db, user_id)
    return RatingResponse(average=average, count=count)


@router.get(
    "/{review_id}",
    response_model=ReviewResponse,
    responses={404: {"description": "Review not found", "model": ErrorResponse}},
)
async def get_review(
    review_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> ReviewResponse:
    review = await review_service.get_or_404(db, review_id)
    return ReviewResponse.model_validate(review)
