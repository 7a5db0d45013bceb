"""
BookSwap Backend — Review Service
==================================

What:  Reviews users leave about each other after an exchange, and the
       average rating shown on profiles.
Who:   Called by the /reviews route handlers.
"""

import logging
from typing import List, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bookswap import errors
from bookswap.exceptions import NotFoundError, ValidationError
from bookswap.models.review import Review
from bookswap.models.user import User
from bookswap.schemas.review import ReviewCreate
from bookswap.services.publication_service import publication_service
from bookswap.services.user_service import user_service

logger = logging.getLogger(__name__)


class ReviewService:

    async def list_reviews(self, db: AsyncSession) -> List[Review]:
        result = await db.execute(select(Review).order_by(Review.created_at.desc()))
        return list(result.scalars().all())

    async def get_or_404(self, db: AsyncSession, review_id: UUID) -> Review:
        review = await db.get(Review, review_id)
        if review is None:
            raise NotFoundError(errors.REVIEW_NOT_FOUND, resource_id=str(review_id))
        return review

    async def create(self, db: AsyncSession, author: User, data: ReviewCreate) -> Review:
        """
        Raises:
            ValidationError: SELF_REVIEW
            NotFoundError:   USER_NOT_FOUND / PUBLICATION_NOT_FOUND
        """
        if data.reviewed_user_id == author.id:
            raise ValidationError(errors.SELF_REVIEW, field="reviewed_user_id")

        await user_service.get_or_404(db, data.reviewed_user_id)
        if data.publication_id is not None:
            await publication_service.get_or_404(db, data.publication_id)

        review = Review(
            rating=data.rating,
            comment=data.comment,
            user_id=author.id,
            reviewed_user_id=data.reviewed_user_id,
            publication_id=data.publication_id,
        )
        db.add(review)
        await db.flush()
        logger.info("Review %s: %s rated %s with %d", review.id, author.id, data.reviewed_user_id, data.rating)
        return review

    async def received_by(self, db: AsyncSession, user_id: UUID) -> List[Review]:
        result = await db.execute(
            select(Review)
            .where(Review.reviewed_user_id == user_id)
            .order_by(Review.created_at.desc())
        )
        return list(result.scalars().all())

    async def given_by(self, db: AsyncSession, user_id: UUID) -> List[Review]:
        result = await db.execute(
            select(Review)
            .where(Review.user_id == user_id)
            .order_by(Review.created_at.desc())
        )
        return list(result.scalars().all())

    async def rating_of(self, db: AsyncSession, user_id: UUID) -> Tuple[float, int]:
        """(average, count) of ratings received; (0.0, 0) when unrated."""
        result = await db.execute(
            select(func.avg(Review.rating), func.count(Review.id))
            .where(Review.reviewed_user_id == user_id)
        )
        average, count = result.one()
        return (round(float(average), 2) if average is not None else 0.0), int(count)


# ── Module-level singleton ────────────────────────────────────────────────
review_service = ReviewService()
