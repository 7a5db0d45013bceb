"""
BookSwap Backend — Review SQLAlchemy Model
===========================================

What:  ORM model for `reviews`: a 1..5 rating one user leaves about another,
       optionally tied to the publication the exchange was about.
Who:   Used by ReviewService (create, listings, average rating).
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from bookswap.database import Base, utcnow


class Review(Base):
    """A rating plus comment written by `user_id` about `reviewed_user_id`."""

    __tablename__ = "reviews"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str] = mapped_column(Text, nullable=False, default="")

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
        comment="Author of the review",
    )
    reviewed_user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    publication_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("publications.id", ondelete="SET NULL"), nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
        default=utcnow, server_default=func.now(),
    )

    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
    )

    def __repr__(self) -> str:
        return (
            f"<Review(id={self.id}, rating={self.rating}, user_id={self.user_id}, "
            f"reviewed_user_id={self.reviewed_user_id})>"
        )
