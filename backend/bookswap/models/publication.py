"""
BookSwap Backend — Publication SQLAlchemy Model
================================================

What:  ORM model representing the `publications` table (a book listing).
Who:   Used by PublicationService for CRUD and recommendations, and as the
       target of interactions and reviews.

Table Design Rationale:
    - book_state / type: stored as stable enum codes (NEW, SELL, ...);
      the Spanish display labels live in the schema layer only
    - genres: JSON list of strings, so the same column works on PostgreSQL
      and the SQLite database used by the tests
    - price: integer, 0 for trade-only listings
    - is_available: flips to False once an interaction is completed
    - owner_id: cascade delete, a user's listings go with the account

    Index on created_at DESC:
        Every listing endpoint returns newest first.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookswap.database import Base, utcnow
from bookswap.models.user import User


class BookState(str, enum.Enum):
    """Physical condition of the book."""

    NEW = "NEW"
    LIKE_NEW = "LIKE_NEW"
    USED = "USED"
    VERY_USED = "VERY_USED"


class PublicationType(str, enum.Enum):
    """What the owner is offering: a sale, a trade, or either."""

    SELL = "SELL"
    TRADE = "TRADE"
    SELL_TRADE = "SELL_TRADE"


class Publication(Base):
    """
    A book offered by its owner.

    Lifecycle:
        1. Created available by an authenticated user
        2. Edited by its owner (description, price, state, ...)
        3. Marked unavailable when the owner completes an interaction on it
        4. Deleted by its owner or an admin; interactions and reviews keep
           their rows with publication_id set to NULL
    """

    __tablename__ = "publications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    author: Mapped[str] = mapped_column(String(255), nullable=False)
    language: Mapped[str] = mapped_column(String(60), nullable=False)
    genres: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    book_state: Mapped[BookState] = mapped_column(
        Enum(BookState, native_enum=False, length=20),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type: Mapped[PublicationType] = mapped_column(
        Enum(PublicationType, native_enum=False, length=20),
        nullable=False,
    )
    price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    image: Mapped[str | None] = mapped_column(
        String(1024), nullable=True, comment="Public URL of the cover image",
    )
    book_id: Mapped[str | None] = mapped_column(
        String(120), nullable=True, comment="External catalogue id (e.g. ISBN)",
    )
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    # selectin: async sessions cannot lazy-load on attribute access
    owner: Mapped[User] = relationship(User, lazy="selectin")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
        default=utcnow, server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
        default=utcnow, onupdate=utcnow, server_default=func.now(),
    )

    __table_args__ = (
        Index("idx_publications_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return (
            f"<Publication(id={self.id}, title='{self.title}', "
            f"owner_id={self.owner_id}, is_available={self.is_available})>"
        )
