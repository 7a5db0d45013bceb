"""
BookSwap Backend — Publication Interaction SQLAlchemy Model
============================================================

What:  ORM model for `publication_interactions`: a user's expressed interest
       (like, trade offer, purchase intent) in someone else's publication.
Who:   Written by InteractionService, read by the user and publication
       interaction listings.

Table Design Rationale:
    - UNIQUE (user_id, publication_id): one row per interested user per
      publication. Re-interacting updates the row instead of inserting.
    - email_sent / email_sent_at: notification bookkeeping. The owner is
      emailed only while email_sent is False; the flag is re-armed once
      email_sent_at is older than the cooldown.
    - publication_id is nullable with ON DELETE SET NULL so a user's
      interaction history survives the deletion of the listing.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookswap.database import Base, utcnow
from bookswap.models.publication import Publication
from bookswap.models.user import User


class InteractionType(str, enum.Enum):
    LIKE = "LIKE"
    TRADE = "TRADE"
    BUY = "BUY"


class InteractionStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


class PublicationInteraction(Base):
    """
    Interest of one user in one publication.

    Lifecycle:
        1. Upserted PENDING when the user likes / offers / buys
        2. Owner notified by email (at most once per cooldown window)
        3. Marked COMPLETED by the publication owner, which also makes the
           publication unavailable
    """

    __tablename__ = "publication_interactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    publication_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("publications.id", ondelete="SET NULL"), nullable=True, index=True,
    )

    type: Mapped[InteractionType] = mapped_column(
        Enum(InteractionType, native_enum=False, length=20), nullable=False,
    )
    status: Mapped[InteractionStatus] = mapped_column(
        Enum(InteractionStatus, native_enum=False, length=20),
        nullable=False,
        default=InteractionStatus.PENDING,
    )

    email_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    email_sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
        default=utcnow, server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
        default=utcnow, onupdate=utcnow, server_default=func.now(),
    )

    user: Mapped[User] = relationship(User, lazy="selectin")
    publication: Mapped[Publication | None] = relationship(Publication, lazy="selectin")

    __table_args__ = (
        UniqueConstraint("user_id", "publication_id", name="uq_interaction_user_publication"),
    )

    def __repr__(self) -> str:
        return (
            f"<PublicationInteraction(id={self.id}, user_id={self.user_id}, "
            f"publication_id={self.publication_id}, type='{self.type}', "
            f"status='{self.status}')>"
        )
