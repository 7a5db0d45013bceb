"""
BookSwap Backend — User SQLAlchemy Model
=========================================

What:  ORM model representing the `users` table.
Who:   Used by the auth dependency (fetch caller by id), the user service
       (registration, login, profile edits) and as the owner/author side of
       publications, interactions and reviews.

Table Design Rationale:
    - UUID primary key: non-sequential, safe to expose in URLs
    - email: unique, always stored lower-case so lookups are case-insensitive
    - password: bcrypt hash only, never serialised by any response schema
    - is_validated: flipped by the email verification link
    - is_admin: unlocks user administration endpoints
"""

import uuid
from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from bookswap.database import Base, utcnow


class User(Base):
    """A registered member of the exchange."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    email: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, index=True,
        comment="Lower-cased login email",
    )
    password: Mapped[str] = mapped_column(
        String(255), nullable=False, comment="bcrypt hash",
    )
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    birthdate: Mapped[date | None] = mapped_column(Date, nullable=True)
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)

    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_validated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
        default=utcnow, server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
        default=utcnow, onupdate=utcnow, server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', is_admin={self.is_admin})>"
