"""
BookSwap Backend — Publication Service
=======================================

What:  CRUD for book listings, the genre catalogue, and per-user
       recommendations.
Why:   Owns the ownership rules (only the owner edits, owner or admin
       deletes) and the label/code translation for book state and type.
Who:   Called by the /publications route handlers; InteractionService reuses
       get_or_404().

Recommendation Strategy:
    1. Taste profile = genres of the caller's own publications plus the
       publications they interacted with
    2. Candidates = available publications the caller neither owns nor has
       interacted with already
    3. Rank by number of shared genres (case-insensitive), then newest first
"""

import logging
from typing import Iterable, List, Optional, Set
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bookswap import errors
from bookswap.config import settings
from bookswap.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from bookswap.models.interaction import PublicationInteraction
from bookswap.models.publication import BookState, Publication, PublicationType
from bookswap.models.user import User
from bookswap.schemas.publication import (
    PublicationCreate,
    PublicationUpdate,
    book_state_from_input,
    publication_type_from_input,
)

logger = logging.getLogger(__name__)


def _parse_book_state(value: str) -> BookState:
    state = book_state_from_input(value)
    if state is None:
        raise ValidationError(errors.INVALID_BOOK_STATE, field="book_state", context={"value": value})
    return state


def _parse_publication_type(value: str) -> PublicationType:
    kind = publication_type_from_input(value)
    if kind is None:
        raise ValidationError(errors.INVALID_PUBLICATION_TYPE, field="type", context={"value": value})
    return kind


def _normalised(genres: Iterable[str]) -> Set[str]:
    return {g.strip().lower() for g in genres if g and g.strip()}


class PublicationService:
    """Business logic for publications. Stateless; one instance is shared."""

    async def get_or_404(self, db: AsyncSession, publication_id: UUID) -> Publication:
        publication = await db.get(Publication, publication_id)
        if publication is None:
            raise NotFoundError(errors.PUBLICATION_NOT_FOUND, resource_id=str(publication_id))
        return publication

    async def list_genres(self, db: AsyncSession) -> List[str]:
        """Distinct genres across all publications, alphabetically."""
        result = await db.execute(select(Publication.genres))
        genres: Set[str] = set()
        for row_genres in result.scalars():
            genres.update(g for g in (row_genres or []) if g)
        return sorted(genres)

    async def list_publications(
        self,
        db: AsyncSession,
        genre: Optional[str] = None,
        publication_type: Optional[str] = None,
        search: Optional[str] = None,
        available: Optional[bool] = None,
    ) -> List[Publication]:
        """
        All publications newest first, optionally filtered.

        Filters:
            genre:     exact genre, case-insensitive
            type:      label or code (Venta / SELL ...)
            search:    substring of title or author, case-insensitive
            available: only (un)available publications
        """
        query = select(Publication).order_by(Publication.created_at.desc())
        if publication_type:
            query = query.where(Publication.type == _parse_publication_type(publication_type))
        if available is not None:
            query = query.where(Publication.is_available.is_(available))
        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(or_(Publication.title.ilike(pattern), Publication.author.ilike(pattern)))

        result = await db.execute(query)
        publications = list(result.scalars().all())

        # genres is a JSON column; membership is checked here to stay portable
        if genre:
            wanted = genre.strip().lower()
            publications = [p for p in publications if wanted in _normalised(p.genres)]
        return publications

    async def create(self, db: AsyncSession, owner: User, data: PublicationCreate) -> Publication:
        publication = Publication(
            title=data.title,
            author=data.author,
            language=data.language,
            genres=data.genres,
            book_state=_parse_book_state(data.book_state),
            description=data.description,
            type=_parse_publication_type(data.type),
            price=data.price,
            image=data.image,
            book_id=data.book_id,
            owner_id=owner.id,
        )
        # Set the relationship so serialising the owner needs no lazy load
        publication.owner = owner
        db.add(publication)
        await db.flush()
        logger.info("Publication created: %s by %s", publication.id, owner.id)
        return publication

    async def update(
        self, db: AsyncSession, caller: User, publication_id: UUID, data: PublicationUpdate,
    ) -> Publication:
        """Owner-only partial update. Raises 404 / PUBLICATION_FORBIDDEN."""
        publication = await self.get_or_404(db, publication_id)
        if publication.owner_id != caller.id:
            raise PermissionDeniedError(errors.PUBLICATION_FORBIDDEN)

        changes = data.model_dump(exclude_unset=True)
        for field, value in changes.items():
            if value is None:
                continue
            if field == "book_state":
                value = _parse_book_state(value)
            elif field == "type":
                value = _parse_publication_type(value)
            setattr(publication, field, value)

        await db.flush()
        logger.info("Publication updated: %s (fields: %s)", publication.id, sorted(changes))
        return publication

    async def delete(self, db: AsyncSession, caller: User, publication_id: UUID) -> None:
        """Owner or admin. Interactions and reviews keep their rows (publication_id → NULL)."""
        publication = await self.get_or_404(db, publication_id)
        if publication.owner_id != caller.id and not caller.is_admin:
            raise PermissionDeniedError(errors.PUBLICATION_FORBIDDEN)

        await db.delete(publication)
        await db.flush()
        logger.info("Publication deleted: %s by %s", publication_id, caller.id)

    async def recommendations(
        self, db: AsyncSession, user: User, limit: Optional[int] = None,
    ) -> List[Publication]:
        limit = limit or settings.recommendation_limit

        interacted = await db.execute(
            select(PublicationInteraction.publication_id).where(
                PublicationInteraction.user_id == user.id,
                PublicationInteraction.publication_id.is_not(None),
            )
        )
        interacted_ids = set(interacted.scalars().all())

        profile_query = select(Publication.genres).where(
            or_(Publication.owner_id == user.id, Publication.id.in_(list(interacted_ids)))
        )
        taste: Set[str] = set()
        for genres in (await db.execute(profile_query)).scalars():
            taste |= _normalised(genres or [])

        candidate_query = (
            select(Publication)
            .where(Publication.is_available.is_(True), Publication.owner_id != user.id)
            .order_by(Publication.created_at.desc())
        )
        if interacted_ids:
            candidate_query = candidate_query.where(Publication.id.not_in(list(interacted_ids)))
        candidates = list((await db.execute(candidate_query)).scalars().all())

        # Stable sort keeps newest-first order among equal scores
        candidates.sort(key=lambda p: len(taste & _normalised(p.genres)), reverse=True)
        return candidates[:limit]


# ── Module-level singleton ────────────────────────────────────────────────
publication_service = PublicationService()
