"""
BookSwap Backend — Interaction Service (Interest, Notification, Completion)
============================================================================

What:  Records a user's interest in a publication, emails the owner about
       it without spamming them, and lets the owner close the deal.
Why:   The notification cooldown is the one piece of non-trivial state in
       the system; keeping it in one service keeps the rule in one place.
Who:   /publications/{id}/interactions, /publications/interactions/{id}
       and the /users interaction listings.

Notification Cooldown:
    One row per (user, publication). Each POST upserts that row with a
    single INSERT ... ON CONFLICT DO UPDATE, so simultaneous first POSTs
    converge on the same row instead of tripping the unique constraint:

        new row                         → email_sent = False
        existing row, email_sent False  → unchanged (previous send failed)
        existing row, sent < cooldown   → unchanged (owner already told)
        existing row, sent ≥ cooldown   → email_sent = False (re-armed)

    After the 201 response, a background task with its own session claims
    the send with a conditional UPDATE (email_sent False → True). Only the
    task whose UPDATE matched a row delivers; a failed delivery releases
    the claim. Net effect: at most one email per interested user per
    publication per cooldown window, even when requests overlap.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, case, false, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from bookswap import database, errors
from bookswap.config import settings
from bookswap.exceptions import MailDeliveryError, NotFoundError, PermissionDeniedError
from bookswap.models.interaction import (
    InteractionStatus,
    InteractionType,
    PublicationInteraction,
)
from bookswap.models.user import User
from bookswap.services.mail_service import mail_service
from bookswap.services.publication_service import publication_service

logger = logging.getLogger(__name__)

_ACTION_PHRASES = {
    InteractionType.LIKE: "marcó como favorita",
    InteractionType.TRADE: "quiere permutar",
    InteractionType.BUY: "quiere comprar",
}


def rearm_threshold(now: Optional[datetime] = None) -> datetime:
    """Rows notified at or before this moment may notify the owner again."""
    now = now or datetime.now(timezone.utc)
    return now - timedelta(hours=settings.interaction_email_cooldown_hours)


def _insert_for(db: AsyncSession):
    # ON CONFLICT lives in the dialect-specific insert constructs
    if db.bind.dialect.name == "sqlite":
        return sqlite.insert
    return postgresql.insert


class InteractionService:
    """Business logic for publication interactions."""

    async def upsert(
        self,
        db: AsyncSession,
        user: User,
        publication_id: UUID,
        interaction_type: InteractionType,
    ) -> PublicationInteraction:
        """
        Create or update the caller's interaction with a publication.

        The transaction is committed before returning so the notification
        task, which runs after the response on a separate session, sees it.

        Raises:
            NotFoundError:         PUBLICATION_NOT_FOUND
            PermissionDeniedError: OWN_PUBLICATION_INTERACTION
        """
        publication = await publication_service.get_or_404(db, publication_id)
        if publication.owner_id == user.id:
            raise PermissionDeniedError(errors.OWN_PUBLICATION_INTERACTION)

        table = PublicationInteraction
        stmt = _insert_for(db)(table).values(
            user_id=user.id,
            publication_id=publication_id,
            type=interaction_type,
            status=InteractionStatus.PENDING,
            email_sent=False,
        )
        rearmed = case(
            (
                and_(table.email_sent.is_(True), table.email_sent_at <= rearm_threshold()),
                false(),
            ),
            else_=table.email_sent,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.user_id, table.publication_id],
            set_={
                "type": stmt.excluded["type"],
                "email_sent": rearmed,
                "updated_at": datetime.now(timezone.utc),
            },
        ).returning(table)

        result = await db.scalars(stmt, execution_options={"populate_existing": True})
        interaction = result.one()
        await db.commit()

        logger.info(
            "Interaction upserted: %s %s on %s (email_sent=%s)",
            user.id, interaction_type.value, publication_id, interaction.email_sent,
        )
        return interaction

    async def notify_publication_owner(self, interaction_id: UUID) -> None:
        """
        Background task: email the owner if this interaction has not been
        announced within the cooldown.

        The send is claimed first with a conditional UPDATE; a task that
        loses the claim to an overlapping request does nothing. Delivery
        failure releases the claim so the next interaction retries.
        """
        async with database.async_session_factory() as session:
            interaction = await session.get(PublicationInteraction, interaction_id)
            if interaction is None or interaction.email_sent or interaction.publication is None:
                return
            previous_sent_at = interaction.email_sent_at

            claim = await session.execute(
                update(PublicationInteraction)
                .where(
                    PublicationInteraction.id == interaction_id,
                    PublicationInteraction.email_sent.is_(False),
                )
                .values(email_sent=True, email_sent_at=datetime.now(timezone.utc))
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            if claim.rowcount != 1:
                logger.debug("Notification for interaction %s already claimed", interaction_id)
                return

            publication = interaction.publication
            owner = publication.owner
            try:
                sent = await mail_service.send_interaction_notice(
                    to=owner.email,
                    owner_name=owner.name,
                    interested_name=interaction.user.name,
                    publication_title=publication.title,
                    publication_id=str(publication.id),
                    action=_ACTION_PHRASES[interaction.type],
                )
            except MailDeliveryError:
                logger.warning("Owner notification failed for interaction %s", interaction_id)
                sent = False

            if not sent:
                await session.execute(
                    update(PublicationInteraction)
                    .where(PublicationInteraction.id == interaction_id)
                    .values(email_sent=False, email_sent_at=previous_sent_at)
                    .execution_options(synchronize_session=False)
                )
                await session.commit()
                return
            logger.info("Owner %s notified about interaction %s", owner.id, interaction_id)

    async def list_for_publication(
        self, db: AsyncSession, caller: User, publication_id: UUID,
    ) -> List[PublicationInteraction]:
        """Owner or admin only (INTERACTION_LIST_FORBIDDEN)."""
        publication = await publication_service.get_or_404(db, publication_id)
        if publication.owner_id != caller.id and not caller.is_admin:
            raise PermissionDeniedError(errors.INTERACTION_LIST_FORBIDDEN)

        result = await db.execute(
            select(PublicationInteraction)
            .where(PublicationInteraction.publication_id == publication_id)
            .order_by(PublicationInteraction.created_at.desc())
        )
        return list(result.scalars().all())

    async def complete(self, db: AsyncSession, caller: User, interaction_id: UUID) -> PublicationInteraction:
        """
        The publication owner closes the deal: the interaction becomes
        COMPLETED and the publication is no longer available.

        Raises:
            NotFoundError:         INTERACTION_NOT_FOUND (interaction or its publication gone)
            PermissionDeniedError: INTERACTION_COMPLETE_FORBIDDEN
        """
        interaction = await db.get(PublicationInteraction, interaction_id)
        if interaction is None or interaction.publication is None:
            raise NotFoundError(errors.INTERACTION_NOT_FOUND, resource_id=str(interaction_id))

        publication = interaction.publication
        if publication.owner_id != caller.id:
            raise PermissionDeniedError(errors.INTERACTION_COMPLETE_FORBIDDEN)

        interaction.status = InteractionStatus.COMPLETED
        publication.is_available = False
        await db.flush()
        logger.info("Interaction %s completed; publication %s unavailable", interaction.id, publication.id)
        return interaction

    async def list_for_user(self, db: AsyncSession, user_id: UUID) -> List[PublicationInteraction]:
        """Every interaction of a user, including those whose publication is gone."""
        result = await db.execute(
            select(PublicationInteraction)
            .where(PublicationInteraction.user_id == user_id)
            .order_by(PublicationInteraction.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_active_for_user(self, db: AsyncSession, user: User) -> List[PublicationInteraction]:
        """
        The caller's interactions that still point at a publication,
        minus publications another user has already completed a deal on.
        """
        result = await db.execute(
            select(PublicationInteraction)
            .where(
                PublicationInteraction.user_id == user.id,
                PublicationInteraction.publication_id.is_not(None),
            )
            .order_by(PublicationInteraction.created_at.desc())
        )
        interactions = list(result.scalars().all())
        publication_ids = [i.publication_id for i in interactions]
        if not publication_ids:
            return []

        taken = await db.execute(
            select(PublicationInteraction.publication_id).where(
                PublicationInteraction.publication_id.in_(publication_ids),
                PublicationInteraction.user_id != user.id,
                PublicationInteraction.status == InteractionStatus.COMPLETED,
            )
        )
        completed_by_others = set(taken.scalars().all())
        return [i for i in interactions if i.publication_id not in completed_by_others]


# ── Module-level singleton ────────────────────────────────────────────────
interaction_service = InteractionService()
