"""
BookSwap Backend — Interaction & Notification Tests
====================================================

What:  Likes / trade offers / purchase intents, the owner notification email
       with its cooldown, completion, and the interaction listings.
How:   The notification is a background task; ASGITransport finishes it
       before the request returns, so its effects are asserted directly.

What we test:
    ✅ One row per (user, publication); re-interacting updates the type
    ✅ Interacting with your own publication → 403
    ✅ Owner emailed once per cooldown window; re-armed after it
    ✅ Failed delivery leaves email_sent False so the next attempt retries
    ✅ Overlapping requests share one row and send one email
    ✅ Completion marks the publication unavailable (owner only)
    ✅ Listing permissions and the "taken by someone else" filter
"""

import asyncio
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import aiosmtplib
import pytest
import pytest_asyncio
from sqlalchemy import event, func, select, update
from sqlalchemy.ext.asyncio import create_async_engine

from bookswap.config import settings
from bookswap.database import Base
from bookswap.models.interaction import PublicationInteraction
from bookswap.services.interaction_service import rearm_threshold


async def _interaction_row(session_factory, user, publication):
    async with session_factory() as session:
        result = await session.execute(
            select(PublicationInteraction).where(
                PublicationInteraction.user_id == user.id,
                PublicationInteraction.publication_id == publication.id,
            )
        )
        return result.scalar_one()


async def _interact(client, headers, publication, kind="like"):
    return await client.post(
        f"/publications/{publication.id}/interactions", json={"type": kind}, headers=headers,
    )


class TestCooldown:
    """Tests for the re-arm threshold of owner notifications."""

    def test_threshold_is_cooldown_before_now(self):
        """Threshold should sit exactly one cooldown window before `now`."""
        now = datetime.now(timezone.utc)
        expected = now - timedelta(hours=settings.interaction_email_cooldown_hours)
        assert rearm_threshold(now) == expected

    def test_defaults_to_current_time(self):
        """Without `now`, threshold should be computed from the current UTC time."""
        before = datetime.now(timezone.utc) - timedelta(hours=settings.interaction_email_cooldown_hours)
        threshold = rearm_threshold()
        assert threshold.tzinfo is not None
        assert threshold >= before


class TestCreateInteraction:
    """Tests for POST /publications/{id}/interactions."""

    @pytest.mark.asyncio
    async def test_creates_pending_interaction(self, client, make_user, make_publication, auth_headers):
        """First interaction should create a PENDING row for the caller."""
        owner = await make_user()
        reader = await make_user()
        publication = await make_publication(owner)

        response = await _interact(client, auth_headers(reader), publication, "trade")

        assert response.status_code == 201
        interaction = response.json()["interaction"]
        assert interaction["type"] == "TRADE"
        assert interaction["status"] == "PENDING"
        assert interaction["user_id"] == str(reader.id)
        assert interaction["publication_id"] == str(publication.id)

    @pytest.mark.asyncio
    async def test_second_post_updates_same_row(
        self, client, make_user, make_publication, auth_headers, session_factory,
    ):
        """Interacting again should update the type on the same row."""
        owner = await make_user()
        reader = await make_user()
        publication = await make_publication(owner)
        headers = auth_headers(reader)

        first = await _interact(client, headers, publication, "like")
        second = await _interact(client, headers, publication, "BUY")

        assert first.json()["interaction"]["id"] == second.json()["interaction"]["id"]
        row = await _interaction_row(session_factory, reader, publication)
        assert row.type.value == "BUY"

    @pytest.mark.asyncio
    async def test_own_publication(self, client, make_user, make_publication, auth_headers, smtp_send):
        """Interacting with your own publication should be 403 and send nothing."""
        owner = await make_user()
        publication = await make_publication(owner)

        response = await _interact(client, auth_headers(owner), publication)

        assert response.status_code == 403
        assert response.json()["code"] == "OWN_PUBLICATION_INTERACTION"
        smtp_send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_publication(self, client, make_user, auth_headers):
        """Unknown publication id should be 404 PUBLICATION_NOT_FOUND."""
        reader = await make_user()
        response = await client.post(
            f"/publications/{uuid4()}/interactions", json={"type": "like"}, headers=auth_headers(reader),
        )
        assert response.status_code == 404
        assert response.json()["code"] == "PUBLICATION_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_unknown_type(self, client, make_user, make_publication, auth_headers):
        """Unknown interaction type should be 400 BAD_REQUEST."""
        owner = await make_user()
        reader = await make_user()
        publication = await make_publication(owner)

        response = await _interact(client, auth_headers(reader), publication, "regalar")

        assert response.status_code == 400
        assert response.json()["code"] == "BAD_REQUEST"


class TestOwnerNotification:
    """Tests for the owner notification email and its cooldown."""

    @pytest.mark.asyncio
    async def test_owner_is_emailed(
        self, client, make_user, make_publication, auth_headers, smtp_send, session_factory,
    ):
        """Owner should receive an email naming the reader and the action."""
        owner = await make_user(email="duena@example.com", name="Ana")
        reader = await make_user(name="Beto")
        publication = await make_publication(owner, title="Rayuela")

        await _interact(client, auth_headers(reader), publication, "buy")

        smtp_send.assert_awaited_once()
        message = smtp_send.await_args.args[0]
        assert message["To"] == "duena@example.com"
        assert message["Subject"] == "Alguien está interesado en Rayuela"
        body = message.get_body(("html",)).get_content()
        assert "Beto" in body
        assert "quiere comprar" in body

        row = await _interaction_row(session_factory, reader, publication)
        assert row.email_sent is True
        assert row.email_sent_at is not None

    @pytest.mark.asyncio
    async def test_no_second_email_within_cooldown(
        self, client, make_user, make_publication, auth_headers, smtp_send,
    ):
        """Repeated interactions inside the cooldown should email only once."""
        owner = await make_user()
        reader = await make_user()
        publication = await make_publication(owner)
        headers = auth_headers(reader)

        await _interact(client, headers, publication, "like")
        await _interact(client, headers, publication, "trade")
        await _interact(client, headers, publication, "buy")

        assert smtp_send.await_count == 1

    @pytest.mark.asyncio
    async def test_email_again_after_cooldown(
        self, client, make_user, make_publication, auth_headers, smtp_send, session_factory,
    ):
        """Interacting after the cooldown should email the owner again."""
        owner = await make_user()
        reader = await make_user()
        publication = await make_publication(owner)
        headers = auth_headers(reader)

        await _interact(client, headers, publication)
        async with session_factory() as session:
            await session.execute(
                update(PublicationInteraction)
                .where(PublicationInteraction.user_id == reader.id)
                .values(email_sent_at=datetime.now(timezone.utc) - timedelta(days=3))
            )
            await session.commit()

        await _interact(client, headers, publication)

        assert smtp_send.await_count == 2

    @pytest.mark.asyncio
    async def test_failed_delivery_is_retried_next_time(
        self, client, make_user, make_publication, auth_headers, smtp_send, session_factory,
    ):
        """Failed delivery should leave email_sent False so the next interaction retries."""
        owner = await make_user()
        reader = await make_user()
        publication = await make_publication(owner)
        headers = auth_headers(reader)

        smtp_send.side_effect = aiosmtplib.SMTPException("server busy")
        response = await _interact(client, headers, publication)
        assert response.status_code == 201
        row = await _interaction_row(session_factory, reader, publication)
        assert row.email_sent is False

        smtp_send.side_effect = None
        await _interact(client, headers, publication)
        row = await _interaction_row(session_factory, reader, publication)
        assert row.email_sent is True
        assert smtp_send.await_count == 2

    @pytest.mark.asyncio
    async def test_each_interested_user_notifies_once(
        self, client, make_user, make_publication, auth_headers, smtp_send,
    ):
        """Each interested reader should trigger their own email."""
        owner = await make_user()
        first = await make_user()
        second = await make_user()
        publication = await make_publication(owner)

        await _interact(client, auth_headers(first), publication)
        await _interact(client, auth_headers(second), publication)

        assert smtp_send.await_count == 2


class TestConcurrentRequests:
    """
    Tests for overlapping interaction requests.

    The shared in-memory database serves every session from one connection,
    so these tests run on a file database where each session has its own
    connection and SQLite serialises the writers.
    """

    @pytest_asyncio.fixture
    async def engine(self, tmp_path):
        file_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'bookswap.db'}")

        @event.listens_for(file_engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        async with file_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        yield file_engine
        await file_engine.dispose()

    @pytest.mark.asyncio
    async def test_simultaneous_first_posts_share_one_row(
        self, client, make_user, make_publication, auth_headers, session_factory,
    ):
        """Two first POSTs racing each other should both succeed on a single row."""
        owner = await make_user()
        reader = await make_user()
        publication = await make_publication(owner)
        headers = auth_headers(reader)

        first, second = await asyncio.gather(
            _interact(client, headers, publication, "like"),
            _interact(client, headers, publication, "trade"),
        )

        assert [first.status_code, second.status_code] == [201, 201]
        assert first.json()["interaction"]["id"] == second.json()["interaction"]["id"]
        async with session_factory() as session:
            count = await session.scalar(
                select(func.count()).select_from(PublicationInteraction).where(
                    PublicationInteraction.publication_id == publication.id,
                )
            )
        assert count == 1

    @pytest.mark.asyncio
    async def test_slow_delivery_still_sends_one_email(
        self, client, make_user, make_publication, auth_headers, smtp_send, session_factory,
    ):
        """Notifications overlapping a slow SMTP send should email the owner once."""
        owner = await make_user()
        reader = await make_user()
        publication = await make_publication(owner)
        headers = auth_headers(reader)

        async def _slow(*args, **kwargs):
            await asyncio.sleep(0.05)

        smtp_send.side_effect = _slow

        responses = await asyncio.gather(
            _interact(client, headers, publication, "like"),
            _interact(client, headers, publication, "buy"),
        )

        assert [r.status_code for r in responses] == [201, 201]
        assert smtp_send.await_count == 1
        row = await _interaction_row(session_factory, reader, publication)
        assert row.email_sent is True


class TestCompleteInteraction:
    """Tests for completing an interaction."""

    @pytest.mark.asyncio
    async def test_owner_completes(self, client, make_user, make_publication, auth_headers):
        """Owner completing an interaction should make the publication unavailable."""
        owner = await make_user()
        reader = await make_user()
        publication = await make_publication(owner)
        created = await _interact(client, auth_headers(reader), publication, "trade")
        interaction_id = created.json()["interaction"]["id"]

        response = await client.patch(
            f"/publications/interactions/{interaction_id}", headers=auth_headers(owner),
        )

        assert response.status_code == 200
        assert response.json() == {"message": "Interaction completed successfully"}
        listing = await client.get(f"/publications/{publication.id}")
        assert listing.json()["is_available"] is False

    @pytest.mark.asyncio
    async def test_interested_user_cannot_complete(self, client, make_user, make_publication, auth_headers):
        """The interested reader should not be able to complete it."""
        owner = await make_user()
        reader = await make_user()
        publication = await make_publication(owner)
        created = await _interact(client, auth_headers(reader), publication)

        response = await client.patch(
            f"/publications/interactions/{created.json()['interaction']['id']}",
            headers=auth_headers(reader),
        )

        assert response.status_code == 403
        assert response.json()["code"] == "INTERACTION_COMPLETE_FORBIDDEN"

    @pytest.mark.asyncio
    async def test_unknown_interaction(self, client, make_user, auth_headers):
        """Unknown interaction id should be 404 INTERACTION_NOT_FOUND."""
        owner = await make_user()
        response = await client.patch(f"/publications/interactions/{uuid4()}", headers=auth_headers(owner))
        assert response.status_code == 404
        assert response.json()["code"] == "INTERACTION_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_publication_deleted(self, client, make_user, make_publication, auth_headers):
        """Completing after the publication was deleted should be 404."""
        owner = await make_user()
        reader = await make_user()
        publication = await make_publication(owner)
        created = await _interact(client, auth_headers(reader), publication)
        await client.delete(f"/publications/{publication.id}", headers=auth_headers(owner))

        response = await client.patch(
            f"/publications/interactions/{created.json()['interaction']['id']}",
            headers=auth_headers(owner),
        )

        assert response.status_code == 404


class TestListings:
    """Tests for the interaction listings."""

    @pytest.mark.asyncio
    async def test_owner_sees_who_is_interested(self, client, make_user, make_publication, auth_headers):
        """Owner should see each interested reader's public profile."""
        owner = await make_user()
        reader = await make_user(name="Beto")
        publication = await make_publication(owner)
        await _interact(client, auth_headers(reader), publication)

        response = await client.get(f"/publications/{publication.id}/interactions", headers=auth_headers(owner))

        assert response.status_code == 200
        assert [i["user"] for i in response.json()] == [{"id": str(reader.id), "name": "Beto"}]

    @pytest.mark.asyncio
    async def test_admin_sees_interactions(self, client, make_user, make_publication, auth_headers):
        """Admin should be allowed to list any publication's interactions."""
        admin = await make_user(is_admin=True)
        owner = await make_user()
        publication = await make_publication(owner)

        response = await client.get(f"/publications/{publication.id}/interactions", headers=auth_headers(admin))

        assert response.status_code == 200
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_others_cannot_list(self, client, make_user, make_publication, auth_headers):
        """Other members should get 403 INTERACTION_LIST_FORBIDDEN."""
        owner = await make_user()
        reader = await make_user()
        publication = await make_publication(owner)

        response = await client.get(f"/publications/{publication.id}/interactions", headers=auth_headers(reader))

        assert response.status_code == 403
        assert response.json()["code"] == "INTERACTION_LIST_FORBIDDEN"

    @pytest.mark.asyncio
    async def test_my_interactions_embed_publication(self, client, make_user, make_publication, auth_headers):
        """A reader's own listing should embed the publication."""
        owner = await make_user()
        reader = await make_user()
        publication = await make_publication(owner, title="Rayuela")
        await _interact(client, auth_headers(reader), publication)

        response = await client.get("/users/interactions", headers=auth_headers(reader))

        assert response.status_code == 200
        [item] = response.json()
        assert item["publication"]["title"] == "Rayuela"
        assert item["publication"]["book_state"] == "Usado"

    @pytest.mark.asyncio
    async def test_my_interactions_hide_books_taken_by_others(
        self, client, make_user, make_publication, auth_headers,
    ):
        """Books completed with someone else should drop out of the loser's listing."""
        owner = await make_user()
        winner = await make_user()
        loser = await make_user()
        publication = await make_publication(owner)
        await _interact(client, auth_headers(loser), publication)
        won = await _interact(client, auth_headers(winner), publication, "buy")
        await client.patch(
            f"/publications/interactions/{won.json()['interaction']['id']}", headers=auth_headers(owner),
        )

        loser_view = await client.get("/users/interactions", headers=auth_headers(loser))
        winner_view = await client.get("/users/interactions", headers=auth_headers(winner))

        assert loser_view.json() == []
        assert len(winner_view.json()) == 1
        assert winner_view.json()[0]["status"] == "COMPLETED"

    @pytest.mark.asyncio
    async def test_my_interactions_skip_deleted_publications(
        self, client, make_user, make_publication, auth_headers,
    ):
        """Interactions on deleted publications should not be listed."""
        owner = await make_user()
        reader = await make_user()
        publication = await make_publication(owner)
        await _interact(client, auth_headers(reader), publication)
        await client.delete(f"/publications/{publication.id}", headers=auth_headers(owner))

        response = await client.get("/users/interactions", headers=auth_headers(reader))

        assert response.json() == []

    @pytest.mark.asyncio
    async def test_admin_lists_all_interactions_of_a_user(
        self, client, make_user, make_publication, auth_headers,
    ):
        """Admin listing should include interactions whose publication is gone."""
        admin = await make_user(is_admin=True)
        owner = await make_user()
        reader = await make_user()
        kept = await make_publication(owner)
        removed = await make_publication(owner)
        await _interact(client, auth_headers(reader), kept)
        await _interact(client, auth_headers(reader), removed)
        await client.delete(f"/publications/{removed.id}", headers=auth_headers(owner))

        response = await client.get(f"/users/{reader.id}/interactions", headers=auth_headers(admin))

        assert response.status_code == 200
        assert sorted(i["publication_id"] is None for i in response.json()) == [False, True]

    @pytest.mark.asyncio
    async def test_member_cannot_list_other_users_interactions(self, client, make_user, auth_headers):
        """Members should not reach the admin per-user listing."""
        user = await make_user()
        response = await client.get(f"/users/{user.id}/interactions", headers=auth_headers(user))
        assert response.status_code == 403
