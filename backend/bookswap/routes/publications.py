"""
BookSwap Backend — Publication Route Handlers
==============================================

What:  /publications endpoints: listings, genre catalogue, recommendations,
       owner-only edits, and the interaction workflow on a publication.
How:   Thin handlers delegating to PublicationService / InteractionService.

Interaction Notification:
    POST /publications/{id}/interactions commits the upserted interaction,
    returns 201, and schedules `notify_publication_owner` as a background
    task. The task runs after the response is sent, on its own session, so
    a slow SMTP server never delays the client.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from bookswap.database import get_db_session
from bookswap.middleware.auth import current_user
from bookswap.models.user import User
from bookswap.schemas.common import ErrorResponse, MessageResponse
from bookswap.schemas.publication import (
    InteractionCreate,
    InteractionEnvelope,
    InteractionResponse,
    PublicationCreate,
    PublicationInteractionResponse,
    PublicationResponse,
    PublicationUpdate,
)
from bookswap.services.interaction_service import interaction_service
from bookswap.services.publication_service import publication_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/publications", tags=["Publications"])

_NOT_FOUND = {404: {"description": "Publication not found", "model": ErrorResponse}}
_FORBIDDEN = {403: {"description": "Not the owner", "model": ErrorResponse}}


# ── Catalogue ─────────────────────────────────────────────────────────────

@router.get("/genres", response_model=List[str], summary="Distinct genres, sorted")
async def list_genres(db: AsyncSession = Depends(get_db_session)) -> List[str]:
    return await publication_service.list_genres(db)


@router.get(
    "",
    response_model=List[PublicationResponse],
    summary="List publications, newest first",
    description=(
        "Optional filters: `genre` (case-insensitive), `type` (label or code, e.g. "
        "`Permuta` or `TRADE`), `search` (title or author substring) and `available`."
    ),
)
async def list_publications(
    genre: Optional[str] = Query(default=None),
    type: Optional[str] = Query(default=None, description="Venta, Permuta, Venta/Permuta"),
    search: Optional[str] = Query(default=None, max_length=120),
    available: Optional[bool] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> List[PublicationResponse]:
    publications = await publication_service.list_publications(
        db, genre=genre, publication_type=type, search=search, available=available,
    )
    return [PublicationResponse.model_validate(p) for p in publications]


@router.get(
    "/recommendations",
    response_model=List[PublicationResponse],
    summary="Publications the caller may like",
)
async def recommendations(
    limit: Optional[int] = Query(default=None, ge=1, le=50),
    user: User = Depends(current_user()),
    db: AsyncSession = Depends(get_db_session),
) -> List[PublicationResponse]:
    publications = await publication_service.recommendations(db, user, limit=limit)
    return [PublicationResponse.model_validate(p) for p in publications]


@router.get("/{publication_id}", response_model=PublicationResponse, responses=_NOT_FOUND)
async def get_publication(
    publication_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> PublicationResponse:
    publication = await publication_service.get_or_404(db, publication_id)
    return PublicationResponse.model_validate(publication)


# ── Owner operations ──────────────────────────────────────────────────────

@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=PublicationResponse,
    responses={400: {"description": "Unknown book state or type", "model": ErrorResponse}},
    summary="Publish a book",
)
async def create_publication(
    body: PublicationCreate,
    user: User = Depends(current_user()),
    db: AsyncSession = Depends(get_db_session),
) -> PublicationResponse:
    publication = await publication_service.create(db, user, body)
    return PublicationResponse.model_validate(publication)


@router.put(
    "/{publication_id}",
    response_model=PublicationResponse,
    responses={**_NOT_FOUND, **_FORBIDDEN},
    summary="Edit a publication (owner only)",
)
async def update_publication(
    publication_id: UUID,
    body: PublicationUpdate,
    user: User = Depends(current_user()),
    db: AsyncSession = Depends(get_db_session),
) -> PublicationResponse:
    publication = await publication_service.update(db, user, publication_id, body)
    return PublicationResponse.model_validate(publication)


@router.delete(
    "/{publication_id}",
    response_model=MessageResponse,
    responses={**_NOT_FOUND, **_FORBIDDEN},
    summary="Delete a publication (owner or admin)",
)
async def delete_publication(
    publication_id: UUID,
    user: User = Depends(current_user()),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await publication_service.delete(db, user, publication_id)
    return MessageResponse(message="Publication deleted successfully")


# ── Interactions ──────────────────────────────────────────────────────────

@router.post(
    "/{publication_id}/interactions",
    status_code=status.HTTP_201_CREATED,
    response_model=InteractionEnvelope,
    responses={**_NOT_FOUND, 403: {"description": "Own publication", "model": ErrorResponse}},
    summary="Like, offer a trade for, or ask to buy a publication",
)
async def create_interaction(
    publication_id: UUID,
    body: InteractionCreate,
    background_tasks: BackgroundTasks,
    user: User = Depends(current_user()),
    db: AsyncSession = Depends(get_db_session),
) -> InteractionEnvelope:
    interaction = await interaction_service.upsert(db, user, publication_id, body.type)
    if not interaction.email_sent:
        background_tasks.add_task(interaction_service.notify_publication_owner, interaction.id)
    return InteractionEnvelope(interaction=InteractionResponse.model_validate(interaction))


@router.get(
    "/{publication_id}/interactions",
    response_model=List[PublicationInteractionResponse],
    responses={**_NOT_FOUND, 403: {"description": "Not the owner", "model": ErrorResponse}},
    summary="Who is interested in a publication (owner or admin)",
)
async def list_interactions(
    publication_id: UUID,
    user: User = Depends(current_user()),
    db: AsyncSession = Depends(get_db_session),
) -> List[PublicationInteractionResponse]:
    interactions = await interaction_service.list_for_publication(db, user, publication_id)
    return [PublicationInteractionResponse.model_validate(i) for i in interactions]


@router.patch(
    "/interactions/{interaction_id}",
    response_model=MessageResponse,
    responses={
        404: {"description": "Interaction or publication gone", "model": ErrorResponse},
        403: {"description": "Not the publication owner", "model": ErrorResponse},
    },
    summary="Complete an interaction (publication owner)",
)
async def complete_interaction(
    interaction_id: UUID,
    user: User = Depends(current_user()),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await interaction_service.complete(db, user, interaction_id)
    return MessageResponse(message="Interaction completed successfully")
