"""
BookSwap Backend — Publication & Interaction Schemas
=====================================================

What:  Pydantic models for the /publications endpoints, plus the mapping
       between stored enum codes and the Spanish labels the UI displays.

Label Mapping:
    book state                     publication type
    ─────────────────────────      ─────────────────────────────
    "Nuevo"       ↔ NEW            "Venta"         ↔ SELL
    "Como Nuevo"  ↔ LIKE_NEW       "Permuta"       ↔ TRADE
    "Usado"       ↔ USED           "Venta/Permuta" ↔ SELL_TRADE
    "Muy Usado"   ↔ VERY_USED

    Input accepts either the label or the code. Output always uses the label.
    Unknown values are rejected by the service (INVALID_BOOK_STATE /
    INVALID_PUBLICATION_TYPE), so request models carry them as plain strings.
"""

import uuid
from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, BeforeValidator, Field, field_validator

from bookswap.models.interaction import InteractionStatus, InteractionType
from bookswap.models.publication import BookState, PublicationType
from bookswap.schemas.user import UserPublic


BOOK_STATE_LABELS: Dict[BookState, str] = {
    BookState.NEW: "Nuevo",
    BookState.LIKE_NEW: "Como Nuevo",
    BookState.USED: "Usado",
    BookState.VERY_USED: "Muy Usado",
}

PUBLICATION_TYPE_LABELS: Dict[PublicationType, str] = {
    PublicationType.SELL: "Venta",
    PublicationType.TRADE: "Permuta",
    PublicationType.SELL_TRADE: "Venta/Permuta",
}


def book_state_from_input(value: str) -> Optional[BookState]:
    """Resolves a label or code to a BookState; None when it is neither."""
    for state, label in BOOK_STATE_LABELS.items():
        if value in (label, state.value):
            return state
    return None


def publication_type_from_input(value: str) -> Optional[PublicationType]:
    """Resolves a label or code to a PublicationType; None when it is neither."""
    for kind, label in PUBLICATION_TYPE_LABELS.items():
        if value in (label, kind.value):
            return kind
    return None


def _coerce_price(value: Any) -> Any:
    # Trade-only listings arrive with an empty or missing price
    if value is None or (isinstance(value, str) and not value.strip()):
        return 0
    return value


Price = Annotated[int, BeforeValidator(_coerce_price)]


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class PublicationCreate(BaseModel):
    """Body of POST /publications. `state` is accepted as an alias of `book_state`."""
    title: str = Field(min_length=1, max_length=255)
    author: str = Field(min_length=1, max_length=255)
    language: str = Field(min_length=1, max_length=60)
    genres: List[str] = Field(default_factory=list)
    book_state: str = Field(validation_alias=AliasChoices("book_state", "state"))
    description: str = ""
    type: str
    price: Price = Field(default=0, ge=0)
    image: Optional[str] = Field(default=None, max_length=1024)
    book_id: Optional[str] = Field(default=None, max_length=120)


class PublicationUpdate(BaseModel):
    """
    Body of PUT /publications/{id}. Only fields present are applied.
    Ownership and the owner itself can never be changed through this model.
    """
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    language: Optional[str] = Field(default=None, min_length=1, max_length=60)
    genres: Optional[List[str]] = None
    book_state: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("book_state", "state"),
    )
    description: Optional[str] = None
    type: Optional[str] = None
    price: Optional[Price] = Field(default=None, ge=0)
    image: Optional[str] = Field(default=None, max_length=1024)
    is_available: Optional[bool] = None


class InteractionCreate(BaseModel):
    """Body of POST /publications/{id}/interactions: `like`, `trade` or `buy`."""
    type: InteractionType

    @field_validator("type", mode="before")
    @classmethod
    def normalise_type(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper()
        return v


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class PublicationResponse(BaseModel):
    """
    What:  A publication as the frontend renders it.
    How:   Built from the ORM row; the enum codes are swapped for labels and
           the owner is reduced to id + name.
    """
    id: uuid.UUID
    title: str
    author: str
    language: str
    genres: List[str]
    book_state: str
    description: str
    type: str
    price: int
    image: Optional[str] = None
    book_id: Optional[str] = None
    is_available: bool
    owner_id: uuid.UUID
    owner: UserPublic
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("book_state", mode="before")
    @classmethod
    def state_label(cls, v: Any) -> Any:
        if isinstance(v, BookState):
            return BOOK_STATE_LABELS[v]
        return v

    @field_validator("type", mode="before")
    @classmethod
    def type_label(cls, v: Any) -> Any:
        if isinstance(v, PublicationType):
            return PUBLICATION_TYPE_LABELS[v]
        return v


class InteractionResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    publication_id: Optional[uuid.UUID] = None
    type: InteractionType
    status: InteractionStatus
    email_sent: bool
    email_sent_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class InteractionEnvelope(BaseModel):
    interaction: InteractionResponse


class PublicationInteractionResponse(InteractionResponse):
    """An interaction as the publication owner sees it: who is interested."""
    user: UserPublic


class UserInteractionResponse(InteractionResponse):
    """An interaction as its author sees it, with the publication embedded."""
    publication: PublicationResponse
