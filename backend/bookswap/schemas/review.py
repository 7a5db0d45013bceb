"""
BookSwap Backend — Review Schemas
==================================

What:  Pydantic models for the /reviews endpoints.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ReviewCreate(BaseModel):
    """
    Body of POST /reviews. The author is always the caller, never the body.

    Why rating is bounded here (not in the service):
        An out-of-range rating is a malformed request, reported as
        BAD_REQUEST like any other schema failure.
    """
    rating: int = Field(ge=1, le=5)
    comment: str = Field(default="", max_length=2000)
    reviewed_user_id: uuid.UUID
    publication_id: Optional[uuid.UUID] = None


class ReviewResponse(BaseModel):
    id: uuid.UUID
    rating: int
    comment: str
    user_id: uuid.UUID
    reviewed_user_id: uuid.UUID
    publication_id: Optional[uuid.UUID] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class RatingResponse(BaseModel):
    """Average rating received by a user; 0 with count 0 when unrated."""
    average: float
    count: int
