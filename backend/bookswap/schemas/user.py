"""
BookSwap Backend — User Request/Response Schemas
=================================================

What:  Pydantic models for the /users endpoints.
Why:   Request bodies are validated before reaching the service, and the
       response models guarantee the password hash is never serialised.

Design Decision:
    Password strength and email format are NOT validated here. Those rules
    produce the INVALID_PASSWORD / INVALID_EMAIL codes the frontend expects,
    so the user service checks them and raises ValidationError itself.
    Schema-level failures (missing field, wrong type) surface as BAD_REQUEST.
"""

import uuid
from datetime import date, datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class UserCreate(BaseModel):
    """Registration payload for POST /users."""
    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=128)
    name: str = Field(min_length=1, max_length=120)
    birthdate: Optional[date] = None
    phone: Optional[str] = Field(default=None, max_length=40)


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenRequest(BaseModel):
    """Body of POST /users/verify: the token from the emailed link."""
    token: str


class EmailRequest(BaseModel):
    email: str


class ChangePasswordRequest(BaseModel):
    token: str
    password: str


class UserUpdate(BaseModel):
    """
    What:  Partial profile update for PATCH /users.

    `id` selects the account. Only fields present in the body are applied
    (`model_dump(exclude_unset=True)`). An `email` key is accepted but
    ignored; the service drops it. `is_admin` / `is_validated` are only
    honoured when the caller is an admin.
    """
    id: uuid.UUID
    email: Optional[str] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    birthdate: Optional[date] = None
    phone: Optional[str] = Field(default=None, max_length=40)
    password: Optional[str] = None
    is_admin: Optional[bool] = None
    is_validated: Optional[bool] = None


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserResponse(BaseModel):
    """Full profile. Returned to the user themself and to admins."""
    id: uuid.UUID
    email: str
    name: str
    birthdate: Optional[date] = None
    phone: Optional[str] = None
    is_admin: bool
    is_validated: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserPublic(BaseModel):
    """What other users may see: id and display name only."""
    id: uuid.UUID
    name: str

    model_config = {"from_attributes": True}


class UserEnvelope(BaseModel):
    status: Literal["success"] = "success"
    user: Union[UserResponse, UserPublic]


class CurrentUserResponse(BaseModel):
    user: UserResponse


class UserListResponse(BaseModel):
    users: List[UserResponse]


class LoginResponse(BaseModel):
    """The session JWT. Also sent in the `Authorization` response header."""
    authorization: str
