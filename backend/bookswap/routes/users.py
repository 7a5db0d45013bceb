"""
BookSwap Backend — User Route Handlers
=======================================

What:  /users endpoints: registration, login, email verification, password
       recovery, profile management and interaction history.
How:   Thin handlers. Each one resolves the caller through `current_user`,
       delegates to UserService / InteractionService, and wraps the result
       in the response envelope the frontend expects.

Route Order:
    Static paths (/interactions, /me, /login, ...) are declared before
    /{user_id} so they are never captured as an id.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from bookswap.database import get_db_session
from bookswap.middleware.auth import current_user
from bookswap.models.user import User
from bookswap.schemas.common import ErrorResponse, MessageResponse
from bookswap.schemas.publication import InteractionResponse, UserInteractionResponse
from bookswap.schemas.user import (
    ChangePasswordRequest,
    CurrentUserResponse,
    EmailRequest,
    LoginRequest,
    LoginResponse,
    TokenRequest,
    UserCreate,
    UserEnvelope,
    UserListResponse,
    UserResponse,
    UserUpdate,
)
from bookswap.services.interaction_service import interaction_service
from bookswap.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])

_AUTH_ERRORS = {
    401: {"description": "Missing or expired session", "model": ErrorResponse},
    403: {"description": "Not allowed", "model": ErrorResponse},
}


def _envelope(user: User) -> UserEnvelope:
    return UserEnvelope(user=UserResponse.model_validate(user))


@router.get(
    "",
    response_model=UserListResponse,
    responses=_AUTH_ERRORS,
    summary="List users (admin)",
)
async def list_users(
    skip: int = Query(default=0, ge=0),
    take: Optional[int] = Query(default=None, ge=1, le=500),
    admin: User = Depends(current_user(admins_only=True)),
    db: AsyncSession = Depends(get_db_session),
) -> UserListResponse:
    users = await user_service.list_users(db, skip=skip, take=take)
    return UserListResponse(users=[UserResponse.model_validate(u) for u in users])


@router.get(
    "/interactions",
    response_model=List[UserInteractionResponse],
    responses=_AUTH_ERRORS,
    summary="The caller's open interactions",
    description=(
        "Interactions of the caller that still reference a publication, with the "
        "publication embedded. Publications on which another user's interaction "
        "was completed are left out."
    ),
)
async def my_interactions(
    user: User = Depends(current_user()),
    db: AsyncSession = Depends(get_db_session),
) -> List[UserInteractionResponse]:
    interactions = await interaction_service.list_active_for_user(db, user)
    return [UserInteractionResponse.model_validate(i) for i in interactions]


@router.get("/me", response_model=CurrentUserResponse, responses=_AUTH_ERRORS)
async def me(user: User = Depends(current_user())) -> CurrentUserResponse:
    return CurrentUserResponse(user=UserResponse.model_validate(user))


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=UserEnvelope,
    responses={
        400: {"description": "Weak password or malformed email", "model": ErrorResponse},
        409: {"description": "Email already registered", "model": ErrorResponse},
    },
    summary="Register a new account",
    description=(
        "Creates an unvalidated account. A verification link is emailed after the "
        "response is sent; if that email cannot be delivered the account is removed."
    ),
)
async def register(
    body: UserCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db_session),
) -> UserEnvelope:
    user = await user_service.register(db, body)
    background_tasks.add_task(user_service.send_verification_or_discard, user.id, user.email)
    return _envelope(user)


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"description": "Unknown email or wrong password", "model": ErrorResponse}},
    summary="Exchange credentials for a session token",
)
async def login(
    body: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> LoginResponse:
    token = await user_service.login(db, body.email, body.password)
    response.headers["Authorization"] = token
    return LoginResponse(authorization=token)


@router.post("/verify", response_model=UserEnvelope, summary="Confirm an email address")
async def verify_email(
    body: TokenRequest,
    db: AsyncSession = Depends(get_db_session),
) -> UserEnvelope:
    user = await user_service.verify_email(db, body.token)
    return _envelope(user)


@router.post(
    "/verify/resend",
    response_model=MessageResponse,
    responses={502: {"description": "Email could not be sent", "model": ErrorResponse}},
    summary="Send a new verification link",
)
async def resend_verification(
    body: EmailRequest,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await user_service.resend_verification(db, body.email)
    return MessageResponse(message="Verification email sent")


@router.post(
    "/password-reset",
    response_model=MessageResponse,
    responses={502: {"description": "Email could not be sent", "model": ErrorResponse}},
    summary="Email a password change link",
)
async def request_password_reset(
    body: EmailRequest,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await user_service.request_password_reset(db, body.email)
    return MessageResponse(message="Password reset email sent")


@router.post("/change-password", response_model=UserEnvelope, summary="Set a new password")
async def change_password(
    body: ChangePasswordRequest,
    db: AsyncSession = Depends(get_db_session),
) -> UserEnvelope:
    user = await user_service.change_password(db, body.token, body.password)
    return _envelope(user)


@router.patch(
    "",
    response_model=UserEnvelope,
    responses=_AUTH_ERRORS,
    summary="Update a profile (self or admin)",
)
async def update_user(
    body: UserUpdate,
    caller: User = Depends(current_user()),
    db: AsyncSession = Depends(get_db_session),
) -> UserEnvelope:
    user = await user_service.update_user(db, caller, body)
    return _envelope(user)


@router.get(
    "/{user_id}",
    response_model=UserEnvelope,
    responses={**_AUTH_ERRORS, 404: {"description": "Unknown user", "model": ErrorResponse}},
    summary="Get a user (full profile for admins, id + name otherwise)",
)
async def get_user(
    user_id: UUID,
    viewer: User = Depends(current_user()),
    db: AsyncSession = Depends(get_db_session),
) -> UserEnvelope:
    profile = await user_service.get_profile(db, user_id, viewer)
    return UserEnvelope(user=profile)


@router.delete(
    "/{user_id}",
    response_model=UserEnvelope,
    responses={**_AUTH_ERRORS, 404: {"description": "Unknown user", "model": ErrorResponse}},
    summary="Delete a user (admin)",
)
async def delete_user(
    user_id: UUID,
    admin: User = Depends(current_user(admins_only=True)),
    db: AsyncSession = Depends(get_db_session),
) -> UserEnvelope:
    user = await user_service.delete_user(db, user_id)
    return _envelope(user)


@router.get(
    "/{user_id}/interactions",
    response_model=List[InteractionResponse],
    responses=_AUTH_ERRORS,
    summary="All interactions of a user (admin)",
)
async def user_interactions(
    user_id: UUID,
    admin: User = Depends(current_user(admins_only=True)),
    db: AsyncSession = Depends(get_db_session),
) -> List[InteractionResponse]:
    interactions = await interaction_service.list_for_user(db, user_id)
    return [InteractionResponse.model_validate(i) for i in interactions]
