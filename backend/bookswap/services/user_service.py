"""
BookSwap Backend — User Service (Accounts & Credentials)
=========================================================

What:  Registration, login, email verification, password reset and the
       admin / self-service profile operations.
Why:   Keeps credential rules (password strength, email format, token
       purposes) and ownership checks out of the route handlers.
How:   Stateless methods receiving the request's AsyncSession. Failures are
       raised as BookSwap exceptions carrying the error-table entry the
       frontend expects.
Who:   Called by the /users route handlers.

Registration Flow (POST /users):
    ┌──────────┐   ┌────────────┐   ┌──────────┐   ┌─────────────────────────┐
    │ Validate │──▶│ Hash + add │──▶│  Commit  │──▶│ 201 response            │
    │ pw/email │   │ (lowercase)│   │          │   └───────────┬─────────────┘
    └──────────┘   └────────────┘   └──────────┘               ▼ background
                                                   ┌─────────────────────────┐
                                                   │ Email verify link (1h); │
                                                   │ delete user on failure  │
                                                   └─────────────────────────┘
"""

import logging
from typing import List, Optional, Union
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bookswap import database, errors
from bookswap.config import settings
from bookswap.exceptions import (
    AuthenticationError,
    ConflictError,
    MailDeliveryError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from bookswap.models.user import User
from bookswap.schemas.user import UserCreate, UserPublic, UserResponse, UserUpdate
from bookswap.services import security
from bookswap.services.mail_service import mail_service

logger = logging.getLogger(__name__)

# PATCH /users may clear these; every other field ignores an explicit null
_NULLABLE_PROFILE_FIELDS = {"birthdate", "phone"}
_ADMIN_ONLY_FIELDS = {"is_admin", "is_validated"}


class UserService:
    """
    Business logic for user accounts.

    Responsibilities:
        - register() / send_verification_or_discard(): sign-up
        - login(): credential check and session token
        - verify_email() / resend_verification(): address confirmation
        - request_password_reset() / change_password(): password recovery
        - list_users() / get_profile() / update_user() / delete_user()
    """

    # ── Lookups ───────────────────────────────────────────────────────────

    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    async def get_or_404(self, db: AsyncSession, user_id: UUID) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError(errors.USER_NOT_FOUND, resource_id=str(user_id))
        return user

    async def list_users(self, db: AsyncSession, skip: int = 0, take: Optional[int] = None) -> List[User]:
        """All users, newest first. `take=None` means no limit."""
        query = select(User).order_by(User.created_at.desc()).offset(skip)
        if take:
            query = query.limit(take)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_profile(
        self, db: AsyncSession, user_id: UUID, viewer: User,
    ) -> Union[UserResponse, UserPublic]:
        """Admins see the full profile, everyone else only id + name."""
        user = await self.get_or_404(db, user_id)
        if viewer.is_admin:
            return UserResponse.model_validate(user)
        return UserPublic.model_validate(user)

    # ── Registration ──────────────────────────────────────────────────────

    async def register(self, db: AsyncSession, data: UserCreate) -> User:
        """
        Create an unvalidated account.

        Raises:
            ValidationError: INVALID_PASSWORD / INVALID_EMAIL
            ConflictError:   USER_ALREADY_EXISTS
        """
        if not security.is_strong_password(data.password):
            raise ValidationError(errors.INVALID_PASSWORD, field="password")

        email = data.email.strip().lower()
        if not security.is_valid_email(email):
            raise ValidationError(errors.INVALID_EMAIL, field="email")

        if await self.get_by_email(db, email) is not None:
            raise ConflictError(errors.USER_ALREADY_EXISTS, context={"email": email})

        user = User(
            email=email,
            password=security.hash_password(data.password),
            name=data.name.strip(),
            birthdate=data.birthdate,
            phone=data.phone,
        )
        db.add(user)
        try:
            # Committed here so the background verification task, which uses
            # its own session, can see (and possibly delete) the row.
            await db.commit()
        except IntegrityError as e:
            # Concurrent registration with the same email won the race
            await db.rollback()
            raise ConflictError(errors.USER_ALREADY_EXISTS, context={"email": email}) from e

        logger.info("User registered: %s", user.id)
        return user

    async def send_verification_or_discard(self, user_id: UUID, email: str) -> None:
        """
        Background task: email the verification link. If delivery fails the
        account is deleted so the address can register again.
        """
        token = security.create_token(user_id, security.VERIFY, settings.verification_token_hours)
        try:
            await mail_service.send_verification(email, token)
        except MailDeliveryError:
            logger.warning("Verification email to %s failed; removing user %s", email, user_id)
            async with database.async_session_factory() as session:
                user = await session.get(User, user_id)
                if user is not None:
                    await session.delete(user)
                    await session.commit()

    # ── Login ─────────────────────────────────────────────────────────────

    async def login(self, db: AsyncSession, email: str, password: str) -> str:
        """
        Returns a session JWT.

        Raises:
            AuthenticationError: UNREGISTERED_USER, INCORRECT_PASSWORD, or
                UNVALIDATED when validated emails are required.
        """
        user = await self.get_by_email(db, email)
        if user is None:
            raise AuthenticationError(errors.UNREGISTERED_USER)
        if not security.verify_password(password, user.password):
            logger.info("Failed login for user %s", user.id)
            raise AuthenticationError(errors.INCORRECT_PASSWORD)
        if settings.require_validated_email and not user.is_validated:
            raise AuthenticationError(errors.UNVALIDATED)

        logger.info("User logged in: %s", user.id)
        return security.create_session_token(user.id)

    # ── Email verification ────────────────────────────────────────────────

    async def _user_from_token(self, db: AsyncSession, token: str, purpose: str) -> User:
        user_id = security.decode_token(token, purpose)
        user = await db.get(User, user_id) if user_id is not None else None
        if user is None:
            raise AuthenticationError(errors.TOKEN_EXPIRED)
        return user

    async def verify_email(self, db: AsyncSession, token: str) -> User:
        user = await self._user_from_token(db, token, security.VERIFY)
        user.is_validated = True
        await db.flush()
        logger.info("Email verified for user %s", user.id)
        return user

    async def resend_verification(self, db: AsyncSession, email: str) -> None:
        """
        Send a fresh verification link while the caller waits.

        Raises:
            NotFoundError:     USER_NOT_FOUND
            ValidationError:   ALREADY_VALIDATED
            MailDeliveryError: EMAIL_COULD_NOT_BE_SENT
        """
        user = await self.get_by_email(db, email)
        if user is None:
            raise NotFoundError(errors.USER_NOT_FOUND)
        if user.is_validated:
            raise ValidationError(errors.ALREADY_VALIDATED)

        token = security.create_token(user.id, security.VERIFY, settings.verification_token_hours)
        await mail_service.send_verification(user.email, token)

    # ── Password recovery ─────────────────────────────────────────────────

    async def request_password_reset(self, db: AsyncSession, email: str) -> None:
        user = await self.get_by_email(db, email)
        if user is None:
            raise NotFoundError(errors.USER_NOT_FOUND)

        token = security.create_token(user.id, security.RESET, settings.password_reset_token_hours)
        await mail_service.send_password_reset(user.email, token)
        logger.info("Password reset requested for user %s", user.id)

    async def change_password(self, db: AsyncSession, token: str, password: str) -> User:
        user = await self._user_from_token(db, token, security.RESET)
        if not security.is_strong_password(password):
            raise ValidationError(errors.INVALID_PASSWORD, field="password")

        user.password = security.hash_password(password)
        await db.flush()
        logger.info("Password changed for user %s", user.id)
        return user

    # ── Profile administration ────────────────────────────────────────────

    async def update_user(self, db: AsyncSession, caller: User, data: UserUpdate) -> User:
        """
        Apply a partial profile update.

        Rules:
            - Allowed for admins, or for the account owner
            - The email address never changes
            - Only admins may touch is_admin / is_validated
            - A new password is strength-checked and hashed
        """
        if not caller.is_admin and caller.id != data.id:
            raise PermissionDeniedError(errors.UNAUTHORIZED)

        user = await self.get_or_404(db, data.id)

        changes = data.model_dump(exclude_unset=True, exclude={"id", "email"})
        if not caller.is_admin:
            for field in _ADMIN_ONLY_FIELDS:
                changes.pop(field, None)

        for field, value in changes.items():
            if value is None and field not in _NULLABLE_PROFILE_FIELDS:
                continue
            if field == "password":
                if not security.is_strong_password(value):
                    raise ValidationError(errors.INVALID_PASSWORD, field="password")
                value = security.hash_password(value)
            setattr(user, field, value)

        await db.flush()
        logger.info("User %s updated by %s (fields: %s)", user.id, caller.id, sorted(changes))
        return user

    async def delete_user(self, db: AsyncSession, user_id: UUID) -> User:
        user = await self.get_or_404(db, user_id)
        await db.delete(user)
        await db.flush()
        logger.info("User deleted: %s", user_id)
        return user


# ── Module-level singleton ────────────────────────────────────────────────
user_service = UserService()
