"""
BookSwap Backend — Bearer Token Authentication Dependency
==========================================================

What:  FastAPI dependency factory resolving the caller from the
       `Authorization: Bearer <jwt>` header.
Why:   Authentication is per-route (some endpoints are public, some
       optional, some admin-only), so it is a dependency rather than a
       Starlette middleware like request IDs and rate limiting.
How:   `current_user(optional=..., admins_only=...)` returns a dependency
       that routes declare with `Depends(...)`.

Decision Table:
    header               token        user      optional  admins_only  result
    ───────────────────  ───────────  ────────  ────────  ───────────  ─────────────────────
    missing / not Bearer  -            -         no        -            401 UNAUTHENTICATED
    missing / not Bearer  -            -         yes       -            None
    Bearer                invalid/exp  -         no        -            401 SESSION_EXPIRED
    Bearer                invalid/exp  -         yes       -            None
    Bearer                valid        deleted   no        -            401 UNAUTHENTICATED
    Bearer                valid        found     -         yes, !admin  403 FORBIDDEN
    Bearer                valid        found     -         -            User

Usage:
    @router.get("/me")
    async def me(user: User = Depends(current_user())): ...

    @router.get("/")
    async def list_all(user: User = Depends(current_user(admins_only=True))): ...
"""

import logging
import re
from typing import Awaitable, Callable, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from bookswap import errors
from bookswap.database import get_db_session
from bookswap.exceptions import AuthenticationError, PermissionDeniedError
from bookswap.models.user import User
from bookswap.services import security

logger = logging.getLogger(__name__)

_BEARER = re.compile(r"^Bearer (.+)$")


def bearer_token(request: Request) -> Optional[str]:
    match = _BEARER.match(request.headers.get("Authorization", ""))
    return match.group(1) if match else None


def current_user(
    optional: bool = False,
    admins_only: bool = False,
) -> Callable[..., Awaitable[Optional[User]]]:
    """
    Build an authentication dependency.

    Args:
        optional:    Anonymous callers (or broken tokens) get None instead of 401.
        admins_only: Authenticated non-admins get 403 FORBIDDEN.
    """

    async def dependency(
        request: Request,
        db: AsyncSession = Depends(get_db_session),
    ) -> Optional[User]:
        token = bearer_token(request)
        user: Optional[User] = None

        if token is not None:
            user_id = security.decode_token(token, security.SESSION)
            if user_id is None:
                if optional:
                    return None
                raise AuthenticationError(errors.SESSION_EXPIRED)
            user = await db.get(User, user_id)
            if user is None:
                logger.info("Session token for deleted user %s", user_id)

        if user is None:
            if optional:
                return None
            raise AuthenticationError(errors.UNAUTHENTICATED)

        if admins_only and not user.is_admin:
            raise PermissionDeniedError(errors.FORBIDDEN)

        request.state.user_id = str(user.id)
        return user

    return dependency
