"""
BookSwap Backend — Password Hashing & JWT Helpers
==================================================

What:  bcrypt password hashing, credential-format rules, and the signed
       tokens used for sessions, email verification and password resets.
Who:   The auth dependency (session tokens) and UserService (everything else).

Token Purposes:
    Every token carries a `purpose` claim next to `sub` (the user id):
        session → issued by login, accepted by the auth dependency
        verify  → emailed after registration, accepted by POST /users/verify
        reset   → emailed by password reset, accepted by POST /users/change-password
    A token is only valid for the purpose it was issued for, so a leaked
    verification link can never be replayed as a login session.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

import bcrypt
from jose import JWTError, jwt

from bookswap.config import settings

SESSION = "session"
VERIFY = "verify"
RESET = "reset"

EMAIL_PATTERN = re.compile(r"^[\w\-.]+@([\w-]+\.)+[\w-]{2,4}$")

# bcrypt only looks at the first 72 bytes of the input
_BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Hash password with bcrypt and a fresh salt."""
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify password against hash. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        return False


def is_strong_password(password: str) -> bool:
    """At least 8 characters with an upper-case letter, a lower-case letter and a digit."""
    return (
        len(password) >= 8
        and re.search(r"[A-Z]", password) is not None
        and re.search(r"[a-z]", password) is not None
        and re.search(r"\d", password) is not None
    )


def is_valid_email(email: str) -> bool:
    return EMAIL_PATTERN.match(email) is not None


def create_token(user_id: UUID, purpose: str, hours: int) -> str:
    expire = datetime.now(timezone.utc) + timedelta(hours=hours)
    to_encode = {"sub": str(user_id), "purpose": purpose, "exp": expire}
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_session_token(user_id: UUID) -> str:
    return create_token(user_id, SESSION, settings.session_token_hours)


def decode_token(token: str, purpose: str) -> Optional[UUID]:
    """
    Returns the user id a token was issued for, or None.

    None covers every failure: bad signature, expiry, a missing or
    malformed subject, or a token minted for a different purpose.
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    if payload.get("purpose") != purpose:
        return None
    try:
        return UUID(str(payload.get("sub")))
    except ValueError:
        return None
