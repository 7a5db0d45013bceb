"""
BookSwap Backend — Security Helper Unit Tests
==============================================

What:  Tests for password hashing, credential rules and purpose-bound JWTs.
How:   Pure functions; no database or HTTP involved.

What we test:
    ✅ bcrypt hash/verify round trip and malformed hashes
    ✅ Password strength and email format rules
    ✅ Tokens decode only for the purpose they were issued for
    ✅ Expired, tampered and foreign-secret tokens are rejected
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from jose import jwt

from bookswap.config import settings
from bookswap.services import security


class TestPasswords:
    """Tests for password hashing and strength rules."""

    def test_hash_is_not_plaintext_and_verifies(self):
        """Hash should differ from the password and verify case-sensitively."""
        hashed = security.hash_password("Secret123")
        assert hashed != "Secret123"
        assert security.verify_password("Secret123", hashed)
        assert not security.verify_password("secret123", hashed)

    def test_malformed_hash_never_matches(self):
        """A malformed stored hash should never verify."""
        assert security.verify_password("Secret123", "not-a-bcrypt-hash") is False

    @pytest.mark.parametrize("password", ["Secret123", "aB3aaaaa", "ÑandúVerde9"])
    def test_strong_passwords(self, password):
        """Passwords meeting every rule should be accepted."""
        assert security.is_strong_password(password)

    @pytest.mark.parametrize(
        "password",
        [
            "Sh0rt",          # fewer than 8 characters
            "alllower123",    # no upper-case letter
            "ALLUPPER123",    # no lower-case letter
            "NoDigitsHere",   # no digit
        ],
    )
    def test_weak_passwords(self, password):
        """Passwords breaking any rule should be rejected."""
        assert not security.is_strong_password(password)


class TestEmailFormat:
    """Tests for the email format check."""

    @pytest.mark.parametrize("email", ["lector@example.com", "a.b-c@mail.uc.cl", "x_y@dom.info"])
    def test_valid(self, email):
        """Well-formed addresses should pass."""
        assert security.is_valid_email(email)

    @pytest.mark.parametrize("email", ["sin-arroba.com", "a@b", "a@dominio.toolongtld", "a b@c.com"])
    def test_invalid(self, email):
        """Malformed addresses should fail."""
        assert not security.is_valid_email(email)


class TestTokens:
    """Tests for purpose-scoped JWTs."""

    def test_round_trip_for_matching_purpose(self):
        """Decoding with the issuing purpose should return the user id."""
        user_id = uuid4()
        token = security.create_token(user_id, security.VERIFY, hours=1)
        assert security.decode_token(token, security.VERIFY) == user_id

    def test_wrong_purpose_is_rejected(self):
        """A verification link must never work as a session."""
        user_id = uuid4()
        token = security.create_token(user_id, security.VERIFY, hours=1)
        assert security.decode_token(token, security.SESSION) is None
        assert security.decode_token(token, security.RESET) is None

    def test_session_token_helper(self):
        """Session helper should issue a SESSION token."""
        user_id = uuid4()
        token = security.create_session_token(user_id)
        assert security.decode_token(token, security.SESSION) == user_id

    def test_expired_token_is_rejected(self):
        """Expired tokens should decode to None."""
        payload = {
            "sub": str(uuid4()),
            "purpose": security.SESSION,
            "exp": datetime.now(timezone.utc) - timedelta(minutes=1),
        }
        token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
        assert security.decode_token(token, security.SESSION) is None

    def test_foreign_secret_is_rejected(self):
        """Tokens signed with another secret should decode to None."""
        payload = {
            "sub": str(uuid4()),
            "purpose": security.SESSION,
            "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        }
        token = jwt.encode(payload, "someone-else", algorithm=settings.jwt_algorithm)
        assert security.decode_token(token, security.SESSION) is None

    def test_garbage_and_bad_subject(self):
        """Garbage input and non-UUID subjects should decode to None."""
        assert security.decode_token("not.a.jwt", security.SESSION) is None
        payload = {
            "sub": "not-a-uuid",
            "purpose": security.SESSION,
            "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        }
        token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
        assert security.decode_token(token, security.SESSION) is None
