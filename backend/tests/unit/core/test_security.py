"""
Unit Tests for Security Module
Tests for: password hashing, JWT tokens
"""
import pytest
from datetime import datetime, timedelta
from jose import jwt

from manuscript_portal.core.config import settings
from manuscript_portal.core.exceptions import InvalidTokenError, TokenExpiredError
from manuscript_portal.core.security import (
    build_token_claims,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_password_hash,
    verify_password,
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
)
from manuscript_portal.models import User, UserRole


class TestPasswordHashing:
    """Test password hashing functions"""

    def test_hash_differs_from_password(self):
        hashed = get_password_hash("testpassword123")

        assert hashed != "testpassword123"
        assert hashed.startswith("$2")

    def test_hash_uses_fresh_salt(self):
        assert get_password_hash("samepassword") != get_password_hash("samepassword")

    def test_verify_password_correct(self):
        hashed = get_password_hash("testpassword123")

        assert verify_password("testpassword123", hashed) is True

    def test_verify_password_incorrect(self):
        hashed = get_password_hash("testpassword123")

        assert verify_password("wrongpassword", hashed) is False

    def test_long_password_truncated_to_72_bytes(self):
        """Bcrypt only looks at the first 72 bytes"""
        hashed = get_password_hash("a" * 100)

        assert verify_password("a" * 100, hashed) is True
        assert verify_password("a" * 72 + "different", hashed) is True

    def test_verify_against_missing_or_bad_hash(self):
        assert verify_password("anything", None) is False
        assert verify_password("anything", "not-a-bcrypt-hash") is False


class TestTokens:
    """Test JWT creation and decoding"""

    def test_access_token_round_trip(self):
        token = create_access_token({"sub": "user-123", "role": "researcher"})

        payload = decode_token(token)

        assert payload["sub"] == "user-123"
        assert payload["role"] == "researcher"
        assert payload["type"] == ACCESS_TOKEN_TYPE

    def test_refresh_token_has_refresh_type_and_longer_expiry(self):
        access = decode_token(create_access_token({"sub": "u"}))
        refresh = decode_token(create_refresh_token({"sub": "u"}))

        assert refresh["type"] == REFRESH_TOKEN_TYPE
        assert refresh["exp"] > access["exp"]

    def test_custom_expiry(self):
        token = create_access_token({"sub": "u"}, expires_delta=timedelta(minutes=5))
        payload = jwt.get_unverified_claims(token)

        remaining = payload["exp"] - datetime.utcnow().timestamp()
        assert 0 < remaining <= 5 * 60 + 5

    def test_expired_token_raises_token_expired(self):
        token = create_access_token({"sub": "u"}, expires_delta=timedelta(seconds=-10))

        with pytest.raises(TokenExpiredError) as exc_info:
            decode_token(token)

        assert exc_info.value.message == "Token expired"
        assert exc_info.value.status_code == 401

    def test_tampered_token_is_invalid(self):
        token = create_access_token({"sub": "u"})

        with pytest.raises(InvalidTokenError):
            decode_token(token[:-2] + ("aa" if not token.endswith("aa") else "bb"))

    def test_token_signed_with_other_key_is_invalid(self):
        token = jwt.encode({"sub": "u", "type": "access"}, "other-key", algorithm=settings.JWT_ALGORITHM)

        with pytest.raises(InvalidTokenError):
            decode_token(token)

    def test_expected_type_mismatch(self):
        refresh = create_refresh_token({"sub": "u"})

        with pytest.raises(InvalidTokenError) as exc_info:
            decode_token(refresh, expected_type=ACCESS_TOKEN_TYPE)

        assert "access" in exc_info.value.message

    def test_build_token_claims(self):
        user = User(id="5f1d7c1e-9a3b-4c2d-8e7f-0a1b2c3d4e5f", email="r@example.org",
                    role=UserRole.RESEARCHER, is_approved=False)

        claims = build_token_claims(user)

        assert claims == {
            "sub": "5f1d7c1e-9a3b-4c2d-8e7f-0a1b2c3d4e5f",
            "email": "r@example.org",
            "role": "researcher",
            "is_approved": False,
        }
