"""
Unit Tests for Security Module
Tests for: password hashing, JWT tokens
"""
import pytest
from datetime import timedelta
from jose import jwt

from nanoflows.core.config import settings
from nanoflows.core.exceptions import InvalidTokenError, TokenExpiredError
from nanoflows.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
    create_user_token,
    decode_token,
)
from nanoflows.models import User, UserRole


class TestPasswordHashing:
    """Test password hashing functions"""

    def test_hash_password_returns_different_value(self):
        password = "testpassword123"
        hashed = get_password_hash(password)

        assert hashed != password
        assert hashed.startswith("$2")

    def test_hash_password_different_each_time(self):
        """Bcrypt generates different salts"""
        password = "testpassword123"
        assert get_password_hash(password) != get_password_hash(password)

    def test_verify_password_correct(self):
        hashed = get_password_hash("testpassword123")
        assert verify_password("testpassword123", hashed) is True

    def test_verify_password_incorrect(self):
        hashed = get_password_hash("testpassword123")
        assert verify_password("wrongpassword", hashed) is False

    def test_verify_password_empty_hash(self):
        assert verify_password("anything", "") is False

    def test_verify_password_not_a_bcrypt_hash(self):
        assert verify_password("anything", "plain-text-value") is False

    def test_long_password_truncated_to_72_bytes(self):
        """Only the first 72 bytes take part in the hash"""
        base = "a" * 72
        hashed = get_password_hash(base + "tail-one")
        assert verify_password(base + "tail-two", hashed) is True


class TestJWTTokens:
    """Test JWT token functions"""

    def test_create_access_token(self):
        token = create_access_token({"sub": "user-123", "email": "test@example.com"})

        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        assert payload["sub"] == "user-123"
        assert payload["type"] == "access"
        assert "exp" in payload

    def test_create_user_token_uses_role_value(self):
        user = User(id="user-1", email="admin@example.com", name="Admin", role=UserRole.ADMIN)
        payload = decode_token(create_user_token(user))

        assert payload["sub"] == "user-1"
        assert payload["email"] == "admin@example.com"
        assert payload["role"] == "admin"

    def test_decode_valid_token(self):
        token = create_access_token({"sub": "user-123"})
        assert decode_token(token)["sub"] == "user-123"

    def test_decode_expired_token(self):
        token = create_access_token({"sub": "user-123"}, expires_delta=timedelta(seconds=-1))

        with pytest.raises(TokenExpiredError):
            decode_token(token)

    def test_decode_token_wrong_secret(self):
        token = jwt.encode({"sub": "user-123"}, "another-secret", algorithm="HS256")

        with pytest.raises(InvalidTokenError):
            decode_token(token)

    def test_decode_garbage_token(self):
        with pytest.raises(InvalidTokenError) as exc_info:
            decode_token("not.a.token")

        assert exc_info.value.status_code == 401
