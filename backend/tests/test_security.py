"""
SocialHub Backend — Password and Token Tests
==============================================

What we test:
    ✅ bcrypt hashing and verification
    ✅ Token round trip, expiry and tampering
"""

import uuid
from datetime import timedelta

import jwt
import pytest

from conftest import TEST_PASSWORD, password_hash_for_tests
from socialhub.exceptions import AuthenticationError
from socialhub.services.security import (
    create_access_token,
    decode_access_token,
    verify_password,
)


class TestPasswords:

    def test_verify(self):
        hashed = password_hash_for_tests()

        assert hashed != TEST_PASSWORD
        assert verify_password(TEST_PASSWORD, hashed)
        assert not verify_password("wrong-password", hashed)


class TestTokens:

    def test_round_trip(self):
        user_id = uuid.uuid4()

        assert decode_access_token(create_access_token(user_id)) == user_id

    def test_expired(self):
        token = create_access_token(uuid.uuid4(), expires_delta=timedelta(seconds=-1))

        with pytest.raises(AuthenticationError) as exc_info:
            decode_access_token(token)
        assert exc_info.value.message == "Token has expired"

    def test_tampered(self):
        token = create_access_token(uuid.uuid4())
        header, payload, signature = token.split(".")
        forged = ".".join([header, payload, signature[::-1]])

        with pytest.raises(AuthenticationError) as exc_info:
            decode_access_token(forged)
        assert exc_info.value.message == "Invalid token"

    def test_wrong_secret(self):
        token = jwt.encode({"sub": str(uuid.uuid4())}, "another-secret", algorithm="HS256")

        with pytest.raises(AuthenticationError):
            decode_access_token(token)

    def test_subject_must_be_uuid(self):
        from socialhub.config import settings

        token = jwt.encode({"sub": "alice"}, settings.jwt_secret, algorithm="HS256")

        with pytest.raises(AuthenticationError):
            decode_access_token(token)
