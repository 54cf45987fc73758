"""
SocialHub Backend — Password Hashing and Tokens
=================================================

What:  bcrypt password hashing (passlib) and HS256 bearer tokens (PyJWT).
Who:   UserService (register, login) and the get_current_user dependency.

Token claims:
    sub  → user id (string UUID)
    iat  → issued-at
    exp  → issued-at + JWT_EXPIRE_DAYS
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from passlib.context import CryptContext

from socialhub.config import settings
from socialhub.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    return pwd_context.verify(plain_password, password_hash)


def create_access_token(user_id: uuid.UUID, expires_delta: Optional[timedelta] = None) -> str:
    """Issues a signed token whose subject is the user id."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(days=settings.jwt_expire_days))
    payload = {"sub": str(user_id), "iat": now, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> uuid.UUID:
    """
    Verifies the signature and expiry and returns the subject.

    Raises:
        AuthenticationError: expired, tampered or malformed token
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError(message="Token has expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError(message="Invalid token")

    subject = payload.get("sub")
    try:
        return uuid.UUID(str(subject))
    except ValueError:
        logger.warning("Token with malformed subject rejected")
        raise AuthenticationError(message="Invalid token")
