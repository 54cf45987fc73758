"""
SocialHub Backend — User Schemas
==================================

What:  Request bodies and response shapes for registration, login,
       profiles and follows.

Exposure rules:
    UserResponse never includes password_hash or google_drive_tokens.
    UserSummary is the compact form embedded in posts, comments and
    notifications.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from socialhub.schemas.common import CamelModel


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class RegisterRequest(CamelModel):
    username: str = Field(min_length=3, max_length=30, pattern=r"^[A-Za-z0-9_.]+$")
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    full_name: Optional[str] = Field(default=None, max_length=100)

    @field_validator("username", "full_name")
    @classmethod
    def strip_whitespace(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else v


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class ProfileUpdateRequest(CamelModel):
    """Only the fields present in the body are changed."""
    full_name: Optional[str] = Field(default=None, max_length=100)
    bio: Optional[str] = Field(default=None, max_length=500)
    is_private: Optional[bool] = None

    @field_validator("is_private")
    @classmethod
    def reject_null_flag(cls, v: Optional[bool]) -> bool:
        # Omit the key to leave the flag unchanged; null is not a value
        if v is None:
            raise ValueError("isPrivate must be true or false")
        return v


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserSummary(CamelModel):
    id: uuid.UUID
    username: str
    full_name: Optional[str] = None
    profile_picture: Optional[str] = None
    is_verified: bool = False


class UserResponse(CamelModel):
    id: uuid.UUID
    username: str
    email: str
    full_name: Optional[str] = None
    bio: Optional[str] = None
    profile_picture: Optional[str] = None
    is_verified: bool = False
    is_private: bool = False
    google_drive_connected: bool = False
    followers_count: int = 0
    following_count: int = 0
    posts_count: int = 0
    created_at: datetime


class AuthResponse(CamelModel):
    message: str
    token: str = Field(description="Bearer token for the Authorization header")
    user: UserResponse


class VerifyResponse(CamelModel):
    valid: bool
    user: UserResponse


class ProfileResponse(CamelModel):
    user: UserResponse
    is_following: bool = Field(description="Whether the caller follows this user")


class ProfileUpdateResponse(CamelModel):
    message: str
    user: UserResponse


class FollowResponse(CamelModel):
    following: bool = Field(description="Whether the caller follows the target after the toggle")
    followers_count: int = Field(description="Target's followers count after the toggle")
