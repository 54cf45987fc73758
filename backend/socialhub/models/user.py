"""
SocialHub Backend — User and Follow Models
============================================

What:  ORM models for the `users` table and the `follows` link table.
Who:   Used by UserService (registration, login, profile, follow toggle),
       the auth dependency and the Google Drive connection routes.

Table Design:
    users.followers_count / following_count / posts_count are denormalized
    counters. They always equal, respectively:
        COUNT(*) FROM follows WHERE followee_id = users.id
        COUNT(*) FROM follows WHERE follower_id = users.id
        COUNT(*) FROM posts   WHERE author_id   = users.id
    They are only ever changed by services/counters.py, in the same
    transaction as the row that changes the underlying set.

    follows has a composite primary key (follower_id, followee_id); a second
    follow by the same actor cannot insert a second row. A CHECK constraint
    rejects self-follows at the storage layer.
"""

import uuid
from typing import Any, Dict, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from socialhub.database import Base
from socialhub.models.common import IdMixin, TimestampMixin


class User(IdMixin, TimestampMixin, Base):
    """
    A registered account.

    Never serialized directly: schemas/user.py picks the public fields, so
    password_hash and google_drive_tokens cannot leak into responses.
    """

    __tablename__ = "users"

    # ── Identity ──────────────────────────────────────────────────────────
    username: Mapped[str] = mapped_column(String(30), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # ── Profile ───────────────────────────────────────────────────────────
    full_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    profile_picture: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    is_private: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )

    # ── Google Drive connection ───────────────────────────────────────────
    # Token bundle: {"access_token", "refresh_token", "expiry_date" (epoch ms)}
    google_drive_connected: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    google_drive_tokens: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        JSON, nullable=True, default=None
    )

    # ── Denormalized counters ─────────────────────────────────────────────
    followers_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    following_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    posts_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )

    __table_args__ = (
        CheckConstraint("followers_count >= 0", name="ck_users_followers_count"),
        CheckConstraint("following_count >= 0", name="ck_users_following_count"),
        CheckConstraint("posts_count >= 0", name="ck_users_posts_count"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"


class Follow(Base):
    """One row per (follower → followee) edge."""

    __tablename__ = "follows"

    follower_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    followee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )

    __table_args__ = (
        CheckConstraint("follower_id <> followee_id", name="ck_follows_not_self"),
        Index("idx_follows_followee", "followee_id"),
    )
