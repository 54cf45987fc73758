"""
SocialHub Backend — Post Models
=================================

What:  ORM models for `posts` and its reaction link tables `post_likes`
       and `post_saves`.
Who:   Used by PostService (create, feed, like/save toggles, archive) and
       CommentService (comments_count).

Counters:
    likes_count    == COUNT(*) FROM post_likes WHERE post_id = posts.id
    saved_count    == COUNT(*) FROM post_saves WHERE post_id = posts.id
    comments_count == COUNT(*) FROM comments   WHERE post_id = posts.id

Query Patterns:
    - Feed: WHERE is_archived = false ORDER BY created_at DESC
      → idx_posts_created_at
    - Profile grid: WHERE author_id = :id ORDER BY created_at DESC
      → idx_posts_author_created
"""

import uuid
from typing import Any, Dict, List, Optional

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
from sqlalchemy.orm import Mapped, mapped_column, relationship

from socialhub.database import Base
from socialhub.models.common import IdMixin, TimestampMixin
from socialhub.models.user import User

POST_TYPES = ("text", "image", "video")


class Post(IdMixin, TimestampMixin, Base):
    """
    A text, image or video post.

    Lifecycle:
        1. Created by POST /posts (media already uploaded to the author's drive)
        2. Counters move with likes, saves and comments
        3. May be archived by its author; never deleted
    """

    __tablename__ = "posts"

    # SET NULL keeps posts readable if their author row disappears
    author_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    type: Mapped[str] = mapped_column(String(10), nullable=False)
    caption: Mapped[Optional[str]] = mapped_column(String(2000), nullable=True)
    text_content: Mapped[Optional[str]] = mapped_column(String(5000), nullable=True)

    # [{"fileId", "fileName", "mimeType", "webViewLink", "thumbnailLink"}]
    media_files: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    location: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_archived: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )

    # ── Denormalized counters ─────────────────────────────────────────────
    likes_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    saved_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    comments_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )

    author: Mapped[Optional[User]] = relationship(User, lazy="raise")

    __table_args__ = (
        CheckConstraint("type IN ('text', 'image', 'video')", name="ck_posts_type"),
        CheckConstraint("likes_count >= 0", name="ck_posts_likes_count"),
        CheckConstraint("saved_count >= 0", name="ck_posts_saved_count"),
        CheckConstraint("comments_count >= 0", name="ck_posts_comments_count"),
        Index("idx_posts_author_created", "author_id", "created_at"),
        Index("idx_posts_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, type='{self.type}', author_id={self.author_id})>"


class PostLike(Base):
    __tablename__ = "post_likes"

    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )


class PostSave(Base):
    __tablename__ = "post_saves"

    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
