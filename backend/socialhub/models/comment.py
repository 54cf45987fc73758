"""
SocialHub Backend — Comment Models
====================================

What:  ORM models for `comments` and `comment_likes`.

Threading:
    One level only. A top-level comment has parent_comment_id = NULL; a reply
    points at a top-level comment of the same post. The `replies` set of a
    comment is every row whose parent_comment_id equals its id.
"""

import uuid
from typing import List, Optional

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy import text as sql_text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from socialhub.database import Base
from socialhub.models.common import IdMixin, TimestampMixin
from socialhub.models.user import User

MAX_COMMENT_LENGTH = 1000


class Comment(IdMixin, TimestampMixin, Base):
    __tablename__ = "comments"

    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    text: Mapped[str] = mapped_column(String(MAX_COMMENT_LENGTH), nullable=False)
    parent_comment_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, default=None
    )
    likes_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=sql_text("0")
    )

    author: Mapped[Optional[User]] = relationship(User, lazy="raise")
    replies: Mapped[List["Comment"]] = relationship(
        "Comment",
        lazy="raise",
        order_by="Comment.created_at",
    )

    __table_args__ = (
        CheckConstraint("likes_count >= 0", name="ck_comments_likes_count"),
        Index("idx_comments_post_created", "post_id", "created_at"),
        Index("idx_comments_parent", "parent_comment_id"),
    )

    def __repr__(self) -> str:
        return f"<Comment(id={self.id}, post_id={self.post_id})>"


class CommentLike(Base):
    __tablename__ = "comment_likes"

    comment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("comments.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
