"""
SocialHub Backend — Notification Model
========================================

What:  ORM model for the `notifications` table.
Who:   Written by NotificationEmitter; read, marked and deleted through
       NotificationService.

Kinds:
    like           → sender liked the recipient's post or comment
    comment        → sender commented on the recipient's post
    follow         → sender started following the recipient
    drive_connect  → system notice; sender_id is NULL
"""

import uuid
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from socialhub.database import Base
from socialhub.models.common import IdMixin, TimestampMixin
from socialhub.models.post import Post
from socialhub.models.user import User

NOTIFICATION_KINDS = ("like", "comment", "follow", "drive_connect")


class Notification(IdMixin, TimestampMixin, Base):
    __tablename__ = "notifications"

    recipient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    post_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="SET NULL"), nullable=True
    )
    comment_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("comments.id", ondelete="SET NULL"), nullable=True
    )
    message: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    is_read: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )

    sender: Mapped[Optional[User]] = relationship(User, foreign_keys=[sender_id], lazy="raise")
    post: Mapped[Optional[Post]] = relationship(Post, lazy="raise")

    __table_args__ = (
        CheckConstraint(
            "type IN ('like', 'comment', 'follow', 'drive_connect')",
            name="ck_notifications_type",
        ),
        Index("idx_notifications_recipient_created", "recipient_id", "created_at"),
        Index("idx_notifications_recipient_unread", "recipient_id", "is_read"),
    )

    def __repr__(self) -> str:
        return (
            f"<Notification(id={self.id}, type='{self.type}', "
            f"recipient_id={self.recipient_id}, is_read={self.is_read})>"
        )
