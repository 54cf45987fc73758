"""
SocialHub Backend — Notification Schemas
==========================================
"""

import uuid
from datetime import datetime
from typing import List, Optional

from socialhub.models.notification import Notification
from socialhub.schemas.common import CamelModel, Page
from socialhub.schemas.post import MediaFile
from socialhub.schemas.user import UserSummary


class PostSummary(CamelModel):
    id: uuid.UUID
    type: str
    caption: Optional[str] = None
    media_files: List[MediaFile] = []


class NotificationResponse(CamelModel):
    id: uuid.UUID
    recipient: uuid.UUID
    sender: Optional[UserSummary] = None
    type: str
    post: Optional[PostSummary] = None
    comment: Optional[uuid.UUID] = None
    message: str
    is_read: bool
    created_at: datetime

    @classmethod
    def from_model(cls, notification: Notification) -> "NotificationResponse":
        """Requires sender and post to be eagerly loaded (both may be None)."""
        sender = notification.sender
        post = notification.post
        return cls(
            id=notification.id,
            recipient=notification.recipient_id,
            sender=UserSummary.model_validate(sender) if sender is not None else None,
            type=notification.type,
            post=PostSummary.model_validate(post) if post is not None else None,
            comment=notification.comment_id,
            message=notification.message,
            is_read=notification.is_read,
            created_at=notification.created_at,
        )


class NotificationListResponse(Page):
    notifications: List[NotificationResponse]
    unread_count: int


class NotificationEnvelope(CamelModel):
    message: str
    notification: NotificationResponse
