"""
SocialHub Backend — Notifications
===================================

What:  NotificationEmitter creates notification rows for user actions;
       NotificationService lists, marks and deletes them for the recipient.
Who:   The emitter is called by UserService (follow), PostService (like),
       CommentService (comment, comment like) and the Google routes
       (drive_connect). The service backs the /notifications routes.

Rules:
    - emit() is a no-op when the recipient is the actor.
    - Rows are added to the caller's session, so a notification commits or
      rolls back together with the action that produced it.
    - Unfollow/unlike never delete earlier notifications.
"""

import logging
import math
import uuid
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from socialhub.exceptions import NotFoundError, ValidationError
from socialhub.models.notification import NOTIFICATION_KINDS, Notification
from socialhub.models.user import User
from socialhub.schemas.notification import NotificationListResponse, NotificationResponse

logger = logging.getLogger(__name__)


class NotificationEmitter:
    """Writes notifications for actions that target another user."""

    async def emit(
        self,
        db: AsyncSession,
        recipient_id: Optional[uuid.UUID],
        sender_id: uuid.UUID,
        kind: str,
        message: str,
        post_id: Optional[uuid.UUID] = None,
        comment_id: Optional[uuid.UUID] = None,
    ) -> Optional[Notification]:
        """
        Persists a notification unless the actor is the recipient.

        A missing recipient (e.g. a post whose author row is gone) is also a
        no-op. Returns the new Notification, or None when nothing was written.
        """
        if kind not in NOTIFICATION_KINDS:
            raise ValidationError(message=f"Unknown notification kind '{kind}'", field="type")
        if recipient_id is None or recipient_id == sender_id:
            return None

        notification = Notification(
            recipient_id=recipient_id,
            sender_id=sender_id,
            type=kind,
            message=message,
            post_id=post_id,
            comment_id=comment_id,
            is_read=False,
        )
        db.add(notification)
        await db.flush()
        logger.info("Notification %s: %s → %s", kind, sender_id, recipient_id)
        return notification

    async def emit_system(
        self,
        db: AsyncSession,
        recipient_id: uuid.UUID,
        kind: str,
        message: str,
    ) -> Notification:
        """Persists a sender-less notice such as drive_connect."""
        if kind not in NOTIFICATION_KINDS:
            raise ValidationError(message=f"Unknown notification kind '{kind}'", field="type")
        notification = Notification(
            recipient_id=recipient_id,
            sender_id=None,
            type=kind,
            message=message,
            is_read=False,
        )
        db.add(notification)
        await db.flush()
        logger.info("System notification %s → %s", kind, recipient_id)
        return notification


class NotificationService:
    """Recipient-side operations. Every query is scoped to the recipient."""

    async def list_notifications(
        self,
        db: AsyncSession,
        recipient: User,
        page: int = 1,
        limit: int = 20,
    ) -> NotificationListResponse:
        """
        Newest-first page of the recipient's notifications.

        Sender and post are loaded with selectinload; either may be None and
        serializes as null.
        """
        query = (
            select(Notification)
            .where(Notification.recipient_id == recipient.id)
            .options(selectinload(Notification.sender), selectinload(Notification.post))
            .order_by(Notification.created_at.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )
        rows = (await db.execute(query)).scalars().all()

        total = (
            await db.execute(
                select(func.count(Notification.id)).where(Notification.recipient_id == recipient.id)
            )
        ).scalar() or 0
        unread = (
            await db.execute(
                select(func.count(Notification.id)).where(
                    Notification.recipient_id == recipient.id,
                    Notification.is_read.is_(False),
                )
            )
        ).scalar() or 0

        return NotificationListResponse(
            notifications=[NotificationResponse.from_model(n) for n in rows],
            unread_count=unread,
            total_pages=math.ceil(total / limit),
            current_page=page,
        )

    async def mark_read(
        self, db: AsyncSession, recipient: User, notification_id: uuid.UUID
    ) -> NotificationResponse:
        result = await db.execute(
            update(Notification)
            .where(Notification.id == notification_id, Notification.recipient_id == recipient.id)
            .values(is_read=True)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            raise NotFoundError(resource="notification", resource_id=str(notification_id))

        notification = (
            await db.execute(
                select(Notification)
                .where(Notification.id == notification_id)
                .options(selectinload(Notification.sender), selectinload(Notification.post))
                .execution_options(populate_existing=True)
            )
        ).scalar_one()
        return NotificationResponse.from_model(notification)

    async def mark_all_read(self, db: AsyncSession, recipient: User) -> int:
        result = await db.execute(
            update(Notification)
            .where(Notification.recipient_id == recipient.id, Notification.is_read.is_(False))
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        logger.info("Marked %d notifications read for %s", result.rowcount, recipient.id)
        return result.rowcount

    async def delete_notification(
        self, db: AsyncSession, recipient: User, notification_id: uuid.UUID
    ) -> None:
        result = await db.execute(
            delete(Notification)
            .where(Notification.id == notification_id, Notification.recipient_id == recipient.id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError(resource="notification", resource_id=str(notification_id))


notification_emitter = NotificationEmitter()
notification_service = NotificationService()
