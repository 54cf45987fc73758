"""
SocialHub Backend — Notification Routes
=========================================

Every route acts on the caller's own notifications only; an id that belongs
to someone else answers 404, exactly like an id that does not exist.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from socialhub.database import get_db_session
from socialhub.dependencies import get_current_user
from socialhub.models.user import User
from socialhub.schemas.common import ErrorResponse, MessageResponse
from socialhub.schemas.notification import NotificationEnvelope, NotificationListResponse
from socialhub.services.notification_service import notification_service

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


@router.get(
    "",
    response_model=NotificationListResponse,
    summary="List the caller's notifications, newest first",
)
async def list_notifications(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> NotificationListResponse:
    return await notification_service.list_notifications(db, current_user, page, limit)


@router.put(
    "/read-all",
    response_model=MessageResponse,
    summary="Mark every notification as read",
)
async def mark_all_read(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await notification_service.mark_all_read(db, current_user)
    return MessageResponse(message="All notifications marked as read")


@router.put(
    "/{notification_id}/read",
    response_model=NotificationEnvelope,
    responses={404: {"description": "Notification not found", "model": ErrorResponse}},
    summary="Mark one notification as read",
)
async def mark_read(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> NotificationEnvelope:
    notification = await notification_service.mark_read(db, current_user, notification_id)
    return NotificationEnvelope(message="Notification marked as read", notification=notification)


@router.delete(
    "/{notification_id}",
    response_model=MessageResponse,
    responses={404: {"description": "Notification not found", "model": ErrorResponse}},
    summary="Delete one notification",
)
async def delete_notification(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await notification_service.delete_notification(db, current_user, notification_id)
    return MessageResponse(message="Notification deleted")
