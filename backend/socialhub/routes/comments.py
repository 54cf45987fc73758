"""
SocialHub Backend — Comment Routes
====================================

Route Inventory:
    POST /api/comments/{post_id}             add a comment or reply
    GET  /api/comments/{post_id}             threads, newest first
    POST /api/comments/{comment_id}/like     like / unlike a comment
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from socialhub.database import get_db_session
from socialhub.dependencies import get_current_user, get_mirror_sink
from socialhub.models.user import User
from socialhub.schemas.comment import (
    CommentCreatedResponse,
    CommentCreateRequest,
    CommentListResponse,
)
from socialhub.schemas.common import ErrorResponse
from socialhub.schemas.post import LikeResponse
from socialhub.services.comment_service import comment_service
from socialhub.services.mirror import MirrorSink

router = APIRouter(prefix="/api/comments", tags=["Comments"])


@router.post(
    "/{post_id}",
    status_code=201,
    response_model=CommentCreatedResponse,
    responses={
        400: {"description": "Empty or invalid comment", "model": ErrorResponse},
        404: {"description": "Post not found", "model": ErrorResponse},
    },
    summary="Comment on a post",
)
async def add_comment(
    post_id: UUID,
    body: CommentCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    mirror: MirrorSink = Depends(get_mirror_sink),
) -> CommentCreatedResponse:
    return await comment_service.add_comment(db, current_user, post_id, body, mirror)


@router.get(
    "/{post_id}",
    response_model=CommentListResponse,
    summary="List a post's comments with their replies",
)
async def list_comments(
    post_id: UUID,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CommentListResponse:
    return await comment_service.list_comments(db, post_id, page, limit)


@router.post(
    "/{comment_id}/like",
    response_model=LikeResponse,
    responses={404: {"description": "Comment not found", "model": ErrorResponse}},
    summary="Like or unlike a comment",
)
async def toggle_comment_like(
    comment_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> LikeResponse:
    return await comment_service.toggle_comment_like(db, current_user, comment_id)
