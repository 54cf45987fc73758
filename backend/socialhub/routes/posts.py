"""
SocialHub Backend — Post Routes
=================================

What:  Post creation (multipart), the feed, single posts, like/save toggles
       and archiving.
How:   The create handler reads the uploaded files into memory, bounded by
       MAX_UPLOAD_SIZE per file in PostService, and hands them over as
       PostCreateData.

Request Flow (POST /api/posts):
    1. multipart/form-data: type, caption, textContent, tags (comma
       separated), location, files[]
    2. PostService validates, uploads media to the author's drive and
       inserts the post
    3. 201 {message, post}
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from socialhub.database import get_db_session
from socialhub.dependencies import get_current_user, get_drive_service, get_mirror_sink
from socialhub.models.user import User
from socialhub.schemas.common import ErrorResponse
from socialhub.schemas.post import (
    LikeResponse,
    PostCreateData,
    PostCreatedResponse,
    PostEnvelope,
    PostListResponse,
    SaveResponse,
    UploadedMedia,
)
from socialhub.services.drive_service import DriveService
from socialhub.services.mirror import MirrorSink
from socialhub.services.post_service import normalize_tags, post_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["Posts"])


@router.post(
    "",
    status_code=201,
    response_model=PostCreatedResponse,
    responses={
        400: {"description": "Invalid post or files", "model": ErrorResponse},
        403: {"description": "Google Drive not connected", "model": ErrorResponse},
        500: {"description": "Upload to Google Drive failed", "model": ErrorResponse},
    },
    summary="Create a text, image or video post",
)
async def create_post(
    type: str = Form(..., description="text, image or video"),
    caption: Optional[str] = Form(default=None),
    text_content: Optional[str] = Form(default=None, alias="textContent"),
    tags: Optional[str] = Form(default=None, description="Comma-separated tags"),
    location: Optional[str] = Form(default=None),
    files: Optional[List[UploadFile]] = File(default=None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    drive: DriveService = Depends(get_drive_service),
    mirror: MirrorSink = Depends(get_mirror_sink),
) -> PostCreatedResponse:
    uploads: List[UploadedMedia] = []
    try:
        for upload in files or []:
            uploads.append(
                UploadedMedia(
                    filename=upload.filename or "upload",
                    content_type=upload.content_type or "application/octet-stream",
                    content=await upload.read(),
                )
            )
    finally:
        for upload in files or []:
            await upload.close()

    logger.info(
        "Create post request: type=%s files=%d bytes=%d",
        type,
        len(uploads),
        sum(len(u.content) for u in uploads),
    )
    data = PostCreateData(
        type=type,
        caption=caption,
        text_content=text_content,
        tags=normalize_tags(tags),
        location=location,
        files=uploads,
    )
    return await post_service.create_post(db, current_user, data, drive, mirror)


@router.get(
    "",
    response_model=PostListResponse,
    summary="Feed of non-archived posts, newest first",
)
async def list_posts(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    tag: Optional[str] = Query(default=None, description="Only posts with this tag"),
    author: Optional[UUID] = Query(default=None, description="Only posts by this user id"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> PostListResponse:
    return await post_service.list_feed(db, current_user, page, limit, tag=tag, author_id=author)


@router.get(
    "/{post_id}",
    response_model=PostEnvelope,
    responses={
        403: {"description": "Archived post", "model": ErrorResponse},
        404: {"description": "Post not found", "model": ErrorResponse},
    },
    summary="Get a single post",
)
async def get_post(
    post_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> PostEnvelope:
    return await post_service.get_post(db, current_user, post_id)


@router.post(
    "/{post_id}/like",
    response_model=LikeResponse,
    responses={404: {"description": "Post not found", "model": ErrorResponse}},
    summary="Like or unlike a post",
)
async def toggle_like(
    post_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    mirror: MirrorSink = Depends(get_mirror_sink),
) -> LikeResponse:
    return await post_service.toggle_like(db, current_user, post_id, mirror)


@router.post(
    "/{post_id}/save",
    response_model=SaveResponse,
    responses={404: {"description": "Post not found", "model": ErrorResponse}},
    summary="Save or unsave a post",
)
async def toggle_save(
    post_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    mirror: MirrorSink = Depends(get_mirror_sink),
) -> SaveResponse:
    return await post_service.toggle_save(db, current_user, post_id, mirror)


@router.put(
    "/{post_id}/archive",
    response_model=PostCreatedResponse,
    responses={
        403: {"description": "Not the author", "model": ErrorResponse},
        404: {"description": "Post not found", "model": ErrorResponse},
    },
    summary="Archive or restore one of your posts",
)
async def toggle_archive(
    post_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> PostCreatedResponse:
    return await post_service.toggle_archive(db, current_user, post_id)
