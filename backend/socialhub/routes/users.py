"""
SocialHub Backend — User Routes
=================================

What:  Profiles, profile updates, follow toggles and per-user post lists.

Route Inventory:
    GET  /api/users/{username}          profile + isFollowing
    POST /api/users/{user_id}/follow    follow / unfollow toggle
    PUT  /api/users/profile             update own profile
    GET  /api/users/{user_id}/posts     posts of one user (private accounts
                                        need a follow)
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from socialhub.database import get_db_session
from socialhub.dependencies import get_current_user, get_mirror_sink
from socialhub.models.user import User
from socialhub.schemas.common import ErrorResponse
from socialhub.schemas.post import PostListResponse
from socialhub.schemas.user import (
    FollowResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    ProfileUpdateResponse,
)
from socialhub.services.mirror import MirrorSink
from socialhub.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.put(
    "/profile",
    response_model=ProfileUpdateResponse,
    summary="Update the caller's profile",
)
async def update_profile(
    body: ProfileUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileUpdateResponse:
    return await user_service.update_profile(db, current_user, body)


@router.get(
    "/{username}",
    response_model=ProfileResponse,
    responses={404: {"description": "User not found", "model": ErrorResponse}},
    summary="Get a profile by username",
)
async def get_profile(
    username: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileResponse:
    return await user_service.get_profile(db, current_user, username)


@router.post(
    "/{user_id}/follow",
    response_model=FollowResponse,
    responses={
        400: {"description": "Cannot follow yourself", "model": ErrorResponse},
        404: {"description": "User not found", "model": ErrorResponse},
    },
    summary="Follow or unfollow a user",
)
async def toggle_follow(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    mirror: MirrorSink = Depends(get_mirror_sink),
) -> FollowResponse:
    return await user_service.toggle_follow(db, current_user, user_id, mirror)


@router.get(
    "/{user_id}/posts",
    response_model=PostListResponse,
    responses={
        403: {"description": "Private account", "model": ErrorResponse},
        404: {"description": "User not found", "model": ErrorResponse},
    },
    summary="List a user's posts",
)
async def list_user_posts(
    user_id: UUID,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=12, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> PostListResponse:
    return await user_service.list_user_posts(db, current_user, user_id, page, limit)
