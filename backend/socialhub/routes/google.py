"""
SocialHub Backend — Google Drive Connection Routes
====================================================

What:  OAuth connection lifecycle for the caller's Google Drive.

Flow:
    1. GET  /api/google/auth-url   → frontend redirects the user to Google
    2. Google redirects back to the frontend with ?code=...
    3. POST /api/google/callback   → code exchanged, tokens stored,
                                     drive_connect notification written
    4. GET  /api/google/status     → connection flag + token presence
    5. POST /api/google/disconnect → tokens dropped
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from socialhub.database import get_db_session
from socialhub.dependencies import get_current_user, get_drive_service
from socialhub.models.user import User
from socialhub.schemas.common import ErrorResponse
from socialhub.schemas.google import (
    AuthUrlResponse,
    DriveCallbackRequest,
    DriveConnectionResponse,
    DriveStatusResponse,
)
from socialhub.services.drive_service import DriveService
from socialhub.services.user_service import user_service

router = APIRouter(prefix="/api/google", tags=["Google Drive"])


@router.get("/auth-url", response_model=AuthUrlResponse, summary="Google consent URL")
async def get_auth_url(
    current_user: User = Depends(get_current_user),
    drive: DriveService = Depends(get_drive_service),
) -> AuthUrlResponse:
    return AuthUrlResponse(auth_url=drive.get_auth_url())


@router.post(
    "/callback",
    response_model=DriveConnectionResponse,
    responses={
        400: {"description": "Authorization code required", "model": ErrorResponse},
        500: {"description": "Failed to connect Google Drive", "model": ErrorResponse},
    },
    summary="Finish the OAuth flow with the authorization code",
)
async def oauth_callback(
    body: DriveCallbackRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    drive: DriveService = Depends(get_drive_service),
) -> DriveConnectionResponse:
    return await user_service.connect_drive(db, current_user, body.code, drive)


@router.get("/status", response_model=DriveStatusResponse, summary="Drive connection status")
async def drive_status(current_user: User = Depends(get_current_user)) -> DriveStatusResponse:
    return user_service.drive_status(current_user)


@router.post(
    "/disconnect",
    response_model=DriveConnectionResponse,
    summary="Forget the stored Google Drive tokens",
)
async def disconnect(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> DriveConnectionResponse:
    return await user_service.disconnect_drive(db, current_user)
