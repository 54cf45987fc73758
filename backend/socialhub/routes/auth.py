"""
SocialHub Backend — Authentication Routes
===========================================

What:  POST /api/users/register, POST /api/users/login, GET /api/auth/verify.
How:   Thin handlers; UserService does the work. Both register and login
       return a bearer token plus the public user record, and mirror a row
       to the Logins sheet.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from socialhub.database import get_db_session
from socialhub.dependencies import get_current_user, get_mirror_sink
from socialhub.models.user import User
from socialhub.schemas.common import ErrorResponse
from socialhub.schemas.user import AuthResponse, LoginRequest, RegisterRequest, VerifyResponse
from socialhub.services.mirror import MirrorSink
from socialhub.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Auth"])


@router.post(
    "/users/register",
    status_code=201,
    response_model=AuthResponse,
    responses={400: {"description": "Invalid input or user exists", "model": ErrorResponse}},
    summary="Create an account",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
    mirror: MirrorSink = Depends(get_mirror_sink),
) -> AuthResponse:
    return await user_service.register(db, body, mirror)


@router.post(
    "/users/login",
    response_model=AuthResponse,
    responses={401: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Log in with email and password",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
    mirror: MirrorSink = Depends(get_mirror_sink),
) -> AuthResponse:
    return await user_service.login(db, body, mirror)


@router.get(
    "/auth/verify",
    response_model=VerifyResponse,
    responses={401: {"description": "Missing, invalid or expired token", "model": ErrorResponse}},
    summary="Check a bearer token",
)
async def verify(current_user: User = Depends(get_current_user)) -> VerifyResponse:
    return user_service.verify(current_user)
