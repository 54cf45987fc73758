"""
SocialHub Backend — Route Dependencies
========================================

What:  FastAPI dependencies shared by the route modules.
How:   get_current_user resolves the bearer token to a User row.
       get_mirror_sink / get_drive_service read the clients that
       create_app() placed on app.state; tests swap them through
       app.dependency_overrides.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from socialhub.database import get_db_session
from socialhub.exceptions import AuthenticationError
from socialhub.models.user import User
from socialhub.services.drive_service import DriveService
from socialhub.services.mirror import MirrorSink
from socialhub.services.security import decode_access_token

# auto_error=False: a missing header reaches get_current_user and becomes a 401
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(message="No token, authorization denied")

    user_id = decode_access_token(credentials.credentials)
    user = await db.get(User, user_id)
    if user is None:
        raise AuthenticationError(message="Token is not valid")
    return user


def get_mirror_sink(request: Request) -> MirrorSink:
    return request.app.state.mirror


def get_drive_service(request: Request) -> DriveService:
    return request.app.state.drive
