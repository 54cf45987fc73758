"""SocialHub Backend — Google Drive connection schemas."""

from typing import Optional

from socialhub.schemas.common import CamelModel


class AuthUrlResponse(CamelModel):
    auth_url: str


class DriveCallbackRequest(CamelModel):
    # Presence is checked in the route so a missing code answers 400 with a message
    code: Optional[str] = None


class DriveConnectionResponse(CamelModel):
    message: str
    connected: bool


class DriveStatusResponse(CamelModel):
    connected: bool
    has_valid_tokens: bool
