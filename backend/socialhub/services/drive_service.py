"""
SocialHub Backend — Google Drive Media Storage
================================================

What:  Per-user media storage in the user's own Google Drive.
How:   OAuth 2.0 authorization-code flow. The code exchange and token refresh
       are plain HTTPS calls (httpx); file operations use the Drive v3 API via
       google-api-python-client, run in a worker thread because that client
       is synchronous.
Who:   Google routes (connect/disconnect) and PostService (media upload,
       cleanup of uploads when post creation fails).

Token bundle stored on users.google_drive_tokens:
    {"access_token": str, "refresh_token": str, "expiry_date": epoch ms}

Uploaded files land in one app folder (GOOGLE_DRIVE_FOLDER) created on first
use, and are shared read-only with anyone holding the link.
"""

import asyncio
import io
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from socialhub.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
DRIVE_SCOPES = [
    "https://www.googleapis.com/auth/drive.file",
    "https://www.googleapis.com/auth/userinfo.profile",
]
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"

# Tokens this close to expiry are refreshed before use
EXPIRY_SKEW_MS = 60_000


def tokens_expired(tokens: Optional[Dict[str, Any]], now_ms: Optional[int] = None) -> bool:
    """True when the bundle has no usable access token or it is about to expire."""
    if not tokens or not tokens.get("access_token"):
        return True
    expiry = tokens.get("expiry_date")
    if expiry is None:
        return False
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    return int(expiry) <= now_ms + EXPIRY_SKEW_MS


class DriveService(ABC):
    """Drive operations needed by the API. GoogleDriveService is the only
    production implementation; tests provide an in-memory one."""

    @abstractmethod
    def get_auth_url(self) -> str:
        ...

    @abstractmethod
    async def exchange_code(self, code: str) -> Dict[str, Any]:
        """Trades an authorization code for a token bundle."""
        ...

    @abstractmethod
    async def refresh_access_token(self, tokens: Dict[str, Any]) -> Dict[str, Any]:
        ...

    @abstractmethod
    async def upload_file(
        self, tokens: Dict[str, Any], file_name: str, mime_type: str, content: bytes
    ) -> Dict[str, Any]:
        """Stores the file and returns its media descriptor
        (fileId, fileName, mimeType, webViewLink, thumbnailLink)."""
        ...

    @abstractmethod
    async def delete_file(self, tokens: Dict[str, Any], file_id: str) -> None:
        ...


class GoogleDriveService(DriveService):

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        folder_name: str = "SocialMediaApp",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.folder_name = folder_name
        # Injected in tests (httpx.MockTransport)
        self._transport = transport

    # ── OAuth ─────────────────────────────────────────────────────────────

    def get_auth_url(self) -> str:
        # offline + consent so Google always returns a refresh token
        query = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(DRIVE_SCOPES),
            "access_type": "offline",
            "prompt": "consent",
        }
        return f"{AUTH_URL}?{urlencode(query)}"

    async def exchange_code(self, code: str) -> Dict[str, Any]:
        data = await self._token_request(
            {
                "code": code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": self.redirect_uri,
                "grant_type": "authorization_code",
            }
        )
        logger.info("Google Drive authorization code exchanged")
        return self._bundle(data)

    async def refresh_access_token(self, tokens: Dict[str, Any]) -> Dict[str, Any]:
        refresh_token = tokens.get("refresh_token")
        if not refresh_token:
            raise ExternalServiceError(service="Google Drive", message="No refresh token stored")
        data = await self._token_request(
            {
                "refresh_token": refresh_token,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "grant_type": "refresh_token",
            }
        )
        # Google omits refresh_token on refresh; keep the one we have
        data.setdefault("refresh_token", refresh_token)
        return self._bundle(data)

    async def _token_request(self, form: Dict[str, str]) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=30.0) as client:
                response = await client.post(TOKEN_URL, data=form)
        except httpx.HTTPError as e:
            logger.error("Google token endpoint unreachable: %s", str(e))
            raise ExternalServiceError(service="Google Drive")

        if response.status_code >= 400:
            logger.error(
                "Google token endpoint returned %d: %s", response.status_code, response.text[:200]
            )
            raise ExternalServiceError(
                service="Google Drive",
                message="Failed to connect Google Drive",
                context={"status": response.status_code},
            )
        return response.json()

    @staticmethod
    def _bundle(data: Dict[str, Any]) -> Dict[str, Any]:
        expires_in = data.get("expires_in")
        expiry_date = (
            int(time.time() * 1000) + int(expires_in) * 1000 if expires_in is not None else None
        )
        return {
            "access_token": data.get("access_token"),
            "refresh_token": data.get("refresh_token"),
            "expiry_date": expiry_date,
        }

    # ── Files ─────────────────────────────────────────────────────────────

    def _drive(self, tokens: Dict[str, Any]):
        credentials = Credentials(
            token=tokens.get("access_token"),
            refresh_token=tokens.get("refresh_token"),
            token_uri=TOKEN_URL,
            client_id=self.client_id,
            client_secret=self.client_secret,
            scopes=DRIVE_SCOPES,
        )
        return build("drive", "v3", credentials=credentials, cache_discovery=False)

    def _get_or_create_folder(self, drive) -> str:
        response = drive.files().list(
            q=(
                f"name='{self.folder_name}' and mimeType='{FOLDER_MIME_TYPE}' "
                "and trashed=false"
            ),
            fields="files(id, name)",
            spaces="drive",
        ).execute()
        files = response.get("files", [])
        if files:
            return files[0]["id"]

        folder = drive.files().create(
            body={"name": self.folder_name, "mimeType": FOLDER_MIME_TYPE},
            fields="id",
        ).execute()
        logger.info("Created drive folder '%s'", self.folder_name)
        return folder["id"]

    def _upload_sync(
        self, tokens: Dict[str, Any], file_name: str, mime_type: str, content: bytes
    ) -> Dict[str, Any]:
        drive = self._drive(tokens)
        folder_id = self._get_or_create_folder(drive)
        media = MediaIoBaseUpload(io.BytesIO(content), mimetype=mime_type, resumable=False)
        created = drive.files().create(
            body={"name": file_name, "parents": [folder_id]},
            media_body=media,
            fields="id, name, webViewLink, thumbnailLink, mimeType",
        ).execute()
        drive.permissions().create(
            fileId=created["id"],
            body={"role": "reader", "type": "anyone"},
        ).execute()
        return {
            "fileId": created["id"],
            "fileName": created.get("name", file_name),
            "mimeType": created.get("mimeType", mime_type),
            "webViewLink": created.get("webViewLink"),
            "thumbnailLink": created.get("thumbnailLink"),
        }

    async def upload_file(
        self, tokens: Dict[str, Any], file_name: str, mime_type: str, content: bytes
    ) -> Dict[str, Any]:
        try:
            media = await asyncio.to_thread(
                self._upload_sync, tokens, file_name, mime_type, content
            )
        except (HttpError, GoogleAuthError) as e:
            logger.error("Drive upload of %s failed: %s", file_name, str(e))
            raise ExternalServiceError(
                service="Google Drive",
                message="Failed to upload media to Google Drive",
                context={"file_name": file_name},
            )
        logger.info("Uploaded %s to drive as %s", file_name, media["fileId"])
        return media

    async def delete_file(self, tokens: Dict[str, Any], file_id: str) -> None:
        def _delete() -> None:
            self._drive(tokens).files().delete(fileId=file_id).execute()

        try:
            await asyncio.to_thread(_delete)
        except (HttpError, GoogleAuthError) as e:
            raise ExternalServiceError(
                service="Google Drive",
                message=f"Failed to delete drive file {file_id}",
                context={"file_id": file_id, "cause": str(e)},
            )
