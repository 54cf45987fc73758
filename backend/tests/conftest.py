"""
SocialHub Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the whole test-suite.
How:   Services and routes run against an in-memory SQLite database
       (sqlite+aiosqlite, one shared connection via StaticPool) created fresh
       for every test. The spreadsheet and Google Drive are replaced by
       in-memory fakes injected the same way production injects the real
       clients.

Fixture Hierarchy (all function-scoped):
    db_engine ─┬─ session_factory ─┬─ db_session ── user_factory
               │                   └─ app ── test_client
    recording_store ── mirror_sink ─┘
    fake_drive ────────────────────┘
"""

import os

# Must be set before socialhub is imported: config and the engine read them
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret-not-for-production"
os.environ["GOOGLE_CLIENT_ID"] = "test-client-id"
os.environ["GOOGLE_CLIENT_SECRET"] = "test-client-secret"
os.environ["GOOGLE_SPREADSHEET_ID"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

from functools import lru_cache
from typing import Any, Dict, List, Mapping, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import socialhub.models  # noqa: F401
from socialhub.database import Base, get_db_session
from socialhub.exceptions import ExternalServiceError
from socialhub.models.user import User
from socialhub.services.drive_service import DriveService
from socialhub.services.mirror import MirrorSink, TabularStore
from socialhub.services.security import create_access_token, hash_password

TEST_PASSWORD = "secret123"


@lru_cache(maxsize=1)
def password_hash_for_tests() -> str:
    # bcrypt is slow; hash once per run
    return hash_password(TEST_PASSWORD)


def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


# ══════════════════════════════════════════════════════════════════════════
# Fakes
# ══════════════════════════════════════════════════════════════════════════

class RecordingStore(TabularStore):
    """In-memory TabularStore. Rows keep the exact values the mirror wrote."""

    def __init__(self, fail: bool = False):
        self.tables: Dict[str, List[List[Any]]] = {}
        self.headers: Dict[str, List[str]] = {}
        self.fail = fail

    async def append_row(self, table: str, row: List[Any]) -> None:
        if self.fail:
            raise RuntimeError("spreadsheet unavailable")
        self.tables.setdefault(table, []).append(list(row))

    async def update_cells(self, table: str, key: str, cells: Mapping[str, Any]) -> bool:
        if self.fail:
            raise RuntimeError("spreadsheet unavailable")
        for row in self.tables.get(table, []):
            if row and row[0] == key:
                for column, value in cells.items():
                    row[ord(column) - ord("A")] = value
                return True
        return False

    async def write_headers(self, table: str, headers: List[str]) -> None:
        self.headers[table] = list(headers)


class FakeDriveService(DriveService):
    """Drive double: records uploads/deletes, fails on request."""

    def __init__(self):
        self.files: Dict[str, Dict[str, Any]] = {}
        self.deleted: List[str] = []
        self.fail_upload_at: Optional[int] = None
        self.fail_refresh = False
        self.upload_error: Optional[Exception] = None
        self.uploads = 0
        self.refreshes = 0

    def get_auth_url(self) -> str:
        return "https://accounts.google.com/o/oauth2/v2/auth?client_id=test-client-id"

    async def exchange_code(self, code: str) -> Dict[str, Any]:
        if code == "bad-code":
            raise ExternalServiceError(service="Google Drive", message="Failed to connect Google Drive")
        return {"access_token": f"access-{code}", "refresh_token": "refresh-1", "expiry_date": 9_999_999_999_999}

    async def refresh_access_token(self, tokens: Dict[str, Any]) -> Dict[str, Any]:
        self.refreshes += 1
        if self.fail_refresh:
            raise ExternalServiceError(service="Google Drive")
        return {**tokens, "access_token": "access-refreshed", "expiry_date": 9_999_999_999_999}

    async def upload_file(
        self, tokens: Dict[str, Any], file_name: str, mime_type: str, content: bytes
    ) -> Dict[str, Any]:
        self.uploads += 1
        if self.fail_upload_at is not None and self.uploads >= self.fail_upload_at:
            if self.upload_error is not None:
                raise self.upload_error
            raise ExternalServiceError(service="Google Drive", message="Failed to upload media to Google Drive")
        file_id = f"file-{self.uploads}"
        media = {
            "fileId": file_id,
            "fileName": file_name,
            "mimeType": mime_type,
            "webViewLink": f"https://drive.google.com/file/d/{file_id}/view",
            "thumbnailLink": None,
        }
        self.files[file_id] = media
        return media

    async def delete_file(self, tokens: Dict[str, Any], file_id: str) -> None:
        self.deleted.append(file_id)
        self.files.pop(file_id, None)


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def user_factory(db_session):
    """
    Creates users directly in the database.

    Usage:
        alice = await user_factory("alice")
        bob = await user_factory("bob", is_private=True)
    """

    async def make(username: str, **overrides: Any) -> User:
        values = {
            "username": username,
            "email": f"{username}@example.com",
            "password_hash": password_hash_for_tests(),
            "full_name": username.title(),
        }
        values.update(overrides)
        user = User(**values)
        db_session.add(user)
        await db_session.flush()
        await db_session.refresh(user)
        return user

    return make


# ══════════════════════════════════════════════════════════════════════════
# External Service Fakes
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def recording_store():
    return RecordingStore()


@pytest_asyncio.fixture
async def mirror_sink(recording_store):
    sink = MirrorSink(recording_store)
    yield sink
    await sink.drain()


@pytest.fixture
def fake_drive():
    return FakeDriveService()


# ══════════════════════════════════════════════════════════════════════════
# API Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def app(session_factory, mirror_sink, fake_drive):
    """FastAPI app wired to the test database and the fakes."""
    from socialhub.main import create_app

    application = create_app(mirror=mirror_sink, drive=fake_drive)

    async def override_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db_session] = override_db_session
    return application


@pytest_asyncio.fixture
async def test_client(app):
    """
    HTTPX AsyncClient talking to the app in-process.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/api/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def account_factory(session_factory):
    """
    Creates committed users for API tests and returns (user, auth headers).

    API requests use their own sessions, so seeded rows must be committed.
    """

    async def make(username: str, **overrides: Any):
        values = {
            "username": username,
            "email": f"{username}@example.com",
            "password_hash": password_hash_for_tests(),
            "full_name": username.title(),
        }
        values.update(overrides)
        async with session_factory() as session:
            user = User(**values)
            session.add(user)
            await session.commit()
        return user, auth_headers(user)

    return make
