"""
SocialHub Backend — API Tests
===============================

What we test:
    ✅ Register → login → verify through HTTP
    ✅ Error body shape and status codes (400/401/403/404/500)
    ✅ camelCase JSON keys, no secrets in user payloads
    ✅ Posts (form + multipart), follows, comments, notifications
    ✅ A failing request leaves no partial follow behind
    ✅ Google Drive connection flow with the fake drive
    ✅ Health check

The app runs in-process (httpx ASGITransport) against the per-test SQLite
database; seeded users are committed through account_factory.
"""

import uuid

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from conftest import TEST_PASSWORD
from socialhub.models.user import Follow, User

CONNECTED_TOKENS = {
    "access_token": "access-1",
    "refresh_token": "refresh-1",
    "expiry_date": 9_999_999_999_999,
}


class TestAuthFlow:

    @pytest.mark.asyncio
    async def test_register_login_verify(self, test_client, recording_store):
        registered = await test_client.post(
            "/api/users/register",
            json={
                "username": "alice",
                "email": "alice@example.com",
                "password": TEST_PASSWORD,
                "fullName": "Alice",
            },
        )
        assert registered.status_code == 201
        body = registered.json()
        assert body["user"]["fullName"] == "Alice"
        assert body["user"]["followersCount"] == 0
        assert "passwordHash" not in body["user"]
        assert "googleDriveTokens" not in body["user"]

        login = await test_client.post(
            "/api/users/login", json={"email": "alice@example.com", "password": TEST_PASSWORD}
        )
        assert login.status_code == 200
        assert login.json()["message"] == "Login successful"

        verify = await test_client.get(
            "/api/auth/verify", headers={"Authorization": f"Bearer {login.json()['token']}"}
        )
        assert verify.status_code == 200
        assert verify.json()["valid"] is True
        assert verify.json()["user"]["username"] == "alice"

    @pytest.mark.asyncio
    async def test_duplicate_registration(self, test_client, account_factory):
        await account_factory("alice")

        response = await test_client.post(
            "/api/users/register",
            json={"username": "alice", "email": "other@example.com", "password": TEST_PASSWORD},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "User with this email or username already exists"

    @pytest.mark.asyncio
    async def test_schema_errors_are_400(self, test_client):
        response = await test_client.post(
            "/api/users/register",
            json={"username": "alice", "email": "not-an-email", "password": "123"},
        )

        body = response.json()
        assert response.status_code == 400
        assert body["error"] == "validation_error"
        assert body["details"]["errors"]
        assert body["requestId"] == response.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_wrong_password(self, test_client, account_factory):
        await account_factory("alice")

        response = await test_client.post(
            "/api/users/login", json={"email": "alice@example.com", "password": "nope-nope"}
        )

        assert response.status_code == 401
        assert response.json() == {
            "error": "authentication_error",
            "message": "Invalid credentials",
            "requestId": response.headers["X-Request-ID"],
        }

    @pytest.mark.asyncio
    async def test_missing_token(self, test_client):
        response = await test_client.get("/api/posts")

        assert response.status_code == 401
        assert response.json()["message"] == "No token, authorization denied"

    @pytest.mark.asyncio
    async def test_garbage_token(self, test_client):
        response = await test_client.get(
            "/api/posts", headers={"Authorization": "Bearer not-a-token"}
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_token_for_deleted_user(self, test_client):
        from conftest import auth_headers
        from socialhub.models.user import User

        ghost = User(id=uuid.uuid4(), username="ghost", email="g@example.com", password_hash="x")
        response = await test_client.get("/api/auth/verify", headers=auth_headers(ghost))

        assert response.status_code == 401
        assert response.json()["message"] == "Token is not valid"

    @pytest.mark.asyncio
    async def test_client_request_id_is_echoed(self, test_client):
        response = await test_client.get("/api/health", headers={"X-Request-ID": "trace-42"})

        assert response.headers["X-Request-ID"] == "trace-42"


class TestUsersApi:

    @pytest.mark.asyncio
    async def test_follow_and_profile(self, test_client, account_factory):
        a, a_headers = await account_factory("a")
        b, _ = await account_factory("b")

        followed = await test_client.post(f"/api/users/{b.id}/follow", headers=a_headers)
        profile = await test_client.get("/api/users/b", headers=a_headers)

        assert followed.status_code == 200
        assert followed.json() == {"following": True, "followersCount": 1}
        assert profile.json()["isFollowing"] is True
        assert profile.json()["user"]["followersCount"] == 1

    @pytest.mark.asyncio
    async def test_follow_self(self, test_client, account_factory):
        a, a_headers = await account_factory("a")

        response = await test_client.post(f"/api/users/{a.id}/follow", headers=a_headers)

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "userId"

    @pytest.mark.asyncio
    async def test_follow_unknown_user(self, test_client, account_factory):
        _, headers = await account_factory("a")

        response = await test_client.post(f"/api/users/{uuid.uuid4()}/follow", headers=headers)

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_unknown_profile(self, test_client, account_factory):
        _, headers = await account_factory("a")

        response = await test_client.get("/api/users/nobody", headers=headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_private_posts(self, test_client, account_factory):
        _, headers = await account_factory("a")
        private, _ = await account_factory("private", is_private=True)

        response = await test_client.get(f"/api/users/{private.id}/posts", headers=headers)

        assert response.status_code == 403
        assert response.json()["message"] == "This account is private"

    @pytest.mark.asyncio
    async def test_update_profile(self, test_client, account_factory):
        _, headers = await account_factory("a")

        response = await test_client.put(
            "/api/users/profile", json={"bio": "hello", "isPrivate": True}, headers=headers
        )

        assert response.status_code == 200
        assert response.json()["user"]["bio"] == "hello"
        assert response.json()["user"]["isPrivate"] is True

    @pytest.mark.asyncio
    async def test_null_private_flag_is_400(self, test_client, account_factory, session_factory):
        user, headers = await account_factory("a", is_private=True)

        response = await test_client.put(
            "/api/users/profile", json={"isPrivate": None}, headers=headers
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        async with session_factory() as session:
            assert (await session.get(User, user.id)).is_private is True

    @pytest.mark.asyncio
    async def test_failed_notification_rolls_back_follow(
        self, app, account_factory, session_factory, monkeypatch
    ):
        from socialhub.services.notification_service import notification_emitter

        async def broken(*args, **kwargs):
            raise RuntimeError("notification insert failed")

        monkeypatch.setattr(notification_emitter, "emit", broken)
        a, a_headers = await account_factory("a")
        b, _ = await account_factory("b")

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post(f"/api/users/{b.id}/follow", headers=a_headers)

        assert response.status_code == 500
        async with session_factory() as session:
            follows = await session.scalar(select(func.count()).select_from(Follow))
            assert follows == 0
            assert (await session.get(User, a.id)).following_count == 0
            assert (await session.get(User, b.id)).followers_count == 0

    @pytest.mark.asyncio
    async def test_database_failure_is_generic_500(self, app, account_factory, monkeypatch):
        from socialhub.services.counters import CounterMaintainer

        async def locked(*args, **kwargs):
            raise OperationalError("DELETE FROM follows", {}, Exception("database is locked"))

        monkeypatch.setattr(CounterMaintainer, "_delete_link", locked)
        _, a_headers = await account_factory("a")
        b, _ = await account_factory("b")

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post(f"/api/users/{b.id}/follow", headers=a_headers)

        assert response.status_code == 500
        assert response.json()["error"] == "server_error"
        assert "locked" not in response.json()["message"]


class TestPostsApi:

    @pytest.mark.asyncio
    async def test_text_post_and_feed(self, test_client, account_factory, mirror_sink, recording_store):
        _, headers = await account_factory("alice")

        created = await test_client.post(
            "/api/posts",
            data={"type": "text", "textContent": "hello", "tags": "#Fun, code"},
            headers=headers,
        )
        feed = await test_client.get("/api/posts", params={"tag": "fun"}, headers=headers)
        await mirror_sink.drain()

        assert created.status_code == 201
        post = created.json()["post"]
        assert post["tags"] == ["fun", "code"]
        assert post["likesCount"] == 0
        assert [p["id"] for p in feed.json()["posts"]] == [post["id"]]
        assert feed.json()["currentPage"] == 1
        assert recording_store.tables["Posts"][0][0] == post["id"]

    @pytest.mark.asyncio
    async def test_media_post_requires_drive(self, test_client, account_factory):
        _, headers = await account_factory("alice")

        response = await test_client.post(
            "/api/posts",
            data={"type": "image"},
            files=[("files", ("a.jpg", b"\xff\xd8\xff", "image/jpeg"))],
            headers=headers,
        )

        assert response.status_code == 403
        assert response.json()["details"] == {"requireDriveConnection": True}

    @pytest.mark.asyncio
    async def test_media_post_uploads(self, test_client, account_factory, fake_drive):
        _, headers = await account_factory(
            "alice", google_drive_connected=True, google_drive_tokens=CONNECTED_TOKENS
        )

        response = await test_client.post(
            "/api/posts",
            data={"type": "image", "caption": "beach"},
            files=[
                ("files", ("a.jpg", b"\xff\xd8\xff", "image/jpeg")),
                ("files", ("b.png", b"\x89PNG", "image/png")),
            ],
            headers=headers,
        )

        assert response.status_code == 201
        media = response.json()["post"]["mediaFiles"]
        assert [m["fileId"] for m in media] == ["file-1", "file-2"]
        assert media[1]["mimeType"] == "image/png"

    @pytest.mark.asyncio
    async def test_upload_failure_is_500(self, test_client, account_factory, fake_drive):
        _, headers = await account_factory(
            "alice", google_drive_connected=True, google_drive_tokens=CONNECTED_TOKENS
        )
        fake_drive.fail_upload_at = 1

        response = await test_client.post(
            "/api/posts",
            data={"type": "video"},
            files=[("files", ("clip.mp4", b"\x00\x00", "video/mp4"))],
            headers=headers,
        )

        assert response.status_code == 500
        assert response.json()["error"] == "external_service_error"

    @pytest.mark.asyncio
    async def test_like_save_archive(self, test_client, account_factory):
        _, author_headers = await account_factory("author")
        _, fan_headers = await account_factory("fan")
        created = await test_client.post(
            "/api/posts", data={"type": "text", "textContent": "hi"}, headers=author_headers
        )
        post_id = created.json()["post"]["id"]

        liked = await test_client.post(f"/api/posts/{post_id}/like", headers=fan_headers)
        saved = await test_client.post(f"/api/posts/{post_id}/save", headers=fan_headers)
        forbidden = await test_client.put(f"/api/posts/{post_id}/archive", headers=fan_headers)
        archived = await test_client.put(f"/api/posts/{post_id}/archive", headers=author_headers)
        hidden = await test_client.get(f"/api/posts/{post_id}", headers=fan_headers)

        assert liked.json() == {"liked": True, "likesCount": 1}
        assert saved.json() == {"saved": True, "savedCount": 1}
        assert forbidden.status_code == 403
        assert archived.json()["message"] == "Post archived"
        assert hidden.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_post(self, test_client, account_factory):
        _, headers = await account_factory("alice")

        response = await test_client.get(f"/api/posts/{uuid.uuid4()}", headers=headers)

        assert response.status_code == 404
        assert response.json()["message"] == "Post not found"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_500(self, app, account_factory, monkeypatch):
        from socialhub.services.post_service import post_service

        async def broken(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(post_service, "list_feed", broken)
        _, headers = await account_factory("alice")

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/api/posts", headers=headers)

        assert response.status_code == 500
        assert response.json()["error"] == "internal_server_error"
        assert "boom" not in response.json()["message"]


class TestCommentsAndNotificationsApi:

    @pytest.mark.asyncio
    async def test_comment_flow(self, test_client, account_factory):
        _, a_headers = await account_factory("a")
        _, b_headers = await account_factory("b")
        created = await test_client.post(
            "/api/posts", data={"type": "text", "textContent": "b's post"}, headers=b_headers
        )
        post_id = created.json()["post"]["id"]

        comment = await test_client.post(
            f"/api/comments/{post_id}", json={"text": "nice"}, headers=a_headers
        )
        reply = await test_client.post(
            f"/api/comments/{post_id}",
            json={"text": "thanks", "parentCommentId": comment.json()["comment"]["id"]},
            headers=b_headers,
        )
        listing = await test_client.get(f"/api/comments/{post_id}", headers=a_headers)
        post = await test_client.get(f"/api/posts/{post_id}", headers=a_headers)
        notices = await test_client.get("/api/notifications", headers=b_headers)

        assert comment.status_code == 201
        assert comment.json()["comment"]["post"] == post_id
        assert reply.json()["comment"]["parentComment"] == comment.json()["comment"]["id"]
        assert [r["text"] for r in listing.json()["comments"][0]["replies"]] == ["thanks"]
        assert post.json()["post"]["commentsCount"] == 2
        assert notices.json()["unreadCount"] == 1
        assert notices.json()["notifications"][0]["message"] == "commented on your post"
        assert notices.json()["notifications"][0]["sender"]["username"] == "a"

    @pytest.mark.asyncio
    async def test_empty_comment(self, test_client, account_factory):
        _, headers = await account_factory("a")
        created = await test_client.post(
            "/api/posts", data={"type": "text", "textContent": "x"}, headers=headers
        )

        response = await test_client.post(
            f"/api/comments/{created.json()['post']['id']}", json={"text": "   "}, headers=headers
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Comment text is required"

    @pytest.mark.asyncio
    async def test_notification_lifecycle(self, test_client, account_factory):
        a, a_headers = await account_factory("a")
        b, b_headers = await account_factory("b")
        await test_client.post(f"/api/users/{b.id}/follow", headers=a_headers)

        listing = await test_client.get("/api/notifications", headers=b_headers)
        notification = listing.json()["notifications"][0]
        foreign = await test_client.put(
            f"/api/notifications/{notification['id']}/read", headers=a_headers
        )
        marked = await test_client.put(
            f"/api/notifications/{notification['id']}/read", headers=b_headers
        )
        read_all = await test_client.put("/api/notifications/read-all", headers=b_headers)
        deleted = await test_client.delete(
            f"/api/notifications/{notification['id']}", headers=b_headers
        )
        after = await test_client.get("/api/notifications", headers=b_headers)

        assert notification["type"] == "follow"
        assert notification["isRead"] is False
        assert notification["recipient"] == str(b.id)
        assert foreign.status_code == 404
        assert marked.json()["message"] == "Notification marked as read"
        assert marked.json()["notification"]["isRead"] is True
        assert read_all.json() == {"message": "All notifications marked as read"}
        assert deleted.json() == {"message": "Notification deleted"}
        assert after.json()["notifications"] == []
        assert after.json()["unreadCount"] == 0


class TestGoogleApi:

    @pytest.mark.asyncio
    async def test_connect_status_disconnect(self, test_client, account_factory):
        _, headers = await account_factory("alice")

        auth_url = await test_client.get("/api/google/auth-url", headers=headers)
        connected = await test_client.post(
            "/api/google/callback", json={"code": "good"}, headers=headers
        )
        status = await test_client.get("/api/google/status", headers=headers)
        notices = await test_client.get("/api/notifications", headers=headers)
        disconnected = await test_client.post("/api/google/disconnect", headers=headers)
        status_after = await test_client.get("/api/google/status", headers=headers)

        assert auth_url.json()["authUrl"].startswith("https://accounts.google.com/")
        assert connected.json() == {
            "message": "Google Drive connected successfully",
            "connected": True,
        }
        assert status.json() == {"connected": True, "hasValidTokens": True}
        assert notices.json()["notifications"][0]["type"] == "drive_connect"
        assert notices.json()["notifications"][0]["sender"] is None
        assert disconnected.json()["connected"] is False
        assert status_after.json() == {"connected": False, "hasValidTokens": False}

    @pytest.mark.asyncio
    async def test_callback_without_code(self, test_client, account_factory):
        _, headers = await account_factory("alice")

        response = await test_client.post("/api/google/callback", json={}, headers=headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Authorization code required"

    @pytest.mark.asyncio
    async def test_rejected_code(self, test_client, account_factory):
        _, headers = await account_factory("alice")

        response = await test_client.post(
            "/api/google/callback", json={"code": "bad-code"}, headers=headers
        )

        assert response.status_code == 500
        assert response.json()["message"] == "Failed to connect Google Drive"


class TestHealthApi:

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/api/health")

        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["mirror"] == "enabled"
        assert "uptimeSeconds" in body
