"""
SocialHub Backend — Comment Service Tests
===========================================

What we test:
    ✅ Commenting bumps comments_count and notifies the post author
    ✅ No notification for commenting on your own post
    ✅ Text rules: trimmed, required, at most 1000 characters
    ✅ Replies: same post, one level deep, parent author notified
    ✅ Listing: newest-first threads with replies embedded
    ✅ Comment like toggle
"""

import uuid

import pytest
from sqlalchemy import select

from socialhub.exceptions import NotFoundError, ValidationError
from socialhub.models.notification import Notification
from socialhub.models.post import Post
from socialhub.schemas.comment import CommentCreateRequest
from socialhub.services.comment_service import CommentService


async def make_post(db_session, author) -> Post:
    post = Post(author_id=author.id, type="text", text_content="hello")
    db_session.add(post)
    await db_session.flush()
    return post


async def notifications_for(db_session, user):
    result = await db_session.execute(
        select(Notification).where(Notification.recipient_id == user.id)
    )
    return result.scalars().all()


class TestAddComment:

    def setup_method(self):
        self.service = CommentService()

    @pytest.mark.asyncio
    async def test_comment_on_someone_elses_post(
        self, db_session, mirror_sink, recording_store, user_factory
    ):
        """
        B writes a post, A comments on it: the post counts one comment, the
        comment points at the post, and B gets one notification.
        """
        a = await user_factory("a")
        b = await user_factory("b")
        post = await make_post(db_session, b)

        result = await self.service.add_comment(
            db_session, a, post.id, CommentCreateRequest(text="  nice  "), mirror_sink
        )
        await db_session.refresh(post)

        assert result.message == "Comment added successfully"
        assert result.comment.text == "nice"
        assert result.comment.post == post.id
        assert result.comment.author.username == "a"
        assert post.comments_count == 1

        notices = await notifications_for(db_session, b)
        assert [(n.type, n.sender_id, n.comment_id) for n in notices] == [
            ("comment", a.id, result.comment.id)
        ]

    @pytest.mark.asyncio
    async def test_comment_on_own_post_does_not_notify(self, db_session, mirror_sink, user_factory):
        b = await user_factory("b")
        post = await make_post(db_session, b)

        await self.service.add_comment(
            db_session, b, post.id, CommentCreateRequest(text="first"), mirror_sink
        )

        assert await notifications_for(db_session, b) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", [None, "", "    "])
    async def test_text_required(self, db_session, mirror_sink, user_factory, text):
        a = await user_factory("a")
        post = await make_post(db_session, a)

        with pytest.raises(ValidationError) as exc_info:
            await self.service.add_comment(
                db_session, a, post.id, CommentCreateRequest(text=text), mirror_sink
            )
        assert exc_info.value.message == "Comment text is required"

    @pytest.mark.asyncio
    async def test_text_length_limit(self, db_session, mirror_sink, user_factory):
        a = await user_factory("a")
        post = await make_post(db_session, a)

        with pytest.raises(ValidationError) as exc_info:
            await self.service.add_comment(
                db_session, a, post.id, CommentCreateRequest(text="x" * 1001), mirror_sink
            )
        assert "1000" in exc_info.value.message

        # Exactly at the limit is fine
        ok = await self.service.add_comment(
            db_session, a, post.id, CommentCreateRequest(text="x" * 1000), mirror_sink
        )
        assert len(ok.comment.text) == 1000

    @pytest.mark.asyncio
    async def test_missing_post(self, db_session, mirror_sink, user_factory):
        a = await user_factory("a")

        with pytest.raises(NotFoundError):
            await self.service.add_comment(
                db_session, a, uuid.uuid4(), CommentCreateRequest(text="hi"), mirror_sink
            )

    @pytest.mark.asyncio
    async def test_comment_mirrors_post_stats(
        self, db_session, mirror_sink, recording_store, user_factory
    ):
        a = await user_factory("a")
        post = await make_post(db_session, a)
        recording_store.tables["Posts"] = [[str(post.id), str(a.id), "text", "", "hello", 0, 0, 0, ""]]

        await self.service.add_comment(
            db_session, a, post.id, CommentCreateRequest(text="hi"), mirror_sink
        )
        await mirror_sink.drain()

        assert recording_store.tables["Posts"][0][6] == 1


class TestReplies:

    def setup_method(self):
        self.service = CommentService()

    @pytest.mark.asyncio
    async def test_reply_notifies_post_and_parent_authors(
        self, db_session, mirror_sink, user_factory
    ):
        owner = await user_factory("owner")
        first = await user_factory("first")
        replier = await user_factory("replier")
        post = await make_post(db_session, owner)
        parent = await self.service.add_comment(
            db_session, first, post.id, CommentCreateRequest(text="top"), mirror_sink
        )

        reply = await self.service.add_comment(
            db_session,
            replier,
            post.id,
            CommentCreateRequest(text="reply", parent_comment_id=parent.comment.id),
            mirror_sink,
        )
        await db_session.refresh(post)

        assert reply.comment.parent_comment == parent.comment.id
        assert post.comments_count == 2
        assert [n.message for n in await notifications_for(db_session, first)] == [
            "replied to your comment"
        ]
        assert len(await notifications_for(db_session, owner)) == 2

    @pytest.mark.asyncio
    async def test_reply_to_post_author_comment_notifies_once(
        self, db_session, mirror_sink, user_factory
    ):
        owner = await user_factory("owner")
        replier = await user_factory("replier")
        post = await make_post(db_session, owner)
        parent = await self.service.add_comment(
            db_session, owner, post.id, CommentCreateRequest(text="top"), mirror_sink
        )

        await self.service.add_comment(
            db_session,
            replier,
            post.id,
            CommentCreateRequest(text="reply", parent_comment_id=parent.comment.id),
            mirror_sink,
        )

        assert len(await notifications_for(db_session, owner)) == 1

    @pytest.mark.asyncio
    async def test_reply_to_reply_rejected(self, db_session, mirror_sink, user_factory):
        a = await user_factory("a")
        post = await make_post(db_session, a)
        top = await self.service.add_comment(
            db_session, a, post.id, CommentCreateRequest(text="top"), mirror_sink
        )
        reply = await self.service.add_comment(
            db_session,
            a,
            post.id,
            CommentCreateRequest(text="reply", parent_comment_id=top.comment.id),
            mirror_sink,
        )

        with pytest.raises(ValidationError) as exc_info:
            await self.service.add_comment(
                db_session,
                a,
                post.id,
                CommentCreateRequest(text="deeper", parent_comment_id=reply.comment.id),
                mirror_sink,
            )
        assert exc_info.value.field == "parentCommentId"

    @pytest.mark.asyncio
    async def test_parent_from_other_post_rejected(self, db_session, mirror_sink, user_factory):
        a = await user_factory("a")
        post = await make_post(db_session, a)
        other = await make_post(db_session, a)
        top = await self.service.add_comment(
            db_session, a, other.id, CommentCreateRequest(text="elsewhere"), mirror_sink
        )

        with pytest.raises(ValidationError):
            await self.service.add_comment(
                db_session,
                a,
                post.id,
                CommentCreateRequest(text="reply", parent_comment_id=top.comment.id),
                mirror_sink,
            )

    @pytest.mark.asyncio
    async def test_missing_parent(self, db_session, mirror_sink, user_factory):
        a = await user_factory("a")
        post = await make_post(db_session, a)

        with pytest.raises(NotFoundError) as exc_info:
            await self.service.add_comment(
                db_session,
                a,
                post.id,
                CommentCreateRequest(text="reply", parent_comment_id=uuid.uuid4()),
                mirror_sink,
            )
        assert exc_info.value.message == "Comment not found"


class TestListAndLike:

    def setup_method(self):
        self.service = CommentService()

    @pytest.mark.asyncio
    async def test_list_threads(self, db_session, mirror_sink, user_factory):
        a = await user_factory("a")
        post = await make_post(db_session, a)
        older = await self.service.add_comment(
            db_session, a, post.id, CommentCreateRequest(text="older"), mirror_sink
        )
        await self.service.add_comment(
            db_session, a, post.id, CommentCreateRequest(text="newer"), mirror_sink
        )
        await self.service.add_comment(
            db_session,
            a,
            post.id,
            CommentCreateRequest(text="reply", parent_comment_id=older.comment.id),
            mirror_sink,
        )
        db_session.expire_all()

        result = await self.service.list_comments(db_session, post.id)

        assert [c.text for c in result.comments] == ["newer", "older"]
        assert [r.text for r in result.comments[1].replies] == ["reply"]
        assert result.comments[0].replies == []
        assert result.total_pages == 1

    @pytest.mark.asyncio
    async def test_list_unknown_post_is_empty(self, db_session):
        result = await self.service.list_comments(db_session, uuid.uuid4())

        assert result.comments == []
        assert result.total_pages == 0

    @pytest.mark.asyncio
    async def test_comment_like_toggle(self, db_session, mirror_sink, user_factory):
        author = await user_factory("author")
        fan = await user_factory("fan")
        post = await make_post(db_session, author)
        created = await self.service.add_comment(
            db_session, author, post.id, CommentCreateRequest(text="like me"), mirror_sink
        )

        liked = await self.service.toggle_comment_like(db_session, fan, created.comment.id)
        unliked = await self.service.toggle_comment_like(db_session, fan, created.comment.id)

        assert (liked.liked, liked.likes_count) == (True, 1)
        assert (unliked.liked, unliked.likes_count) == (False, 0)
        notices = await notifications_for(db_session, author)
        assert [n.message for n in notices] == ["liked your comment"]

    @pytest.mark.asyncio
    async def test_like_missing_comment(self, db_session, user_factory):
        fan = await user_factory("fan")

        with pytest.raises(NotFoundError):
            await self.service.toggle_comment_like(db_session, fan, uuid.uuid4())
