"""
SocialHub Backend — Comment Service
=====================================

What:  Adding comments and replies, listing a post's comment threads and
       toggling comment likes.
Who:   Called by routes/comments.py.

Rules:
    - Text is trimmed and must be 1–1000 characters.
    - A reply targets a top-level comment of the same post (one level deep).
    - Every comment, reply included, adds 1 to the post's comments_count.
    - The post author is notified of every comment by someone else; the
      parent comment's author is also notified of replies.
"""

import logging
import math
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from socialhub.exceptions import NotFoundError, ValidationError
from socialhub.models.comment import MAX_COMMENT_LENGTH, Comment, CommentLike
from socialhub.models.post import Post
from socialhub.models.user import User
from socialhub.schemas.comment import (
    CommentCreatedResponse,
    CommentCreateRequest,
    CommentListResponse,
    CommentResponse,
)
from socialhub.schemas.post import LikeResponse
from socialhub.services.counters import CounterMaintainer, CounterRef, counter_maintainer
from socialhub.services.mirror import MirrorSink
from socialhub.services.notification_service import NotificationEmitter, notification_emitter

logger = logging.getLogger(__name__)


class CommentService:

    def __init__(
        self,
        counters: CounterMaintainer = counter_maintainer,
        emitter: NotificationEmitter = notification_emitter,
    ):
        self.counters = counters
        self.emitter = emitter

    async def add_comment(
        self,
        db: AsyncSession,
        actor: User,
        post_id: uuid.UUID,
        data: CommentCreateRequest,
        mirror: MirrorSink,
    ) -> CommentCreatedResponse:
        """
        Raises:
            ValidationError: empty or too long text, invalid parent comment
            NotFoundError:   post or parent comment does not exist
        """
        text = (data.text or "").strip()
        if not text:
            raise ValidationError(message="Comment text is required", field="text")
        if len(text) > MAX_COMMENT_LENGTH:
            raise ValidationError(
                message=f"Comment cannot exceed {MAX_COMMENT_LENGTH} characters",
                field="text",
                context={"length": len(text)},
            )

        post = await db.get(Post, post_id)
        if post is None:
            raise NotFoundError(resource="post", resource_id=str(post_id))
        post_author_id = post.author_id

        parent = None
        if data.parent_comment_id is not None:
            parent = await db.get(Comment, data.parent_comment_id)
            if parent is None:
                raise NotFoundError(resource="comment", resource_id=str(data.parent_comment_id))
            if parent.post_id != post.id:
                raise ValidationError(
                    message="Parent comment belongs to a different post",
                    field="parentCommentId",
                )
            if parent.parent_comment_id is not None:
                raise ValidationError(
                    message="Replies can only be added to top-level comments",
                    field="parentCommentId",
                )

        comment = Comment(
            post_id=post.id,
            author_id=actor.id,
            text=text,
            parent_comment_id=parent.id if parent is not None else None,
        )
        db.add(comment)
        await db.flush()
        comments_count = await self.counters.adjust(
            db, CounterRef(Post, post.id, "comments_count"), +1
        )

        await self.emitter.emit(
            db,
            recipient_id=post_author_id,
            sender_id=actor.id,
            kind="comment",
            message="commented on your post",
            post_id=post.id,
            comment_id=comment.id,
        )
        # The post author already got a notice for this comment
        if parent is not None and parent.author_id != post_author_id:
            await self.emitter.emit(
                db,
                recipient_id=parent.author_id,
                sender_id=actor.id,
                kind="comment",
                message="replied to your comment",
                post_id=post.id,
                comment_id=comment.id,
            )

        await db.refresh(comment)
        logger.info("Comment %s added to post %s by %s", comment.id, post.id, actor.id)
        mirror.mirror("post_stats", {"post_id": post.id, "comments_count": comments_count})
        return CommentCreatedResponse(
            message="Comment added successfully",
            comment=CommentResponse.from_model(comment, actor),
        )

    async def list_comments(
        self,
        db: AsyncSession,
        post_id: uuid.UUID,
        page: int = 1,
        limit: int = 20,
    ) -> CommentListResponse:
        """Newest-first top-level comments, each with its replies oldest-first."""
        top_level = (Comment.post_id == post_id, Comment.parent_comment_id.is_(None))
        comments = (
            await db.execute(
                select(Comment)
                .where(*top_level)
                .options(
                    selectinload(Comment.author),
                    selectinload(Comment.replies).selectinload(Comment.author),
                )
                .order_by(Comment.created_at.desc())
                .limit(limit)
                .offset((page - 1) * limit)
            )
        ).scalars().all()
        total = (await db.execute(select(func.count(Comment.id)).where(*top_level))).scalar() or 0

        return CommentListResponse(
            comments=[
                CommentResponse.from_model(
                    c,
                    c.author,
                    replies=[CommentResponse.from_model(r, r.author) for r in c.replies],
                )
                for c in comments
            ],
            total_pages=math.ceil(total / limit),
            current_page=page,
        )

    async def toggle_comment_like(
        self, db: AsyncSession, actor: User, comment_id: uuid.UUID
    ) -> LikeResponse:
        comment = await db.get(Comment, comment_id)
        if comment is None:
            raise NotFoundError(resource="comment", resource_id=str(comment_id))

        result = await self.counters.toggle_membership(
            db,
            CommentLike,
            {"comment_id": comment.id, "user_id": actor.id},
            [CounterRef(Comment, comment.id, "likes_count")],
        )
        if result.active:
            await self.emitter.emit(
                db,
                recipient_id=comment.author_id,
                sender_id=actor.id,
                kind="like",
                message="liked your comment",
                post_id=comment.post_id,
                comment_id=comment.id,
            )
        return LikeResponse(liked=result.active, likes_count=result.counts["likes_count"])


comment_service = CommentService()
