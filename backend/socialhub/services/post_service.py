"""
SocialHub Backend — Post Service
==================================

What:  Post creation (with media upload to the author's drive), the feed,
       single-post reads, like/save toggles and archiving.
Who:   Called by routes/posts.py; reactions_for() is shared with UserService.

Creation Workflow:
    1. Validate type and content (text needs text_content, media needs files)
    2. Media posts: require a connected drive (403 requireDriveConnection),
       validate each file, refresh the access token if it expired
    3. Upload files to the drive                → ExternalServiceError on failure
    4. Insert the post and bump posts_count     → same transaction
    5. Mirror the new row to the spreadsheet (detached)
    Any failure after step 3 deletes the uploaded files (best effort).

Media Validation:
    Extension must match the post type and the MIME type must be of the same
    family (image/* or video/*). Each file is limited to MAX_UPLOAD_SIZE.
"""

import logging
import math
import uuid
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy import String, cast, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from socialhub.config import settings
from socialhub.exceptions import (
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from socialhub.models.post import POST_TYPES, Post, PostLike, PostSave
from socialhub.models.user import User
from socialhub.schemas.post import (
    LikeResponse,
    PostCreateData,
    PostCreatedResponse,
    PostEnvelope,
    PostListResponse,
    PostResponse,
    SaveResponse,
    UploadedMedia,
)
from socialhub.services.counters import CounterMaintainer, CounterRef, counter_maintainer
from socialhub.services.drive_service import DriveService, tokens_expired
from socialhub.services.mirror import MirrorSink
from socialhub.services.notification_service import NotificationEmitter, notification_emitter

logger = logging.getLogger(__name__)

# ── Allowed Media ─────────────────────────────────────────────────────────
ALLOWED_EXTENSIONS = {
    "image": {".jpg", ".jpeg", ".png", ".gif", ".webp"},
    "video": {".mp4", ".mov", ".webm", ".avi", ".mkv"},
}
MAX_MEDIA_FILES = 10


def normalize_tags(raw: Optional[str]) -> List[str]:
    """'#Sun, beach ,sun' → ['sun', 'beach']. Order kept, duplicates dropped."""
    if not raw:
        return []
    tags: List[str] = []
    for part in raw.split(","):
        tag = part.strip().lstrip("#").strip().lower()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def validate_media(post_type: str, files: List[UploadedMedia], max_size: int) -> None:
    """
    Raises ValidationError for the first file that does not fit the post type.
    """
    if not files:
        raise ValidationError(
            message=f"At least one file is required for {post_type} posts", field="files"
        )
    if len(files) > MAX_MEDIA_FILES:
        raise ValidationError(
            message=f"A post can have at most {MAX_MEDIA_FILES} files", field="files"
        )

    allowed = ALLOWED_EXTENSIONS[post_type]
    for media in files:
        ext = Path(media.filename).suffix.lower()
        if ext not in allowed:
            raise ValidationError(
                message=(
                    f"File type '{ext}' is not supported for {post_type} posts. "
                    f"Allowed types: {', '.join(sorted(allowed))}"
                ),
                field="files",
                context={"extension": ext, "allowed": sorted(allowed)},
            )
        if not (media.content_type or "").startswith(f"{post_type}/"):
            raise ValidationError(
                message=f"File '{media.filename}' is not a valid {post_type}",
                field="files",
                context={"content_type": media.content_type},
            )
        if len(media.content) > max_size:
            max_mb = max_size / (1024 * 1024)
            raise ValidationError(
                message=f"File '{media.filename}' exceeds the {max_mb:.0f}MB limit",
                field="files",
                context={"size": len(media.content), "max_size": max_size},
            )
        if not media.content:
            raise ValidationError(message=f"File '{media.filename}' is empty", field="files")


async def reactions_for(
    db: AsyncSession, user_id: uuid.UUID, post_ids: Iterable[uuid.UUID]
) -> Tuple[Set[uuid.UUID], Set[uuid.UUID]]:
    """Returns (liked post ids, saved post ids) of the user among `post_ids`."""
    ids = list(post_ids)
    if not ids:
        return set(), set()
    liked = await db.execute(
        select(PostLike.post_id).where(PostLike.user_id == user_id, PostLike.post_id.in_(ids))
    )
    saved = await db.execute(
        select(PostSave.post_id).where(PostSave.user_id == user_id, PostSave.post_id.in_(ids))
    )
    return set(liked.scalars().all()), set(saved.scalars().all())


class PostService:
    """Post lifecycle and reactions."""

    def __init__(
        self,
        counters: CounterMaintainer = counter_maintainer,
        emitter: NotificationEmitter = notification_emitter,
    ):
        self.counters = counters
        self.emitter = emitter

    # ══════════════════════════════════════════════════════════════════════
    # Creation
    # ══════════════════════════════════════════════════════════════════════

    async def create_post(
        self,
        db: AsyncSession,
        author: User,
        data: PostCreateData,
        drive: DriveService,
        mirror: MirrorSink,
    ) -> PostCreatedResponse:
        """
        Creates a text, image or video post.

        Raises:
            ValidationError:       bad type, missing content, bad files
            PermissionDeniedError: media post without a connected drive
            ExternalServiceError:  upload to the drive failed
        """
        if data.type not in POST_TYPES:
            raise ValidationError(
                message=f"Post type must be one of: {', '.join(POST_TYPES)}", field="type"
            )

        text_content = (data.text_content or "").strip() or None
        if data.type == "text" and not text_content:
            raise ValidationError(message="Text content is required for text posts", field="textContent")

        media_files: List[Dict[str, Any]] = []
        tokens: Optional[Dict[str, Any]] = None
        if data.type != "text":
            if not author.google_drive_connected or not author.google_drive_tokens:
                raise PermissionDeniedError(
                    message="Please connect your Google Drive to upload media",
                    context={"requireDriveConnection": True},
                )
            validate_media(data.type, data.files, settings.max_upload_size)
            tokens = await self.ensure_fresh_tokens(db, author, drive)

            try:
                for media in data.files:
                    media_files.append(
                        await drive.upload_file(
                            tokens, media.filename, media.content_type, media.content
                        )
                    )
            except Exception:
                # Any failure, including transport errors from the client,
                # leaves no stored files behind
                await self._cleanup_uploads(drive, tokens, media_files)
                raise

        post = Post(
            author_id=author.id,
            type=data.type,
            caption=(data.caption or "").strip() or None,
            text_content=text_content,
            media_files=media_files,
            tags=list(data.tags),
            location=(data.location or "").strip() or None,
        )
        try:
            db.add(post)
            await db.flush()
            await self.counters.adjust(db, CounterRef(User, author.id, "posts_count"), +1)
            await db.refresh(post)
            await db.refresh(author)
        except Exception:
            if tokens is not None:
                await self._cleanup_uploads(drive, tokens, media_files)
            raise

        logger.info("Post %s (%s) created by %s", post.id, post.type, author.id)
        mirror.mirror(
            "post_created",
            {
                "post_id": post.id,
                "author_id": author.id,
                "type": post.type,
                "caption": post.caption,
                "text_content": post.text_content,
                "likes_count": post.likes_count,
                "comments_count": post.comments_count,
                "saved_count": post.saved_count,
            },
        )
        return PostCreatedResponse(
            message="Post created successfully",
            post=PostResponse.from_model(post, author),
        )

    async def ensure_fresh_tokens(
        self, db: AsyncSession, user: User, drive: DriveService
    ) -> Dict[str, Any]:
        """
        Returns the user's drive tokens, refreshing and storing them first
        when the access token has expired. A failed refresh is logged and the
        stored tokens are used as they are.
        """
        tokens = dict(user.google_drive_tokens or {})
        if not tokens_expired(tokens) or not tokens.get("refresh_token"):
            return tokens
        try:
            refreshed = await drive.refresh_access_token(tokens)
        except ExternalServiceError as e:
            logger.warning("Drive token refresh for %s failed: %s", user.id, e.message)
            return tokens

        user.google_drive_tokens = refreshed
        await db.flush()
        logger.info("Drive access token refreshed for %s", user.id)
        return refreshed

    async def _cleanup_uploads(
        self, drive: DriveService, tokens: Dict[str, Any], media_files: List[Dict[str, Any]]
    ) -> None:
        for media in media_files:
            try:
                await drive.delete_file(tokens, media["fileId"])
            except ExternalServiceError as e:
                logger.warning("Could not remove orphaned upload %s: %s", media["fileId"], e.message)

    # ══════════════════════════════════════════════════════════════════════
    # Reads
    # ══════════════════════════════════════════════════════════════════════

    async def list_feed(
        self,
        db: AsyncSession,
        viewer: User,
        page: int = 1,
        limit: int = 10,
        tag: Optional[str] = None,
        author_id: Optional[uuid.UUID] = None,
    ) -> PostListResponse:
        """Newest-first page of non-archived posts, optionally filtered."""
        conditions = [Post.is_archived.is_(False)]
        if tag:
            normalized = normalize_tags(tag)
            if normalized:
                # tags is a JSON list; match the quoted element in its text form
                conditions.append(
                    cast(Post.tags, String).contains(f'"{normalized[0]}"', autoescape=True)
                )
        if author_id is not None:
            conditions.append(Post.author_id == author_id)

        posts = (
            await db.execute(
                select(Post)
                .where(*conditions)
                .options(selectinload(Post.author))
                .order_by(Post.created_at.desc())
                .limit(limit)
                .offset((page - 1) * limit)
            )
        ).scalars().all()
        total = (await db.execute(select(func.count(Post.id)).where(*conditions))).scalar() or 0

        liked, saved = await reactions_for(db, viewer.id, [p.id for p in posts])
        return PostListResponse(
            posts=[
                PostResponse.from_model(
                    p, p.author, is_liked=p.id in liked, is_saved=p.id in saved
                )
                for p in posts
            ],
            total_pages=math.ceil(total / limit),
            current_page=page,
        )

    async def get_post(self, db: AsyncSession, viewer: User, post_id: uuid.UUID) -> PostEnvelope:
        """
        Raises:
            NotFoundError:         no such post
            PermissionDeniedError: post is archived and the viewer is not its author
        """
        post = (
            await db.execute(
                select(Post).where(Post.id == post_id).options(selectinload(Post.author))
            )
        ).scalar_one_or_none()
        if post is None:
            raise NotFoundError(resource="post", resource_id=str(post_id))
        if post.is_archived and post.author_id != viewer.id:
            raise PermissionDeniedError(message="This post has been archived")

        liked, saved = await reactions_for(db, viewer.id, [post.id])
        return PostEnvelope(
            post=PostResponse.from_model(
                post, post.author, is_liked=post.id in liked, is_saved=post.id in saved
            )
        )

    # ══════════════════════════════════════════════════════════════════════
    # Reactions
    # ══════════════════════════════════════════════════════════════════════

    async def toggle_like(
        self, db: AsyncSession, actor: User, post_id: uuid.UUID, mirror: MirrorSink
    ) -> LikeResponse:
        post = await db.get(Post, post_id)
        if post is None:
            raise NotFoundError(resource="post", resource_id=str(post_id))

        result = await self.counters.toggle_membership(
            db,
            PostLike,
            {"post_id": post.id, "user_id": actor.id},
            [CounterRef(Post, post.id, "likes_count")],
        )
        if result.active:
            await self.emitter.emit(
                db,
                recipient_id=post.author_id,
                sender_id=actor.id,
                kind="like",
                message="liked your post",
                post_id=post.id,
            )

        likes = result.counts["likes_count"]
        mirror.mirror("post_stats", {"post_id": post.id, "likes_count": likes})
        return LikeResponse(liked=result.active, likes_count=likes)

    async def toggle_save(
        self, db: AsyncSession, actor: User, post_id: uuid.UUID, mirror: MirrorSink
    ) -> SaveResponse:
        post = await db.get(Post, post_id)
        if post is None:
            raise NotFoundError(resource="post", resource_id=str(post_id))

        result = await self.counters.toggle_membership(
            db,
            PostSave,
            {"post_id": post.id, "user_id": actor.id},
            [CounterRef(Post, post.id, "saved_count")],
        )
        saved = result.counts["saved_count"]
        mirror.mirror("post_stats", {"post_id": post.id, "saved_count": saved})
        return SaveResponse(saved=result.active, saved_count=saved)

    async def toggle_archive(
        self, db: AsyncSession, actor: User, post_id: uuid.UUID
    ) -> PostCreatedResponse:
        """Archives the post, or restores it when already archived. Author only."""
        post = await db.get(Post, post_id)
        if post is None:
            raise NotFoundError(resource="post", resource_id=str(post_id))
        if post.author_id != actor.id:
            raise PermissionDeniedError(message="Only the author can archive this post")

        post.is_archived = not post.is_archived
        await db.flush()
        await db.refresh(post)

        liked, saved = await reactions_for(db, actor.id, [post.id])
        return PostCreatedResponse(
            message="Post archived" if post.is_archived else "Post restored",
            post=PostResponse.from_model(
                post, actor, is_liked=post.id in liked, is_saved=post.id in saved
            ),
        )


post_service = PostService()
