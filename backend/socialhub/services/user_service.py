"""
SocialHub Backend — User Service
==================================

What:  Registration, login, profiles, profile updates, follow toggles,
       per-user post listings and the Google Drive connection state.
Who:   Called by routes/auth.py, routes/users.py and routes/google.py.

Follow toggle:
    The follows row and both counters (target.followers_count,
    actor.following_count) move in one transaction through the
    CounterMaintainer. A follow (not an unfollow) notifies the target.
    Unfollowing never deletes the earlier notification.
"""

import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import exists, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from socialhub.exceptions import (
    AuthenticationError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from socialhub.models.post import Post
from socialhub.models.user import Follow, User
from socialhub.schemas.google import DriveConnectionResponse, DriveStatusResponse
from socialhub.schemas.post import PostListResponse, PostResponse
from socialhub.schemas.user import (
    AuthResponse,
    FollowResponse,
    LoginRequest,
    ProfileResponse,
    ProfileUpdateRequest,
    ProfileUpdateResponse,
    RegisterRequest,
    UserResponse,
    VerifyResponse,
)
from socialhub.services.counters import CounterMaintainer, CounterRef, counter_maintainer
from socialhub.services.drive_service import DriveService
from socialhub.services.mirror import MirrorSink
from socialhub.services.notification_service import NotificationEmitter, notification_emitter
from socialhub.services.post_service import reactions_for
from socialhub.services.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)


class UserService:
    """Account and social-graph operations."""

    def __init__(
        self,
        counters: CounterMaintainer = counter_maintainer,
        emitter: NotificationEmitter = notification_emitter,
    ):
        self.counters = counters
        self.emitter = emitter

    # ══════════════════════════════════════════════════════════════════════
    # Authentication
    # ══════════════════════════════════════════════════════════════════════

    async def register(
        self, db: AsyncSession, data: RegisterRequest, mirror: MirrorSink
    ) -> AuthResponse:
        """
        Creates an account and returns a token for it.

        Raises:
            ValidationError: username or email already taken
        """
        email = data.email.lower()
        taken = await db.execute(
            select(User.id).where(or_(User.email == email, User.username == data.username))
        )
        if taken.first() is not None:
            raise ValidationError(message="User with this email or username already exists")

        user = User(
            username=data.username,
            email=email,
            password_hash=hash_password(data.password),
            full_name=data.full_name,
        )
        db.add(user)
        try:
            # Unique constraints catch a concurrent registration with the same name
            async with db.begin_nested():
                await db.flush()
        except IntegrityError:
            raise ValidationError(message="User with this email or username already exists")
        await db.refresh(user)

        logger.info("Registered user %s (%s)", user.username, user.id)
        mirror.mirror(
            "user_login",
            {
                "user_id": user.id,
                "username": user.username,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )
        return AuthResponse(
            message="User registered successfully",
            token=create_access_token(user.id),
            user=UserResponse.model_validate(user),
        )

    async def login(self, db: AsyncSession, data: LoginRequest, mirror: MirrorSink) -> AuthResponse:
        result = await db.execute(select(User).where(User.email == data.email.lower()))
        user = result.scalar_one_or_none()
        # Same message for unknown email and wrong password
        if user is None or not verify_password(data.password, user.password_hash):
            raise AuthenticationError(message="Invalid credentials")

        mirror.mirror(
            "user_login",
            {
                "user_id": user.id,
                "username": user.username,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )
        return AuthResponse(
            message="Login successful",
            token=create_access_token(user.id),
            user=UserResponse.model_validate(user),
        )

    def verify(self, user: User) -> VerifyResponse:
        return VerifyResponse(valid=True, user=UserResponse.model_validate(user))

    # ══════════════════════════════════════════════════════════════════════
    # Profiles
    # ══════════════════════════════════════════════════════════════════════

    async def is_following(
        self, db: AsyncSession, follower_id: uuid.UUID, followee_id: uuid.UUID
    ) -> bool:
        result = await db.execute(
            select(
                exists().where(
                    Follow.follower_id == follower_id,
                    Follow.followee_id == followee_id,
                )
            )
        )
        return bool(result.scalar())

    async def get_profile(self, db: AsyncSession, viewer: User, username: str) -> ProfileResponse:
        result = await db.execute(select(User).where(User.username == username))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError(resource="user", resource_id=username)

        return ProfileResponse(
            user=UserResponse.model_validate(user),
            is_following=await self.is_following(db, viewer.id, user.id),
        )

    async def update_profile(
        self, db: AsyncSession, user: User, data: ProfileUpdateRequest
    ) -> ProfileUpdateResponse:
        """Applies only the fields present in the request body."""
        changes = data.model_dump(exclude_unset=True)
        for name, value in changes.items():
            setattr(user, name, value)
        await db.flush()
        await db.refresh(user)

        logger.info("Profile of %s updated: %s", user.id, sorted(changes))
        return ProfileUpdateResponse(
            message="Profile updated successfully",
            user=UserResponse.model_validate(user),
        )

    # ══════════════════════════════════════════════════════════════════════
    # Social Graph
    # ══════════════════════════════════════════════════════════════════════

    async def toggle_follow(
        self,
        db: AsyncSession,
        actor: User,
        target_id: uuid.UUID,
        mirror: MirrorSink,
    ) -> FollowResponse:
        """
        Follows the target, or unfollows when already following.

        Raises:
            ValidationError: actor is the target
            NotFoundError:   target does not exist
        """
        if target_id == actor.id:
            raise ValidationError(message="Cannot follow yourself", field="userId")

        target = await db.get(User, target_id)
        if target is None:
            raise NotFoundError(resource="user", resource_id=str(target_id))

        result = await self.counters.toggle_membership(
            db,
            Follow,
            {"follower_id": actor.id, "followee_id": target.id},
            [
                CounterRef(User, target.id, "followers_count"),
                CounterRef(User, actor.id, "following_count"),
            ],
        )

        if result.active:
            await self.emitter.emit(
                db,
                recipient_id=target.id,
                sender_id=actor.id,
                kind="follow",
                message="started following you",
            )

        await db.refresh(actor)
        await db.refresh(target)
        for user in (actor, target):
            mirror.mirror(
                "user_stats",
                {
                    "user_id": user.id,
                    "followers_count": user.followers_count,
                    "following_count": user.following_count,
                    "posts_count": user.posts_count,
                },
            )

        logger.info(
            "%s %s %s", actor.id, "followed" if result.active else "unfollowed", target.id
        )
        return FollowResponse(
            following=result.active,
            followers_count=result.counts["followers_count"],
        )

    async def list_user_posts(
        self,
        db: AsyncSession,
        viewer: User,
        user_id: uuid.UUID,
        page: int = 1,
        limit: int = 12,
    ) -> PostListResponse:
        """
        Newest-first posts of one user.

        Private accounts are visible only to themselves and their followers.
        Archived posts are listed for their owner only.
        """
        owner = await db.get(User, user_id)
        if owner is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))

        is_self = owner.id == viewer.id
        if owner.is_private and not is_self and not await self.is_following(db, viewer.id, owner.id):
            raise PermissionDeniedError(
                message="This account is private",
                context={"userId": str(owner.id)},
            )

        conditions = [Post.author_id == owner.id]
        if not is_self:
            conditions.append(Post.is_archived.is_(False))

        posts = (
            await db.execute(
                select(Post)
                .where(*conditions)
                .order_by(Post.created_at.desc())
                .limit(limit)
                .offset((page - 1) * limit)
            )
        ).scalars().all()
        total = (await db.execute(select(func.count(Post.id)).where(*conditions))).scalar() or 0

        liked, saved = await reactions_for(db, viewer.id, [p.id for p in posts])
        return PostListResponse(
            posts=[
                PostResponse.from_model(p, owner, is_liked=p.id in liked, is_saved=p.id in saved)
                for p in posts
            ],
            total_pages=math.ceil(total / limit),
            current_page=page,
        )

    # ══════════════════════════════════════════════════════════════════════
    # Google Drive Connection
    # ══════════════════════════════════════════════════════════════════════

    async def connect_drive(
        self, db: AsyncSession, user: User, code: Optional[str], drive: DriveService
    ) -> DriveConnectionResponse:
        """
        Exchanges the OAuth code and stores the tokens on the user.

        Raises:
            ValidationError:      no code in the request
            ExternalServiceError: Google rejected the code or was unreachable
        """
        if not code:
            raise ValidationError(message="Authorization code required", field="code")

        tokens = await drive.exchange_code(code)
        user.google_drive_connected = True
        user.google_drive_tokens = tokens
        await db.flush()
        await self.emitter.emit_system(
            db,
            recipient_id=user.id,
            kind="drive_connect",
            message="Google Drive connected successfully",
        )
        logger.info("Google Drive connected for %s", user.id)
        return DriveConnectionResponse(message="Google Drive connected successfully", connected=True)

    async def disconnect_drive(self, db: AsyncSession, user: User) -> DriveConnectionResponse:
        user.google_drive_connected = False
        user.google_drive_tokens = None
        await db.flush()
        logger.info("Google Drive disconnected for %s", user.id)
        return DriveConnectionResponse(
            message="Google Drive disconnected successfully", connected=False
        )

    def drive_status(self, user: User) -> DriveStatusResponse:
        tokens = user.google_drive_tokens or {}
        return DriveStatusResponse(
            connected=bool(user.google_drive_connected),
            has_valid_tokens=bool(tokens.get("access_token")),
        )


user_service = UserService()
