"""Create users, follows, posts, reactions, comments and notifications

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Initial schema. Link tables (follows, post_likes, post_saves,
       comment_likes) use composite primary keys so a membership row exists
       at most once; the counters on users/posts/comments summarize them.

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    ]


def _counter(name: str) -> sa.Column:
    return sa.Column(name, sa.Integer(), server_default=sa.text("0"), nullable=False)


def _flag(name: str) -> sa.Column:
    return sa.Column(name, sa.Boolean(), server_default=sa.text("false"), nullable=False)


def _link_table(name: str, left: str, left_target: str, right: str, right_target: str) -> None:
    op.create_table(
        name,
        sa.Column(left, sa.Uuid(), nullable=False),
        sa.Column(right, sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint([left], [left_target], ondelete="CASCADE"),
        sa.ForeignKeyConstraint([right], [right_target], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint(left, right, name=f"pk_{name}"),
    )


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("username", sa.String(30), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(100), nullable=True),
        sa.Column("bio", sa.String(500), nullable=True),
        sa.Column("profile_picture", sa.Text(), nullable=True),
        _flag("is_verified"),
        _flag("is_private"),
        _flag("google_drive_connected"),
        sa.Column("google_drive_tokens", sa.JSON(), nullable=True),
        _counter("followers_count"),
        _counter("following_count"),
        _counter("posts_count"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint("followers_count >= 0", name="ck_users_followers_count"),
        sa.CheckConstraint("following_count >= 0", name="ck_users_following_count"),
        sa.CheckConstraint("posts_count >= 0", name="ck_users_posts_count"),
    )

    # ── follows ───────────────────────────────────────────────────────────
    _link_table("follows", "follower_id", "users.id", "followee_id", "users.id")
    op.create_check_constraint("ck_follows_not_self", "follows", "follower_id <> followee_id")
    op.create_index("idx_follows_followee", "follows", ["followee_id"])

    # ── posts ─────────────────────────────────────────────────────────────
    op.create_table(
        "posts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("author_id", sa.Uuid(), nullable=True),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("caption", sa.String(2000), nullable=True),
        sa.Column("text_content", sa.String(5000), nullable=True),
        sa.Column("media_files", sa.JSON(), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("location", sa.Text(), nullable=True),
        _flag("is_archived"),
        _counter("likes_count"),
        _counter("saved_count"),
        _counter("comments_count"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_posts"),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"], ondelete="SET NULL"),
        sa.CheckConstraint("type IN ('text', 'image', 'video')", name="ck_posts_type"),
        sa.CheckConstraint("likes_count >= 0", name="ck_posts_likes_count"),
        sa.CheckConstraint("saved_count >= 0", name="ck_posts_saved_count"),
        sa.CheckConstraint("comments_count >= 0", name="ck_posts_comments_count"),
    )
    op.create_index("idx_posts_author_created", "posts", ["author_id", "created_at"])
    op.create_index("idx_posts_created_at", "posts", ["created_at"])

    _link_table("post_likes", "post_id", "posts.id", "user_id", "users.id")
    _link_table("post_saves", "post_id", "posts.id", "user_id", "users.id")

    # ── comments ──────────────────────────────────────────────────────────
    op.create_table(
        "comments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("post_id", sa.Uuid(), nullable=False),
        sa.Column("author_id", sa.Uuid(), nullable=True),
        sa.Column("text", sa.String(1000), nullable=False),
        sa.Column("parent_comment_id", sa.Uuid(), nullable=True),
        _counter("likes_count"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_comments"),
        sa.ForeignKeyConstraint(["post_id"], ["posts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["parent_comment_id"], ["comments.id"], ondelete="CASCADE"),
        sa.CheckConstraint("likes_count >= 0", name="ck_comments_likes_count"),
    )
    op.create_index("idx_comments_post_created", "comments", ["post_id", "created_at"])
    op.create_index("idx_comments_parent", "comments", ["parent_comment_id"])

    _link_table("comment_likes", "comment_id", "comments.id", "user_id", "users.id")

    # ── notifications ─────────────────────────────────────────────────────
    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("recipient_id", sa.Uuid(), nullable=False),
        sa.Column("sender_id", sa.Uuid(), nullable=True),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("post_id", sa.Uuid(), nullable=True),
        sa.Column("comment_id", sa.Uuid(), nullable=True),
        sa.Column("message", sa.String(255), nullable=False),
        _flag("is_read"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_notifications"),
        sa.ForeignKeyConstraint(["recipient_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["sender_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["post_id"], ["posts.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["comment_id"], ["comments.id"], ondelete="SET NULL"),
        sa.CheckConstraint(
            "type IN ('like', 'comment', 'follow', 'drive_connect')",
            name="ck_notifications_type",
        ),
    )
    op.create_index(
        "idx_notifications_recipient_created", "notifications", ["recipient_id", "created_at"]
    )
    op.create_index(
        "idx_notifications_recipient_unread", "notifications", ["recipient_id", "is_read"]
    )


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("comment_likes")
    op.drop_table("comments")
    op.drop_table("post_saves")
    op.drop_table("post_likes")
    op.drop_table("posts")
    op.drop_table("follows")
    op.drop_table("users")
