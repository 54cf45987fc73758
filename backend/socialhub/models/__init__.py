"""ORM models. Importing this package registers every table on Base.metadata."""

from socialhub.models.comment import Comment, CommentLike
from socialhub.models.notification import Notification
from socialhub.models.post import Post, PostLike, PostSave
from socialhub.models.user import Follow, User

__all__ = [
    "Comment",
    "CommentLike",
    "Follow",
    "Notification",
    "Post",
    "PostLike",
    "PostSave",
    "User",
]
