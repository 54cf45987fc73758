"""
SocialHub Backend — Comment Schemas
=====================================

What:  Comment request body and response shapes. A top-level comment embeds
       its replies; replies carry an empty `replies` list.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from socialhub.models.comment import Comment
from socialhub.models.user import User
from socialhub.schemas.common import CamelModel, Page
from socialhub.schemas.user import UserSummary


class CommentCreateRequest(CamelModel):
    # Length is checked after trimming in CommentService
    text: Optional[str] = None
    parent_comment_id: Optional[uuid.UUID] = Field(
        default=None, description="Reply to this top-level comment"
    )


class CommentResponse(CamelModel):
    id: uuid.UUID
    post: uuid.UUID = Field(description="Id of the post this comment belongs to")
    author: Optional[UserSummary] = None
    text: str
    parent_comment: Optional[uuid.UUID] = None
    likes_count: int = 0
    replies: List["CommentResponse"] = Field(default_factory=list)
    created_at: datetime

    @classmethod
    def from_model(
        cls,
        comment: Comment,
        author: Optional[User],
        replies: Optional[List["CommentResponse"]] = None,
    ) -> "CommentResponse":
        return cls(
            id=comment.id,
            post=comment.post_id,
            author=UserSummary.model_validate(author) if author is not None else None,
            text=comment.text,
            parent_comment=comment.parent_comment_id,
            likes_count=comment.likes_count,
            replies=replies or [],
            created_at=comment.created_at,
        )


class CommentCreatedResponse(CamelModel):
    message: str
    comment: CommentResponse


class CommentListResponse(Page):
    comments: List[CommentResponse]
