"""
SocialHub Backend — Post Schemas
==================================

What:  Response shapes for posts, the feed and post reactions.

Creation is a multipart form (files + fields) parsed in routes/posts.py
into PostCreateData; there is no JSON request model for it.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from socialhub.models.post import Post
from socialhub.models.user import User
from socialhub.schemas.common import CamelModel, Page
from socialhub.schemas.user import UserSummary


@dataclass
class UploadedMedia:
    """A file received from the client, not yet stored anywhere."""
    filename: str
    content_type: str
    content: bytes


@dataclass
class PostCreateData:
    type: str
    caption: Optional[str] = None
    text_content: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    location: Optional[str] = None
    files: List[UploadedMedia] = field(default_factory=list)


class MediaFile(CamelModel):
    """A file stored in the author's Google Drive."""
    file_id: str
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    web_view_link: Optional[str] = None
    thumbnail_link: Optional[str] = None


class PostResponse(CamelModel):
    id: uuid.UUID
    author: Optional[UserSummary] = Field(description="Null when the author no longer exists")
    type: str
    caption: Optional[str] = None
    text_content: Optional[str] = None
    media_files: List[MediaFile] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    location: Optional[str] = None
    is_archived: bool = False
    likes_count: int = 0
    saved_count: int = 0
    comments_count: int = 0
    is_liked: bool = Field(default=False, description="Whether the caller liked this post")
    is_saved: bool = Field(default=False, description="Whether the caller saved this post")
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(
        cls,
        post: Post,
        author: Optional[User],
        is_liked: bool = False,
        is_saved: bool = False,
    ) -> "PostResponse":
        return cls(
            id=post.id,
            author=UserSummary.model_validate(author) if author is not None else None,
            type=post.type,
            caption=post.caption,
            text_content=post.text_content,
            media_files=[MediaFile.model_validate(m) for m in (post.media_files or [])],
            tags=list(post.tags or []),
            location=post.location,
            is_archived=post.is_archived,
            likes_count=post.likes_count,
            saved_count=post.saved_count,
            comments_count=post.comments_count,
            is_liked=is_liked,
            is_saved=is_saved,
            created_at=post.created_at,
            updated_at=post.updated_at,
        )


class PostEnvelope(CamelModel):
    post: PostResponse


class PostCreatedResponse(CamelModel):
    message: str
    post: PostResponse


class PostListResponse(Page):
    posts: List[PostResponse]


class LikeResponse(CamelModel):
    liked: bool
    likes_count: int


class SaveResponse(CamelModel):
    saved: bool
    saved_count: int
