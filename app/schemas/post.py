"""
Postify Backend — Pydantic Request/Response Schemas
=====================================================

What:  Pydantic models defining the API contract between frontend and backend.
How:   FastAPI uses these models to validate request bodies, serialize responses,
       and generate OpenAPI documentation.

Response keys are camelCase (createdAt, currentPage, ...) to match what the
web client reads; Python code uses the snake_case field names.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.config import settings


class CamelModel(BaseModel):
    """Base for response models: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ══════════════════════════════════════════════════════════════════════════
# Request Models — What clients send in the body
# ══════════════════════════════════════════════════════════════════════════


class PostCreate(BaseModel):
    """
    Body of POST /api/posts.

    content is Optional here so a missing field produces the same
    "Post content is required" message as a blank one (checked in PostService).
    """
    content: Optional[str] = Field(default=None, max_length=settings.max_post_length)
    image: Optional[str] = Field(default=None, max_length=2048)


class PostUpdate(BaseModel):
    """
    Body of PUT /api/posts/{id}.

    `image` is only applied when the key is present in the body
    ("image" in model_fields_set); sending null or "" clears it.
    """
    content: Optional[str] = Field(default=None, max_length=settings.max_post_length)
    image: Optional[str] = Field(default=None, max_length=2048)

    @property
    def image_provided(self) -> bool:
        return "image" in self.model_fields_set


class CommentCreate(BaseModel):
    """Body of POST /api/posts/{id}/comments."""
    text: Optional[str] = Field(default=None, max_length=settings.max_comment_length)


# ══════════════════════════════════════════════════════════════════════════
# Response Models — What the API returns to clients
# ══════════════════════════════════════════════════════════════════════════


class UserSummary(CamelModel):
    """Owner reference resolved to its display name."""
    id: uuid.UUID
    username: str


class CommentResponse(CamelModel):
    id: uuid.UUID
    user: UserSummary
    text: str
    created_at: datetime


class PostResponse(CamelModel):
    """
    Full representation of a post with author and comment authors resolved.

    likes is the liker set as a list of user ids, in the order they liked.
    """
    id: uuid.UUID
    user: UserSummary
    content: str
    image: Optional[str] = None
    likes: List[uuid.UUID] = Field(default_factory=list)
    comments: List[CommentResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class PostListResponse(CamelModel):
    """
    Page of the feed, newest first.

    total_pages is ceil(total_posts / limit) for the limit that was applied.
    """
    posts: List[PostResponse]
    current_page: int
    total_pages: int
    total_posts: int


class MessageResponse(BaseModel):
    message: str


# ══════════════════════════════════════════════════════════════════════════
# Error / Health Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "forbidden",
            "message": "Not authorized to edit this post",
            "request_id": "1a2b3c4d"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="ok when the process is serving requests")
    message: str
    version: str
    database: str = Field(description="Database connectivity: connected, disconnected")
