"""
Postify Backend — Post, Comment and Like SQLAlchemy Models
============================================================

What:  ORM models for `posts`, `comments` and `post_likes`.
How:   A post owns its comments and likes through child tables, the
       relational form of embedding them in the post document.

Table Design:
    - UUID primary keys for posts and comments (comment ids are independent
      of the post id)
    - user_id columns are never reassigned after insert (ownership is fixed)
    - post_likes has a composite primary key (post_id, user_id), so a user
      appears at most once in a post's liker set at the database level
    - created_at DESC index on posts serves the feed query

    Relationships use lazy="selectin": every SELECT of a Post loads its
    author, comments (with their authors) and likes in follow-up IN queries,
    so response serialization never triggers lazy I/O under asyncio.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.user import User


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Post(Base):
    """
    Top-level user-authored content.

    Lifecycle:
        1. Created by POST /api/posts (owner = authenticated user)
        2. content/image changed by PUT (owner only)
        3. likes and comments changed through sub-routes (any user)
        4. Deleted by owner; comments and likes go with it
    """

    __tablename__ = "posts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    content: Mapped[str] = mapped_column(Text, nullable=False)

    # URL of an attached image; NULL when the post has none
    image: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True, default=None)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    user: Mapped[User] = relationship(lazy="selectin")

    comments: Mapped[List["Comment"]] = relationship(
        back_populates="post",
        cascade="all, delete-orphan",
        order_by="Comment.created_at",
        lazy="selectin",
    )

    likes: Mapped[List["PostLike"]] = relationship(
        cascade="all, delete-orphan",
        order_by="PostLike.created_at",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_posts_created_at", created_at.desc()),
    )

    @property
    def liker_ids(self) -> List[uuid.UUID]:
        return [like.user_id for like in self.likes]

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, user_id={self.user_id}, created_at='{self.created_at}')>"


class Comment(Base):
    """A reply to a post. Insertion-ordered within the post; delete-only."""

    __tablename__ = "comments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    text: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    post: Mapped[Post] = relationship(back_populates="comments")
    user: Mapped[User] = relationship(lazy="selectin")

    def __repr__(self) -> str:
        return f"<Comment(id={self.id}, post_id={self.post_id}, user_id={self.user_id})>"


class PostLike(Base):
    """Membership row of a post's liker set."""

    __tablename__ = "post_likes"

    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("posts.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    def __repr__(self) -> str:
        return f"<PostLike(post_id={self.post_id}, user_id={self.user_id})>"
