"""
Postify Backend — Post Service (Business Logic)
=================================================

What:  Rules for posts, comments and likes: validation, ownership checks,
       like toggling, and pagination.
How:   Each method receives the request's AsyncSession, runs one or two
       statements, and returns response models. Routes stay HTTP-only.
Who:   Called by the route handlers in app/routes/posts.py.

Write Strategy:
    - Comments are inserted/deleted as their own rows, so two users
      commenting at once never overwrite each other.
    - Likes are toggled with a conditional DELETE followed, if nothing was
      deleted, by INSERT ... ON CONFLICT DO NOTHING. The (post_id, user_id)
      primary key turns a duplicate from a concurrent request into a no-op.
    - Post content/image updates are last-writer-wins on those columns.

Error Handling:
    ValidationError / NotFoundError / ForbiddenError propagate unchanged.
    Any SQLAlchemyError is logged and wrapped in DatabaseError (generic 500).
"""

import logging
import math
import uuid
from typing import Optional

from sqlalchemy import delete, func, insert, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import DatabaseError, ForbiddenError, NotFoundError, ValidationError
from app.models.post import Comment, Post, PostLike, utcnow
from app.models.user import User
from app.schemas.post import (
    CommentCreate,
    CommentResponse,
    MessageResponse,
    PostCreate,
    PostListResponse,
    PostResponse,
    PostUpdate,
    UserSummary,
)

logger = logging.getLogger(__name__)


def parse_page_param(value: Optional[str], default: int) -> int:
    """
    Lenient positive-integer parsing for ?page= and ?limit=.

    Missing, non-numeric, zero or negative values fall back to `default`
    instead of producing a 400.
    """
    if value is None:
        return default
    try:
        number = int(str(value).strip())
    except ValueError:
        return default
    return number if number > 0 else default


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit)


def _clean_text(value: Optional[str]) -> str:
    """Trimmed text, or "" when missing/blank."""
    return value.strip() if isinstance(value, str) else ""


def _insert_ignoring_duplicates(db: AsyncSession, model):
    """
    INSERT ... ON CONFLICT DO NOTHING for the session's dialect.

    A duplicate (post_id, user_id) from a concurrent like by the same user
    becomes a no-op instead of an IntegrityError.
    """
    dialect = db.bind.dialect.name if db.bind is not None else ""
    if dialect == "postgresql":
        return pg_insert(model).on_conflict_do_nothing()
    if dialect == "sqlite":
        return sqlite_insert(model).on_conflict_do_nothing()
    return insert(model)


def _to_response(post: Post) -> PostResponse:
    return PostResponse(
        id=post.id,
        user=UserSummary(id=post.user.id, username=post.user.username),
        content=post.content,
        image=post.image,
        likes=post.liker_ids,
        comments=[
            CommentResponse(
                id=comment.id,
                user=UserSummary(id=comment.user.id, username=comment.user.username),
                text=comment.text,
                created_at=comment.created_at,
            )
            for comment in post.comments
        ],
        created_at=post.created_at,
        updated_at=post.updated_at,
    )


class PostService:
    """
    Business logic layer for post operations.

    Stateless: every call receives its session, so one instance serves
    all requests.
    """

    # ── Loading helpers ───────────────────────────────────────────────────

    async def _load_post(self, db: AsyncSession, post_id: uuid.UUID) -> Post:
        """
        Fetch a post with author, comments and likes.

        populate_existing refreshes collections already in the identity map
        after row-level writes made earlier in the same session.
        """
        result = await db.execute(
            select(Post)
            .where(Post.id == post_id)
            .execution_options(populate_existing=True)
        )
        post = result.scalar_one_or_none()
        if post is None:
            raise NotFoundError(resource="Post", resource_id=str(post_id))
        return post

    async def _ensure_post_exists(self, db: AsyncSession, post_id: uuid.UUID) -> None:
        result = await db.execute(select(Post.id).where(Post.id == post_id))
        if result.scalar_one_or_none() is None:
            raise NotFoundError(resource="Post", resource_id=str(post_id))

    # ── Queries ───────────────────────────────────────────────────────────

    async def list_posts(self, db: AsyncSession, page: int, limit: int) -> PostListResponse:
        """
        One page of the feed, newest first.

        Query plan:
            SELECT ... FROM posts ORDER BY created_at DESC LIMIT :limit OFFSET :skip
            SELECT count(*) FROM posts
        """
        skip = (page - 1) * limit
        try:
            result = await db.execute(
                select(Post)
                .order_by(Post.created_at.desc())
                .offset(skip)
                .limit(limit)
            )
            posts = list(result.scalars().all())

            count_result = await db.execute(select(func.count(Post.id)))
            total = count_result.scalar() or 0
        except SQLAlchemyError as e:
            logger.error("Database error listing posts: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve posts. Please try again.",
                context={"page": page, "limit": limit},
            ) from e

        return PostListResponse(
            posts=[_to_response(post) for post in posts],
            current_page=page,
            total_pages=total_pages(total, limit),
            total_posts=total,
        )

    async def get_post(self, db: AsyncSession, post_id: uuid.UUID) -> PostResponse:
        try:
            post = await self._load_post(db, post_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching post %s: %s", post_id, str(e))
            raise DatabaseError(context={"post_id": str(post_id)}) from e
        return _to_response(post)

    # ── Post mutations ────────────────────────────────────────────────────

    async def create_post(self, db: AsyncSession, user: User, data: PostCreate) -> PostResponse:
        content = _clean_text(data.content)
        if not content:
            raise ValidationError(message="Post content is required", field="content")

        try:
            post = Post(user_id=user.id, content=content, image=data.image or None)
            db.add(post)
            await db.flush()
            post = await self._load_post(db, post.id)
        except SQLAlchemyError as e:
            logger.error("Database error creating post: %s", str(e), exc_info=True)
            raise DatabaseError(context={"user_id": str(user.id)}) from e

        logger.info("Post %s created by user %s", post.id, user.id)
        return _to_response(post)

    async def update_post(
        self,
        db: AsyncSession,
        user: User,
        post_id: uuid.UUID,
        data: PostUpdate,
    ) -> PostResponse:
        """Owner-only edit of content and (when provided) image."""
        try:
            post = await self._load_post(db, post_id)
            if post.user_id != user.id:
                raise ForbiddenError(message="Not authorized to edit this post")

            content = _clean_text(data.content)
            if not content:
                raise ValidationError(message="Post content is required", field="content")

            post.content = content
            if data.image_provided:
                post.image = data.image or None
            await db.flush()
            post = await self._load_post(db, post_id)
        except SQLAlchemyError as e:
            logger.error("Database error updating post %s: %s", post_id, str(e))
            raise DatabaseError(context={"post_id": str(post_id)}) from e

        return _to_response(post)

    async def delete_post(self, db: AsyncSession, user: User, post_id: uuid.UUID) -> MessageResponse:
        """Owner-only delete; comments and likes are removed with the post."""
        try:
            post = await self._load_post(db, post_id)
            if post.user_id != user.id:
                raise ForbiddenError(message="Not authorized to delete this post")

            await db.delete(post)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting post %s: %s", post_id, str(e))
            raise DatabaseError(context={"post_id": str(post_id)}) from e

        logger.info("Post %s deleted by user %s", post_id, user.id)
        return MessageResponse(message="Post deleted successfully")

    # ── Likes ─────────────────────────────────────────────────────────────

    async def toggle_like(self, db: AsyncSession, user: User, post_id: uuid.UUID) -> PostResponse:
        """Remove the caller from the liker set if present, otherwise add them."""
        try:
            await self._ensure_post_exists(db, post_id)

            result = await db.execute(
                delete(PostLike).where(
                    PostLike.post_id == post_id,
                    PostLike.user_id == user.id,
                )
            )
            if result.rowcount == 0:
                await db.execute(
                    _insert_ignoring_duplicates(db, PostLike).values(
                        post_id=post_id,
                        user_id=user.id,
                        created_at=utcnow(),
                    )
                )

            post = await self._load_post(db, post_id)
        except SQLAlchemyError as e:
            logger.error("Database error toggling like on post %s: %s", post_id, str(e))
            raise DatabaseError(context={"post_id": str(post_id)}) from e

        return _to_response(post)

    # ── Comments ──────────────────────────────────────────────────────────

    async def add_comment(
        self,
        db: AsyncSession,
        user: User,
        post_id: uuid.UUID,
        data: CommentCreate,
    ) -> PostResponse:
        try:
            await self._ensure_post_exists(db, post_id)

            text = _clean_text(data.text)
            if not text:
                raise ValidationError(message="Comment text is required", field="text")

            comment = Comment(post_id=post_id, user_id=user.id, text=text)
            db.add(comment)
            await db.flush()
            post = await self._load_post(db, post_id)
        except SQLAlchemyError as e:
            logger.error("Database error adding comment to post %s: %s", post_id, str(e))
            raise DatabaseError(context={"post_id": str(post_id)}) from e

        logger.info("Comment %s added to post %s by user %s", comment.id, post_id, user.id)
        return _to_response(post)

    async def delete_comment(
        self,
        db: AsyncSession,
        user: User,
        post_id: uuid.UUID,
        comment_id: uuid.UUID,
    ) -> PostResponse:
        """
        Delete a comment. Only its author may do so; the post's owner
        cannot remove other users' comments.
        """
        try:
            await self._ensure_post_exists(db, post_id)

            result = await db.execute(
                select(Comment).where(
                    Comment.id == comment_id,
                    Comment.post_id == post_id,
                )
            )
            comment = result.scalar_one_or_none()
            if comment is None:
                raise NotFoundError(resource="Comment", resource_id=str(comment_id))

            if comment.user_id != user.id:
                raise ForbiddenError(message="Not authorized to delete this comment")

            await db.delete(comment)
            await db.flush()
            post = await self._load_post(db, post_id)
        except SQLAlchemyError as e:
            logger.error("Database error deleting comment %s: %s", comment_id, str(e))
            raise DatabaseError(context={"comment_id": str(comment_id)}) from e

        logger.info("Comment %s deleted from post %s", comment_id, post_id)
        return _to_response(post)


post_service = PostService()
