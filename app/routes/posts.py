"""
Postify Backend — Post Route Handlers
=======================================

What:  HTTP surface for posts, likes and comments under /api/posts.
How:   Extracts path/query/body data, resolves the session and (for
       mutating routes) the authenticated user, delegates to PostService.

Route Inventory:
    GET    /api/posts                               feed page (public)
    GET    /api/posts/{post_id}                     single post (public)
    POST   /api/posts                               create (auth)
    PUT    /api/posts/{post_id}                     edit, owner only (auth)
    DELETE /api/posts/{post_id}                     delete, owner only (auth)
    POST   /api/posts/{post_id}/like                toggle like (auth)
    POST   /api/posts/{post_id}/comments            add comment (auth)
    DELETE /api/posts/{post_id}/comments/{cid}      delete own comment (auth)

Errors are raised by the service and formatted by the global handlers in
main.py. Path ids are typed as UUID, so a malformed id is a 400.
/api/posts/ (trailing slash) is served directly for list and create.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db_session
from app.models.user import User
from app.schemas.post import (
    CommentCreate,
    ErrorResponse,
    MessageResponse,
    PostCreate,
    PostListResponse,
    PostResponse,
    PostUpdate,
)
from app.security import get_current_user
from app.services.post_service import parse_page_param, post_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["Posts"])

AUTH_ERRORS = {
    400: {"description": "Invalid input or malformed id", "model": ErrorResponse},
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
}
NOT_FOUND = {404: {"description": "Post not found", "model": ErrorResponse}}
FORBIDDEN = {403: {"description": "Caller is not the owner", "model": ErrorResponse}}


@router.get(
    "",
    response_model=PostListResponse,
    summary="List posts, newest first",
    description=(
        "Offset pagination. `page` and `limit` are optional positive integers "
        "(defaults 1 and 10); anything else falls back to the defaults."
    ),
)
@router.get("/", response_model=PostListResponse, include_in_schema=False)
async def list_posts(
    page: str | None = Query(default=None, description="1-based page number"),
    limit: str | None = Query(default=None, description="Posts per page"),
    db: AsyncSession = Depends(get_db_session),
) -> PostListResponse:
    return await post_service.list_posts(
        db=db,
        page=parse_page_param(page, 1),
        limit=parse_page_param(limit, settings.default_page_size),
    )


@router.get(
    "/{post_id}",
    response_model=PostResponse,
    responses={**NOT_FOUND, 400: AUTH_ERRORS[400]},
    summary="Get a single post",
)
async def get_post(
    post_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> PostResponse:
    return await post_service.get_post(db=db, post_id=post_id)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=PostResponse,
    responses=AUTH_ERRORS,
    summary="Create a post",
)
@router.post(
    "/",
    status_code=status.HTTP_201_CREATED,
    response_model=PostResponse,
    include_in_schema=False,
)
async def create_post(
    data: PostCreate,
    db: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
) -> PostResponse:
    return await post_service.create_post(db=db, user=current_user, data=data)


@router.put(
    "/{post_id}",
    response_model=PostResponse,
    responses={**AUTH_ERRORS, **FORBIDDEN, **NOT_FOUND},
    summary="Edit a post (owner only)",
    description="`image` is only changed when present in the body; null or empty clears it.",
)
async def update_post(
    post_id: UUID,
    data: PostUpdate,
    db: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
) -> PostResponse:
    return await post_service.update_post(db=db, user=current_user, post_id=post_id, data=data)


@router.delete(
    "/{post_id}",
    response_model=MessageResponse,
    responses={**AUTH_ERRORS, **FORBIDDEN, **NOT_FOUND},
    summary="Delete a post (owner only)",
)
async def delete_post(
    post_id: UUID,
    db: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    return await post_service.delete_post(db=db, user=current_user, post_id=post_id)


@router.post(
    "/{post_id}/like",
    response_model=PostResponse,
    responses={**AUTH_ERRORS, **NOT_FOUND},
    summary="Like or unlike a post",
)
async def toggle_like(
    post_id: UUID,
    db: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
) -> PostResponse:
    return await post_service.toggle_like(db=db, user=current_user, post_id=post_id)


@router.post(
    "/{post_id}/comments",
    status_code=status.HTTP_201_CREATED,
    response_model=PostResponse,
    responses={**AUTH_ERRORS, **NOT_FOUND},
    summary="Comment on a post",
)
async def add_comment(
    post_id: UUID,
    data: CommentCreate,
    db: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
) -> PostResponse:
    return await post_service.add_comment(db=db, user=current_user, post_id=post_id, data=data)


@router.delete(
    "/{post_id}/comments/{comment_id}",
    response_model=PostResponse,
    responses={**AUTH_ERRORS, **FORBIDDEN, **NOT_FOUND},
    summary="Delete your own comment",
)
async def delete_comment(
    post_id: UUID,
    comment_id: UUID,
    db: AsyncSession = Depends(get_db_session),
    current_user: User = Depends(get_current_user),
) -> PostResponse:
    return await post_service.delete_comment(
        db=db,
        user=current_user,
        post_id=post_id,
        comment_id=comment_id,
    )
