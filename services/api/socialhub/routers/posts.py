"""
Post endpoints:
  POST   /posts                — create a post
  GET    /posts                — all posts, newest first
  GET    /posts/{id}           — a single post (null when absent)
  DELETE /posts/{id}           — delete own post
  POST   /posts/{id}/like      — toggle like
  POST   /posts/{id}/comments  — comment on a post
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from socialhub.actions import posts as post_actions
from socialhub.boundary import action, read_action
from socialhub.database import get_db
from socialhub.dependencies import RequestContext, get_request_context
from socialhub.schemas import (
    ActionResult,
    CommentActionResult,
    CommentCreate,
    LikeToggleResult,
    PostActionResult,
    PostCreate,
    PostResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=PostActionResult, status_code=status.HTTP_201_CREATED)
@action("Failed to create post")
async def create_post(
    body: PostCreate,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    post = await post_actions.create_post(db, ctx, body.content, body.image)
    return PostActionResult(success=True, post=post_actions.build_post_response(post))


@router.get("/", response_model=list[PostResponse])
@read_action(list)
async def list_posts(db: AsyncSession = Depends(get_db)):
    posts = await post_actions.list_posts(db)
    return [post_actions.build_post_response(p) for p in posts]


@router.get("/{post_id}", response_model=Optional[PostResponse])
@read_action(lambda: None)
async def get_post(post_id: str, db: AsyncSession = Depends(get_db)):
    post = await post_actions.get_post(db, post_id)
    return post_actions.build_post_response(post) if post else None


@router.delete("/{post_id}", response_model=ActionResult)
@action("Failed to delete post")
async def delete_post(
    post_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    await post_actions.delete_post(db, ctx, post_id)
    return ActionResult(success=True)


@router.post("/{post_id}/like", response_model=LikeToggleResult)
@action("Failed to toggle like")
async def toggle_like(
    post_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    liked, like_count = await post_actions.toggle_like(db, ctx, post_id)
    return LikeToggleResult(success=True, liked=liked, like_count=like_count)


@router.post(
    "/{post_id}/comments",
    response_model=CommentActionResult,
    status_code=status.HTTP_201_CREATED,
)
@action("Failed to create comment")
async def create_comment(
    post_id: str,
    body: CommentCreate,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    comment = await post_actions.create_comment(db, ctx, post_id, body.content)
    return CommentActionResult(
        success=True, comment=post_actions.build_comment_response(comment)
    )
