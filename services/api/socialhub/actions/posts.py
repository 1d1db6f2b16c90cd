"""
Post, like and comment actions.

Toggle-like and comment creation write their notification in the same
transaction as the primary row, so both land or neither does. Nobody is
notified about their own activity.
"""
import logging
from typing import Optional

from opentelemetry import trace
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from socialhub.actions.identity import resolve_user_id
from socialhub.actions.notifications import create_notification
from socialhub.dependencies import RequestContext
from socialhub.errors import NotFoundError, UnauthorizedError, ValidationError
from socialhub.models import Comment, Like, NotificationType, Post
from socialhub.schemas import CommentResponse, PostResponse, UserSummary
from socialhub.telemetry import POSTS_CREATED_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def _post_loader_options():
    return (
        selectinload(Post.author),
        selectinload(Post.comments).selectinload(Comment.author),
        selectinload(Post.likes),
    )


def build_comment_response(comment: Comment) -> CommentResponse:
    return CommentResponse(
        comment_id=comment.comment_id,
        post_id=comment.post_id,
        content=comment.content,
        created_at=comment.created_at,
        author=UserSummary.model_validate(comment.author) if comment.author else None,
    )


def build_post_response(post: Post) -> PostResponse:
    return PostResponse(
        post_id=post.post_id,
        content=post.content,
        image=post.image,
        created_at=post.created_at,
        author=UserSummary.model_validate(post.author) if post.author else None,
        comments=[build_comment_response(c) for c in post.comments],
        liked_by=[like.user_id for like in post.likes],
        like_count=len(post.likes),
        comment_count=len(post.comments),
    )


async def load_posts(db: AsyncSession, *criteria, join=None) -> list[Post]:
    """Posts matching `criteria`, newest first, with everything the feed shows."""
    stmt = select(Post)
    if join is not None:
        stmt = stmt.join(*join)
    stmt = (
        stmt.where(*criteria)
        .options(*_post_loader_options())
        .order_by(Post.created_at.desc())
        .execution_options(populate_existing=True)
    )
    rows = await db.execute(stmt)
    return list(rows.scalars().unique().all())


async def list_posts(db: AsyncSession) -> list[Post]:
    posts = await load_posts(db)
    logger.debug("Fetched %d posts", len(posts))
    return posts


async def get_post(db: AsyncSession, post_id: str) -> Optional[Post]:
    posts = await load_posts(db, Post.post_id == post_id)
    return posts[0] if posts else None


async def create_post(
    db: AsyncSession,
    ctx: RequestContext,
    content: Optional[str],
    image: Optional[str],
) -> Post:
    with tracer.start_as_current_span("create_post") as span:
        user_id = await resolve_user_id(db, ctx)
        if not (content or "").strip() and not image:
            raise ValidationError("Post needs content or an image")

        post = Post(author_id=user_id, content=content, image=image)
        db.add(post)
        await db.flush()  # materialise post_id

        span.set_attribute("post.id", post.post_id)
        span.set_attribute("post.author_id", user_id)
        POSTS_CREATED_TOTAL.inc()
        logger.info("Post created: %s by user %s", post.post_id, user_id)
        return await get_post(db, post.post_id)


async def delete_post(db: AsyncSession, ctx: RequestContext, post_id: str) -> None:
    with tracer.start_as_current_span("delete_post"):
        user_id = await resolve_user_id(db, ctx)

        post = await db.get(Post, post_id)
        if post is None:
            raise NotFoundError("Post not found")
        if post.author_id != user_id:
            raise UnauthorizedError()

        # Likes, comments, mentions and notifications go with it (ON DELETE CASCADE)
        await db.execute(delete(Post).where(Post.post_id == post_id))
        logger.info("Post deleted: %s by user %s", post_id, user_id)


async def count_likes(db: AsyncSession, post_id: str) -> int:
    rows = await db.execute(
        select(func.count()).select_from(Like).where(Like.post_id == post_id)
    )
    return rows.scalar_one()


async def toggle_like(db: AsyncSession, ctx: RequestContext, post_id: str) -> tuple[bool, int]:
    """Returns (liked, like_count) after the toggle."""
    with tracer.start_as_current_span("toggle_like") as span:
        user_id = await resolve_user_id(db, ctx)

        post = await db.get(Post, post_id)
        if post is None:
            raise NotFoundError("Post not found")

        existing = await db.get(Like, (user_id, post_id))
        if existing is not None:
            await db.delete(existing)
            liked = False
        else:
            db.add(Like(user_id=user_id, post_id=post_id))
            if post.author_id != user_id:
                await create_notification(
                    db,
                    type=NotificationType.LIKE,
                    recipient_id=post.author_id,
                    creator_id=user_id,
                    post_id=post_id,
                )
            liked = True

        await db.flush()
        span.set_attribute("like.active", liked)
        return liked, await count_likes(db, post_id)


async def create_comment(
    db: AsyncSession,
    ctx: RequestContext,
    post_id: str,
    content: Optional[str],
) -> Comment:
    with tracer.start_as_current_span("create_comment") as span:
        user_id = await resolve_user_id(db, ctx)
        if not content:
            raise ValidationError("Content is required")

        post = await db.get(Post, post_id)
        if post is None:
            raise NotFoundError("Post not found")

        comment = Comment(content=content, author_id=user_id, post_id=post_id)
        db.add(comment)
        await db.flush()  # comment_id is referenced by the notification

        if post.author_id != user_id:
            await create_notification(
                db,
                type=NotificationType.COMMENT,
                recipient_id=post.author_id,
                creator_id=user_id,
                post_id=post_id,
                comment_id=comment.comment_id,
            )

        span.set_attribute("comment.id", comment.comment_id)
        rows = await db.execute(
            select(Comment)
            .where(Comment.comment_id == comment.comment_id)
            .options(selectinload(Comment.author))
            .execution_options(populate_existing=True)
        )
        return rows.scalar_one()
