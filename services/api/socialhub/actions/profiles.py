"""
Profile pages: lookup by handle, authored / liked posts, follow status
and partial profile edits.
"""
import logging
from typing import Optional

from opentelemetry import trace
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from socialhub.actions.identity import get_user_by_external_id, resolve_user
from socialhub.actions.posts import load_posts
from socialhub.actions.users import (
    follower_count_column,
    following_count_column,
    post_count_column,
)
from socialhub.dependencies import RequestContext
from socialhub.models import Follow, Like, Post, User
from socialhub.schemas import ProfilePatch, ProfileResponse

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


async def get_profile(db: AsyncSession, username: str) -> Optional[ProfileResponse]:
    rows = await db.execute(
        select(
            User,
            follower_count_column(),
            following_count_column(),
            post_count_column(),
        ).where(User.username == username)
    )
    row = rows.first()
    if row is None:
        return None

    user, followers, following, posts = row
    return ProfileResponse(
        user_id=user.user_id,
        username=user.username,
        name=user.name,
        image=user.image,
        bio=user.bio,
        location=user.location,
        website=user.website,
        created_at=user.created_at,
        follower_count=followers,
        following_count=following,
        post_count=posts,
    )


async def user_posts(db: AsyncSession, user_id: str) -> list[Post]:
    return await load_posts(db, Post.author_id == user_id)


async def liked_posts(db: AsyncSession, user_id: str) -> list[Post]:
    return await load_posts(
        db, Like.user_id == user_id, join=(Like, Like.post_id == Post.post_id)
    )


async def is_following(db: AsyncSession, ctx: RequestContext, user_id: str) -> bool:
    if not ctx.is_authenticated:
        return False
    actor = await get_user_by_external_id(db, ctx.external_id)
    if actor is None:
        return False
    return await db.get(Follow, (actor.user_id, user_id)) is not None


async def update_profile(db: AsyncSession, ctx: RequestContext, patch: ProfilePatch) -> User:
    """Apply only the fields the client actually sent."""
    with tracer.start_as_current_span("update_profile"):
        user = await resolve_user(db, ctx)
        changes = patch.model_dump(exclude_unset=True)
        for field, value in changes.items():
            setattr(user, field, value)
        await db.flush()
        logger.info("Profile of %s updated: %s", user.user_id, sorted(changes))
        return user
