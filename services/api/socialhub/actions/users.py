"""
Social graph, user search and account-level actions.
"""
import logging
from typing import Optional

import httpx
from opentelemetry import trace
from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from socialhub.actions.identity import resolve_user, resolve_user_id
from socialhub.actions.notifications import create_notification
from socialhub.config import settings
from socialhub.dependencies import RequestContext
from socialhub.errors import NotFoundError, ValidationError
from socialhub.models import Follow, NotificationType, Post, User

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


# ─────────────────────────── Counts ──────────────────────────────────────


def follower_count_column():
    return (
        select(func.count())
        .select_from(Follow)
        .where(Follow.followee_id == User.user_id)
        .correlate(User)
        .scalar_subquery()
    )


def following_count_column():
    return (
        select(func.count())
        .select_from(Follow)
        .where(Follow.follower_id == User.user_id)
        .correlate(User)
        .scalar_subquery()
    )


def post_count_column():
    return (
        select(func.count())
        .select_from(Post)
        .where(Post.author_id == User.user_id)
        .correlate(User)
        .scalar_subquery()
    )


# ─────────────────────────── Follow graph ────────────────────────────────


async def toggle_follow(db: AsyncSession, ctx: RequestContext, target_user_id: str) -> bool:
    """Returns True when the actor now follows the target."""
    with tracer.start_as_current_span("toggle_follow") as span:
        user_id = await resolve_user_id(db, ctx)
        if user_id == target_user_id:
            raise ValidationError("You cannot follow yourself")

        if await db.get(User, target_user_id) is None:
            raise NotFoundError("User not found")

        existing = await db.get(Follow, (user_id, target_user_id))
        if existing is not None:
            await db.delete(existing)
            following = False
        else:
            db.add(Follow(follower_id=user_id, followee_id=target_user_id))
            await create_notification(
                db,
                type=NotificationType.FOLLOW,
                recipient_id=target_user_id,
                creator_id=user_id,
            )
            following = True

        await db.flush()
        span.set_attribute("follow.active", following)
        logger.info(
            "%s %s %s", user_id, "followed" if following else "unfollowed", target_user_id
        )
        return following


async def list_followers(db: AsyncSession, user_id: str) -> list[User]:
    rows = await db.execute(
        select(User)
        .join(Follow, Follow.follower_id == User.user_id)
        .where(Follow.followee_id == user_id)
        .order_by(Follow.created_at.desc())
    )
    return list(rows.scalars().all())


async def list_following(db: AsyncSession, user_id: str) -> list[User]:
    rows = await db.execute(
        select(User)
        .join(Follow, Follow.followee_id == User.user_id)
        .where(Follow.follower_id == user_id)
        .order_by(Follow.created_at.desc())
    )
    return list(rows.scalars().all())


async def following_of_actor(db: AsyncSession, ctx: RequestContext) -> list[User]:
    """Who the acting user follows; used for @mention completion."""
    return await list_following(db, await resolve_user_id(db, ctx))


async def suggested_users(db: AsyncSession, ctx: RequestContext) -> list[tuple[User, int]]:
    """Users the actor doesn't follow yet (and isn't), with follower counts."""
    user_id = await resolve_user_id(db, ctx)
    already_followed = select(Follow.followee_id).where(Follow.follower_id == user_id)
    rows = await db.execute(
        select(User, follower_count_column())
        .where(
            and_(
                User.user_id != user_id,
                User.user_id.not_in(already_followed),
            )
        )
        .order_by(User.created_at.desc())
        .limit(settings.suggestion_limit)
    )
    return [(user, count) for user, count in rows.all()]


# ─────────────────────────── Search ──────────────────────────────────────


async def search_users(
    db: AsyncSession, query: Optional[str], limit: Optional[int] = None
) -> list[tuple[User, int]]:
    """Case-insensitive substring match on handle or display name."""
    query = (query or "").strip()
    if not query:
        return []

    rows = await db.execute(
        select(User, follower_count_column())
        .where(
            User.username.icontains(query, autoescape=True)
            | User.name.icontains(query, autoescape=True)
        )
        .order_by(User.username.asc())
        .limit(limit or settings.search_result_limit)
    )
    results = [(user, count) for user, count in rows.all()]
    logger.info("Search %r found %d users", query, len(results))
    return results


# ─────────────────────────── Account ─────────────────────────────────────


async def update_user_image(
    db: AsyncSession, ctx: RequestContext, image: str, provider
) -> Optional[str]:
    """
    Store the new image reference, then mirror it to the identity provider.

    Returns a warning message when only the provider update failed; the
    local change still stands.
    """
    with tracer.start_as_current_span("update_user_image"):
        user = await resolve_user(db, ctx)
        user.image = image
        await db.flush()

        try:
            await provider.push_profile_image(user.external_id, image)
        except httpx.HTTPError as exc:
            logger.warning("Identity provider image update failed for %s: %s", user.user_id, exc)
            return "Profile image saved, but could not be synced to your account"
        return None


async def debug_user_snapshot(db: AsyncSession) -> dict:
    total = (await db.execute(select(func.count()).select_from(User))).scalar_one()
    rows = await db.execute(
        select(
            User,
            follower_count_column(),
            following_count_column(),
            post_count_column(),
        )
        .order_by(User.created_at.asc())
        .limit(settings.debug_user_sample_size)
    )
    samples = [
        {
            "user_id": user.user_id,
            "username": user.username,
            "name": user.name,
            "email": user.email,
            "follower_count": followers,
            "following_count": following,
            "post_count": posts,
        }
        for user, followers, following, posts in rows.all()
    ]
    return {
        "total_users": total,
        "user_samples": samples,
        "database_provider": db.get_bind().dialect.name,
    }
