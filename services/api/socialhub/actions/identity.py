"""
Local mirror of identity-provider accounts.

The provider owns authentication; this module keeps the `users` table in
step with it (session sync and webhook events) and maps a request context
to the internal user id every other action works with.

Provider sync never overwrites what users customised in the app:

  1. email    — always follows the provider.
  2. username — follows the provider only while the stored handle is still
                a provider default (the local part of the stored email or
                of the incoming one).
  3. name, image and profile fields — never touched after creation.
"""
import logging
from dataclasses import asdict, dataclass
from typing import Optional

from opentelemetry import trace
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from socialhub.dependencies import RequestContext
from socialhub.errors import NotFoundError, UnauthenticatedError
from socialhub.models import User
from socialhub.schemas import ProviderProfile, email_local_part

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


async def get_user_by_external_id(db: AsyncSession, external_id: str) -> Optional[User]:
    rows = await db.execute(select(User).where(User.external_id == external_id))
    return rows.scalar_one_or_none()


async def resolve_user(db: AsyncSession, ctx: RequestContext) -> User:
    if not ctx.is_authenticated:
        raise UnauthenticatedError()
    user = await get_user_by_external_id(db, ctx.external_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def resolve_user_id(db: AsyncSession, ctx: RequestContext) -> str:
    """Internal id of the acting user."""
    return (await resolve_user(db, ctx)).user_id


@dataclass
class IdentityPatch:
    email: Optional[str] = None
    username: Optional[str] = None

    def values(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}

    def __bool__(self) -> bool:
        return bool(self.values())


def identity_patch(user: User, profile: ProviderProfile) -> IdentityPatch:
    patch = IdentityPatch()

    if profile.email != user.email:
        patch.email = profile.email

    default_handles = {email_local_part(user.email), email_local_part(profile.email)}
    if (
        profile.username
        and profile.username != user.username
        and user.username in default_handles
    ):
        patch.username = profile.username

    return patch


def _apply(user: User, patch: IdentityPatch) -> None:
    for field, value in patch.values().items():
        setattr(user, field, value)


def _new_user(profile: ProviderProfile) -> User:
    return User(
        external_id=profile.external_id,
        email=profile.email,
        username=profile.default_username,
        name=profile.display_name,
        image=profile.image_url,
    )


async def mirror_created(db: AsyncSession, profile: ProviderProfile) -> tuple[User, bool]:
    """Create the local user. Returns (user, created); existing users are left alone."""
    with tracer.start_as_current_span("mirror_created") as span:
        span.set_attribute("user.external_id", profile.external_id)

        existing = await get_user_by_external_id(db, profile.external_id)
        if existing is not None:
            return existing, False

        user = _new_user(profile)
        db.add(user)
        await db.flush()
        logger.info("Created user %s (id=%s)", user.username, user.user_id)
        return user, True


async def mirror_updated(db: AsyncSession, profile: ProviderProfile) -> User:
    with tracer.start_as_current_span("mirror_updated") as span:
        span.set_attribute("user.external_id", profile.external_id)

        user = await get_user_by_external_id(db, profile.external_id)
        if user is None:
            raise NotFoundError("User not found")

        patch = identity_patch(user, profile)
        if patch:
            _apply(user, patch)
            await db.flush()
            logger.info("Synced %s from identity provider: %s", user.user_id, sorted(patch.values()))
        return user


async def mirror_deleted(db: AsyncSession, external_id: str) -> None:
    with tracer.start_as_current_span("mirror_deleted"):
        result = await db.execute(delete(User).where(User.external_id == external_id))
        if result.rowcount == 0:
            raise NotFoundError("User not found")
        logger.info("Deleted user with external id %s", external_id)


async def sync_user(db: AsyncSession, ctx: RequestContext, provider) -> User:
    """
    Make sure the signed-in account has a local user, creating it on first
    sign-in and applying the identity patch afterwards.

    `provider` is anything with `async get_user(external_id) -> ProviderProfile`.
    """
    if not ctx.is_authenticated:
        raise UnauthenticatedError()

    profile = await provider.get_user(ctx.external_id)
    existing = await get_user_by_external_id(db, ctx.external_id)
    if existing is None:
        user, _ = await mirror_created(db, profile)
        return user
    return await mirror_updated(db, profile)
