"""
User endpoints:
  POST /users/sync               — mirror the signed-in account locally
  GET  /users/search?q=          — find users by handle or name
  GET  /users/suggestions        — who to follow
  GET  /users/me/following       — who the signed-in user follows
  PUT  /users/me/image           — change profile image
  POST /users/{id}/follow        — toggle follow
  GET  /users/{id}/followers     — list followers
  GET  /users/{id}/following     — list followees
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from socialhub.actions import identity
from socialhub.actions import users as user_actions
from socialhub.boundary import action, json_endpoint, read_action
from socialhub.clients.clerk_client import IdentityProviderClient
from socialhub.database import get_db
from socialhub.dependencies import RequestContext, get_identity_client, get_request_context
from socialhub.schemas import (
    FollowToggleResult,
    ImageUpdate,
    ImageUpdateResult,
    UserSearchResult,
    UserSummary,
    UserSyncResult,
)

logger = logging.getLogger(__name__)
router = APIRouter()


def _with_follower_count(rows) -> list[UserSearchResult]:
    return [
        UserSearchResult(
            user_id=user.user_id,
            username=user.username,
            name=user.name,
            image=user.image,
            follower_count=count,
        )
        for user, count in rows
    ]


@router.post("/sync", response_model=UserSyncResult)
@action("Failed to sync user")
async def sync_user(
    ctx: RequestContext = Depends(get_request_context),
    provider: IdentityProviderClient = Depends(get_identity_client),
    db: AsyncSession = Depends(get_db),
):
    user = await identity.sync_user(db, ctx, provider)
    return UserSyncResult(success=True, user=UserSummary.model_validate(user))


@router.get("/search", response_model=list[UserSearchResult])
@json_endpoint("Failed to search users")
async def search_users(
    q: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    return _with_follower_count(await user_actions.search_users(db, q))


@router.get("/suggestions", response_model=list[UserSearchResult])
@read_action(list)
async def suggested_users(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    return _with_follower_count(await user_actions.suggested_users(db, ctx))


@router.get("/me/following", response_model=list[UserSummary])
@read_action(list)
async def my_following(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    users = await user_actions.following_of_actor(db, ctx)
    return [UserSummary.model_validate(u) for u in users]


@router.put("/me/image", response_model=ImageUpdateResult)
@action("Failed to update profile image")
async def update_image(
    body: ImageUpdate,
    ctx: RequestContext = Depends(get_request_context),
    provider: IdentityProviderClient = Depends(get_identity_client),
    db: AsyncSession = Depends(get_db),
):
    warning = await user_actions.update_user_image(db, ctx, body.image, provider)
    return ImageUpdateResult(success=True, warning=warning)


@router.post("/{user_id}/follow", response_model=FollowToggleResult)
@action("Error toggling follow")
async def toggle_follow(
    user_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    following = await user_actions.toggle_follow(db, ctx, user_id)
    return FollowToggleResult(success=True, following=following)


@router.get("/{user_id}/followers", response_model=list[UserSummary])
@json_endpoint("Failed to fetch followers")
async def list_followers(user_id: str, db: AsyncSession = Depends(get_db)):
    users = await user_actions.list_followers(db, user_id)
    return [UserSummary.model_validate(u) for u in users]


@router.get("/{user_id}/following", response_model=list[UserSummary])
@json_endpoint("Failed to fetch following users")
async def list_following(user_id: str, db: AsyncSession = Depends(get_db)):
    users = await user_actions.list_following(db, user_id)
    return [UserSummary.model_validate(u) for u in users]
