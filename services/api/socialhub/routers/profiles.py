"""
Profile endpoints:
  GET   /profiles/{username}                — profile with counts (null when absent)
  GET   /profiles/{username}/posts          — posts authored by the user
  GET   /profiles/{username}/likes          — posts the user liked
  GET   /profiles/{user_id}/follow-status   — does the signed-in user follow them?
  PATCH /profiles/me                        — partial profile update
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from socialhub.actions import profiles as profile_actions
from socialhub.actions.posts import build_post_response
from socialhub.boundary import action, read_action
from socialhub.database import get_db
from socialhub.dependencies import RequestContext, get_request_context
from socialhub.models import User
from socialhub.schemas import (
    FollowStatusResponse,
    PostResponse,
    ProfilePatch,
    ProfileResponse,
    UserSyncResult,
    UserSummary,
)

logger = logging.getLogger(__name__)
router = APIRouter()


async def _user_id_for(db: AsyncSession, username: str) -> Optional[str]:
    rows = await db.execute(select(User.user_id).where(User.username == username))
    return rows.scalar_one_or_none()


@router.patch("/me", response_model=UserSyncResult)
@action("Failed to update profile")
async def update_profile(
    body: ProfilePatch,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    user = await profile_actions.update_profile(db, ctx, body)
    return UserSyncResult(success=True, user=UserSummary.model_validate(user))


@router.get("/{username}", response_model=Optional[ProfileResponse])
@read_action(lambda: None)
async def get_profile(username: str, db: AsyncSession = Depends(get_db)):
    return await profile_actions.get_profile(db, username)


@router.get("/{username}/posts", response_model=list[PostResponse])
@read_action(list)
async def user_posts(username: str, db: AsyncSession = Depends(get_db)):
    user_id = await _user_id_for(db, username)
    if user_id is None:
        return []
    return [build_post_response(p) for p in await profile_actions.user_posts(db, user_id)]


@router.get("/{username}/likes", response_model=list[PostResponse])
@read_action(list)
async def liked_posts(username: str, db: AsyncSession = Depends(get_db)):
    user_id = await _user_id_for(db, username)
    if user_id is None:
        return []
    return [build_post_response(p) for p in await profile_actions.liked_posts(db, user_id)]


@router.get("/{user_id}/follow-status", response_model=FollowStatusResponse)
@read_action(lambda: FollowStatusResponse(following=False))
async def follow_status(
    user_id: str,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    return FollowStatusResponse(
        following=await profile_actions.is_following(db, ctx, user_id)
    )
