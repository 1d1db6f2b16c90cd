"""
Mention endpoint:
  POST /mentions — fan out @handles in a post or comment the caller wrote
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from socialhub.actions import mentions as mention_actions
from socialhub.actions.identity import resolve_user_id
from socialhub.boundary import action
from socialhub.database import get_db
from socialhub.dependencies import RequestContext, get_request_context
from socialhub.schemas import MentionRequest, MentionResult

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=MentionResult)
@action("Failed to process mentions")
async def process_mentions(
    body: MentionRequest,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    mentioner_id = await resolve_user_id(db, ctx)
    outcome = await mention_actions.process_mentions(
        db,
        content=body.content,
        mentioner_id=mentioner_id,
        post_id=body.post_id,
        comment_id=body.comment_id,
    )
    return MentionResult(
        success=True,
        message=outcome.message,
        mention_ids=[m.mention_id for m in outcome.mentions],
        notification_ids=[n.notification_id for n in outcome.notifications],
        repeated_handles=outcome.repeated_handles,
        failed_handles=outcome.failed_handles,
    )
