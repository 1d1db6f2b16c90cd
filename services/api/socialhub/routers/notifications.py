"""
Notification endpoints:
  GET  /notifications       — the signed-in user's notifications, newest first
  POST /notifications/read  — mark notifications as read
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from socialhub.actions import notifications as notification_actions
from socialhub.boundary import action, read_action
from socialhub.database import get_db
from socialhub.dependencies import RequestContext, get_request_context
from socialhub.schemas import MarkReadRequest, MarkReadResult, NotificationResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=list[NotificationResponse])
@read_action(list)
async def list_notifications(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    notifications = await notification_actions.list_notifications(db, ctx)
    return [NotificationResponse.model_validate(n) for n in notifications]


@router.post("/read", response_model=MarkReadResult)
@action("Failed to mark notifications as read")
async def mark_read(
    body: MarkReadRequest,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    updated = await notification_actions.mark_notifications_read(
        db, ctx, body.notification_ids
    )
    return MarkReadResult(success=True, updated=updated)
