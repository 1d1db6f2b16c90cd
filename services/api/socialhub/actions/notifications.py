"""
Notification writes and the recipient's inbox.
"""
import logging
from typing import Optional

from opentelemetry import trace
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from socialhub.actions.identity import resolve_user_id
from socialhub.dependencies import RequestContext
from socialhub.models import Notification, NotificationType
from socialhub.telemetry import NOTIFICATIONS_CREATED_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


async def create_notification(
    db: AsyncSession,
    *,
    type: NotificationType,
    recipient_id: str,
    creator_id: str,
    post_id: Optional[str] = None,
    comment_id: Optional[str] = None,
) -> Notification:
    """Write a notification in the caller's transaction; counted once flushed."""
    notification = Notification(
        type=type,
        user_id=recipient_id,
        creator_id=creator_id,
        post_id=post_id,
        comment_id=comment_id,
    )
    db.add(notification)
    await db.flush()
    NOTIFICATIONS_CREATED_TOTAL.labels(type=type.value).inc()
    return notification


async def list_notifications(db: AsyncSession, ctx: RequestContext) -> list[Notification]:
    user_id = await resolve_user_id(db, ctx)
    rows = await db.execute(
        select(Notification)
        .where(Notification.user_id == user_id)
        .options(
            selectinload(Notification.creator),
            selectinload(Notification.post),
            selectinload(Notification.comment),
        )
        .order_by(Notification.created_at.desc())
    )
    return list(rows.scalars().all())


async def mark_notifications_read(
    db: AsyncSession, ctx: RequestContext, notification_ids: list[str]
) -> int:
    """Flip `read` on the given notifications; ids owned by others are ignored."""
    with tracer.start_as_current_span("mark_notifications_read"):
        user_id = await resolve_user_id(db, ctx)
        if not notification_ids:
            return 0

        result = await db.execute(
            update(Notification)
            .where(
                Notification.notification_id.in_(notification_ids),
                Notification.user_id == user_id,
            )
            .values(read=True)
        )
        logger.info("Marked %d notifications read for %s", result.rowcount, user_id)
        return result.rowcount
