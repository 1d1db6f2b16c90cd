"""
Mention fan-out.

  0. Reject empty text, then check that the post / comment the text
     belongs to exists and was written by the mentioner.
  1. Extract every @handle from the text (duplicates kept).
  2. Resolve the handles to users with one batched lookup; unknown handles
     drop out silently.
  3. For each resolved user other than the author, write one Mention and
     one MENTION notification carrying the post / comment context.

Each recipient's pair is written inside its own savepoint: a recipient
either gets both rows or neither. A failing recipient is logged and
skipped, the others still go through.
"""
import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Optional

from opentelemetry import trace
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from socialhub.actions.notifications import create_notification
from socialhub.errors import NotFoundError, UnauthorizedError, ValidationError
from socialhub.models import Comment, Mention, Notification, NotificationType, Post, User
from socialhub.telemetry import MENTIONS_CREATED_TOTAL

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

MENTION_PATTERN = re.compile(r"@(\w+)")


@dataclass
class MentionOutcome:
    message: str
    mentions: list[Mention] = field(default_factory=list)
    notifications: list[Notification] = field(default_factory=list)
    repeated_handles: list[str] = field(default_factory=list)
    failed_handles: list[str] = field(default_factory=list)


def extract_handles(text: Optional[str]) -> list[str]:
    """All @handles in `text`, in order, repeats included."""
    if not text:
        return []
    return MENTION_PATTERN.findall(text)


async def resolve_handles(db: AsyncSession, handles: list[str]) -> list[tuple[str, str]]:
    """(user_id, username) for every handle that names an existing user."""
    if not handles:
        return []
    rows = await db.execute(
        select(User.user_id, User.username).where(User.username.in_(set(handles)))
    )
    return [(row.user_id, row.username) for row in rows.all()]


async def check_mention_context(
    db: AsyncSession,
    mentioner_id: str,
    post_id: Optional[str],
    comment_id: Optional[str],
) -> None:
    """The post / comment a mention points at must exist and be the mentioner's."""
    if comment_id is not None:
        comment = await db.get(Comment, comment_id)
        if comment is None or (post_id is not None and comment.post_id != post_id):
            raise NotFoundError("Comment not found")
        if comment.author_id != mentioner_id:
            raise UnauthorizedError()
        return

    if post_id is not None:
        post = await db.get(Post, post_id)
        if post is None:
            raise NotFoundError("Post not found")
        if post.author_id != mentioner_id:
            raise UnauthorizedError()


async def process_mentions(
    db: AsyncSession,
    *,
    content: Optional[str],
    mentioner_id: str,
    post_id: Optional[str] = None,
    comment_id: Optional[str] = None,
) -> MentionOutcome:
    if not content:
        raise ValidationError("No content provided")
    await check_mention_context(db, mentioner_id, post_id, comment_id)

    with tracer.start_as_current_span("process_mentions") as span:
        handles = extract_handles(content)
        span.set_attribute("mentions.handles", len(handles))
        if not handles:
            return MentionOutcome(message="No mentions found")

        repeated = sorted(h for h, n in Counter(handles).items() if n > 1)
        if repeated:
            logger.info("Handles mentioned more than once, notifying once: %s", repeated)

        users = await resolve_handles(db, handles)
        if not users:
            return MentionOutcome(message="No valid users mentioned", repeated_handles=repeated)

        outcome = MentionOutcome(message="", repeated_handles=repeated)
        for user_id, username in users:
            if user_id == mentioner_id:
                continue

            try:
                async with db.begin_nested():
                    mention = Mention(
                        user_id=user_id,
                        mentioner_id=mentioner_id,
                        post_id=post_id,
                        comment_id=comment_id,
                    )
                    db.add(mention)
                    notification = await create_notification(
                        db,
                        type=NotificationType.MENTION,
                        recipient_id=user_id,
                        creator_id=mentioner_id,
                        post_id=post_id,
                        comment_id=comment_id,
                    )
            except SQLAlchemyError as exc:
                logger.warning("Skipping mention of %s: %s", username, exc)
                outcome.failed_handles.append(username)
                continue

            outcome.mentions.append(mention)
            outcome.notifications.append(notification)
            MENTIONS_CREATED_TOTAL.inc()

        span.set_attribute("mentions.created", len(outcome.mentions))
        outcome.message = f"Created {len(outcome.mentions)} mentions and notifications"
        logger.info(
            "Mention fan-out by %s: %d created, %d failed",
            mentioner_id, len(outcome.mentions), len(outcome.failed_handles),
        )
        return outcome
