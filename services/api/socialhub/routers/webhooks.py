"""
Identity-provider webhook:
  POST /webhooks/clerk — user.created / user.updated / user.deleted

Payloads are signed with Svix; nothing touches the database before the
signature checks out.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from svix.webhooks import Webhook, WebhookVerificationError

from socialhub.actions import identity
from socialhub.boundary import action
from socialhub.config import settings
from socialhub.database import get_db
from socialhub.schemas import ClerkUserData, ClerkWebhookEvent, ProviderProfile, WebhookResult
from socialhub.telemetry import WEBHOOK_EVENTS_TOTAL

logger = logging.getLogger(__name__)
router = APIRouter()

SVIX_HEADERS = ("svix-id", "svix-timestamp", "svix-signature")


async def verified_event(request: Request) -> ClerkWebhookEvent:
    headers = {name: request.headers.get(name) for name in SVIX_HEADERS}
    if not all(headers.values()):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing svix headers")

    if not settings.clerk_webhook_secret:
        logger.error("Webhook received but CLERK_WEBHOOK_SECRET is not set")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Missing webhook secret",
        )

    body = await request.body()
    try:
        # svix 1.x returns the parsed payload, 2.x returns None; only the raise matters
        Webhook(settings.clerk_webhook_secret).verify(body, headers)
    except WebhookVerificationError as exc:
        logger.warning("Webhook verification failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Error verifying webhook"
        ) from exc

    try:
        return ClerkWebhookEvent.model_validate_json(body)
    except PydanticValidationError as exc:
        logger.warning("Webhook payload rejected: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Malformed webhook payload"
        ) from exc


@router.post("/clerk", response_model=WebhookResult)
@action("Error handling webhook")
async def clerk_webhook(
    event: ClerkWebhookEvent = Depends(verified_event),
    db: AsyncSession = Depends(get_db),
):
    WEBHOOK_EVENTS_TOTAL.labels(type=event.type).inc()
    logger.info("Webhook event %s", event.type)

    if event.type == "user.created":
        profile = ProviderProfile.from_clerk(ClerkUserData.model_validate(event.data))
        _, created = await identity.mirror_created(db, profile)
        message = "User created successfully" if created else "User already exists"
        return WebhookResult(success=True, message=message)

    if event.type == "user.updated":
        profile = ProviderProfile.from_clerk(ClerkUserData.model_validate(event.data))
        await identity.mirror_updated(db, profile)
        return WebhookResult(success=True, message="User updated successfully")

    if event.type == "user.deleted":
        await identity.mirror_deleted(db, event.data["id"])
        return WebhookResult(success=True, message="User deleted successfully")

    return WebhookResult(success=True, message="Webhook received")
