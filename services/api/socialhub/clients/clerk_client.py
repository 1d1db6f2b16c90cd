"""
Identity-provider (Clerk Backend API) client.

Used for two things only:
  • reading the provider's view of the signed-in account during user sync
  • mirroring an in-app profile image change back to the provider

The provider stays the source of truth for authentication; local profile
edits are never pushed except for the image reference.
"""
import logging
from typing import Optional

import httpx

from socialhub.config import settings
from socialhub.schemas import ClerkUserData, ProviderProfile

logger = logging.getLogger(__name__)


class IdentityProviderClient:
    def __init__(self) -> None:
        self._http: Optional[httpx.AsyncClient] = None

    async def start(self) -> None:
        self._http = httpx.AsyncClient(
            base_url=settings.clerk_api_url,
            timeout=settings.clerk_timeout_seconds,
            headers={"Authorization": f"Bearer {settings.clerk_secret_key}"},
        )

    async def stop(self) -> None:
        if self._http:
            await self._http.aclose()

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            raise RuntimeError("Identity provider client not started")
        return self._http

    async def get_user(self, external_id: str) -> ProviderProfile:
        """GET /users/{id} → normalised ProviderProfile."""
        resp = await self._client().get(f"/users/{external_id}")
        resp.raise_for_status()
        return ProviderProfile.from_clerk(ClerkUserData.model_validate(resp.json()))

    async def push_profile_image(self, external_id: str, image_url: str) -> None:
        """Merge the app's image reference into the account's public metadata."""
        resp = await self._client().patch(
            f"/users/{external_id}/metadata",
            json={"public_metadata": {"image_url": image_url}},
        )
        resp.raise_for_status()
        logger.debug("Pushed profile image for %s to identity provider", external_id)


# Singleton
identity_client = IdentityProviderClient()
