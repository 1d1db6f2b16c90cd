"""
Request-scoped dependencies shared by the routers.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Header

from socialhub.clients.clerk_client import IdentityProviderClient, identity_client
from socialhub.security import SessionTokenError, decode_session_token, extract_bearer_token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestContext:
    """Who is making this request, as far as the identity provider says."""
    external_id: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.external_id is not None


ANONYMOUS = RequestContext()


async def get_request_context(
    authorization: str | None = Header(default=None),
) -> RequestContext:
    token = extract_bearer_token(authorization)
    if token is None:
        return ANONYMOUS

    try:
        claims = await asyncio.to_thread(decode_session_token, token)
    except SessionTokenError as exc:
        logger.warning("Rejected session token: %s", exc)
        return ANONYMOUS

    return RequestContext(external_id=claims["sub"])


def get_identity_client() -> IdentityProviderClient:
    return identity_client
