"""
Session token verification.

Sessions are issued by the identity provider as RS256 JWTs. We only check
the signature (keys fetched from the provider's JWKS endpoint), expiry and,
when configured, the issuer. The `sub` claim is the provider account id.
"""
from __future__ import annotations

from typing import Any, Optional

import jwt

from socialhub.config import settings


class SessionTokenError(RuntimeError):
    pass


_jwks_client: Optional[jwt.PyJWKClient] = None


def _get_jwks_client() -> jwt.PyJWKClient:
    global _jwks_client
    if _jwks_client is None:
        if not settings.clerk_jwks_url:
            raise SessionTokenError("CLERK_JWKS_URL is not set.")
        _jwks_client = jwt.PyJWKClient(settings.clerk_jwks_url, cache_keys=True)
    return _jwks_client


def extract_bearer_token(authorization: str | None) -> str | None:
    raw = (authorization or "").strip()
    if not raw:
        return None

    parts = raw.split(" ", 1)
    if len(parts) != 2:
        return None

    scheme, token = parts[0].strip().lower(), parts[1].strip()
    if scheme != "bearer" or not token:
        return None
    return token


def decode_session_token(token: str) -> dict[str, Any]:
    """Verify a session JWT and return its claims. Blocking (JWKS fetch)."""
    try:
        signing_key = _get_jwks_client().get_signing_key_from_jwt(token)
        claims = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            issuer=settings.clerk_issuer,
            options={
                "verify_aud": False,
                "verify_iss": settings.clerk_issuer is not None,
            },
        )
    except jwt.PyJWTError as exc:
        raise SessionTokenError("Invalid session token.") from exc

    if not claims.get("sub"):
        raise SessionTokenError("Session token has no subject.")
    return claims
