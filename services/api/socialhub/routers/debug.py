"""
Development-only introspection:
  GET /debug/users — user count, a few sample users with counts, DB dialect
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from socialhub.actions.users import debug_user_snapshot
from socialhub.boundary import json_endpoint
from socialhub.config import settings
from socialhub.database import get_db
from socialhub.schemas import DebugUsersResponse

router = APIRouter()


def require_debug_enabled() -> None:
    if not settings.debug_endpoints_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")


@router.get(
    "/users",
    response_model=DebugUsersResponse,
    dependencies=[Depends(require_debug_enabled)],
)
@json_endpoint("Failed to fetch user debug info")
async def debug_users(db: AsyncSession = Depends(get_db)):
    return await debug_user_snapshot(db)
