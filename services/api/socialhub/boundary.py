"""
Failure boundaries for route handlers.

Nothing raised inside an action reaches the client as an exception:

  action(msg)        — write paths. Commit on success; otherwise roll back
                       and answer {success: false, error} with the error's
                       status code (msg for downstream failures).
  read_action(dflt)  — read paths. Answer an empty / null value instead.
  json_endpoint(msg) — plain JSON endpoints. Answer {error, details}, 500.

Decorated handlers must take the session as the `db` keyword argument,
which is how FastAPI calls them.
"""
import functools
import logging
from typing import Any, Callable

from fastapi import status
from fastapi.responses import JSONResponse

from socialhub.errors import ActionError
from socialhub.telemetry import ACTION_FAILURES_TOTAL

logger = logging.getLogger(__name__)


def _failure(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error},
    )


def action(failure_message: str):
    def decorator(func: Callable):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            db = kwargs["db"]
            try:
                result = await func(*args, **kwargs)
                await db.commit()
                return result
            except ActionError as exc:
                await db.rollback()
                ACTION_FAILURES_TOTAL.labels(action=func.__name__).inc()
                logger.info("%s refused: %s", func.__name__, exc.message)
                return _failure(exc.status_code, exc.message)
            except Exception:
                await db.rollback()
                ACTION_FAILURES_TOTAL.labels(action=func.__name__).inc()
                logger.exception(failure_message)
                return _failure(status.HTTP_500_INTERNAL_SERVER_ERROR, failure_message)

        return wrapper

    return decorator


def read_action(default: Callable[[], Any] = list):
    def decorator(func: Callable):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except Exception:
                logger.exception("Error in %s", func.__name__)
                return default()

        return wrapper

    return decorator


def json_endpoint(failure_message: str):
    def decorator(func: Callable):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except Exception as exc:
                logger.exception(failure_message)
                return JSONResponse(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    content={"error": failure_message, "details": str(exc)},
                )

        return wrapper

    return decorator
