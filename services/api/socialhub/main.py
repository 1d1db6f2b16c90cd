"""
Social API — entry point.

Startup sequence:
  1. Configure OTel tracing (→ Jaeger via OTLP)
  2. Initialise DB connection pool (TiDB) and create tables if not present
  3. Start the identity-provider HTTP client
  4. Expose Prometheus /metrics endpoint
"""
import logging

from contextlib import asynccontextmanager
from fastapi import FastAPI
from prometheus_client import make_asgi_app

from socialhub.config import settings
from socialhub.database import init_db
from socialhub.telemetry import setup_tracing, instrument_app
from socialhub.clients.clerk_client import identity_client
from socialhub.routers import debug, mentions, notifications, posts, profiles, users, webhooks

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

# Set up tracing before the app is created so all imports are instrumented
setup_tracing()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup and shutdown of all external connections."""
    logger.info("Starting Social API (env=%s)", settings.environment)

    await init_db()
    await identity_client.start()

    logger.info("All services connected. API ready.")
    yield

    logger.info("Shutting down...")
    await identity_client.stop()


app = FastAPI(
    title="Social API",
    description=(
        "Posts, likes, comments, follows, @mentions and notifications on top "
        "of a hosted identity provider."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

# ── Routers ────────────────────────────────────────────────────────────────
app.include_router(users.router, prefix="/users", tags=["Users"])
app.include_router(profiles.router, prefix="/profiles", tags=["Profiles"])
app.include_router(posts.router, prefix="/posts", tags=["Posts"])
app.include_router(mentions.router, prefix="/mentions", tags=["Mentions"])
app.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
app.include_router(webhooks.router, prefix="/webhooks", tags=["Webhooks"])
app.include_router(debug.router, prefix="/debug", tags=["Debug"])

# ── Prometheus metrics endpoint ────────────────────────────────────────────
# Scraped by Prometheus
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# ── OTel FastAPI instrumentation ──────────────────────────────────────────
instrument_app(app)


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok", "service": settings.service_name}
