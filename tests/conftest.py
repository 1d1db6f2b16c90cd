# tests/conftest.py
"""
Pytest configuration and fixtures.

Every test gets a fresh in-memory SQLite database (foreign keys on, real
BEGIN/SAVEPOINT handling) instead of TiDB. Environment defaults are set
before anything imports socialhub.config.
"""
import os
from types import SimpleNamespace

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("TRACING_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "development")

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from socialhub.database import Base, configure_sqlite, get_db  # noqa: E402
from socialhub.dependencies import ANONYMOUS, RequestContext, get_identity_client, get_request_context  # noqa: E402
from socialhub.models import User  # noqa: E402
from socialhub.schemas import ProviderProfile  # noqa: E402


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    configure_sqlite(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(db):
    async def _make(username: str, **fields) -> User:
        fields.setdefault("email", f"{username}@example.com")
        fields.setdefault("name", username.title())
        user = User(external_id=f"user_{username}", username=username, **fields)
        db.add(user)
        await db.flush()
        return user

    return _make


def ctx_for(user: User) -> RequestContext:
    return RequestContext(external_id=user.external_id)


@pytest.fixture
def as_user():
    return ctx_for


class FakeIdentityProvider:
    """Stands in for the Clerk Backend API."""

    def __init__(self, profiles=None, fail_image_push: bool = False):
        self.profiles = {p.external_id: p for p in (profiles or [])}
        self.fail_image_push = fail_image_push
        self.pushed_images: list[tuple[str, str]] = []

    async def get_user(self, external_id: str) -> ProviderProfile:
        return self.profiles[external_id]

    async def push_profile_image(self, external_id: str, image_url: str) -> None:
        if self.fail_image_push:
            raise httpx.ConnectError("provider unreachable")
        self.pushed_images.append((external_id, image_url))


@pytest.fixture
def identity_provider():
    return FakeIdentityProvider()


@pytest.fixture
def acting():
    """Mutable holder for the request context used by the API client."""
    return SimpleNamespace(ctx=ANONYMOUS)


@pytest_asyncio.fixture
async def client(session_factory, acting, identity_provider):
    from socialhub.main import app

    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_request_context] = lambda: acting.ctx
    app.dependency_overrides[get_identity_client] = lambda: identity_provider

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def seed(session_factory):
    """Create users in a committed, closed session (safe to use before API calls)."""
    async def _seed(*usernames: str) -> list[User]:
        async with session_factory() as session:
            users = [
                User(
                    external_id=f"user_{name}",
                    username=name,
                    email=f"{name}@example.com",
                    name=name.title(),
                )
                for name in usernames
            ]
            session.add_all(users)
            await session.commit()
            return users

    return _seed
