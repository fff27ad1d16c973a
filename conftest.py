import os
from typing import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from dotenv import load_dotenv

# Optional local overrides (e.g. LOG_LEVEL=DEBUG) for test runs
env_test_path = os.path.join(os.path.dirname(__file__), ".env.test")
if os.path.exists(env_test_path):
    load_dotenv(env_test_path)

# Settings are read at import time by libs.db.config, so point them at a
# throwaway SQLite database before anything from libs/ is imported.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./.pytest_club_store.db")
os.environ.setdefault("ENVIRONMENT", "test")

from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402

from libs.auth.dependencies import get_current_user  # noqa: E402
from libs.auth.models import AuthUser  # noqa: E402
from libs.common.config import get_settings  # noqa: E402
from libs.db.base import Base  # noqa: E402
from libs.db.config import build_engine  # noqa: E402
from libs.db.session import get_async_db  # noqa: E402

# Import all models so metadata includes every table
from services.club_store_service import models as _club_store_models  # noqa: E402,F401
from services.club_store_service.app.main import app  # noqa: E402

get_settings.cache_clear()
settings = get_settings()


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """
    Create a fresh SQLite database file per test.

    A file (not :memory:) so that several sessions, and the requests served
    through the HTTP client, see the same data and contend for the same lock.
    """
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'club_store.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a session on the per-test database.

    Commit (or roll back) before calling the API: every SQLite transaction
    holds the write lock until it ends.
    """
    async with session_factory() as session:
        yield session


@pytest.fixture
def current_user() -> dict:
    """Mutable holder for the caller the auth override returns."""
    return {
        "user": AuthUser(user_id="admin-user", email="admin@example.com", role="admin")
    }


@pytest.fixture
def as_user(current_user) -> Callable[..., AuthUser]:
    """Switch the authenticated caller, e.g. ``as_user(role="staff")``."""

    def _set(role: str = "admin", user_id: str = "test-user", email=None) -> AuthUser:
        user = AuthUser(user_id=user_id, email=email, role=role)
        current_user["user"] = user
        return user

    return _set


@pytest_asyncio.fixture
async def client(session_factory, current_user) -> AsyncGenerator[AsyncClient, None]:
    """
    Yield an AsyncClient with the app and overridden DB and auth dependencies.

    Each request gets its own session, as it would in production.
    """

    async def _get_test_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    async def _get_test_user() -> AuthUser:
        return current_user["user"]

    app.dependency_overrides[get_async_db] = _get_test_db
    app.dependency_overrides[get_current_user] = _get_test_user

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()

