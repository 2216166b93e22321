import os
from contextlib import contextmanager
from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from dotenv import load_dotenv

# Optional overrides for running against a real database
env_test_path = os.path.join(os.path.dirname(__file__), ".env.test")
if os.path.exists(env_test_path):
    load_dotenv(env_test_path)

# Must be set before libs.db.config builds its engine
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from libs.auth.dependencies import get_current_user  # noqa: E402
from libs.auth.models import AuthUser  # noqa: E402
from libs.common.config import get_settings  # noqa: E402
from libs.common.emails.client import get_email_client  # noqa: E402
from libs.common.rate_limit import limiter  # noqa: E402
from libs.db.base import Base  # noqa: E402
from libs.db.session import get_async_db  # noqa: E402
from services.learning_service import models as _learning_models  # noqa: E402,F401
from services.learning_service.services.storage import (  # noqa: E402
    StorageService,
    get_storage_service,
)

get_settings.cache_clear()
settings = get_settings()


@pytest_asyncio.fixture
async def test_engine():
    """
    A fresh schema per test.

    In-memory SQLite needs a single shared connection, otherwise every
    checkout would see an empty database.
    """
    engine = create_async_engine(
        settings.DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a session configured like the application's AsyncSessionLocal.
    """
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage(tmp_path) -> StorageService:
    return StorageService(backend="local", uploads_dir=tmp_path / "uploads")


@pytest.fixture
def email_client() -> AsyncMock:
    client = AsyncMock()
    client.send_password_reset.return_value = True
    client.send.return_value = True
    return client


def make_auth_user(user) -> AuthUser:
    """Caller identity for a stored User row."""
    return AuthUser(user_id=user.id, email=user.email, role=user.role.value)


@contextmanager
def override_auth(app, user):
    """Temporarily act as ``user`` for every request made inside the block."""
    previous = app.dependency_overrides.get(get_current_user)
    auth_user = make_auth_user(user)
    app.dependency_overrides[get_current_user] = lambda: auth_user
    try:
        yield
    finally:
        if previous is None:
            app.dependency_overrides.pop(get_current_user, None)
        else:
            app.dependency_overrides[get_current_user] = previous


@pytest_asyncio.fixture
async def client(db_session, storage, email_client) -> AsyncGenerator[AsyncClient, None]:
    """
    Yield an AsyncClient bound to the learning service app.

    The DB, storage and email dependencies point at the test doubles;
    tests pick the caller with ``override_auth``.
    """
    from services.learning_service.app.main import app

    async def _test_db():
        try:
            yield db_session
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_async_db] = _test_db
    app.dependency_overrides[get_storage_service] = lambda: storage
    app.dependency_overrides[get_email_client] = lambda: email_client
    limiter.reset()

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def app():
    from services.learning_service.app.main import app

    return app
