"""Test fixtures for the backend."""
import os
from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret")

from echo_tree import models  # noqa: E402
from echo_tree.clock import Clock  # noqa: E402
from echo_tree.config import Settings, get_settings  # noqa: E402
from echo_tree.dependencies import get_clock, get_db_session  # noqa: E402
from echo_tree.main import app  # noqa: E402
from echo_tree.services.trust import TrustEvent, TrustStateMachine  # noqa: E402
from echo_tree.services.users import UserService  # noqa: E402
from echo_tree.services.sessions import SessionManager  # noqa: E402


class FrozenClock(Clock):
    """Clock that only moves when a test tells it to."""

    def __init__(self, start: datetime | None = None) -> None:
        # Start at real time: PyJWT checks "exp" against the wall clock.
        self.current = start or Clock().now()

    def now(self) -> datetime:
        return self.current

    def advance(self, **delta: float) -> datetime:
        self.current = self.current + timedelta(**delta)
        return self.current


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(secret_key="test-secret", database_url="sqlite+aiosqlite://")


@pytest_asyncio.fixture
async def session_factory():
    """Fresh in-memory database per test."""

    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(models.Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def make_user(db_session, settings, clock):
    """Register a user and walk it up the ladder to the requested role."""

    async def _make(username: str, password: str = "secret123", role: str = "teller") -> models.User:
        users = UserService(db_session, SessionManager(db_session, settings, clock))
        user = await users.register(username, password)
        trust = TrustStateMachine(db_session, clock)
        if role == "healer":
            await trust.apply(user.id, TrustEvent.QUIZ_PASSED)
        elif role == "admin":
            await trust.apply(user.id, TrustEvent.ADMIN_GRANTED)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make


@pytest_asyncio.fixture
async def client(session_factory, settings, clock) -> AsyncClient:
    """Provide an HTTP client for integration tests."""

    async def _db_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = _db_session
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_clock] = lambda: clock

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client

    app.dependency_overrides.clear()


async def login(client: AsyncClient, username: str, password: str = "secret123") -> dict:
    response = await client.post("/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return response.json()


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
