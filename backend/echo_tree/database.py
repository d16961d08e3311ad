"""Database session management for the FastAPI backend."""
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import get_settings


def build_engine(database_url: str) -> AsyncEngine:
    """Create an async engine, relaxing SQLite's same-thread check."""

    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite+") else {}
    return create_async_engine(database_url, future=True, echo=False, connect_args=connect_args)


settings = get_settings()
engine = build_engine(settings.database_url)
AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide an async SQLAlchemy session per request."""

    async with AsyncSessionLocal() as session:
        yield session
