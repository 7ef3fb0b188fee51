"""Database engine and session factory for the credential store.

The engine is created lazily from `Settings.DATABASE_URL` so importing this
module never touches the database. The default URL points at a local SQLite
file via the `aiosqlite` driver.
"""

from __future__ import annotations

from functools import lru_cache

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from core.config import get_settings
from models.base import Base


def _normalize_async_url(url: str) -> str:
    """Coerce sync driver URLs to their async counterparts."""
    if url.startswith("sqlite:///"):
        return "sqlite+aiosqlite:///" + url[len("sqlite:///") :]
    if url.startswith("postgres://"):
        return "postgresql+asyncpg://" + url[len("postgres://") :]
    if url.startswith("postgresql://"):
        return "postgresql+asyncpg://" + url[len("postgresql://") :]
    return url


@lru_cache
def get_engine() -> AsyncEngine:
    url = _normalize_async_url(get_settings().DATABASE_URL)
    return create_async_engine(url, future=True, echo=False)


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        get_engine(),
        expire_on_commit=False,
        class_=AsyncSession,
    )


async def create_tables(engine: AsyncEngine | None = None) -> None:
    """Create the credential store tables if they do not exist yet."""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
