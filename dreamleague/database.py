"""Async engine and sessions for the league database (SQLite locally, PostgreSQL deployed)."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from dreamleague.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

_ASYNC_DRIVERS = (
    ("sqlite://", "sqlite+aiosqlite://"),
    ("postgres://", "postgresql+asyncpg://"),
    ("postgresql://", "postgresql+asyncpg://"),
)


def get_database_url(url: str) -> str:
    """Rewrite a plain DATABASE_URL to its async driver (aiosqlite / asyncpg)."""
    for prefix, async_prefix in _ASYNC_DRIVERS:
        if url.startswith(prefix):
            return async_prefix + url[len(prefix):]
    return url


def build_engine_kwargs(url: str) -> dict:
    """Engine options per backend: one shared connection for SQLite, a bounded pool for PostgreSQL."""
    if url.startswith("sqlite"):
        return {
            "echo": False,
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    return {
        "echo": False,
        "pool_pre_ping": True,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_recycle": 300,
        "pool_reset_on_return": "rollback",
        # Jornada close holds row locks; bound every statement
        "connect_args": {"server_settings": {"statement_timeout": str(settings.DB_STATEMENT_TIMEOUT_MS)}},
    }


DATABASE_URL = get_database_url(settings.DATABASE_URL)

async_engine = create_async_engine(DATABASE_URL, **build_engine_kwargs(DATABASE_URL))

AsyncSessionLocal = sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request."""
    async with AsyncSessionLocal() as session:
        yield session


async def init_db() -> None:
    """Create missing tables."""
    # Register table metadata before create_all
    import dreamleague.models  # noqa: F401

    async with async_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info(f"[DB] Tables ready ({async_engine.url.get_backend_name()})")


async def close_db() -> None:
    await async_engine.dispose()
    logger.info("[DB] Connections closed")


@asynccontextmanager
async def get_session_with_retry(max_retries: int = 3, retry_delay: float = 1.0) -> AsyncIterator[AsyncSession]:
    """
    Session for the operator scripts, retrying while the database comes up.

    Only opening the connection is retried. A connection lost mid-job
    propagates: jornada close is resumable, so the operator re-runs it.

    Example:
        async with get_session_with_retry() as session:
            result = await close_jornada(session, league_id, provider)
    """
    attempt = 0
    while True:
        session = AsyncSessionLocal()
        try:
            await session.connection()
        except (InterfaceError, OperationalError) as e:
            await session.close()
            attempt += 1
            if attempt >= max_retries:
                raise
            wait = retry_delay * 2 ** (attempt - 1)
            logger.warning(f"[DB] Connection failed ({attempt}/{max_retries}): {e}. Retrying in {wait}s")
            await asyncio.sleep(wait)
            continue
        break

    try:
        yield session
    finally:
        await session.close()
