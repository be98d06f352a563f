"""Engine and session helpers for the back-office store.

The URL scheme picks the backend: ``postgresql+asyncpg://`` gets a pooled
engine, ``sqlite+aiosqlite://`` goes through :mod:`sqlite_adapter`.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

logger = logging.getLogger(__name__)

# Statement and lock timeouts (ms) applied to every Postgres connection.
STATEMENT_TIMEOUT_MS = 30_000
LOCK_TIMEOUT_MS = 10_000


def get_engine(database_url: str, pool_size: int = 5, max_overflow: int = 10) -> AsyncEngine:
    """Create an async engine for *database_url*.

    ``pool_size`` and ``max_overflow`` only apply to PostgreSQL.
    """
    if database_url.startswith("sqlite"):
        from backoffice_core.state.sqlite_adapter import get_local_engine

        _, sep, path = database_url.partition("///")
        return get_local_engine(path if sep and path else ":memory:")

    engine = create_async_engine(
        database_url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True,
        pool_recycle=3600,
        pool_timeout=10,
        connect_args={
            "server_settings": {
                "statement_timeout": str(STATEMENT_TIMEOUT_MS),
                "lock_timeout": str(LOCK_TIMEOUT_MS),
            }
        },
    )
    logger.info("Postgres engine ready (pool_size=%d, max_overflow=%d)", pool_size, max_overflow)
    return engine


def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Return a session factory bound to *engine*.

    Loaded attributes stay readable after commit, which the services rely
    on when they build responses from freshly written rows.
    """
    return async_sessionmaker(engine, expire_on_commit=False)


@asynccontextmanager
async def get_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Yield a session that commits on clean exit and rolls back on error."""
    session = session_factory(engine)()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()
