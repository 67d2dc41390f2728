"""Process-wide engine and session factory for the marketplace database.

``init_db`` runs in the app lifespan; request handlers get sessions through
the ``get_db`` dependency.
"""
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from shared.database.postgres import AsyncSessionFactory, get_async_engine, get_session

# Registers every table on Base.metadata for create_all() and Alembic.
import marketplace.models  # noqa: F401

_engine: AsyncEngine | None = None
_session_factory: AsyncSessionFactory | None = None


def init_db(database_url: str) -> AsyncSessionFactory:
    global _engine, _session_factory
    _engine = get_async_engine(database_url)
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False, autoflush=False)
    return _session_factory


async def close_db() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


def get_session_factory() -> AsyncSessionFactory:
    if _session_factory is None:
        raise RuntimeError("Database not initialized; call init_db() first")
    return _session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_session(get_session_factory()):
        yield session
