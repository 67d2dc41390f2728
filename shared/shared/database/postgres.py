"""Async SQLAlchemy plumbing: declarative base, engine and session factories.

Production runs on PostgreSQL through asyncpg; the same factories accept a
``sqlite+aiosqlite`` URL for local runs and tests.
"""
import os
import ssl
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()

AsyncSessionFactory = async_sessionmaker[AsyncSession]

_POOL_DEFAULTS: dict[str, Any] = {
    "pool_size": 5,
    "max_overflow": 10,
    "pool_recycle": 3600,
    "pool_pre_ping": True,
}


def _ssl_from_env() -> ssl.SSLContext | str | None:
    """asyncpg ``ssl`` argument from DATABASE_SSL / DATABASE_SSL_CERT."""
    mode = os.environ.get("DATABASE_SSL", "").lower()
    if mode in ("", "disable"):
        return None
    cert_path = os.environ.get("DATABASE_SSL_CERT", "")
    if cert_path and Path(cert_path).is_file():
        return ssl.create_default_context(cafile=cert_path)
    # Encrypted, no certificate verification
    return "require"


def engine_options(database_url: str) -> dict[str, Any]:
    if make_url(database_url).get_backend_name() == "sqlite":
        return {}
    options = dict(_POOL_DEFAULTS)
    ssl_arg = _ssl_from_env()
    if ssl_arg is not None:
        options["connect_args"] = {"ssl": ssl_arg}
    return options


def get_async_engine(database_url: str, **overrides: Any) -> AsyncEngine:
    return create_async_engine(database_url, **{**engine_options(database_url), **overrides})


def get_async_session_factory(
    database_url: str,
    *,
    expire_on_commit: bool = False,
    **engine_overrides: Any,
) -> AsyncSessionFactory:
    return async_sessionmaker(
        get_async_engine(database_url, **engine_overrides),
        class_=AsyncSession,
        expire_on_commit=expire_on_commit,
        autoflush=False,
    )


async def get_session(
    session_factory: AsyncSessionFactory,
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a session that commits on success and rolls back on any error."""
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
