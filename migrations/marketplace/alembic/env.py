"""Alembic environment for the marketplace database.

The URL comes from ``marketplace.config.Settings`` (``DATABASE_URL`` in the
environment or .env) and falls back to ``sqlalchemy.url`` in alembic.ini.
"""
import asyncio
import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

# parents: [0]=alembic/  [1]=marketplace/  [2]=migrations/  [3]=repo_root/
_repo_root = Path(__file__).resolve().parents[3]
for _path in (_repo_root / "shared", _repo_root / "services" / "marketplace"):
    if str(_path) not in sys.path:
        sys.path.insert(0, str(_path))

from shared.database.postgres import Base  # noqa: E402

import marketplace.models  # noqa: E402, F401  (registers tables on Base.metadata)
from marketplace.config import get_settings  # noqa: E402

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    return get_settings().database_url or config.get_main_option("sqlalchemy.url")


def _configure(**kwargs) -> None:
    context.configure(target_metadata=target_metadata, compare_type=True, **kwargs)


def run_migrations_offline() -> None:
    _configure(
        url=_database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_sync(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_async_engine(_database_url(), poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_sync)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
