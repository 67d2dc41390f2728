"""Dialect-aware INSERT constructs for conditional writes.

``ON CONFLICT DO NOTHING / DO UPDATE`` lives on the dialect-specific
``insert()`` in SQLAlchemy. Services call :func:`dialect_insert` so the same
statement runs on PostgreSQL in production and SQLite in tests.
"""
from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def dialect_insert(session: AsyncSession, entity: Any) -> Any:
    dialect = session.get_bind().dialect.name
    try:
        factory = _INSERTS[dialect]
    except KeyError:
        raise NotImplementedError(f"No upsert support for dialect {dialect!r}") from None
    return factory(entity)
