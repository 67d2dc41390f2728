"""Expiring password-reset token stores.

Two interchangeable backends share the ``issue`` / ``resolve`` /
``invalidate`` contract:

- ``MemoryResetTokenStore``: process-local dict with an injectable clock.
  Tokens are not shared between workers and are lost on restart.
- ``RedisResetTokenStore``: Redis keys with a server-side TTL, used whenever
  ``REDIS_URL`` is configured.
"""
from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Protocol
from uuid import UUID

from shared.database.redis_client import RedisClient

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_TOKEN_BYTES = 32
_REDIS_PREFIX = "pwd_reset:"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def generate_token() -> str:
    return secrets.token_hex(_TOKEN_BYTES)


class ResetTokenStore(Protocol):
    async def issue(self, user_id: UUID) -> str: ...

    async def resolve(self, token: str) -> UUID | None: ...

    async def invalidate(self, token: str) -> None: ...


class MemoryResetTokenStore:
    def __init__(self, ttl_seconds: int, clock: Clock = utc_now) -> None:
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._tokens: dict[str, tuple[UUID, datetime]] = {}

    def __len__(self) -> int:
        return len(self._tokens)

    def _purge_expired(self, now: datetime) -> None:
        expired = [t for t, (_, expires_at) in self._tokens.items() if expires_at <= now]
        for token in expired:
            del self._tokens[token]

    async def issue(self, user_id: UUID) -> str:
        now = self._clock()
        self._purge_expired(now)
        token = generate_token()
        self._tokens[token] = (user_id, now + self._ttl)
        return token

    async def resolve(self, token: str) -> UUID | None:
        entry = self._tokens.get(token)
        if entry is None:
            return None
        user_id, expires_at = entry
        if expires_at <= self._clock():
            del self._tokens[token]
            return None
        return user_id

    async def invalidate(self, token: str) -> None:
        self._tokens.pop(token, None)


class RedisResetTokenStore:
    def __init__(self, redis: RedisClient, ttl_seconds: int) -> None:
        self._redis = redis
        self._ttl = ttl_seconds

    async def issue(self, user_id: UUID) -> str:
        token = generate_token()
        await self._redis.setex(f"{_REDIS_PREFIX}{token}", self._ttl, str(user_id))
        return token

    async def resolve(self, token: str) -> UUID | None:
        raw = await self._redis.get(f"{_REDIS_PREFIX}{token}")
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode()
        try:
            return UUID(raw)
        except ValueError:
            logger.warning("Discarding unreadable reset token entry")
            return None

    async def invalidate(self, token: str) -> None:
        await self._redis.delete(f"{_REDIS_PREFIX}{token}")
