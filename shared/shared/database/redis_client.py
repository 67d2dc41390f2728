"""Async Redis client factory.

Only the password-reset token store talks to Redis; when ``redis_url`` is
empty the service keeps those tokens in process memory instead.
"""
from typing import Any

import redis.asyncio as redis

RedisClient = redis.Redis


def get_redis_client(redis_url: str, **kwargs: Any) -> redis.Redis:
    return redis.from_url(redis_url, decode_responses=True, **kwargs)


async def close_redis_client(client: redis.Redis | None) -> None:
    if client is not None:
        await client.aclose()
