from shared.database.postgres import Base, get_async_session_factory, AsyncSessionFactory
from shared.database.redis_client import close_redis_client, get_redis_client, RedisClient
from shared.database.upsert import dialect_insert

__all__ = [
    "Base",
    "get_async_session_factory",
    "AsyncSessionFactory",
    "get_redis_client",
    "RedisClient",
    "close_redis_client",
    "dialect_insert",
]
