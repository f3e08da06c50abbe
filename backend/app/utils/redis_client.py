"""Redis client construction.

The client is created once in the application lifespan and handed to the
components that need it; nothing here keeps a module-level handle.
"""

from redis.asyncio import ConnectionPool, Redis

from app.config import Settings, get_settings


def create_redis_client(settings: Settings | None = None) -> Redis:
    """Build a Redis client backed by a shared connection pool."""
    settings = settings or get_settings()

    pool = ConnectionPool.from_url(
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_connect_timeout,
        retry_on_timeout=True,
        health_check_interval=settings.redis_health_check_interval,
        encoding="utf-8",
        decode_responses=True,
    )
    return Redis(connection_pool=pool)


async def init_redis(settings: Settings | None = None) -> Redis:
    """Create the Redis client and verify the connection."""
    client = create_redis_client(settings)
    await client.ping()
    return client


async def close_redis(client: Redis | None) -> None:
    """Close Redis client and its pool."""
    if client is None:
        return
    await client.aclose()
    await client.connection_pool.disconnect()
