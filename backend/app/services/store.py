"""Redis store adapter.

Thin contract over Redis hashes (one per player) and sorted sets (the
leaderboard). Every Redis failure is translated into ``StoreError`` /
``StoreUnavailableError`` so callers never see redis-py exceptions.
"""

from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError
from redis.exceptions import WatchError

from app.logging_config import get_logger
from app.middleware.prometheus import record_store_error
from app.utils.errors import StoreError, StoreUnavailableError

logger = get_logger(__name__)

FieldValue = str | int | float


@asynccontextmanager
async def _translate_errors(operation: str) -> AsyncIterator[None]:
    try:
        yield
    except (RedisConnectionError, RedisTimeoutError) as e:
        record_store_error(operation, unavailable=True)
        logger.error("store_unavailable", operation=operation, error=str(e))
        raise StoreUnavailableError(operation) from e
    except RedisError as e:
        record_store_error(operation, unavailable=False)
        logger.error("store_error", operation=operation, error=str(e))
        raise StoreError(operation, message=str(e)) from e


class StoreBatch:
    """Commands queued on a MULTI/EXEC pipeline.

    Obtained from ``RedisStore.batch()`` or ``batch_if_absent()``; the
    commands run together when the ``async with`` block exits without an
    exception.
    """

    def __init__(self, pipeline: Any):
        self._pipe = pipeline
        self.queued = 0
        self.committed = False

    def write_fields(self, key: str, mapping: Mapping[str, FieldValue]) -> None:
        if not mapping:
            return
        self._pipe.hset(key, mapping=dict(mapping))
        self.queued += 1

    def set_score(self, set_name: str, member: str, score: float) -> None:
        self._pipe.zadd(set_name, {member: score})
        self.queued += 1

    def remove_member(self, set_name: str, member: str) -> None:
        self._pipe.zrem(set_name, member)
        self.queued += 1


class RedisStore:
    """Key-value / sorted-set operations used by the game services."""

    def __init__(self, client: Redis):
        self.client = client

    async def ping(self) -> bool:
        async with _translate_errors("ping"):
            return bool(await self.client.ping())

    async def exists(self, key: str) -> bool:
        async with _translate_errors("exists"):
            return await self.client.exists(key) > 0

    async def read_fields(self, key: str) -> dict[str, str]:
        async with _translate_errors("read_fields"):
            return dict(await self.client.hgetall(key))

    async def write_fields(self, key: str, mapping: Mapping[str, FieldValue]) -> None:
        if not mapping:
            return
        async with _translate_errors("write_fields"):
            await self.client.hset(key, mapping=dict(mapping))

    async def set_score(self, set_name: str, member: str, score: float) -> None:
        async with _translate_errors("set_score"):
            await self.client.zadd(set_name, {member: score})

    async def remove_member(self, set_name: str, member: str) -> None:
        async with _translate_errors("remove_member"):
            await self.client.zrem(set_name, member)

    async def read_ranked_descending(self, set_name: str) -> list[tuple[str, float]]:
        """All members of ``set_name``, highest score first."""
        async with _translate_errors("read_ranked_descending"):
            rows = await self.client.zrevrange(set_name, 0, -1, withscores=True)
        return [(member, float(score)) for member, score in rows]

    @asynccontextmanager
    async def batch(self) -> AsyncIterator[StoreBatch]:
        """Queue several writes and execute them atomically.

        Usage:
            async with store.batch() as batch:
                batch.write_fields("alice", {"score": 3})
                batch.set_score("leaderboard", "alice", 3)
        """
        pipe = self.client.pipeline(transaction=True)
        batch = StoreBatch(pipe)
        try:
            yield batch
            if batch.queued:
                async with _translate_errors("batch"):
                    await pipe.execute()
                batch.committed = True
        finally:
            await pipe.reset()

    @asynccontextmanager
    async def batch_if_absent(self, key: str) -> AsyncIterator[StoreBatch | None]:
        """Like ``batch()``, but the commands commit only while ``key`` is absent.

        ``key`` is WATCHed before the existence check. Yields None when it
        already exists. When another client creates it before EXEC, nothing
        is written and ``batch.committed`` stays False.
        """
        pipe = self.client.pipeline(transaction=True)
        try:
            async with _translate_errors("batch_if_absent"):
                await pipe.watch(key)
                exists = await pipe.exists(key) > 0
            if exists:
                yield None
                return

            pipe.multi()
            batch = StoreBatch(pipe)
            yield batch
            if batch.queued:
                async with _translate_errors("batch_if_absent"):
                    try:
                        await pipe.execute()
                        batch.committed = True
                    except WatchError:
                        logger.debug("batch_if_absent_lost_race", key=key)
        finally:
            await pipe.reset()
