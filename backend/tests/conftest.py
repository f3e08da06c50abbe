"""Shared test fixtures: in-memory Redis and WebSocket doubles."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import WatchError

from app.services.game_state import GameStateRepository
from app.services.leaderboard import LeaderboardService
from app.services.store import RedisStore


# =============================================================================
# Mock Classes
# =============================================================================


class MockRedis:
    """In-memory stand-in for the redis.asyncio commands the store uses.

    Every command yields to the event loop once, so concurrent callers
    interleave the way they do against a real server. Set ``fail_with`` to an
    exception instance to make every command raise it, or ``fail_next_execute``
    to make only the next EXEC raise.
    """

    def __init__(self):
        self._hashes: dict[str, dict[str, str]] = {}
        self._zsets: dict[str, dict[str, float]] = {}
        self._versions: dict[str, int] = {}
        self.fail_with: Exception | None = None
        self.fail_next_execute: Exception | None = None
        self.executed_pipelines = 0

    async def _check(self) -> None:
        await asyncio.sleep(0)
        if self.fail_with is not None:
            raise self.fail_with

    def _touch(self, key: str) -> None:
        self._versions[key] = self._versions.get(key, 0) + 1

    def version(self, key: str) -> int:
        return self._versions.get(key, 0)

    def go_down(self) -> None:
        self.fail_with = RedisConnectionError("Connection refused")

    # Sync implementations shared with MockPipeline

    def _hset(self, name: str, key=None, value=None, mapping=None) -> int:
        fields = dict(mapping or {})
        if key is not None:
            fields[key] = value
        target = self._hashes.setdefault(name, {})
        added = sum(1 for k in fields if k not in target)
        for k, v in fields.items():
            target[k] = str(v)
        self._touch(name)
        return added

    def _zadd(self, name: str, mapping: dict[str, float]) -> int:
        target = self._zsets.setdefault(name, {})
        added = sum(1 for m in mapping if m not in target)
        for member, score in mapping.items():
            target[member] = float(score)
        self._touch(name)
        return added

    def _zrem(self, name: str, *members: str) -> int:
        target = self._zsets.get(name, {})
        removed = 0
        for member in members:
            if member in target:
                del target[member]
                removed += 1
        if not target:
            self._zsets.pop(name, None)
        if removed:
            self._touch(name)
        return removed

    # Commands

    async def ping(self) -> bool:
        await self._check()
        return True

    async def exists(self, *names: str) -> int:
        await self._check()
        return sum(1 for n in names if n in self._hashes or n in self._zsets)

    async def hgetall(self, name: str) -> dict[str, str]:
        await self._check()
        return dict(self._hashes.get(name, {}))

    async def hset(self, name: str, key=None, value=None, mapping=None) -> int:
        await self._check()
        return self._hset(name, key, value, mapping)

    async def zadd(self, name: str, mapping: dict[str, float]) -> int:
        await self._check()
        return self._zadd(name, mapping)

    async def zrem(self, name: str, *members: str) -> int:
        await self._check()
        return self._zrem(name, *members)

    async def zrevrange(
        self,
        name: str,
        start: int,
        end: int,
        withscores: bool = False,
    ) -> list[Any]:
        await self._check()
        # Redis orders equal scores by member, reversed for ZREVRANGE
        rows = sorted(
            self._zsets.get(name, {}).items(),
            key=lambda item: (item[1], item[0]),
            reverse=True,
        )
        rows = rows[start:] if end == -1 else rows[start:end + 1]
        if withscores:
            return rows
        return [member for member, _ in rows]

    def pipeline(self, transaction: bool = True) -> MockPipeline:
        return MockPipeline(self)

    async def aclose(self) -> None:
        pass


class MockPipeline:
    """Queues commands and applies them together on ``execute``.

    ``watch`` puts the pipeline in immediate mode until ``multi``; EXEC then
    raises ``WatchError`` if a watched key was written in between.
    """

    def __init__(self, redis: MockRedis):
        self._redis = redis
        self._commands: list[tuple[str, tuple, dict]] = []
        self._watched: dict[str, int] = {}
        self.reset_called = False

    async def watch(self, *names: str) -> bool:
        await self._redis._check()
        for name in names:
            self._watched[name] = self._redis.version(name)
        return True

    async def exists(self, *names: str) -> int:
        return await self._redis.exists(*names)

    def multi(self) -> None:
        pass

    def hset(self, name: str, key=None, value=None, mapping=None) -> MockPipeline:
        self._commands.append(("_hset", (name, key, value, mapping), {}))
        return self

    def zadd(self, name: str, mapping: dict[str, float]) -> MockPipeline:
        self._commands.append(("_zadd", (name, mapping), {}))
        return self

    def zrem(self, name: str, *members: str) -> MockPipeline:
        self._commands.append(("_zrem", (name, *members), {}))
        return self

    async def execute(self) -> list[Any]:
        await self._redis._check()
        if self._redis.fail_next_execute is not None:
            error, self._redis.fail_next_execute = self._redis.fail_next_execute, None
            self._commands.clear()
            raise error
        if any(
            self._redis.version(name) != version
            for name, version in self._watched.items()
        ):
            self._commands.clear()
            raise WatchError("Watched variable changed.")

        results = [
            getattr(self._redis, method)(*args, **kwargs)
            for method, args, kwargs in self._commands
        ]
        self._commands.clear()
        self._redis.executed_pipelines += 1
        return results

    async def reset(self) -> None:
        self._commands.clear()
        self._watched.clear()
        self.reset_called = True


class MockWebSocket:
    """Mock WebSocket for testing."""

    def __init__(self, fail_on_send: bool = False, send_delay: float = 0.0):
        self.accepted = False
        self.closed = False
        self.close_code: int | None = None
        self.close_reason: str | None = None
        self.fail_on_send = fail_on_send
        self.send_delay = send_delay
        self.sent_text: list[str] = []
        self.sent_bytes: list[bytes] = []

    async def accept(self) -> None:
        self.accepted = True

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if self.closed:
            raise RuntimeError("WebSocket already closed")
        self.closed = True
        self.close_code = code
        self.close_reason = reason

    async def send_text(self, data: str) -> None:
        if self.send_delay:
            await asyncio.sleep(self.send_delay)
        if self.closed or self.fail_on_send:
            raise RuntimeError("WebSocket closed")
        self.sent_text.append(data)

    async def send_bytes(self, data: bytes) -> None:
        if self.send_delay:
            await asyncio.sleep(self.send_delay)
        if self.closed or self.fail_on_send:
            raise RuntimeError("WebSocket closed")
        self.sent_bytes.append(data)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def mock_redis() -> MockRedis:
    return MockRedis()


@pytest.fixture
def store(mock_redis: MockRedis) -> RedisStore:
    return RedisStore(mock_redis)


@pytest.fixture
def leaderboard(store: RedisStore) -> LeaderboardService:
    return LeaderboardService(store)


@pytest.fixture
def game_state(store: RedisStore, leaderboard: LeaderboardService) -> GameStateRepository:
    return GameStateRepository(store, leaderboard)


@pytest.fixture
def app(mock_redis: MockRedis):
    """The FastAPI app wired to the in-memory Redis (lifespan not run)."""
    from app.config import get_settings
    from app.main import app as fastapi_app, build_components

    build_components(fastapi_app, mock_redis, get_settings())
    return fastapi_app
