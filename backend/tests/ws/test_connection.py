"""Tests for WebSocket connection management."""

import asyncio

import orjson
import pytest
import pytest_asyncio

from app.ws.connection import ConnectionState, WebSocketConnection
from app.ws.manager import ConnectionLimitExceeded, ConnectionManager
from tests.conftest import MockWebSocket

PAYLOAD = orjson.dumps([{"userName": "alice", "userScore": 3}])


def make_connection(connection_id: str, **ws_kwargs) -> WebSocketConnection:
    return WebSocketConnection(
        websocket=MockWebSocket(**ws_kwargs),
        connection_id=connection_id,
    )


class TestWebSocketConnection:
    """Tests for WebSocketConnection class."""

    @pytest_asyncio.fixture
    async def connection(self) -> WebSocketConnection:
        """Create an accepted test connection."""
        conn = make_connection("conn-1")
        await conn.accept()
        return conn

    def test_connection_initial_state(self):
        conn = make_connection("conn-1")

        assert conn.state == ConnectionState.CONNECTING
        assert conn.is_open is False
        assert conn.user_name is None
        assert conn.messages_received == 0

    @pytest.mark.asyncio
    async def test_accept_opens(self, connection: WebSocketConnection):
        assert connection.websocket.accepted is True
        assert connection.is_open is True

    @pytest.mark.asyncio
    async def test_send_text_frame(self, connection: WebSocketConnection):
        await connection.send_payload(PAYLOAD)

        assert connection.websocket.sent_text == [PAYLOAD.decode()]
        assert connection.websocket.sent_bytes == []

    @pytest.mark.asyncio
    async def test_send_binary_frame(self, connection: WebSocketConnection):
        await connection.send_payload(PAYLOAD, binary=True)

        assert connection.websocket.sent_bytes == [PAYLOAD]
        assert connection.websocket.sent_text == []

    @pytest.mark.asyncio
    async def test_send_failure_propagates(self):
        conn = make_connection("conn-1", fail_on_send=True)
        await conn.accept()

        with pytest.raises(RuntimeError):
            await conn.send_payload(PAYLOAD)

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, connection: WebSocketConnection):
        await connection.close(1001, "bye")
        await connection.close()

        assert connection.state == ConnectionState.CLOSED
        assert connection.websocket.close_code == 1001
        assert connection.websocket.close_reason == "bye"


class TestConnectionManager:
    """Tests for ConnectionManager."""

    @pytest.mark.asyncio
    async def test_connect_and_disconnect(self):
        manager = ConnectionManager()
        conn = make_connection("conn-1")
        await conn.accept()

        manager.connect(conn)
        assert manager.connection_count == 1
        assert manager.get_connection("conn-1") is conn

        await manager.disconnect("conn-1")
        assert manager.connection_count == 0
        assert conn.state == ConnectionState.CLOSED
        assert conn.websocket.close_code == 1000

    @pytest.mark.asyncio
    async def test_disconnect_unknown_is_noop(self):
        manager = ConnectionManager()

        await manager.disconnect("missing")

        assert manager.connection_count == 0

    def test_connection_limit(self):
        manager = ConnectionManager(max_connections=2)
        manager.connect(make_connection("a"))
        manager.connect(make_connection("b"))

        with pytest.raises(ConnectionLimitExceeded):
            manager.connect(make_connection("c"))

        assert manager.connection_count == 2

    @pytest.mark.asyncio
    async def test_broadcast_without_connections_returns_immediately(self):
        manager = ConnectionManager()

        assert await manager.broadcast(PAYLOAD) == 0

    @pytest.mark.asyncio
    async def test_broadcast_reaches_open_connections(self):
        manager = ConnectionManager()
        first, second = make_connection("a"), make_connection("b")
        for conn in (first, second):
            await conn.accept()
            manager.connect(conn)
        pending = make_connection("c")
        manager.connect(pending)

        delivered = await manager.broadcast(PAYLOAD, reason="reset")

        assert delivered == 2
        assert first.websocket.sent_text == [PAYLOAD.decode()]
        assert second.websocket.sent_text == [PAYLOAD.decode()]
        assert pending.websocket.sent_text == []

    @pytest.mark.asyncio
    async def test_broadcast_drops_failed_connection_only(self):
        manager = ConnectionManager()
        healthy = make_connection("healthy")
        broken = make_connection("broken", fail_on_send=True)
        for conn in (healthy, broken):
            await conn.accept()
            manager.connect(conn)

        delivered = await manager.broadcast(PAYLOAD)

        assert delivered == 1
        assert manager.get_connection("broken") is None
        assert manager.get_connection("healthy") is healthy
        assert broken.websocket.close_code == 1011
        assert healthy.websocket.sent_text == [PAYLOAD.decode()]

    @pytest.mark.asyncio
    async def test_broadcast_drops_stalled_connection(self):
        manager = ConnectionManager(send_timeout=0.05)
        fast = make_connection("fast")
        stalled = make_connection("stalled", send_delay=5.0)
        for conn in (fast, stalled):
            await conn.accept()
            manager.connect(conn)

        delivered = await manager.broadcast(PAYLOAD)

        assert delivered == 1
        assert manager.get_connection("stalled") is None
        assert stalled.websocket.close_code == 1011
        assert stalled.websocket.sent_text == []
        assert fast.websocket.sent_text == [PAYLOAD.decode()]

    @pytest.mark.asyncio
    async def test_broadcast_sends_concurrently(self):
        manager = ConnectionManager(send_timeout=1.0)
        conns = [make_connection(f"slow-{i}", send_delay=0.1) for i in range(5)]
        for conn in conns:
            await conn.accept()
            manager.connect(conn)

        loop = asyncio.get_running_loop()
        started = loop.time()
        delivered = await manager.broadcast(PAYLOAD)
        elapsed = loop.time() - started

        assert delivered == 5
        # Sequential sends would take at least 0.5s
        assert elapsed < 0.4

    @pytest.mark.asyncio
    async def test_close_all(self):
        manager = ConnectionManager()
        conns = [make_connection(f"conn-{i}") for i in range(3)]
        for conn in conns:
            await conn.accept()
            manager.connect(conn)

        await manager.close_all()

        assert manager.connection_count == 0
        assert all(conn.websocket.close_code == 1001 for conn in conns)
