"""
Unit Tests for the Binance Streaming Client

These tests verify that:
- Stream URLs are built from the base URL and lowercased symbols
- Raw frames are yielded unparsed, in arrival order
- listen() ends when the socket closes
- idle_timeout surfaces a silent stream as TransportError
- close() cancels the reader task, closes the socket and frees the pool entry

Run with:
    pytest tests/unit/test_ws_client.py -v
"""

import pytest
import pytest_asyncio
import asyncio
from unittest.mock import AsyncMock, MagicMock
from aiohttp import WSMsgType

from core.exceptions import TransportError
from exchanges.binance.transport import ConnectionPool
from exchanges.binance.ws_client import BinanceStreamingClient, StreamConnection


WS_BASE = "wss://stream.binance.com:9443/ws"


# ============================================
# Mock WebSocket Helpers
# ============================================

class MockWSMessage:
    """Mock aiohttp WebSocket message"""

    def __init__(self, msg_type, data=None):
        self.type = msg_type
        self.data = data


class MockWebSocket:
    """
    Async-iterable stand-in for aiohttp.ClientWebSocketResponse.

    Yields the given messages, then blocks until close() when hold_open
    is set (a quiet but healthy stream).
    """

    def __init__(self, messages=(), hold_open=True):
        self._messages = list(messages)
        self._hold_open = hold_open
        self._released = asyncio.Event()
        self.closed = False
        self.sent = []

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for message in self._messages:
            yield message
        if self._hold_open:
            await self._released.wait()

    async def close(self):
        self.closed = True
        self._released.set()

    def exception(self):
        return None

    async def send_str(self, data):
        self.sent.append(data)


def make_pool(ws):
    pool = ConnectionPool()
    session = MagicMock()
    session.closed = False
    session.close = AsyncMock()
    session.ws_connect = AsyncMock(return_value=ws)
    pool._session = session
    return pool


@pytest_asyncio.fixture
async def quiet_stream():
    """Streaming client whose socket stays open without sending"""
    ws = MockWebSocket()
    pool = make_pool(ws)
    yield BinanceStreamingClient(WS_BASE, pool), ws, pool
    await pool.close()


# ============================================
# Tests for stream URLs
# ============================================

class TestStreamUrls:
    """Tests for stream name and URL building"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("opener,args,stream", [
        ("open_agg_trade_stream", ("BTCUSDT",), "btcusdt@aggTrade"),
        ("open_trade_stream", ("ETHBTC",), "ethbtc@trade"),
        ("open_kline_stream", ("BNBUSDT", "1m"), "bnbusdt@kline_1m"),
        ("open_depth_stream", ("SOLUSDT",), "solusdt@depth"),
        ("open_user_data_stream", ("pqia91ma19a5s61cv6a81va65sdf19v8",), "pqia91ma19a5s61cv6a81va65sdf19v8"),
    ])
    async def test_stream_url(self, opener, args, stream):
        ws = MockWebSocket()
        pool = make_pool(ws)
        client = BinanceStreamingClient(WS_BASE, pool)

        conn = await getattr(client, opener)(*args)

        assert conn.stream == stream
        pool._session.ws_connect.assert_awaited_once_with(f"{WS_BASE}/{stream}", heartbeat=20)
        await conn.close()

    @pytest.mark.asyncio
    async def test_listen_key_label_is_shortened(self, quiet_stream):
        """Verify listen keys are not shown in full"""
        client, _, _ = quiet_stream

        conn = await client.open_user_data_stream("pqia91ma19a5s61cv6a81va65sdf19v8")

        assert conn.label == "pqia91ma..."
        await conn.close()

    @pytest.mark.asyncio
    async def test_open_stream_outside_request_bounds(self, quiet_stream):
        """Verify an open stream holds no request slot"""
        client, _, pool = quiet_stream

        conn = await client.open_trade_stream("BTCUSDT")

        assert pool.open_streams == 1
        assert pool.in_flight == 0
        await conn.close()


# ============================================
# Tests for listening
# ============================================

class TestListen:
    """Tests for StreamConnection.listen()"""

    @pytest.mark.asyncio
    async def test_yields_raw_frames_in_order(self):
        """Verify frames are forwarded untouched, including non-JSON text"""
        ws = MockWebSocket([
            MockWSMessage(WSMsgType.TEXT, '{"e":"executionReport","s":"ETHBTC"}'),
            MockWSMessage(WSMsgType.TEXT, "not json"),
            MockWSMessage(WSMsgType.BINARY, b"\x00\x01"),
            MockWSMessage(WSMsgType.CLOSED),
        ], hold_open=False)
        pool = make_pool(ws)
        conn = await BinanceStreamingClient(WS_BASE, pool).open("ethbtc@trade")

        received = [raw async for raw in conn.listen()]

        assert received == ['{"e":"executionReport","s":"ETHBTC"}', "not json", b"\x00\x01"]
        await conn.close()

    @pytest.mark.asyncio
    async def test_listen_ends_on_error_frame(self):
        """Verify an ERROR frame ends the stream"""
        ws = MockWebSocket([
            MockWSMessage(WSMsgType.TEXT, "a"),
            MockWSMessage(WSMsgType.ERROR),
            MockWSMessage(WSMsgType.TEXT, "never"),
        ])
        pool = make_pool(ws)
        conn = await BinanceStreamingClient(WS_BASE, pool).open("x@trade")

        received = [raw async for raw in conn.listen()]

        assert received == ["a"]
        await conn.close()

    @pytest.mark.asyncio
    async def test_idle_timeout_raises(self, quiet_stream):
        """Verify a silent stream surfaces as TransportError"""
        client, _, _ = quiet_stream
        conn = await client.open_user_data_stream("expiredlistenkey")

        with pytest.raises(TransportError, match="silent"):
            async for _ in conn.listen(idle_timeout=0.05):
                pass

        await conn.close()

    @pytest.mark.asyncio
    async def test_close_ends_listen(self, quiet_stream):
        """Verify closing from another task stops a running listener"""
        client, _, _ = quiet_stream
        conn = await client.open_trade_stream("BTCUSDT")

        async def consume():
            return [raw async for raw in conn.listen()]

        consumer = asyncio.create_task(consume())
        await asyncio.sleep(0.01)
        await conn.close()

        assert await asyncio.wait_for(consumer, timeout=1) == []

    @pytest.mark.asyncio
    async def test_listen_again_after_remote_close_returns(self):
        """Verify a second listen() on an ended stream finishes instead of hanging"""
        ws = MockWebSocket([
            MockWSMessage(WSMsgType.TEXT, "a"),
            MockWSMessage(WSMsgType.CLOSED),
        ], hold_open=False)
        pool = make_pool(ws)
        conn = await BinanceStreamingClient(WS_BASE, pool).open("x@trade")

        async def consume():
            return [raw async for raw in conn.listen()]

        assert await asyncio.wait_for(consume(), timeout=1) == ["a"]
        assert await asyncio.wait_for(consume(), timeout=1) == []
        await conn.close()

    @pytest.mark.asyncio
    async def test_listen_after_close_returns(self, quiet_stream):
        client, _, _ = quiet_stream
        conn = await client.open_trade_stream("BTCUSDT")
        await conn.close()

        async def consume():
            return [raw async for raw in conn.listen()]

        assert await asyncio.wait_for(consume(), timeout=1) == []
        assert await asyncio.wait_for(consume(), timeout=1) == []

    @pytest.mark.asyncio
    async def test_send(self, quiet_stream):
        client, ws, _ = quiet_stream
        conn = await client.open_trade_stream("BTCUSDT")

        await conn.send('{"method":"LIST_SUBSCRIPTIONS","id":1}')

        assert ws.sent == ['{"method":"LIST_SUBSCRIPTIONS","id":1}']
        await conn.close()


# ============================================
# Tests for cancellation
# ============================================

class TestClose:
    """Tests for StreamConnection.close()"""

    @pytest.mark.asyncio
    async def test_close_cancels_reader_and_socket(self, quiet_stream):
        """Verify no reader task or socket outlives close()"""
        client, ws, pool = quiet_stream
        conn = await client.open_trade_stream("BTCUSDT")
        assert not conn.reader.done()

        await conn.close()

        assert conn.reader.done()
        assert ws.closed is True
        assert conn.closed is True
        assert pool.open_streams == 0

    @pytest.mark.asyncio
    async def test_close_twice(self, quiet_stream):
        """Verify close() is idempotent"""
        client, _, _ = quiet_stream
        conn = await client.open_trade_stream("BTCUSDT")

        await conn.close()
        await conn.close()

        assert conn.closed is True

    @pytest.mark.asyncio
    async def test_context_manager_closes(self, quiet_stream):
        client, ws, _ = quiet_stream

        async with await client.open_trade_stream("BTCUSDT") as conn:
            assert isinstance(conn, StreamConnection)

        assert conn.closed is True
        assert ws.closed is True

    @pytest.mark.asyncio
    async def test_send_after_close_raises(self, quiet_stream):
        client, _, _ = quiet_stream
        conn = await client.open_trade_stream("BTCUSDT")
        await conn.close()

        with pytest.raises(TransportError):
            await conn.send("{}")


# ============================================
# Run Tests
# ============================================

if __name__ == "__main__":
    pytest.main([__file__, "-v"])
