"""
Binance Streaming Client

This module opens long-lived WebSocket connections to Binance streams
through the factory's shared ConnectionPool. It handles:
- Handshakes counted against the pool's request bounds
- One independent reader task per connection
- Raw message forwarding (no parsing, decoding is the caller's job)
- Explicit, leak-free cancellation (reader task and socket)
- Optional idle timeout to detect a silent stream

There is no automatic reconnection. A dropped connection ends listen();
reopening (and renewing any listen key) is up to the caller.

Streams:
    - User data:   <listenKey>
    - Agg trades:  <symbol>@aggTrade
    - Trades:      <symbol>@trade
    - Klines:      <symbol>@kline_<interval>
    - Depth:       <symbol>@depth

WebSocket Documentation:
    https://binance-docs.github.io/apidocs/spot/en/#websocket-market-streams

Usage:
    streaming = factory.create_streaming_client()
    async with await streaming.open_agg_trade_stream("BTCUSDT") as conn:
        async for raw in conn.listen():
            print(raw)
"""

import aiohttp
import asyncio
from typing import AsyncGenerator, Optional, Union

from core.exceptions import TransportError
from core.logging import get_logger, log_websocket_event
from exchanges.binance.transport import ConnectionPool

# Marks the end of the message queue
_CLOSED = object()


class StreamConnection:
    """
    One established stream connection and its reader task.

    Attributes:
        stream: Stream name (listen key or market stream)
        ws: Underlying aiohttp WebSocket response

    Example:
        >>> conn = await streaming.open_trade_stream("BTCUSDT")
        >>> async for raw in conn.listen(idle_timeout=60):
        ...     handle(raw)
        >>> await conn.close()
    """

    def __init__(self, stream: str, ws: aiohttp.ClientWebSocketResponse, pool: ConnectionPool):
        self.stream = stream
        self.ws = ws
        self._pool = pool
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self.logger = get_logger(__name__)
        self._reader = asyncio.create_task(self._read_loop())

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def reader(self) -> asyncio.Task:
        return self._reader

    @property
    def label(self) -> str:
        # Listen keys are credentials of a sort, only show a prefix
        return self.stream if "@" in self.stream else f"{self.stream[:8]}..."

    async def _read_loop(self) -> None:
        """Move frames from the socket into the queue until it closes"""
        try:
            async for msg in self.ws:
                if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                    self._queue.put_nowait(msg.data)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    log_websocket_event(self.label, "error", str(self.ws.exception()))
                    break
                elif msg.type in (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.CLOSING):
                    break
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log_websocket_event(self.label, "error", str(e))
        finally:
            self._queue.put_nowait(_CLOSED)

    async def listen(self, idle_timeout: Optional[float] = None) -> AsyncGenerator[Union[str, bytes], None]:
        """
        Yield raw frames as they arrive.

        Args:
            idle_timeout: Seconds of silence tolerated before giving up.
                          Silence is the only sign that a listen key
                          expired server-side.

        Yields:
            str for text frames, bytes for binary frames

        Raises:
            TransportError: If no frame arrives within idle_timeout
        """
        while True:
            try:
                item = await asyncio.wait_for(self._queue.get(), timeout=idle_timeout)
            except asyncio.TimeoutError as e:
                log_websocket_event(self.label, "error", f"no message for {idle_timeout}s")
                raise TransportError(
                    f"Stream {self.label} silent for {idle_timeout}s"
                ) from e

            if item is _CLOSED:
                # Leave the marker for any later listen() call
                self._queue.put_nowait(_CLOSED)
                if not self._closed:
                    log_websocket_event(self.label, "disconnected")
                return
            yield item

    async def send(self, data: str) -> None:
        """Send a text frame (e.g., SUBSCRIBE requests on combined streams)"""
        if self._closed:
            raise TransportError(f"Stream {self.label} is closed")
        await self.ws.send_str(data)

    async def close(self) -> None:
        """
        Cancel the reader task and close the socket.

        Notes:
            - Safe to call multiple times
        """
        if self._closed:
            return
        self._closed = True

        if not self._reader.done():
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass

        if not self.ws.closed:
            await self.ws.close()

        self._pool.release_stream(self.ws)
        self._queue.put_nowait(_CLOSED)
        log_websocket_event(self.label, "closed")


class BinanceStreamingClient:
    """
    Opens stream connections over the shared pool.

    Attributes:
        ws_base_url: Stream base URL (e.g., "wss://stream.binance.com:9443/ws")
        pool: Shared ConnectionPool owned by the factory

    Notes:
        - Symbols are lowercased (Binance requirement)
        - Build with BinanceApiClientFactory.create_streaming_client()
    """

    def __init__(self, ws_base_url: str, pool: ConnectionPool):
        self._ws_base_url = ws_base_url
        self.pool = pool
        self.logger = get_logger(__name__)

    @property
    def ws_base_url(self) -> str:
        return self._ws_base_url

    async def open(self, stream: str) -> StreamConnection:
        """
        Open a connection to one stream.

        Args:
            stream: Stream name appended to the base URL

        Raises:
            TransportError: If the handshake fails
        """
        url = f"{self._ws_base_url}/{stream}"
        ws = await self.pool.ws_connect(url)
        connection = StreamConnection(stream, ws, self.pool)
        log_websocket_event(connection.label, "connected")
        return connection

    async def open_user_data_stream(self, listen_key: str) -> StreamConnection:
        """Account, order and balance updates for a listen key"""
        return await self.open(listen_key)

    async def open_agg_trade_stream(self, symbol: str) -> StreamConnection:
        return await self.open(f"{symbol.lower()}@aggTrade")

    async def open_trade_stream(self, symbol: str) -> StreamConnection:
        return await self.open(f"{symbol.lower()}@trade")

    async def open_kline_stream(self, symbol: str, interval: str) -> StreamConnection:
        return await self.open(f"{symbol.lower()}@kline_{interval}")

    async def open_depth_stream(self, symbol: str) -> StreamConnection:
        return await self.open(f"{symbol.lower()}@depth")
