"""
Shared Connection Pool

One ConnectionPool is owned by each BinanceApiClientFactory and shared by
every client the factory builds. It handles:
- One aiohttp ClientSession (sockets, DNS cache, keep-alive)
- A bound on total concurrent in-flight requests
- A bound on concurrent in-flight requests per destination host
- Heartbeats (liveness probing) on stream connections
- Error mapping to TransportError

Requests above either bound wait for a free slot; nothing is dropped.
Stream connections only hold a slot for the duration of the handshake.
Once established they are tracked separately and never count against the
request bounds.

There is no retry here. A failed request surfaces as TransportError to its
own caller; slots are always released so sibling requests are unaffected.

Usage:
    pool = ConnectionPool(max_requests=500, max_requests_per_host=500)
    response = await pool.dispatch(request, "https://api.binance.com")
    await pool.close()
"""

import aiohttp
import asyncio
import time
from contextlib import asynccontextmanager
from typing import Dict, Optional, Set
from urllib.parse import urlsplit

from yarl import URL

from core.exceptions import TransportError
from core.logging import get_logger, log_api_request, log_api_response
from core.schemas import ApiRequest, ApiResponse


class ConnectionPool:
    """
    Bounded async dispatcher shared across clients.

    Attributes:
        max_requests: Total concurrent in-flight requests
        max_requests_per_host: Concurrent in-flight requests per host
        ping_interval: Heartbeat interval for stream connections (0 disables)
        request_timeout: Total timeout for one HTTP request (seconds)

    Notes:
        - The aiohttp session is created lazily inside the running event loop
        - Introspect with in_flight, queued and open_streams
    """

    def __init__(
        self,
        max_requests: int = 500,
        max_requests_per_host: int = 500,
        ping_interval: float = 20,
        request_timeout: float = 10
    ):
        self.max_requests = max_requests
        self.max_requests_per_host = max_requests_per_host
        self.ping_interval = ping_interval
        self.request_timeout = request_timeout

        self._session: Optional[aiohttp.ClientSession] = None
        self._request_slots = asyncio.Semaphore(max_requests)
        self._host_slots: Dict[str, asyncio.Semaphore] = {}
        self._streams: Set[aiohttp.ClientWebSocketResponse] = set()
        self._in_flight = 0
        self._queued = 0
        self._closed = False

        self.logger = get_logger(__name__)

    # ============================================
    # Introspection
    # ============================================

    @property
    def in_flight(self) -> int:
        """Requests (and stream handshakes) currently holding a slot"""
        return self._in_flight

    @property
    def queued(self) -> int:
        """Requests waiting for a slot"""
        return self._queued

    @property
    def open_streams(self) -> int:
        """Established stream connections, outside the request bounds"""
        return len(self._streams)

    @property
    def closed(self) -> bool:
        return self._closed

    # ============================================
    # Session & Slot Management
    # ============================================

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._closed:
            raise TransportError("Connection pool is closed")

        if self._session is None or self._session.closed:
            # Request bounds are enforced by the semaphores, not the connector
            connector = aiohttp.TCPConnector(limit=0, ttl_dns_cache=300)
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=None, sock_connect=self.request_timeout)
            )
            self.logger.debug(
                f"ClientSession created (max_requests={self.max_requests}, "
                f"max_requests_per_host={self.max_requests_per_host})"
            )
        return self._session

    @asynccontextmanager
    async def _slot(self, host: str):
        """Hold one per-host slot and one total slot for the body of the block"""
        host_slots = self._host_slots.get(host)
        if host_slots is None:
            host_slots = asyncio.Semaphore(self.max_requests_per_host)
            self._host_slots[host] = host_slots

        self._queued += 1
        try:
            await host_slots.acquire()
            try:
                await self._request_slots.acquire()
            except BaseException:
                host_slots.release()
                raise
        finally:
            self._queued -= 1

        self._in_flight += 1
        try:
            yield
        finally:
            self._in_flight -= 1
            self._request_slots.release()
            host_slots.release()

    # ============================================
    # Requests
    # ============================================

    async def dispatch(self, request: ApiRequest, base_url: str) -> ApiResponse:
        """
        Send a pre-processed request.

        The URL is built from the request's canonical query string and sent
        pre-encoded, so the transmitted bytes match what was signed.

        Args:
            request: Wire-ready request (already through the pre-processor)
            base_url: Base URL of the calling client

        Returns:
            ApiResponse with status and raw body (any status code)

        Raises:
            TransportError: Connection failure, timeout, or closed pool
        """
        url = f"{base_url}{request.path}"
        query = request.query_string
        if query:
            url = f"{url}?{query}"

        log_api_request(request.method, request.path, request.params)

        async with self._slot(urlsplit(base_url).netloc):
            started = time.monotonic()
            try:
                response = await self._send(request.method, url, request.headers, request.body)
            except asyncio.TimeoutError as e:
                self.logger.error(f"Timeout on {request.method} {request.path}")
                raise TransportError(f"Timeout on {request.method} {request.path}") from e
            except aiohttp.ClientError as e:
                self.logger.error(f"Request failed on {request.method} {request.path}: {e}")
                raise TransportError(f"{request.method} {request.path} failed: {e}") from e

        log_api_response(request.method, request.path, response.status, time.monotonic() - started)
        return response

    async def _send(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        body: Optional[str]
    ) -> ApiResponse:
        """Raw HTTP exchange over the shared session"""
        session = await self._get_session()
        async with session.request(
            method,
            URL(url, encoded=True),
            headers=headers,
            data=body,
            timeout=aiohttp.ClientTimeout(total=self.request_timeout)
        ) as resp:
            text = await resp.text()
            return ApiResponse(status=resp.status, body=text, headers=dict(resp.headers))

    # ============================================
    # Streams
    # ============================================

    async def ws_connect(self, url: str) -> aiohttp.ClientWebSocketResponse:
        """
        Open a duplex stream connection.

        The handshake holds a request slot; the established connection
        does not.

        Raises:
            TransportError: If the handshake fails
        """
        async with self._slot(urlsplit(url).netloc):
            session = await self._get_session()
            try:
                ws = await session.ws_connect(url, heartbeat=self.ping_interval or None)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                self.logger.error(f"Stream handshake failed: {e}")
                raise TransportError(f"Stream handshake failed: {e}") from e

        self._streams.add(ws)
        return ws

    def release_stream(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        """Stop tracking a stream connection (called when it is closed)"""
        self._streams.discard(ws)

    # ============================================
    # Shutdown
    # ============================================

    async def close(self) -> None:
        """
        Close open streams and the shared session.

        Notes:
            - Safe to call multiple times
            - Further requests raise TransportError
        """
        self._closed = True

        for ws in list(self._streams):
            if not ws.closed:
                await ws.close()
        self._streams.clear()

        if self._session and not self._session.closed:
            await self._session.close()
            self.logger.debug("ClientSession closed")
