"""
User Data Stream Sessions (listen keys)

A listen key identifies a push-feed subscription for account, order and
balance events. Its lifecycle is a small state machine:

    UNINITIALIZED --create()--> ACTIVE --keep_alive()--> ACTIVE
                                ACTIVE --close()-------> CLOSED (terminal)

The exchange expires a listen key 60 minutes after its last renewal. The
caller must invoke keep_alive() more often than that; nothing here runs a
background timer. Expiry is silent: the exchange sends no notification,
so the only indication is a quiet stream (see StreamConnection.listen's
idle_timeout).

Variants:
    - Spot:            /api/v3/userDataStream
    - Cross margin:    /sapi/v1/userDataStream
    - Isolated margin: /sapi/v1/userDataStream/isolated (+ symbol)

Usage:
    session = UserDataStream(client)
    listen_key = await session.create()
    conn = await streaming.open_user_data_stream(listen_key)
    ...
    await session.keep_alive()   # every ~30 minutes
    ...
    await session.close()
"""

import asyncio
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from core.exceptions import ServerError, SessionStateError
from core.logging import get_logger
from core.utils.time import utc_now
from exchanges.binance.api_client import BinanceApiClient

# Binance: "This listenKey does not exist."
LISTEN_KEY_NOT_FOUND = -1125


class StreamState(str, Enum):
    UNINITIALIZED = "UNINITIALIZED"
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class UserDataStream:
    """
    Listen key session built on a generated client.

    Attributes:
        client: BinanceApiClient whose credentials own the listen key
        symbol: Isolated margin pair (e.g., "BTCUSDT"), None otherwise
        margin: Use the cross margin endpoints (ignored when symbol is set)
        ttl: Exchange-enforced lifetime after each renewal
        state: Current StreamState
        listen_key: Token once created
        last_renewed_at: UTC time of the last create/keep_alive

    Example:
        >>> session = UserDataStream(client, symbol="BTCUSDT")
        >>> key = await session.create()
        >>> await session.close()
        <StreamState.CLOSED: 'CLOSED'>
        >>> await session.close()
        <StreamState.CLOSED: 'CLOSED'>
    """

    def __init__(
        self,
        client: BinanceApiClient,
        symbol: Optional[str] = None,
        margin: bool = False,
        ttl: timedelta = timedelta(minutes=60)
    ):
        self.client = client
        self.symbol = symbol.upper() if symbol else None
        self.margin = margin
        self.ttl = ttl

        self.state = StreamState.UNINITIALIZED
        self.listen_key: Optional[str] = None
        self.last_renewed_at: Optional[datetime] = None

        if self.symbol:
            self._prefix = "isolated_user_stream"
        elif margin:
            self._prefix = "margin_user_stream"
        else:
            self._prefix = "user_stream"

        # One lifecycle transition at a time
        self._lock = asyncio.Lock()
        self.logger = get_logger(__name__)

    def _scope(self) -> dict:
        return {"symbol": self.symbol} if self.symbol else {}

    # ============================================
    # Expiry Estimates
    # ============================================

    @property
    def expires_at(self) -> Optional[datetime]:
        """Local estimate of server-side expiry, None unless ACTIVE"""
        if self.state != StreamState.ACTIVE or self.last_renewed_at is None:
            return None
        return self.last_renewed_at + self.ttl

    def renewal_due(self, margin: timedelta = timedelta(minutes=30)) -> bool:
        """
        Whether keep_alive() should be called now.

        Args:
            margin: How long before the estimated expiry to renew

        Returns:
            True once the estimated expiry is within margin
        """
        expires_at = self.expires_at
        if expires_at is None:
            return False
        return utc_now() >= expires_at - margin

    # ============================================
    # Lifecycle
    # ============================================

    async def create(self) -> str:
        """
        Create the listen key and enter ACTIVE.

        Concurrent callers share one request: whoever acquires the lock
        first creates the key, the others get the same key back.

        Returns:
            The listen key (the current one if already ACTIVE)

        Raises:
            SessionStateError: If the session is CLOSED
        """
        async with self._lock:
            if self.state == StreamState.CLOSED:
                raise SessionStateError("Listen key session is closed; create a new session")
            if self.state == StreamState.ACTIVE:
                return self.listen_key

            data = await self.client.call(f"{self._prefix}_start", **self._scope())
            self.listen_key = data["listenKey"]
            self.last_renewed_at = utc_now()
            self.state = StreamState.ACTIVE

        self.logger.info(f"Listen key created ({self._prefix}{' ' + self.symbol if self.symbol else ''})")
        return self.listen_key

    async def keep_alive(self) -> None:
        """
        Extend the listen key by its TTL.

        Raises:
            SessionStateError: If the session is not ACTIVE
        """
        async with self._lock:
            if self.state != StreamState.ACTIVE:
                raise SessionStateError(f"Cannot keep alive a {self.state.value} listen key session")

            await self.client.call(
                f"{self._prefix}_keepalive", **self._scope(), listenKey=self.listen_key
            )
            self.last_renewed_at = utc_now()

        self.logger.debug(f"Listen key renewed ({self._prefix})")

    async def close(self) -> StreamState:
        """
        Close the listen key.

        Idempotent: closing an already closed session returns CLOSED
        without another request, and a key the exchange no longer knows is
        treated as already closed.

        Returns:
            StreamState.CLOSED
        """
        async with self._lock:
            if self.state == StreamState.CLOSED:
                return self.state

            if self.state == StreamState.ACTIVE:
                try:
                    await self.client.call(
                        f"{self._prefix}_close", **self._scope(), listenKey=self.listen_key
                    )
                except ServerError as e:
                    if e.status != 404 and e.code != LISTEN_KEY_NOT_FOUND:
                        raise
                    self.logger.warning(f"Listen key already gone on close ({self._prefix})")

            self.state = StreamState.CLOSED

        self.logger.info(f"Listen key closed ({self._prefix})")
        return StreamState.CLOSED
