"""
Binance REST API Client

This module provides the lightweight per-credential REST client built by
BinanceApiClientFactory. It handles:
- Building request descriptors from the endpoint registry
- Running them through the client's own RequestPreprocessor
- Dispatching them over the factory's shared ConnectionPool
- Surfacing non-2xx responses as ServerError

The client owns identity state only (base URL, pre-processor). Sockets and
concurrency bounds belong to the pool it was given.

Responses are returned as decoded JSON. Endpoint payload shapes are left to
the caller.

API Documentation:
    https://binance-docs.github.io/apidocs/spot/en/

Usage:
    factory = BinanceApiClientFactory()
    client = factory.create_client(ApiCredentials(api_key="...", secret_key="..."))

    book = await client.get_order_book("BTCUSDT", limit=10)
    order = await client.new_order("BTCUSDT", "BUY", "LIMIT",
                                   timeInForce="GTC", quantity="0.01", price="30000")
    same = await client.call("order_status", symbol="BTCUSDT", orderId=order["orderId"])
"""

import json
from decimal import Decimal
from typing import Any, List, Optional, Sequence, Tuple, Union

from core.exceptions import ServerError
from core.logging import get_logger
from core.schemas import ApiRequest, Classification
from core.utils.time import current_utc_timestamp
from exchanges.binance.auth import RequestPreprocessor
from exchanges.binance.endpoints import Endpoint, get_endpoint
from exchanges.binance.transport import ConnectionPool


def format_param(value: Any) -> str:
    """
    Render a parameter value the way Binance expects it.

    Decimals and floats are written in plain notation; Binance rejects
    exponents such as "1e-05".

    Example:
        >>> format_param(True), format_param(Decimal("0.00100")), format_param(0.00001)
        ('true', '0.00100', '0.00001')
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, float):
        # repr() is the shortest round-tripping form of the float
        return format(Decimal(repr(value)), "f")
    return str(value)


class BinanceApiClient:
    """
    Async client for Binance REST endpoints, bound to one credential pair.

    Attributes:
        base_url: REST base URL (read-only, fixed at construction)
        preprocessor: RequestPreprocessor for this client's credentials
        pool: Shared ConnectionPool owned by the factory
        recv_window: recvWindow added to signed calls (0 disables)

    Example:
        >>> client = factory.create_client()
        >>> await client.ping()
        {}

    Notes:
        - Do not construct directly, use BinanceApiClientFactory
        - No retries: failures surface to the caller
    """

    def __init__(
        self,
        base_url: str,
        preprocessor: RequestPreprocessor,
        pool: ConnectionPool,
        recv_window: int = 0
    ):
        self._base_url = base_url
        self.preprocessor = preprocessor
        self.pool = pool
        self.recv_window = recv_window
        self.logger = get_logger(__name__)

    @property
    def base_url(self) -> str:
        return self._base_url

    # ============================================
    # Generic Dispatch
    # ============================================

    def build_request(
        self,
        endpoint: Union[str, Endpoint],
        params: Sequence[Tuple[str, Any]] = ()
    ) -> ApiRequest:
        """
        Build a classified request descriptor for an endpoint.

        Parameters keep the caller's order. None values are dropped and
        list values become repeated parameters. SIGNED endpoints get
        recvWindow and timestamp appended unless already supplied.

        Args:
            endpoint: Endpoint name or descriptor
            params: Ordered (name, value) pairs

        Returns:
            ApiRequest stamped with the endpoint's classification

        Raises:
            ValueError: Unknown endpoint, missing or unexpected parameter
        """
        if isinstance(endpoint, str):
            endpoint = get_endpoint(endpoint)

        ordered: List[Tuple[str, str]] = []
        for name, value in params:
            if value is None:
                continue
            if isinstance(value, (list, tuple)):
                ordered.extend((name, format_param(item)) for item in value)
            else:
                ordered.append((name, format_param(value)))

        if endpoint.classification == Classification.SIGNED:
            names = {name for name, _ in ordered}
            if self.recv_window and "recvWindow" not in names:
                ordered.append(("recvWindow", str(self.recv_window)))
            if "timestamp" not in names:
                ordered.append(("timestamp", str(current_utc_timestamp())))

        endpoint.check_params(name for name, _ in ordered)

        return ApiRequest(
            method=endpoint.method,
            path=endpoint.path,
            params=tuple(ordered),
            classification=endpoint.classification,
        )

    async def execute(self, request: ApiRequest) -> Any:
        """
        Authenticate, dispatch and decode one request.

        Raises:
            AuthenticationError: Missing credential (nothing was sent)
            TransportError: Network failure
            ServerError: Non-2xx response, or a 2xx body that is not JSON
        """
        wire_request = self.preprocessor.process(request)
        response = await self.pool.dispatch(wire_request, self._base_url)

        if not response.ok:
            self.logger.error(f"HTTP {response.status} on {request.method} {request.path}")
            raise ServerError(response.status, response.body)

        if not response.body:
            return {}
        try:
            return json.loads(response.body)
        except ValueError as e:
            self.logger.error(
                f"Undecodable HTTP {response.status} body on {request.method} {request.path}"
            )
            raise ServerError(response.status, response.body) from e

    async def call(self, endpoint: Union[str, Endpoint], **params: Any) -> Any:
        """
        Call any registered endpoint by name.

        Keyword order is the transmitted (and signed) parameter order.

        Example:
            >>> await client.call("klines", symbol="BTCUSDT", interval="1h", limit=2)
        """
        return await self.execute(self.build_request(endpoint, list(params.items())))

    # ============================================
    # General Endpoints
    # ============================================

    async def ping(self) -> Any:
        """Test connectivity (GET /api/v3/ping)"""
        return await self.call("ping")

    async def get_server_time(self) -> int:
        """Server time in milliseconds (GET /api/v3/time)"""
        data = await self.call("server_time")
        return data["serverTime"]

    async def get_exchange_info(self, symbol: Optional[str] = None) -> Any:
        """Trading rules and symbol information (GET /api/v3/exchangeInfo)"""
        return await self.call("exchange_info", symbol=symbol)

    # ============================================
    # Market Data Endpoints
    # ============================================

    async def get_order_book(self, symbol: str, limit: Optional[int] = None) -> Any:
        """Order book depth (GET /api/v3/depth)"""
        return await self.call("order_book", symbol=symbol.upper(), limit=limit)

    async def get_trades(self, symbol: str, limit: Optional[int] = None) -> Any:
        """Recent trades (GET /api/v3/trades)"""
        return await self.call("trades", symbol=symbol.upper(), limit=limit)

    async def get_historical_trades(
        self,
        symbol: str,
        limit: Optional[int] = None,
        from_id: Optional[int] = None
    ) -> Any:
        """Older trades, requires an API key (GET /api/v3/historicalTrades)"""
        return await self.call("historical_trades", symbol=symbol.upper(), limit=limit, fromId=from_id)

    async def get_agg_trades(
        self,
        symbol: str,
        from_id: Optional[int] = None,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
        limit: Optional[int] = None
    ) -> Any:
        """Compressed/aggregate trades (GET /api/v3/aggTrades)"""
        return await self.call(
            "agg_trades",
            symbol=symbol.upper(),
            fromId=from_id,
            startTime=start_time,
            endTime=end_time,
            limit=limit,
        )

    async def get_candlestick_bars(
        self,
        symbol: str,
        interval: str,
        limit: Optional[int] = None,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None
    ) -> Any:
        """Kline/candlestick bars (GET /api/v3/klines)"""
        return await self.call(
            "klines",
            symbol=symbol.upper(),
            interval=interval,
            startTime=start_time,
            endTime=end_time,
            limit=limit,
        )

    async def get_24hr_price_statistics(self, symbol: Optional[str] = None) -> Any:
        """24 hour rolling statistics, all symbols when symbol is None"""
        return await self.call("ticker_24hr", symbol=symbol)

    async def get_price(self, symbol: Optional[str] = None) -> Any:
        """Latest price, all symbols when symbol is None"""
        return await self.call("ticker_price", symbol=symbol)

    async def get_book_tickers(self, symbol: Optional[str] = None) -> Any:
        """Best bid/ask, all symbols when symbol is None"""
        return await self.call("book_ticker", symbol=symbol)

    # ============================================
    # Account Endpoints (signed)
    # ============================================

    async def new_order(self, symbol: str, side: str, order_type: str, **params: Any) -> Any:
        """
        Place a new order (POST /api/v3/order).

        Args:
            symbol: Trading pair (e.g., "ETHBTC")
            side: "BUY" or "SELL"
            order_type: Order type ("LIMIT", "MARKET", ...)
            **params: Further order fields in transmission order
                      (timeInForce, quantity, price, ...)
        """
        return await self.call("new_order", symbol=symbol, side=side, type=order_type, **params)

    async def new_order_test(self, symbol: str, side: str, order_type: str, **params: Any) -> Any:
        """Validate an order without sending it to the matching engine"""
        return await self.call("new_order_test", symbol=symbol, side=side, type=order_type, **params)

    async def get_order_status(
        self,
        symbol: str,
        order_id: Optional[int] = None,
        orig_client_order_id: Optional[str] = None
    ) -> Any:
        """Check an order's status (GET /api/v3/order)"""
        return await self.call(
            "order_status",
            symbol=symbol,
            orderId=order_id,
            origClientOrderId=orig_client_order_id,
        )

    async def cancel_order(
        self,
        symbol: str,
        order_id: Optional[int] = None,
        orig_client_order_id: Optional[str] = None
    ) -> Any:
        """Cancel an active order (DELETE /api/v3/order)"""
        return await self.call(
            "cancel_order",
            symbol=symbol,
            orderId=order_id,
            origClientOrderId=orig_client_order_id,
        )

    async def get_open_orders(self, symbol: Optional[str] = None) -> Any:
        """Open orders, all symbols when symbol is None"""
        return await self.call("open_orders", symbol=symbol)

    async def get_all_orders(self, symbol: str, **params: Any) -> Any:
        """All orders for a symbol: active, canceled or filled"""
        return await self.call("all_orders", symbol=symbol, **params)

    async def get_account(self) -> Any:
        """Current account information (GET /api/v3/account)"""
        return await self.call("account")

    async def get_my_trades(self, symbol: str, **params: Any) -> Any:
        """Trades for this account and symbol (GET /api/v3/myTrades)"""
        return await self.call("my_trades", symbol=symbol, **params)

    # ============================================
    # User Data Stream Endpoints
    # ============================================

    async def start_user_data_stream(self) -> str:
        """Create a spot listen key"""
        data = await self.call("user_stream_start")
        return data["listenKey"]

    async def keep_alive_user_data_stream(self, listen_key: str) -> None:
        """Extend a spot listen key by its TTL"""
        await self.call("user_stream_keepalive", listenKey=listen_key)

    async def close_user_data_stream(self, listen_key: str) -> None:
        """Close a spot listen key"""
        await self.call("user_stream_close", listenKey=listen_key)
