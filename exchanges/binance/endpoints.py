"""
Binance Endpoint Registry

One table of endpoint descriptors drives BinanceApiClient.call(). Each entry
declares the HTTP method, path, classification (trust level) and the
parameter names the endpoint accepts. Adding an endpoint means adding a row,
not a method.

Classification follows Binance's endpoint security types:
    NONE                          -> PUBLIC
    MARKET_DATA, USER_STREAM      -> API_KEY_ONLY
    TRADE, USER_DATA, MARGIN      -> SIGNED

API Documentation:
    https://binance-docs.github.io/apidocs/spot/en/
"""

from typing import Dict, Iterable, List, Tuple

from pydantic import BaseModel, ConfigDict

from core.schemas import Classification

PUBLIC = Classification.PUBLIC
API_KEY_ONLY = Classification.API_KEY_ONLY
SIGNED = Classification.SIGNED

# Appended by the client to every SIGNED call unless supplied by the caller
SIGNED_EXTRA_PARAMS = ("recvWindow", "timestamp")


class Endpoint(BaseModel):
    """
    Endpoint descriptor.

    Attributes:
        name: Registry key (e.g., "new_order")
        method: HTTP method
        path: Request path
        classification: Required trust level
        required: Parameter names that must be supplied
        optional: Parameter names that may be supplied
    """

    model_config = ConfigDict(frozen=True)

    name: str
    method: str
    path: str
    classification: Classification
    required: Tuple[str, ...] = ()
    optional: Tuple[str, ...] = ()

    @property
    def accepted(self) -> Tuple[str, ...]:
        extra = SIGNED_EXTRA_PARAMS if self.classification == SIGNED else ()
        return self.required + self.optional + extra

    def check_params(self, names: Iterable[str]) -> None:
        """
        Verify parameter names against the descriptor.

        Raises:
            ValueError: If a required parameter is missing or an unknown one is given
        """
        names = list(names)
        missing = [n for n in self.required if n not in names]
        if missing:
            raise ValueError(f"{self.name}: missing required parameter(s): {', '.join(missing)}")

        unknown = [n for n in names if n not in self.accepted]
        if unknown:
            raise ValueError(
                f"{self.name}: unexpected parameter(s): {', '.join(unknown)}. "
                f"Accepted: {', '.join(self.accepted) or 'none'}"
            )


def _ep(name, method, path, classification, required=(), optional=()) -> Endpoint:
    return Endpoint(
        name=name,
        method=method,
        path=path,
        classification=classification,
        required=tuple(required),
        optional=tuple(optional),
    )


_ORDER_OPTIONAL = (
    "timeInForce", "quantity", "quoteOrderQty", "price", "newClientOrderId",
    "stopPrice", "icebergQty", "newOrderRespType",
)

_MARGIN_ORDER_OPTIONAL = ("isIsolated",) + _ORDER_OPTIONAL + ("sideEffectType",)

_HISTORY_WINDOW = ("startTime", "endTime")


_ENDPOINT_LIST: List[Endpoint] = [
    # ============================================
    # General
    # ============================================
    _ep("ping", "GET", "/api/v3/ping", PUBLIC),
    _ep("server_time", "GET", "/api/v3/time", PUBLIC),
    _ep("exchange_info", "GET", "/api/v3/exchangeInfo", PUBLIC, optional=("symbol", "symbols")),

    # ============================================
    # Market Data
    # ============================================
    _ep("order_book", "GET", "/api/v3/depth", PUBLIC, ("symbol",), ("limit",)),
    _ep("trades", "GET", "/api/v3/trades", PUBLIC, ("symbol",), ("limit",)),
    _ep("historical_trades", "GET", "/api/v3/historicalTrades", API_KEY_ONLY,
        ("symbol",), ("limit", "fromId")),
    _ep("agg_trades", "GET", "/api/v3/aggTrades", PUBLIC,
        ("symbol",), ("fromId",) + _HISTORY_WINDOW + ("limit",)),
    _ep("klines", "GET", "/api/v3/klines", PUBLIC,
        ("symbol", "interval"), _HISTORY_WINDOW + ("limit",)),
    _ep("ticker_24hr", "GET", "/api/v3/ticker/24hr", PUBLIC, optional=("symbol",)),
    _ep("ticker_price", "GET", "/api/v3/ticker/price", PUBLIC, optional=("symbol",)),
    _ep("book_ticker", "GET", "/api/v3/ticker/bookTicker", PUBLIC, optional=("symbol",)),

    # ============================================
    # Spot Account / Trading
    # ============================================
    _ep("new_order", "POST", "/api/v3/order", SIGNED,
        ("symbol", "side", "type"), _ORDER_OPTIONAL),
    _ep("new_order_test", "POST", "/api/v3/order/test", SIGNED,
        ("symbol", "side", "type"), _ORDER_OPTIONAL),
    _ep("new_oco_order", "POST", "/api/v3/order/oco", SIGNED,
        ("symbol", "side", "quantity", "price", "stopPrice"),
        ("listClientOrderId", "limitClientOrderId", "limitIcebergQty", "stopClientOrderId",
         "stopLimitPrice", "stopIcebergQty", "stopLimitTimeInForce", "newOrderRespType")),
    _ep("order_status", "GET", "/api/v3/order", SIGNED,
        ("symbol",), ("orderId", "origClientOrderId")),
    _ep("cancel_order", "DELETE", "/api/v3/order", SIGNED,
        ("symbol",), ("orderId", "origClientOrderId", "newClientOrderId")),
    _ep("oco_order_status", "GET", "/api/v3/orderList", SIGNED,
        optional=("orderListId", "origClientOrderId")),
    _ep("cancel_oco_order", "DELETE", "/api/v3/orderList", SIGNED,
        ("symbol",), ("orderListId", "listClientOrderId", "newClientOrderId")),
    _ep("open_orders", "GET", "/api/v3/openOrders", SIGNED, optional=("symbol",)),
    _ep("all_orders", "GET", "/api/v3/allOrders", SIGNED,
        ("symbol",), ("orderId",) + _HISTORY_WINDOW + ("limit",)),
    _ep("account", "GET", "/api/v3/account", SIGNED),
    _ep("my_trades", "GET", "/api/v3/myTrades", SIGNED,
        ("symbol",), _HISTORY_WINDOW + ("fromId", "limit")),

    # ============================================
    # Wallet
    # ============================================
    _ep("withdraw", "POST", "/sapi/v1/capital/withdraw/apply", SIGNED,
        ("coin", "address", "amount"), ("network", "addressTag", "name", "withdrawOrderId")),
    _ep("deposit_history", "GET", "/sapi/v1/capital/deposit/hisrec", SIGNED,
        optional=("coin", "status") + _HISTORY_WINDOW),
    _ep("withdraw_history", "GET", "/sapi/v1/capital/withdraw/history", SIGNED,
        optional=("coin", "status") + _HISTORY_WINDOW),
    _ep("deposit_address", "GET", "/sapi/v1/capital/deposit/address", SIGNED,
        ("coin",), ("network",)),
    _ep("sub_account_transfers", "GET", "/sapi/v1/sub-account/transfer/subUserHistory", SIGNED,
        optional=("asset", "type") + _HISTORY_WINDOW + ("limit",)),
    _ep("dust_transfer", "POST", "/sapi/v1/asset/dust", SIGNED, ("asset",)),

    # ============================================
    # User Data Streams (listen keys)
    # ============================================
    _ep("user_stream_start", "POST", "/api/v3/userDataStream", API_KEY_ONLY),
    _ep("user_stream_keepalive", "PUT", "/api/v3/userDataStream", API_KEY_ONLY, ("listenKey",)),
    _ep("user_stream_close", "DELETE", "/api/v3/userDataStream", API_KEY_ONLY, ("listenKey",)),
    _ep("margin_user_stream_start", "POST", "/sapi/v1/userDataStream", API_KEY_ONLY),
    _ep("margin_user_stream_keepalive", "PUT", "/sapi/v1/userDataStream", API_KEY_ONLY,
        ("listenKey",)),
    _ep("margin_user_stream_close", "DELETE", "/sapi/v1/userDataStream", API_KEY_ONLY,
        ("listenKey",)),
    _ep("isolated_user_stream_start", "POST", "/sapi/v1/userDataStream/isolated", API_KEY_ONLY,
        ("symbol",)),
    _ep("isolated_user_stream_keepalive", "PUT", "/sapi/v1/userDataStream/isolated", API_KEY_ONLY,
        ("symbol", "listenKey")),
    _ep("isolated_user_stream_close", "DELETE", "/sapi/v1/userDataStream/isolated", API_KEY_ONLY,
        ("symbol", "listenKey")),

    # ============================================
    # Cross Margin
    # ============================================
    _ep("margin_account", "GET", "/sapi/v1/margin/account", SIGNED),
    _ep("margin_transfer", "POST", "/sapi/v1/margin/transfer", SIGNED, ("asset", "amount", "type")),
    _ep("margin_borrow", "POST", "/sapi/v1/margin/loan", SIGNED,
        ("asset", "amount"), ("isIsolated", "symbol")),
    _ep("margin_repay", "POST", "/sapi/v1/margin/repay", SIGNED,
        ("asset", "amount"), ("isIsolated", "symbol")),
    _ep("margin_new_order", "POST", "/sapi/v1/margin/order", SIGNED,
        ("symbol", "side", "type"), _MARGIN_ORDER_OPTIONAL),
    _ep("margin_cancel_order", "DELETE", "/sapi/v1/margin/order", SIGNED,
        ("symbol",), ("isIsolated", "orderId", "origClientOrderId", "newClientOrderId")),
    _ep("margin_order_status", "GET", "/sapi/v1/margin/order", SIGNED,
        ("symbol",), ("isIsolated", "orderId", "origClientOrderId")),
    _ep("margin_open_orders", "GET", "/sapi/v1/margin/openOrders", SIGNED,
        optional=("symbol", "isIsolated")),
    _ep("margin_my_trades", "GET", "/sapi/v1/margin/myTrades", SIGNED,
        ("symbol",), ("isIsolated",) + _HISTORY_WINDOW + ("fromId", "limit")),

    # ============================================
    # Isolated Margin
    # ============================================
    _ep("isolated_create_account", "POST", "/sapi/v1/margin/isolated/create", SIGNED,
        ("base", "quote")),
    _ep("isolated_account", "GET", "/sapi/v1/margin/isolated/account", SIGNED,
        optional=("symbols",)),
    _ep("isolated_transfer", "POST", "/sapi/v1/margin/isolated/transfer", SIGNED,
        ("asset", "symbol", "transFrom", "transTo", "amount")),
    _ep("isolated_pair", "GET", "/sapi/v1/margin/isolated/pair", SIGNED, ("symbol",)),
    _ep("isolated_all_pairs", "GET", "/sapi/v1/margin/isolated/allPairs", SIGNED),
]

ENDPOINTS: Dict[str, Endpoint] = {endpoint.name: endpoint for endpoint in _ENDPOINT_LIST}


def get_endpoint(name: str) -> Endpoint:
    """
    Look up an endpoint descriptor by name.

    Raises:
        ValueError: If the endpoint is not registered
    """
    if name not in ENDPOINTS:
        raise ValueError(f"Endpoint '{name}' is not registered")
    return ENDPOINTS[name]
