"""
Binance Client Package

Authenticated REST and stream access to Binance, built around one shared
connection pool per factory and one request pre-processor per credential
pair.

Structure:
    exchanges/binance/
    ├── __init__.py          # This file (public exports)
    ├── signer.py            # HMAC-SHA256 signature and canonical query string
    ├── auth.py              # RequestPreprocessor (classify, API key, sign)
    ├── endpoints.py         # Endpoint registry (method, path, classification, params)
    ├── transport.py         # ConnectionPool shared by all clients of a factory
    ├── api_client.py        # BinanceApiClient (REST)
    ├── ws_client.py         # BinanceStreamingClient / StreamConnection
    ├── user_stream.py       # UserDataStream listen key lifecycle
    └── client_factory.py    # BinanceApiClientFactory

Example:
    >>> async with BinanceApiClientFactory() as factory:
    ...     client = factory.create_client(ApiCredentials(api_key="...", secret_key="..."))
    ...     session = factory.create_user_data_stream(client)
    ...     listen_key = await session.create()
    ...     streaming = factory.create_streaming_client()
    ...     async with await streaming.open_user_data_stream(listen_key) as conn:
    ...         async for raw in conn.listen(idle_timeout=120):
    ...             print(raw)
"""

from .signer import encode_query, sign
from .auth import RequestPreprocessor, API_KEY_HEADER, SIGNATURE_PARAM
from .endpoints import Endpoint, ENDPOINTS, get_endpoint
from .transport import ConnectionPool
from .api_client import BinanceApiClient
from .ws_client import BinanceStreamingClient, StreamConnection
from .user_stream import UserDataStream, StreamState
from .client_factory import BinanceApiClientFactory

__all__ = [
    "encode_query",
    "sign",
    "RequestPreprocessor",
    "API_KEY_HEADER",
    "SIGNATURE_PARAM",
    "Endpoint",
    "ENDPOINTS",
    "get_endpoint",
    "ConnectionPool",
    "BinanceApiClient",
    "BinanceStreamingClient",
    "StreamConnection",
    "UserDataStream",
    "StreamState",
    "BinanceApiClientFactory",
]
