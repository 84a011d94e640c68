"""
Binance Client Factory

The factory is the only owner of network resources. It creates one
ConnectionPool and hands it to every client it builds, while each client
gets a fresh RequestPreprocessor bound to its own credentials:

    factory ──owns──> ConnectionPool (sockets, bounds, heartbeats)
       │
       ├─> BinanceApiClient(base_url, RequestPreprocessor(creds A), pool)
       ├─> BinanceApiClient(base_url, RequestPreprocessor(creds B), pool)
       └─> BinanceStreamingClient(ws_base_url, pool)

Building 50 clients still means one pool. Closing the factory closes the
pool, which ends every client's ability to send requests.

Usage:
    async with BinanceApiClientFactory() as factory:
        public = factory.create_client()
        trader = factory.create_client(ApiCredentials(api_key="...", secret_key="..."))
        sandbox = factory.create_test_client(ApiCredentials(api_key="...", secret_key="..."))
        streaming = factory.create_streaming_client()
"""

from datetime import timedelta
from typing import Optional

from pydantic import ValidationError

from core.config import Settings, settings as default_settings, validate_base_url, validate_configuration
from core.exceptions import ConfigurationError
from core.logging import get_logger
from core.schemas import ApiCredentials
from exchanges.binance.api_client import BinanceApiClient
from exchanges.binance.auth import RequestPreprocessor
from exchanges.binance.transport import ConnectionPool
from exchanges.binance.user_stream import UserDataStream
from exchanges.binance.ws_client import BinanceStreamingClient


class BinanceApiClientFactory:
    """
    Builds credentialed clients that share one connection pool.

    Attributes:
        settings: Settings used for URLs, pool bounds and recvWindow
        pool: The single ConnectionPool shared by all clients

    Example:
        >>> factory = BinanceApiClientFactory()
        >>> a = factory.create_client()
        >>> b = factory.create_test_client()
        >>> a.pool is b.pool is factory.pool
        True
    """

    def __init__(self, config: Optional[Settings] = None):
        """
        Validate settings and create the shared pool.

        Raises:
            ConfigurationError: If settings are invalid
        """
        self.settings = config or default_settings
        validate_configuration(self.settings)

        self._pool = ConnectionPool(
            max_requests=self.settings.max_requests,
            max_requests_per_host=self.settings.max_requests_per_host,
            ping_interval=self.settings.ping_interval,
            request_timeout=self.settings.request_timeout,
        )
        self.logger = get_logger(__name__)

    @property
    def pool(self) -> ConnectionPool:
        return self._pool

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # ============================================
    # Client Creation
    # ============================================

    @staticmethod
    def _coerce_credentials(credentials) -> ApiCredentials:
        if credentials is None:
            return ApiCredentials()
        if isinstance(credentials, ApiCredentials):
            return credentials
        if isinstance(credentials, dict):
            try:
                return ApiCredentials(**credentials)
            except ValidationError as e:
                raise ConfigurationError(f"Malformed credentials: {e}") from e
        raise ConfigurationError(
            f"Credentials must be ApiCredentials or dict, got {type(credentials).__name__}"
        )

    def create_client(
        self,
        credentials=None,
        base_url: Optional[str] = None
    ) -> BinanceApiClient:
        """
        Build a REST client bound to one credential pair.

        Args:
            credentials: ApiCredentials, a dict with api_key/secret_key, or
                         None for a public-only client
            base_url: REST base URL (defaults to production)

        Returns:
            BinanceApiClient using the shared pool

        Raises:
            ConfigurationError: Invalid base URL or malformed credentials
        """
        url = validate_base_url(base_url or self.settings.binance_base_url)
        creds = self._coerce_credentials(credentials)

        client = BinanceApiClient(
            base_url=url,
            preprocessor=RequestPreprocessor(creds),
            pool=self._pool,
            recv_window=self.settings.recv_window,
        )
        self.logger.debug(f"Client created for {url} (api_key={'set' if creds.has_api_key else 'none'})")
        return client

    def create_test_client(self, credentials=None) -> BinanceApiClient:
        """Build a REST client against the testnet (sandbox) base URL"""
        return self.create_client(credentials, base_url=self.settings.binance_testnet_base_url)

    def create_streaming_client(self, testnet: bool = False) -> BinanceStreamingClient:
        """
        Build a streaming client over the shared pool.

        Args:
            testnet: Use the testnet stream base URL
        """
        ws_base_url = (
            self.settings.binance_testnet_ws_base_url if testnet
            else self.settings.binance_ws_base_url
        )
        return BinanceStreamingClient(
            validate_base_url(ws_base_url, schemes=("ws", "wss")),
            self._pool,
        )

    def create_user_data_stream(
        self,
        client: BinanceApiClient,
        symbol: Optional[str] = None,
        margin: bool = False
    ) -> UserDataStream:
        """
        Build a listen key session for a client.

        Args:
            client: Client whose credentials own the listen key
            symbol: Isolated margin pair, None for spot or cross margin
            margin: Cross margin listen key
        """
        return UserDataStream(
            client,
            symbol=symbol,
            margin=margin,
            ttl=timedelta(minutes=self.settings.listen_key_ttl_minutes),
        )

    # ============================================
    # Shutdown
    # ============================================

    async def close(self) -> None:
        """Close the shared pool (sessions and open streams)"""
        await self._pool.close()
        self.logger.debug("Factory closed")
