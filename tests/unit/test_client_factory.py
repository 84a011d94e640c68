"""
Unit Tests for BinanceApiClientFactory

These tests verify that:
- Every client built by a factory shares the factory's single pool
- Each client gets its own pre-processor bound to its own credentials
- Production, testnet and streaming clients use the configured URLs
- Invalid URLs, settings and credentials raise ConfigurationError

Run with:
    pytest tests/unit/test_client_factory.py -v
"""

import pytest
from datetime import timedelta

from core.config import Settings
from core.exceptions import ConfigurationError
from core.schemas import ApiCredentials, ApiRequest, Classification
from exchanges.binance.auth import API_KEY_HEADER
from exchanges.binance.client_factory import BinanceApiClientFactory
from exchanges.binance.user_stream import StreamState


@pytest.fixture
def config():
    """Settings isolated from any local .env file"""
    return Settings(_env_file=None)


@pytest.fixture
def factory(config):
    return BinanceApiClientFactory(config)


# ============================================
# Tests for pool sharing
# ============================================

class TestPoolSharing:
    """Tests for shared pool / per-client pre-processor"""

    def test_fifty_clients_share_one_pool(self, factory):
        """Verify creating many clients never creates another pool"""
        clients = [
            factory.create_client(ApiCredentials(api_key=f"key{i}", secret_key=f"secret{i}"))
            for i in range(50)
        ]

        assert len({id(c.pool) for c in clients}) == 1
        assert all(c.pool is factory.pool for c in clients)

    def test_each_client_has_own_preprocessor(self, factory):
        """Verify pre-processors are per client"""
        clients = [factory.create_client() for _ in range(50)]

        assert len({id(c.preprocessor) for c in clients}) == 50

    def test_credentials_do_not_leak_between_clients(self, factory):
        """Verify each client's requests carry only its own API key"""
        a = factory.create_client(ApiCredentials(api_key="key-a", secret_key="secret-a"))
        b = factory.create_client({"api_key": "key-b", "secret_key": "secret-b"})
        request = ApiRequest(method="GET", path="/api/v3/historicalTrades",
                             params=(("symbol", "BTCUSDT"),),
                             classification=Classification.API_KEY_ONLY)

        assert a.preprocessor.process(request).headers[API_KEY_HEADER] == "key-a"
        assert b.preprocessor.process(request).headers[API_KEY_HEADER] == "key-b"

    def test_pool_bounds_from_settings(self):
        """Verify pool bounds follow the settings"""
        factory = BinanceApiClientFactory(
            Settings(_env_file=None, max_requests=7, max_requests_per_host=3, ping_interval=5)
        )

        assert factory.pool.max_requests == 7
        assert factory.pool.max_requests_per_host == 3
        assert factory.pool.ping_interval == 5

    def test_streaming_client_uses_same_pool(self, factory):
        """Verify stream connections go through the shared pool"""
        streaming = factory.create_streaming_client()

        assert streaming.pool is factory.pool


# ============================================
# Tests for URLs
# ============================================

class TestUrls:
    """Tests for production/testnet/custom base URLs"""

    def test_production_client(self, factory):
        assert factory.create_client().base_url == "https://api.binance.com"

    def test_test_client(self, factory):
        """Verify the testnet client targets the sandbox"""
        assert factory.create_test_client().base_url == "https://testnet.binance.vision"

    def test_custom_base_url_trailing_slash_stripped(self, factory):
        client = factory.create_client(base_url="https://api1.binance.com/")

        assert client.base_url == "https://api1.binance.com"

    def test_streaming_urls(self, factory):
        assert factory.create_streaming_client().ws_base_url == "wss://stream.binance.com:9443/ws"
        assert factory.create_streaming_client(testnet=True).ws_base_url == "wss://testnet.binance.vision/ws"

    @pytest.mark.parametrize("url", ["ftp://api.binance.com", "not a url", "https://", "   "])
    def test_invalid_base_url_raises(self, factory, url):
        """Verify malformed base URLs are rejected at construction"""
        with pytest.raises(ConfigurationError):
            factory.create_client(base_url=url)


# ============================================
# Tests for credential and settings validation
# ============================================

class TestValidation:
    """Tests for ConfigurationError paths"""

    def test_missing_credentials_give_public_client(self, factory):
        """Verify None credentials are allowed"""
        client = factory.create_client(None)

        assert client.preprocessor.credentials.has_api_key is False

    def test_malformed_credentials_dict_raises(self, factory):
        """Verify credentials with whitespace are rejected"""
        with pytest.raises(ConfigurationError):
            factory.create_client({"api_key": "has space", "secret_key": "x"})

    def test_malformed_credentials_error_hides_secret(self, factory):
        """Verify the rejected value does not appear in the error"""
        with pytest.raises(ConfigurationError) as exc_info:
            factory.create_client({"api_key": "k", "secret_key": "leaky secret"})

        assert "leaky secret" not in str(exc_info.value)

    def test_wrong_credentials_type_raises(self, factory):
        with pytest.raises(ConfigurationError):
            factory.create_client(("key", "secret"))

    @pytest.mark.parametrize("overrides", [
        {"max_requests": 0},
        {"max_requests_per_host": -1},
        {"binance_base_url": "ftp://x"},
        {"binance_ws_base_url": "https://stream.binance.com"},
        {"recv_window": 70000},
    ])
    def test_invalid_settings_raise(self, overrides):
        """Verify the factory refuses invalid settings"""
        with pytest.raises(ConfigurationError):
            BinanceApiClientFactory(Settings(_env_file=None, **overrides))


# ============================================
# Tests for sessions and shutdown
# ============================================

class TestLifecycle:
    """Tests for user data sessions and factory shutdown"""

    def test_user_data_stream_ttl_from_settings(self):
        factory = BinanceApiClientFactory(Settings(_env_file=None, listen_key_ttl_minutes=30))
        client = factory.create_client(ApiCredentials(api_key="k"))

        session = factory.create_user_data_stream(client, symbol="btcusdt")

        assert session.ttl == timedelta(minutes=30)
        assert session.symbol == "BTCUSDT"
        assert session.state == StreamState.UNINITIALIZED
        assert session.client is client

    @pytest.mark.asyncio
    async def test_context_manager_closes_pool(self, config):
        """Verify leaving the context closes the shared pool"""
        async with BinanceApiClientFactory(config) as factory:
            factory.create_client()
            assert factory.pool.closed is False

        assert factory.pool.closed is True
