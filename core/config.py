"""
Configuration Management Module

This module handles loading, validating, and providing access to client
configuration from environment variables (.env file).

Uses Pydantic Settings for automatic validation and type conversion.

Key Features:
- Loads configuration from .env file
- Production and testnet endpoints for REST and streams
- Connection pool bounds and liveness probing interval
- Optional default credentials (never logged)

Usage:
    from core.config import settings

    print(settings.binance_base_url)
    print(settings.max_requests)
"""

from urllib.parse import urlsplit

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

from core.exceptions import ConfigurationError


class Settings(BaseSettings):
    """
    Client Settings

    Values are automatically loaded from environment variables or .env file.

    Attributes:
        binance_base_url: Production REST base URL
        binance_testnet_base_url: Testnet (sandbox) REST base URL
        binance_ws_base_url: Production stream base URL
        binance_testnet_ws_base_url: Testnet stream base URL
        binance_api_key: Default API key (optional, only public endpoints without it)
        binance_secret_key: Default secret key (optional, needed for signed endpoints)
        max_requests: Total concurrent in-flight requests per factory
        max_requests_per_host: Concurrent in-flight requests per destination host
        ping_interval: Heartbeat interval for duplex connections (seconds)
        request_timeout: Timeout for a single HTTP request (seconds)
        recv_window: recvWindow appended to signed calls in ms (0 disables)
        listen_key_ttl_minutes: Exchange-enforced listen key lifetime
        log_level: Logging level
    """

    # ============================================
    # Binance Endpoints
    # ============================================

    binance_base_url: str = Field(
        default="https://api.binance.com",
        description="Binance REST API base URL"
    )

    binance_testnet_base_url: str = Field(
        default="https://testnet.binance.vision",
        description="Binance testnet REST API base URL"
    )

    binance_ws_base_url: str = Field(
        default="wss://stream.binance.com:9443/ws",
        description="Binance stream base URL"
    )

    binance_testnet_ws_base_url: str = Field(
        default="wss://testnet.binance.vision/ws",
        description="Binance testnet stream base URL"
    )

    # ============================================
    # Default Credentials
    # ============================================

    binance_api_key: str = Field(
        default="",
        description="Binance API key (optional for public endpoints)"
    )

    binance_secret_key: str = Field(
        default="",
        description="Binance secret key (optional for unsigned endpoints)"
    )

    # ============================================
    # Connection Pool
    # ============================================

    max_requests: int = Field(
        default=500,
        description="Maximum concurrent in-flight requests"
    )

    max_requests_per_host: int = Field(
        default=500,
        description="Maximum concurrent in-flight requests per host"
    )

    ping_interval: float = Field(
        default=20,
        description="Heartbeat interval for stream connections (seconds)"
    )

    request_timeout: float = Field(
        default=10,
        description="HTTP request timeout in seconds"
    )

    # ============================================
    # Request Signing & Sessions
    # ============================================

    recv_window: int = Field(
        default=5000,
        description="recvWindow for signed requests in milliseconds (0 = omit)"
    )

    listen_key_ttl_minutes: int = Field(
        default=60,
        description="Listen key lifetime enforced by the exchange"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False
    )


# Single instance imported throughout the library
settings = Settings()


def validate_base_url(url: str, schemes=("http", "https")) -> str:
    """
    Check that a base URL has an allowed scheme and a host.

    Args:
        url: URL to check
        schemes: Accepted URL schemes

    Returns:
        The URL without a trailing slash

    Raises:
        ConfigurationError: If the URL is empty, has another scheme or no host
    """
    if not isinstance(url, str) or not url.strip():
        raise ConfigurationError("Base URL must be a non-empty string")

    parts = urlsplit(url.strip())
    if parts.scheme not in schemes:
        raise ConfigurationError(
            f"Invalid base URL '{url}': scheme must be one of {', '.join(schemes)}"
        )
    if not parts.hostname:
        raise ConfigurationError(f"Invalid base URL '{url}': missing host")
    if parts.query or parts.fragment:
        raise ConfigurationError(f"Invalid base URL '{url}': query and fragment are not allowed")

    return url.strip().rstrip("/")


def validate_configuration(config: Settings = None) -> None:
    """
    Validate settings before building a factory.

    Raises:
        ConfigurationError: If any value is invalid
    """
    # logging.py imports config.py, so import lazily
    from core.logging import logger

    config = config or settings

    validate_base_url(config.binance_base_url)
    validate_base_url(config.binance_testnet_base_url)
    validate_base_url(config.binance_ws_base_url, schemes=("ws", "wss"))
    validate_base_url(config.binance_testnet_ws_base_url, schemes=("ws", "wss"))

    if config.max_requests < 1:
        raise ConfigurationError(f"max_requests must be positive, got {config.max_requests}")
    if config.max_requests_per_host < 1:
        raise ConfigurationError(
            f"max_requests_per_host must be positive, got {config.max_requests_per_host}"
        )
    if config.ping_interval < 0:
        raise ConfigurationError(f"ping_interval cannot be negative, got {config.ping_interval}")
    if config.request_timeout <= 0:
        raise ConfigurationError(f"request_timeout must be positive, got {config.request_timeout}")
    if not (0 <= config.recv_window <= 60000):
        raise ConfigurationError(
            f"recv_window must be between 0 and 60000 ms, got {config.recv_window}"
        )
    if config.listen_key_ttl_minutes < 1:
        raise ConfigurationError(
            f"listen_key_ttl_minutes must be positive, got {config.listen_key_ttl_minutes}"
        )

    valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if config.log_level.upper() not in valid_log_levels:
        raise ConfigurationError(
            f"Invalid LOG_LEVEL: '{config.log_level}'. "
            f"Must be one of: {', '.join(valid_log_levels)}"
        )

    logger.debug(
        f"Configuration validated: api={config.binance_base_url} "
        f"testnet={config.binance_testnet_base_url} "
        f"pool={config.max_requests}/{config.max_requests_per_host}"
    )
