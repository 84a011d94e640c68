"""
Unified Logging Configuration

Every module of the client library logs through child loggers of
"binance_client" obtained from get_logger(). print() is never used.

Secrets policy:
    - Credentials are never passed to the log helpers below
    - log_api_request() drops the signature parameter
    - RedactingFilter, installed on the root handlers by setup_logging(),
      masks signatures and X-MBX-APIKEY values that slip into any message

Usage:
    from core.logging import get_logger

    logger = get_logger(__name__)
    logger.debug("Detailed debugging information")

Log Levels (from most to least verbose):
    DEBUG    - Request/response traces (e.g., "API Request: GET /api/v3/depth")
    INFO     - Lifecycle events (e.g., "Listen key created")
    WARNING  - Recoverable oddities (e.g., "Listen key already gone on close")
    ERROR    - Failed requests and stream errors

Configuration:
    Log level is controlled by the LOG_LEVEL setting in .env file.
"""

import logging
import re
import sys
from typing import Optional, Sequence, Tuple

ROOT_LOGGER_NAME = "binance_client"
REDACTED = "***REDACTED***"

_SECRET_PATTERNS = [
    # signature=<64 hex> in URLs and query strings
    re.compile(r"(signature=)[0-9a-fA-F]{64}"),
    # X-MBX-APIKEY header values in dict reprs or "name: value" form
    re.compile(r"""(X-MBX-APIKEY['"]?\s*[:=]\s*['"]?)[^'"\s,}]+""", re.IGNORECASE),
]


def redact_secrets(text: str) -> str:
    """
    Mask request signatures and API key header values.

    Example:
        >>> redact_secrets("GET /api/v3/account?timestamp=1&signature=" + "a" * 64)
        'GET /api/v3/account?timestamp=1&signature=***REDACTED***'
    """
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub(rf"\g<1>{REDACTED}", text)
    return text


class RedactingFilter(logging.Filter):
    """Handler filter that rewrites each record's message through redact_secrets()"""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_secrets(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def setup_logging(
    log_level: str = "INFO",
    log_format: Optional[str] = None,
    include_timestamp: bool = True,
    include_module: bool = True
) -> logging.Logger:
    """
    Configure the root handler and return the library logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Custom log format string (built from the flags if None)
        include_timestamp: Prefix messages with a timestamp
        include_module: Include the logger name

    Returns:
        logging.Logger: The "binance_client" logger

    Example:
        >>> logger = setup_logging(log_level="DEBUG")
        >>> logger.info("Factory created")
        2024-01-01 12:00:00 [INFO] binance_client: Factory created
    """
    if log_format is None:
        log_format = " ".join(
            part for part, enabled in (
                ("%(asctime)s", include_timestamp),
                ("[%(levelname)s]", True),
                ("%(name)s:", include_module),
                ("%(message)s", True),
            ) if enabled
        )

    logging.basicConfig(
        level=_level(log_level),
        format=log_format,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True
    )
    for handler in logging.getLogger().handlers:
        handler.addFilter(RedactingFilter())

    library_logger = logging.getLogger(ROOT_LOGGER_NAME)
    library_logger.setLevel(_level(log_level))
    return library_logger


# ============================================
# Initialize Logger with Settings
# ============================================

try:
    from core.config import settings
    log_level = settings.log_level if hasattr(settings, 'log_level') else "INFO"
except ImportError:
    log_level = "INFO"

logger = setup_logging(log_level=log_level)


# ============================================
# Convenience Functions
# ============================================

def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger for a specific module.

    Args:
        name: Name for the logger (typically __name__)

    Returns:
        logging.Logger: Logger named "binance_client.<name>"
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def set_log_level(level: str) -> None:
    """Change the library and root log level at runtime"""
    logger.setLevel(_level(level))
    logging.getLogger().setLevel(_level(level))


# ============================================
# Log Helper Functions
# ============================================

def log_api_request(method: str, path: str, params: Sequence[Tuple[str, str]] = ()) -> None:
    """
    Log an outgoing API request.

    The signature parameter is dropped so logs cannot be used to replay
    a signed call.

    Example:
        >>> log_api_request("GET", "/api/v3/depth", [("symbol", "BTCUSDT")])
        [DEBUG] API Request: GET /api/v3/depth | Params: symbol=BTCUSDT
    """
    visible = [f"{name}={value}" for name, value in params if name != "signature"]
    if visible:
        logger.debug(f"API Request: {method} {path} | Params: {'&'.join(visible)}")
    else:
        logger.debug(f"API Request: {method} {path}")


def log_api_response(method: str, path: str, status: int, response_time: float = None) -> None:
    """
    Log an API response with status and timing information.

    Example:
        >>> log_api_response("GET", "/api/v3/depth", 200, 0.342)
        [DEBUG] API Response: GET /api/v3/depth | Status: 200 | Time: 0.342s
    """
    time_str = f" | Time: {response_time:.3f}s" if response_time else ""
    level = logging.DEBUG if 200 <= status < 300 else logging.WARNING
    logger.log(level, f"API Response: {method} {path} | Status: {status}{time_str}")


def log_websocket_event(stream: str, event: str, details: str = None) -> None:
    """
    Log a stream connection event.

    Args:
        stream: Stream name (listen keys should be shortened by the caller)
        event: Event type ("connected", "closed", "error", ...)
        details: Additional details (optional)

    Example:
        >>> log_websocket_event("btcusdt@aggTrade", "connected")
        [INFO] WebSocket: btcusdt@aggTrade connected
    """
    details_str = f" | {details}" if details else ""
    level = logging.ERROR if event == "error" else logging.INFO
    logger.log(level, f"WebSocket: {stream} {event}{details_str}")


logger.debug("Logging system initialized")
