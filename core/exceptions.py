"""
Exception Hierarchy

All errors raised by the client library derive from BinanceClientError so
callers can catch the whole family in one place.

Taxonomy:
    - ConfigurationError: invalid base URL, settings or credentials at construction
    - AuthenticationError: a required credential is missing (raised before any I/O)
    - SigningError: canonical query invariant violated (a defect, not recoverable)
    - TransportError: connection failure or timeout surfaced from the shared pool
    - ServerError: non-2xx response from the exchange
    - SessionStateError: illegal listen key state transition

Nothing here is retried automatically. Retry/backoff belongs to the caller.
"""

import json
from typing import Optional


class BinanceClientError(Exception):
    """Base class for all client library errors."""


class ConfigurationError(BinanceClientError):
    """Invalid base URL, settings value or malformed credentials."""


class AuthenticationError(BinanceClientError):
    """Endpoint requires a credential that was not supplied."""


class SigningError(BinanceClientError):
    """Signed payload and transmitted query string diverged."""


class TransportError(BinanceClientError):
    """Network level failure (connect, read, timeout)."""


class SessionStateError(BinanceClientError):
    """Listen key operation not allowed in the current state."""


class ServerError(BinanceClientError):
    """
    Non-2xx response from the exchange.

    The body is kept verbatim. When it follows Binance's error shape
    ({"code": -1121, "msg": "Invalid symbol."}) the code and message are
    exposed as attributes, otherwise they are None.

    Attributes:
        status: HTTP status code
        body: Raw response body
        code: Exchange error code, if present
        msg: Exchange error message, if present
    """

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        self.code: Optional[int] = None
        self.msg: Optional[str] = None

        try:
            payload = json.loads(body) if body else None
        except ValueError:
            payload = None

        if isinstance(payload, dict):
            code = payload.get("code")
            if isinstance(code, int):
                self.code = code
            msg = payload.get("msg")
            if isinstance(msg, str):
                self.msg = msg

        detail = self.msg if self.msg is not None else body[:200]
        super().__init__(f"HTTP {status}: {detail}")
