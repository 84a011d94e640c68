"""
Client Data Schemas

This module defines the Pydantic models that flow through the request
pipeline. Endpoint payloads (orders, balances, candlesticks) are not
modelled here: responses are handed back as decoded JSON.

Models:
    - ApiCredentials: API key / secret key pair bound to one client
    - Classification: Required trust level of an endpoint call
    - ApiRequest: Request descriptor (method, path, ordered params, tag)
    - ApiResponse: Raw response (status, body, headers)

Every model is frozen. Transformations return new instances via
model_copy(), so a request that was signed can never be mutated afterwards.
"""

from enum import IntEnum
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from core.utils.query import encode_query


# ============================================
# Credentials
# ============================================

class ApiCredentials(BaseModel):
    """
    API key / secret key pair.

    Both values are held as SecretStr so they are masked in repr(), str()
    and model dumps. Empty values are valid and produce a public-only client.

    Example:
        >>> creds = ApiCredentials(api_key="abc", secret_key="xyz")
        >>> creds
        ApiCredentials(api_key=SecretStr('**********'), secret_key=SecretStr('**********'))
    """

    model_config = ConfigDict(frozen=True, hide_input_in_errors=True)

    api_key: SecretStr = Field(default=SecretStr(""), description="Binance API key")
    secret_key: SecretStr = Field(default=SecretStr(""), description="Binance secret key")

    @field_validator("api_key", "secret_key")
    @classmethod
    def no_whitespace(cls, v: SecretStr) -> SecretStr:
        """Reject keys containing whitespace or control characters"""
        value = v.get_secret_value()
        if any(ch.isspace() or not ch.isprintable() for ch in value):
            raise ValueError("credential must not contain whitespace or control characters")
        return v

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key.get_secret_value())

    @property
    def has_secret_key(self) -> bool:
        return bool(self.secret_key.get_secret_value())

    @classmethod
    def from_settings(cls, config=None) -> "ApiCredentials":
        """Build credentials from BINANCE_API_KEY / BINANCE_SECRET_KEY settings"""
        if config is None:
            from core.config import settings as config
        return cls(api_key=config.binance_api_key, secret_key=config.binance_secret_key)


# ============================================
# Request Descriptor
# ============================================

class Classification(IntEnum):
    """
    Required trust level of an endpoint call.

    The ordering is meaningful: SIGNED implies the API key requirement
    of API_KEY_ONLY.
    """

    PUBLIC = 0
    API_KEY_ONLY = 1
    SIGNED = 2


class ApiRequest(BaseModel):
    """
    Outgoing request descriptor.

    Attributes:
        method: HTTP method (GET, POST, PUT, DELETE)
        path: Endpoint path (e.g., "/api/v3/order")
        params: Ordered (name, value) query parameters. Order is part of
                the signed payload and is transmitted as-is.
        headers: Real HTTP headers to transmit
        body: Optional request body
        classification: Out-of-band trust tag, stripped before transmission
        signed: Set by the pre-processor once a SIGNED request is processed
    """

    model_config = ConfigDict(frozen=True)

    method: str
    path: str
    params: Tuple[Tuple[str, str], ...] = ()
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[str] = None
    classification: Optional[Classification] = None
    signed: bool = False

    @field_validator("method")
    @classmethod
    def uppercase_method(cls, v: str) -> str:
        return v.upper()

    @field_validator("path")
    @classmethod
    def leading_slash(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"path must start with '/': {v!r}")
        return v

    @property
    def query_string(self) -> str:
        """Canonical encoded query string used for signing and transmission"""
        return encode_query(self.params)

    def param(self, name: str) -> Optional[str]:
        """Return the first value for a parameter name, or None"""
        for key, value in self.params:
            if key == name:
                return value
        return None


class ApiResponse(BaseModel):
    """Raw HTTP response returned by the connection pool"""

    model_config = ConfigDict(frozen=True)

    status: int
    body: str = ""
    headers: Dict[str, str] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300
