"""
HMAC-SHA256 Request Signer

Binance SIGNED endpoints require a `signature` query parameter computed as
HMAC-SHA256 over the exact query string, keyed by the secret key, and sent
as lowercase hex.

The payload must be byte-identical to what goes on the wire, so the query
string is produced once by core.utils.query.encode_query() (re-exported
here) and never re-encoded afterwards.

API Documentation:
    https://binance-docs.github.io/apidocs/spot/en/#signed-trade-user_data-and-margin-endpoint-security
"""

import hashlib
import hmac
from typing import Union

from core.utils.query import encode_query

__all__ = ["encode_query", "sign"]


def sign(payload: Union[bytes, str], secret: Union[bytes, str]) -> str:
    """
    Compute the lowercase hex HMAC-SHA256 of payload keyed by secret.

    Args:
        payload: Canonical query string (str is UTF-8 encoded)
        secret: Secret key (str is UTF-8 encoded)

    Returns:
        64-character lowercase hex digest

    Example:
        >>> sign("symbol=LTCBTC&side=BUY", "secret")  # doctest: +SKIP
        '...'
    """
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    if isinstance(secret, str):
        secret = secret.encode("utf-8")

    return hmac.new(secret, payload, hashlib.sha256).hexdigest()
