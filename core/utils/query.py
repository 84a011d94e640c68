"""
Query String Encoding

The query string is produced once and never re-encoded afterwards: the
exact bytes that are signed are the bytes that go on the wire. Parameters
keep the caller's order and use RFC 3986 percent-encoding.
"""

from typing import Iterable, Tuple
from urllib.parse import quote, urlencode


def encode_query(params: Iterable[Tuple[str, str]]) -> str:
    """
    Encode ordered parameters into the canonical query string.

    Args:
        params: (name, value) pairs, in transmission order

    Returns:
        Query string without leading '?'

    Example:
        >>> encode_query([("symbol", "ETHBTC"), ("side", "BUY")])
        'symbol=ETHBTC&side=BUY'
    """
    return urlencode(list(params), quote_via=quote, safe="")
