"""
Core Utilities Package

Modules:
    - query: Canonical query string encoding
    - time: Millisecond timestamps and UTC helpers
"""

from core.utils.query import encode_query
from core.utils.time import current_utc_timestamp, utc_now

__all__ = ["current_utc_timestamp", "encode_query", "utc_now"]
