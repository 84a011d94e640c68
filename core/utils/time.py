"""
Time Utilities

Signed Binance endpoints require a `timestamp` parameter in milliseconds
since epoch, and listen keys expire on a wall-clock TTL. These helpers keep
both in timezone-aware UTC.
"""

from datetime import datetime, timezone


def current_utc_timestamp() -> int:
    """
    Current time in milliseconds since epoch (Binance `timestamp` format).

    Returns:
        int: Milliseconds since epoch

    Example:
        >>> current_utc_timestamp()
        1704110400000
    """
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def utc_now() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)
