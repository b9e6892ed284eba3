"""Timestamps - UTC clock and epoch-millisecond conversion.

Invariants:
    - Every domain timestamp is timezone-aware UTC
    - External representation is integer epoch milliseconds
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_epoch_millis(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return round(moment.timestamp() * 1000)


def from_epoch_millis(millis: int | float) -> datetime:
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)


def epoch_seconds_label(moment: datetime) -> str:
    """Compact fractional-seconds label used inside generated ids."""
    return f"{moment.timestamp():.6f}"
