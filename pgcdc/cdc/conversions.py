"""
Conversions between Postgres wire values and Python types

- Commit timestamps travel as microseconds since the Unix epoch
- LSNs are 64-bit integers, rendered by Postgres as two hex halves ("16/B374D848")
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_UINT32_MASK = 0xFFFFFFFF


def to_epoch_micros(value: Optional[datetime]) -> Optional[int]:
    """
    Convert a datetime to microseconds since the Unix epoch

    Naive datetimes are taken as UTC.

    Args:
        value: Instant to convert; None passes through

    Returns:
        Microseconds since epoch, or None
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - EPOCH) // timedelta(microseconds=1)


def from_epoch_micros(micros: Optional[int]) -> Optional[datetime]:
    """
    Convert microseconds since the Unix epoch to an aware UTC datetime

    Args:
        micros: Microseconds since epoch; None passes through

    Returns:
        UTC datetime, or None
    """
    if micros is None:
        return None
    return EPOCH + timedelta(microseconds=micros)


def format_lsn(lsn: int) -> str:
    """Render an LSN the way Postgres does, e.g. 0/16B3748"""
    return f"{(lsn >> 32) & _UINT32_MASK:X}/{lsn & _UINT32_MASK:X}"


def parse_lsn(text: str) -> int:
    """
    Parse Postgres LSN text ("16/B374D848") into its integer value

    Raises:
        ValueError: If text is not in the XXX/XXX hex form
    """
    high, sep, low = text.strip().partition("/")
    if not sep or not high or not low:
        raise ValueError(f"Invalid LSN: {text!r}")

    try:
        high_value = int(high, 16)
        low_value = int(low, 16)
    except ValueError as e:
        raise ValueError(f"Invalid LSN: {text!r}") from e

    if high_value > _UINT32_MASK or low_value > _UINT32_MASK or high_value < 0 or low_value < 0:
        raise ValueError(f"LSN out of range: {text!r}")

    return (high_value << 32) | low_value
