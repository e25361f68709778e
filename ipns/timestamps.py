"""
RFC3339 timestamps with nanosecond precision.

Record deadlines are carried as RFC3339 strings such as
``2026-10-19T12:00:00.123456789Z``. Python's datetime stops at microseconds,
so deadlines are handled as integer nanoseconds since the Unix epoch.
"""

import re
import time
from datetime import datetime, timedelta, timezone
from typing import Union

from .errors import StructuralDecodeError

NS_PER_SECOND = 1_000_000_000
NS_PER_MILLISECOND = 1_000_000

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

RFC3339_PATTERN = re.compile(
    r'^(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})'
    r'(?:\.(\d{1,9}))?'
    r'(?:([Zz])|([+-])(\d{2}):(\d{2}))$'
)


def now_ns() -> int:
    """Current time as nanoseconds since the epoch."""
    return time.time_ns()


def parse_rfc3339_ns(value: Union[str, bytes]) -> int:
    """
    Parse an RFC3339 timestamp into nanoseconds since the epoch.

    Fractional seconds of up to nine digits are kept exactly; numeric UTC
    offsets are normalized away.

    Raises:
        StructuralDecodeError: if the value is not a valid RFC3339 timestamp
    """
    if isinstance(value, (bytes, bytearray)):
        try:
            value = bytes(value).decode('ascii')
        except UnicodeDecodeError as err:
            raise StructuralDecodeError("validity is not an ASCII timestamp") from err

    match = RFC3339_PATTERN.match(value)
    if not match:
        raise StructuralDecodeError(f"invalid RFC3339 timestamp: {value!r}")

    year, month, day, hour, minute, second = (int(g) for g in match.group(1, 2, 3, 4, 5, 6))
    fraction = match.group(7) or ""
    try:
        dt = datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)
    except ValueError as err:
        raise StructuralDecodeError(f"invalid RFC3339 timestamp: {value!r}") from err

    seconds = (dt - EPOCH) // timedelta(seconds=1)
    if match.group(9):
        offset = int(match.group(10)) * 3600 + int(match.group(11)) * 60
        if match.group(9) == '+':
            seconds -= offset
        else:
            seconds += offset

    nanos = int(fraction.ljust(9, '0')) if fraction else 0
    return seconds * NS_PER_SECOND + nanos


def format_rfc3339_ns(ns: int) -> str:
    """Format nanoseconds since the epoch as UTC RFC3339 with nine fractional digits."""
    seconds, nanos = divmod(ns, NS_PER_SECOND)
    dt = EPOCH + timedelta(seconds=seconds)
    return dt.strftime('%Y-%m-%dT%H:%M:%S') + f".{nanos:09d}Z"


def datetime_to_ns(dt: datetime) -> int:
    """Convert an aware datetime to nanoseconds since the epoch."""
    if dt.tzinfo is None:
        raise ValueError("datetime must be timezone-aware")
    delta = dt - EPOCH
    return (delta.days * 86400 + delta.seconds) * NS_PER_SECOND + delta.microseconds * 1000


def ns_to_datetime(ns: int) -> datetime:
    """Convert nanoseconds since the epoch to a UTC datetime (microsecond precision)."""
    return EPOCH + timedelta(microseconds=ns // 1000)
