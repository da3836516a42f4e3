"""
Timestamp serialization for stored rows.

Rows are written with naive UTC timestamps formatted as
``YYYY-MM-DD HH:MM:SS``. Older rows and other writers use a handful of
other layouts, so reads go through an ordered chain of parsers and take the
first one that succeeds.

Accepted layouts, in order:
    - ``2025-01-26 12:00:00``
    - ``2025-01-26T12:00:00Z``
    - ``2025-01-26T12:00:00``
    - ``2025-01-26 12:00:00.123456``
    - ``2025-01-26 12:00:00.123456789-07:00`` / ``2025-01-26 12:00:00-07:00``
    - RFC3339 (``2025-01-26T12:00:00+02:00``)
    - RFC3339 with nanoseconds (``2025-01-26T12:00:00.123456789Z``)

Zone-less values are taken as UTC. Zoned values are converted to UTC and
returned naive.

Example:
    >>> parse_timestamp("2025-01-26T14:00:00+02:00")
    datetime.datetime(2025, 1, 26, 12, 0)
    >>> format_timestamp(datetime(2025, 1, 26, 12, 0, 5, 999))
    '2025-01-26 12:00:05'
"""

import re
from datetime import datetime, timezone
from typing import Callable, Sequence, Union

STORAGE_FORMAT = "%Y-%m-%d %H:%M:%S"

# strptime's %f stops at microseconds
_EXCESS_FRACTION = re.compile(r"(\.\d{6})\d+")


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _strptime(layout: str) -> Callable[[str], datetime]:
    def parse(value: str) -> datetime:
        return datetime.strptime(value, layout)

    return parse


def _parse_nano(value: str) -> datetime:
    truncated = _EXCESS_FRACTION.sub(r"\1", value)
    for layout in ("%Y-%m-%dT%H:%M:%S.%f%z", "%Y-%m-%d %H:%M:%S.%f%z"):
        try:
            return datetime.strptime(truncated, layout)
        except ValueError:
            continue
    raise ValueError(f"not an RFC3339 nanosecond timestamp: {value!r}")


_PARSERS: Sequence[Callable[[str], datetime]] = (
    _strptime(STORAGE_FORMAT),
    _strptime("%Y-%m-%dT%H:%M:%SZ"),
    _strptime("%Y-%m-%dT%H:%M:%S"),
    _strptime("%Y-%m-%d %H:%M:%S.%f"),
    _parse_nano,
    _strptime("%Y-%m-%d %H:%M:%S%z"),
    _strptime("%Y-%m-%dT%H:%M:%S%z"),
)


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """
    Parse a stored timestamp into a naive UTC datetime.

    Args:
        value: Stored string, or a datetime (returned normalized).

    Returns:
        datetime: Naive UTC datetime.

    Raises:
        ValueError: If no parser in the chain accepts the value.
    """
    if isinstance(value, datetime):
        return _to_naive_utc(value)

    text = value.strip()
    for parser in _PARSERS:
        try:
            return _to_naive_utc(parser(text))
        except ValueError:
            continue

    raise ValueError(f"Unrecognized timestamp format: {value!r}")


def format_timestamp(value: datetime) -> str:
    """Format a datetime in the storage layout (naive UTC, second precision)."""
    return _to_naive_utc(value).strftime(STORAGE_FORMAT)
