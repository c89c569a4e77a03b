"""
Conversion between the four timestamp representations seen in the pipeline.

Formats:
- compact: DWD measurement files, ``YYYYMMDDhhmm`` in UTC (``202101090330``)
- iso:     MOSMIX time steps, ISO-8601 with milliseconds (``2021-01-09T22:00:00.000Z``)
- listing: FTP directory listing date, ``Mon DD hh:mm`` without a year (``Jan 09 23:10``)
- epoch:   integer milliseconds since 1970-01-01T00:00:00Z

Every conversion goes value -> UTC instant -> value. The listing format carries
no year, so the current UTC year is assumed. Around New Year this picks the
wrong year for listings from the previous December; that is a known limitation.
"""

import re
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Union

from dwd_sync.exceptions import TimeFormatError

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Fixed table, strftime("%b") depends on the process locale
MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
          "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

_COMPACT_RE = re.compile(r"^\d{12}$")
_LISTING_RE = re.compile(r"^([A-Z][a-z]{2})\s+(\d{1,2})\s+(\d{1,2}):(\d{2})$")

TimeValue = Union[str, int]


class TimeFormat(str, Enum):
    """Wire representations understood by :func:`convert`."""

    COMPACT = "compact"
    ISO = "iso"
    LISTING = "listing"
    EPOCH = "epoch"


def utc_now() -> datetime:
    """Return an explicit UTC timestamp."""

    return datetime.now(timezone.utc)


def _coerce_format(fmt: Union[str, TimeFormat]) -> TimeFormat:
    try:
        return TimeFormat(fmt)
    except ValueError as exc:
        raise ValueError(
            f"Unknown time format '{fmt}'. Known: {[f.value for f in TimeFormat]}"
        ) from exc


def parse_instant(
    value: TimeValue,
    fmt: Union[str, TimeFormat],
    now: Optional[datetime] = None,
) -> datetime:
    """
    Parse a wire value into a timezone-aware UTC datetime.

    Args:
        value: Timestamp in the given format
        fmt: Source format
        now: Reference time for the listing format's implied year (default: now)

    Returns:
        Aware datetime in UTC

    Raises:
        TimeFormatError: If the value does not match the format
    """
    fmt = _coerce_format(fmt)

    try:
        if fmt is TimeFormat.EPOCH:
            if isinstance(value, bool):
                raise TypeError("bool is not an epoch value")
            millis = int(value)
            return EPOCH + timedelta(milliseconds=millis)

        if not isinstance(value, str):
            raise TypeError(f"expected str, got {type(value).__name__}")
        text = value.strip()

        if fmt is TimeFormat.COMPACT:
            if not _COMPACT_RE.match(text):
                raise ValueError("expected 12 digits YYYYMMDDhhmm")
            return datetime.strptime(text, "%Y%m%d%H%M").replace(tzinfo=timezone.utc)

        if fmt is TimeFormat.ISO:
            dt = datetime.fromisoformat(re.sub(r"Z$", "+00:00", text))
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            return dt.astimezone(timezone.utc)

        # TimeFormat.LISTING
        match = _LISTING_RE.match(text)
        if not match or match.group(1) not in MONTHS:
            raise ValueError("expected 'Mon DD hh:mm'")
        year = (now or utc_now()).astimezone(timezone.utc).year
        month = MONTHS.index(match.group(1)) + 1
        return datetime(
            year, month, int(match.group(2)),
            int(match.group(3)), int(match.group(4)),
            tzinfo=timezone.utc,
        )

    except (ValueError, TypeError, OverflowError) as e:
        raise TimeFormatError(f"Cannot parse {value!r} as {fmt.value}: {e}") from e


def format_instant(dt: datetime, fmt: Union[str, TimeFormat]) -> TimeValue:
    """Format an aware datetime into the given wire format (naive means UTC)."""
    fmt = _coerce_format(fmt)

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)

    if fmt is TimeFormat.EPOCH:
        return (dt - EPOCH) // timedelta(milliseconds=1)
    if fmt is TimeFormat.COMPACT:
        return dt.strftime("%Y%m%d%H%M")
    if fmt is TimeFormat.ISO:
        return dt.strftime("%Y-%m-%dT%H:%M:%S") + f".{dt.microsecond // 1000:03d}Z"
    return f"{MONTHS[dt.month - 1]} {dt.day:02d} {dt.hour:02d}:{dt.minute:02d}"


def convert(
    value: TimeValue,
    from_format: Union[str, TimeFormat],
    to_format: Union[str, TimeFormat],
    now: Optional[datetime] = None,
) -> TimeValue:
    """
    Convert a timestamp between two wire formats.

    Example:
        >>> convert("202101090330", "compact", "epoch")
        1610163000000

    Raises:
        TimeFormatError: If the value cannot be parsed in ``from_format``
    """
    return format_instant(parse_instant(value, from_format, now=now), to_format)
