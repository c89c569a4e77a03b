"""Utility modules for the DWD sync pipeline."""

from dwd_sync.utils.retry import (
    FTP_TRANSIENT_ERRORS,
    create_retry_decorator,
)
from dwd_sync.utils.time_codec import (
    TimeFormat,
    convert,
    format_instant,
    parse_instant,
    utc_now,
)

__all__ = [
    "FTP_TRANSIENT_ERRORS",
    "create_retry_decorator",
    "TimeFormat",
    "convert",
    "format_instant",
    "parse_instant",
    "utc_now",
]
