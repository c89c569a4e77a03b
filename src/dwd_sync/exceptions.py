"""
Exceptions raised by the ingestion pipeline.

Stage-level errors are caught at the feed orchestration boundary and logged;
none of them ever reach the scheduler.
"""


class SyncError(Exception):
    """Base exception for pipeline errors."""

    pass


class FormatError(SyncError):
    """Malformed fixed-width line or forecast document. The row is dropped."""

    pass


class TimeFormatError(SyncError):
    """Unparseable timestamp. The reading is dropped."""

    pass


class TransportError(SyncError):
    """Archive or database connection failure. The feed cycle is aborted."""

    pass


class WriteConflictError(SyncError):
    """The store rejected a write for a single record. Not retried this cycle."""

    pass
