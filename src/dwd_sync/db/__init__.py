"""Database layer: engine and sessions, ORM entities, record store."""

from dwd_sync.db.connection import (
    close_engine,
    get_db_session,
    get_engine,
    get_session_factory,
    init_schema,
    test_connection,
)
from dwd_sync.db.models import Base, Forecast, Measurement, Station, entity_for
from dwd_sync.db.store import RecordStore, UpsertSummary

__all__ = [
    "close_engine",
    "get_db_session",
    "get_engine",
    "get_session_factory",
    "init_schema",
    "test_connection",
    "Base",
    "Forecast",
    "Measurement",
    "Station",
    "entity_for",
    "RecordStore",
    "UpsertSummary",
]
