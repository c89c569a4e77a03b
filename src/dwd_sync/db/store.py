"""
Record store: writes FeedRecords into station entities.

Every record is an independent unit of failure: it is loaded, given a settling
delay, has its feed fields replaced and is committed in its own session. A
rejected write is reported for that record only and not retried this cycle.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Type

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from dwd_sync.config.feeds import FeedDescriptor
from dwd_sync.config.settings import get_settings
from dwd_sync.db.connection import get_session_factory
from dwd_sync.db.models import Base, Forecast, Measurement, Series, Station, entity_for
from dwd_sync.exceptions import TransportError, WriteConflictError
from dwd_sync.models import FeedRecord, StationMetadata
from dwd_sync.utils.time_codec import TimeFormat, format_instant, utc_now

logger = logging.getLogger(__name__)


@dataclass
class UpsertSummary:
    """Outcome of one upsert batch."""

    upserted: int = 0
    failed: List[str] = field(default_factory=list)  # WriteConflictError
    missing: List[str] = field(default_factory=list)  # No entity for the key


class RecordStore:
    """UpsertStage over the station tables."""

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        settle_delay: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            session_factory: Session factory (default: the global one)
            settle_delay: Seconds between load and commit of one record
                (default: settings.settle_delay_seconds)
            sleep: Sleep function, replaced in tests
        """
        self.session_factory = session_factory or get_session_factory()
        self.settle_delay = (
            settle_delay if settle_delay is not None else get_settings().settle_delay_seconds
        )
        self._sleep = sleep

    def check_connection(self) -> None:
        """
        Probe the database.

        Raises:
            TransportError: If the database cannot be reached
        """
        try:
            with self.session_factory() as session:
                session.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise TransportError(f"Database unreachable: {e}") from e

    # =========================================================================
    # Entity access
    # =========================================================================

    def create_station_entities(self, stations: Iterable[StationMetadata]) -> int:
        """
        Create Station, Measurement and Forecast rows for new stations.

        Existing rows are left untouched.

        Returns:
            Number of stations created
        """
        created = 0
        with self.session_factory() as session:
            for station in stations:
                if session.get(Station, station.station_code) is None:
                    session.add(
                        Station(
                            station_code=station.station_code,
                            forecast_code=station.forecast_key,
                            name=station.name,
                            latitude=station.latitude,
                            longitude=station.longitude,
                        )
                    )
                    created += 1
                if session.get(Measurement, station.station_code) is None:
                    session.add(Measurement(station_code=station.station_code))
                if session.get(Forecast, station.forecast_key) is None:
                    session.add(Forecast(forecast_code=station.forecast_key))
                # Stations may share a forecast code
                session.flush()
            session.commit()

        logger.info(f"Created {created} station entities")
        return created

    def load(self, entity: Type[Base], key: str) -> Optional[Base]:
        """Load one entity by primary key, detached from its session."""
        with self.session_factory(expire_on_commit=False) as session:
            return session.get(entity, key)

    def find_by(self, entity: Type[Base], **criteria: Any) -> List[Base]:
        """Entities whose columns equal all given values."""
        stmt = select(entity).filter_by(**criteria)
        with self.session_factory(expire_on_commit=False) as session:
            return list(session.scalars(stmt).all())

    def replace_fields(self, entity: Type[Base], key: str, fields: Dict[str, Series]) -> bool:
        """
        Replace series fields of one entity and commit.

        Returns:
            False if no entity exists for the key

        Raises:
            WriteConflictError: If loading or committing fails
        """
        session = self.session_factory()
        try:
            obj = session.get(entity, key)
            if obj is None:
                return False
            self._sleep(self.settle_delay)
            for name, values in fields.items():
                setattr(obj, name, values)
            session.commit()
            return True
        except SQLAlchemyError as e:
            session.rollback()
            raise WriteConflictError(f"{entity.__tablename__}/{key}: {e}") from e
        finally:
            session.close()

    # =========================================================================
    # Feed operations
    # =========================================================================

    def upsert(self, feed: FeedDescriptor, records: Sequence[FeedRecord]) -> UpsertSummary:
        """
        Write a feed's records, one independent commit per station.

        Raises:
            TransportError: If the database is unreachable before the batch
        """
        self.check_connection()
        entity = entity_for(feed)
        summary = UpsertSummary()

        for record in records:
            fields = {
                name: [reading.as_dict() for reading in record.series.get(name, [])]
                for name in feed.fields
            }
            try:
                written = self.replace_fields(entity, record.station_key, fields)
            except WriteConflictError as e:
                summary.failed.append(record.station_key)
                logger.error(f"[{feed.feed_id}] Write rejected: {e}")
                continue

            if written:
                summary.upserted += 1
            else:
                summary.missing.append(record.station_key)
                logger.warning(
                    f"[{feed.feed_id}] No {entity.__tablename__} entity for {record.station_key}, skipped"
                )

        logger.info(
            f"[{feed.feed_id}] Upserted {summary.upserted}/{len(records)} records"
            f" ({len(summary.failed)} failed, {len(summary.missing)} missing)"
        )
        return summary

    def prune(self, feed: FeedDescriptor, keep_days: int, now: Optional[datetime] = None) -> int:
        """
        Drop readings older than ``keep_days`` from every field of a feed.

        Each station is committed on its own; a failing station is logged
        and the rest continue.

        Returns:
            Number of readings removed
        """
        cutoff = format_instant((now or utc_now()) - timedelta(days=keep_days), TimeFormat.EPOCH)
        entity = entity_for(feed)
        key_column = entity.__mapper__.primary_key[0].key
        removed = 0

        with self.session_factory() as session:
            keys = list(session.scalars(select(entity.__mapper__.primary_key[0])).all())

        for key in keys:
            session = self.session_factory()
            try:
                obj = session.get(entity, key)
                if obj is None:
                    continue
                station_removed = 0
                for name in feed.fields:
                    series = getattr(obj, name) or []
                    kept = [r for r in series if r.get("date", 0) >= cutoff]
                    if len(kept) != len(series):
                        station_removed += len(series) - len(kept)
                        setattr(obj, name, kept)
                if station_removed:
                    session.commit()
                    removed += station_removed
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"[{feed.feed_id}] Prune failed for {key_column}={key}: {e}")
            finally:
                session.close()

        logger.info(f"[{feed.feed_id}] Pruned {removed} readings older than {keep_days} days")
        return removed
