"""
Rows -> FeedRecords.

Groups parsed rows by station and turns each row quantity into a Reading on
the feed's store field, e.g. for the wind feed

    WindRow('01048', '202101090330', speed=3.4, direction=240.0)

becomes ``ff_10: [{date: 1610163000000, value: 3.4}]`` and
``dd_10: [{date: 1610163000000, value: 240.0}]`` on the record of station
01048. Row order is kept; nothing is sorted or deduplicated.
"""

import logging
from typing import Dict, Iterable, List, Optional, Set, Union

from dwd_sync.config.feeds import FeedDescriptor, get_feed
from dwd_sync.exceptions import TimeFormatError
from dwd_sync.models import FeedRecord, MeasurementRow, Reading, normalize_forecast_code
from dwd_sync.utils.time_codec import TimeFormat, convert

logger = logging.getLogger(__name__)


class TransformStage:
    """Builds one FeedRecord per station from parsed rows."""

    def __init__(self, known_keys: Optional[Iterable[str]] = None):
        """
        Args:
            known_keys: Store keys of configured stations. Rows of any other
                station are dropped. None accepts every station.
        """
        self.known_keys: Optional[Set[str]] = set(known_keys) if known_keys is not None else None

    def _station_key(self, row: MeasurementRow, feed: FeedDescriptor) -> str:
        if feed.is_forecast:
            return normalize_forecast_code(row.station_id)
        return row.station_id

    def transform(
        self,
        rows: Iterable[MeasurementRow],
        feed: Union[FeedDescriptor, str],
    ) -> List[FeedRecord]:
        """
        Group rows into records.

        Args:
            rows: Parsed rows of one feed, in file order
            feed: Feed descriptor or feed id

        Returns:
            Records in order of first appearance of their station. Every
            record carries all of the feed's fields; a field without readings
            is an empty list.
        """
        if isinstance(feed, str):
            feed = get_feed(feed)

        records: Dict[str, FeedRecord] = {}
        unknown: Set[str] = set()
        bad_times = 0

        for row in rows:
            key = self._station_key(row, feed)
            if self.known_keys is not None and key not in self.known_keys:
                if key not in unknown:
                    logger.warning(f"[{feed.feed_id}] Dropping rows of unknown station {key}")
                    unknown.add(key)
                continue

            try:
                timestamp_ms = convert(row.timestamp, feed.time_format, TimeFormat.EPOCH)
            except TimeFormatError as e:
                bad_times += 1
                logger.warning(f"[{feed.feed_id}] Dropping row of station {key}: {e}")
                continue

            record = records.get(key)
            if record is None:
                record = FeedRecord(
                    feed_id=feed.feed_id,
                    station_key=key,
                    series={field: [] for field in feed.fields},
                )
                records[key] = record

            quantities = row.quantities()
            for field, quantity in feed.series:
                if quantity in quantities:
                    record.series[field].append(Reading(timestamp_ms, quantities[quantity]))

        result = list(records.values())
        logger.info(
            f"[{feed.feed_id}] Transformed {sum(r.reading_count for r in result)} readings "
            f"into {len(result)} records"
            + (f" ({bad_times} rows with bad timestamps dropped)" if bad_times else "")
        )
        return result
