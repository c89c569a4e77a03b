"""
Cycle scheduler: all feeds in parallel, then wait the interval, forever.

The wait only starts once every feed finished its cycle, so the slowest feed
sets the effective spacing between cycles.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import date
from typing import Callable, List, Optional, Sequence

from dwd_sync.archive.client import ArchiveClient
from dwd_sync.archive.index import RemoteFileIndex
from dwd_sync.archive.retrieval import RetrievalStage
from dwd_sync.config.feeds import get_feed
from dwd_sync.config.settings import Settings
from dwd_sync.db.store import RecordStore
from dwd_sync.models import StationMetadata
from dwd_sync.pipeline.orchestrator import CycleReport, FeedPipeline
from dwd_sync.utils.time_codec import utc_now

logger = logging.getLogger(__name__)


def build_pipelines(
    settings: Settings,
    stations: Sequence[StationMetadata],
    store: RecordStore,
    feed_ids: Optional[Sequence[str]] = None,
    client: Optional[ArchiveClient] = None,
) -> List[FeedPipeline]:
    """
    Create one pipeline per feed.

    Pipelines share the archive client settings and the store but open their
    own FTP connections and keep their own SyncState.

    Raises:
        ValueError: For an unknown feed id
    """
    client = client or ArchiveClient(
        host=settings.ftp_host,
        user=settings.ftp_user,
        password=settings.ftp_password,
        timeout=settings.ftp_timeout,
        connect_attempts=settings.ftp_connect_attempts,
    )
    index = RemoteFileIndex(client)
    retrieval = RetrievalStage(client)

    return [
        FeedPipeline(
            feed=get_feed(feed_id),
            stations=stations,
            index=index,
            retrieval=retrieval,
            store=store,
            data_dir=settings.data_path,
        )
        for feed_id in (feed_ids or settings.enabled_feeds)
    ]


class FeedScheduler:
    """Runs feed pipelines concurrently on a fixed interval."""

    def __init__(
        self,
        pipelines: Sequence[FeedPipeline],
        interval_seconds: int = 600,
        store: Optional[RecordStore] = None,
        retention_days: Optional[int] = None,
        today: Callable[[], date] = lambda: utc_now().date(),
    ):
        """
        Args:
            pipelines: One pipeline per enabled feed
            interval_seconds: Wait between the end of one cycle and the next
            store: Store used for the daily retention pass
            retention_days: Readings older than this are pruned once a day
                (None disables pruning)
            today: Current UTC date, replaced in tests
        """
        self.pipelines = list(pipelines)
        self.interval_seconds = interval_seconds
        self.store = store
        self.retention_days = retention_days
        self._today = today
        self._stop = threading.Event()
        self._last_prune: Optional[date] = None
        self.cycles = 0

    def stop(self) -> None:
        """Request shutdown; the current cycle is finished first."""
        self._stop.set()

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    def run_cycle(self) -> List[CycleReport]:
        """Run one cycle of every feed concurrently and wait for all of them."""
        reports: List[CycleReport] = []
        if not self.pipelines:
            return reports

        with ThreadPoolExecutor(max_workers=len(self.pipelines)) as executor:
            futures = {executor.submit(p.run_cycle): p for p in self.pipelines}
            for future in as_completed(futures):
                pipeline = futures[future]
                try:
                    reports.append(future.result())
                except Exception as e:
                    # run_cycle catches stage errors itself; only bugs end up here
                    logger.error(f"[{pipeline.feed_id}] Cycle crashed: {e}", exc_info=True)
                    reports.append(
                        CycleReport(
                            feed_id=pipeline.feed_id,
                            aborted_stage="cycle",
                            error=f"{type(e).__name__}: {e}",
                        )
                    )

        self.cycles += 1
        for report in sorted(reports, key=lambda r: r.feed_id):
            logger.info(report.summary())
        return reports

    def maybe_prune(self) -> int:
        """Run the retention pass once per UTC day. Returns readings removed."""
        if self.store is None or self.retention_days is None:
            return 0
        today = self._today()
        if self._last_prune == today:
            return 0

        removed = 0
        for pipeline in self.pipelines:
            try:
                removed += self.store.prune(pipeline.feed, self.retention_days)
            except Exception as e:
                logger.error(f"[{pipeline.feed_id}] Retention pass failed: {e}", exc_info=True)
        self._last_prune = today
        return removed

    def _wait(self, seconds: float) -> None:
        # Sleep in small increments to check the stop flag
        sleep_end = time.time() + seconds
        while time.time() < sleep_end and not self._stop.is_set():
            self._stop.wait(min(1.0, sleep_end - time.time()))

    def run_forever(self) -> None:
        """Run cycles until ``stop`` is called."""
        logger.info("=" * 60)
        logger.info("DWD Sync Scheduler Starting")
        logger.info(f"  Feeds: {', '.join(p.feed_id for p in self.pipelines)}")
        logger.info(f"  Interval: {self.interval_seconds}s")
        logger.info(f"  Retention: {self.retention_days or 'off'} days")
        logger.info("=" * 60)

        while not self._stop.is_set():
            self.run_cycle()
            self.maybe_prune()
            self._wait(self.interval_seconds)

        logger.info("=" * 60)
        logger.info("DWD Sync Scheduler Stopped")
        logger.info(f"  Total cycles: {self.cycles}")
        logger.info("=" * 60)
