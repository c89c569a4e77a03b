"""
One feed, one cycle.

    index -> diff -> fetch -> decompress -> parse -> transform -> upsert
          -> commit SyncState -> purge

Every stage runs through ``run_stage``, which turns exceptions into a failed
StageResult. The first failed stage aborts the cycle; SyncState is only
committed once the upsert stage finished, so an aborted cycle is retried in
full on the next one. Changed files that could not be downloaded or
unpacked keep their old SyncState timestamp and are fetched again next cycle.
Nothing raised inside a cycle escapes ``run_cycle``.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, Union

from dwd_sync.archive.index import RemoteFileIndex
from dwd_sync.archive.retrieval import RetrievalStage
from dwd_sync.config.feeds import FeedDescriptor
from dwd_sync.db.store import RecordStore
from dwd_sync.exceptions import FormatError
from dwd_sync.models import MeasurementRow, StationMetadata
from dwd_sync.parsers.fixed_width import FixedWidthParser
from dwd_sync.parsers.forecast_xml import ForecastXmlParser
from dwd_sync.pipeline.sync_state import FeedSyncEngine
from dwd_sync.pipeline.transform import TransformStage

logger = logging.getLogger(__name__)


@dataclass
class StageResult:
    """Outcome of one pipeline stage."""

    name: str
    ok: bool
    value: Any = None
    error: Optional[BaseException] = None


@dataclass
class CycleReport:
    """Summary of one feed cycle."""

    feed_id: str
    changed: int = 0
    downloaded: int = 0
    parsed_rows: int = 0
    records: int = 0
    upserted: int = 0
    failed_records: List[str] = field(default_factory=list)
    missing_records: List[str] = field(default_factory=list)
    failed_files: List[str] = field(default_factory=list)
    aborted_stage: Optional[str] = None
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.aborted_stage is None

    def summary(self) -> str:
        if not self.ok:
            return f"[{self.feed_id}] ABORTED at {self.aborted_stage}: {self.error}"
        return (
            f"[{self.feed_id}] changed={self.changed} downloaded={self.downloaded} "
            f"rows={self.parsed_rows} records={self.records} upserted={self.upserted} "
            f"failed={len(self.failed_records)} missing={len(self.missing_records)} "
            f"retry_files={len(self.failed_files)} ({self.duration_seconds:.1f}s)"
        )


def run_stage(name: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> StageResult:
    """Run one stage, converting any exception into a failed result."""
    try:
        return StageResult(name=name, ok=True, value=func(*args, **kwargs))
    except Exception as e:
        logger.error(f"Stage {name} failed: {e}", exc_info=True)
        return StageResult(name=name, ok=False, error=e)


class FeedPipeline:
    """Runs the cycles of one feed and owns its SyncState."""

    def __init__(
        self,
        feed: FeedDescriptor,
        stations: Sequence[StationMetadata],
        index: RemoteFileIndex,
        retrieval: RetrievalStage,
        store: RecordStore,
        data_dir: Union[str, Path],
        fixed_parser: Optional[FixedWidthParser] = None,
        xml_parser: Optional[ForecastXmlParser] = None,
    ):
        self.feed = feed
        self.stations = list(stations)
        self.index = index
        self.retrieval = retrieval
        self.store = store
        self.work_dir = Path(data_dir) / feed.local_dir
        self.fixed_parser = fixed_parser or FixedWidthParser()
        self.xml_parser = xml_parser or ForecastXmlParser()

        self.filenames = feed.filenames(self.stations)
        self.sync_engine = FeedSyncEngine(feed.feed_id, self.filenames)
        self.transformer = TransformStage(
            known_keys=[feed.station_key(s) for s in self.stations]
        )

    @property
    def feed_id(self) -> str:
        return self.feed.feed_id

    def parse(self, documents: Sequence[Path]) -> List[MeasurementRow]:
        """
        Parse extracted documents of this feed.

        A document that fails as a whole is logged and skipped; the rest of
        the batch continues.
        """
        rows: List[MeasurementRow] = []
        parsed = 0
        for path in sorted(p for p in documents if self.feed.is_document(p)):
            try:
                if self.feed.record_kind is None:
                    rows.extend(self.xml_parser.parse_file(path))
                else:
                    rows.extend(
                        self.fixed_parser.parse_file(
                            path, self.feed.record_kind, skip_lines=self.feed.skip_lines
                        )
                    )
                parsed += 1
            except FormatError as e:
                logger.warning(f"[{self.feed_id}] Skipping {path.name}: {e}")

        logger.info(f"[{self.feed_id}] Parsed {len(rows)} rows from {parsed} documents")
        return rows

    def _unprocessed(
        self, changed: Sequence[str], downloaded: Sequence[Path], corrupt: Sequence[Path]
    ) -> List[str]:
        """Changed remote names whose download or archive yielded nothing."""
        usable = {p.name for p in downloaded} - {p.name for p in corrupt}
        return [
            name
            for index, name in enumerate(changed)
            if self.feed.local_name(name, index) not in usable
        ]

    def _abort(self, report: CycleReport, stage: StageResult, started: float) -> CycleReport:
        report.aborted_stage = stage.name
        report.error = f"{type(stage.error).__name__}: {stage.error}"
        report.duration_seconds = time.time() - started
        logger.error(report.summary())
        return report

    def run_cycle(self) -> CycleReport:
        """Run one full cycle. Never raises."""
        started = time.time()
        report = CycleReport(feed_id=self.feed_id)
        self.sync_engine.ensure_initialized()

        stage = run_stage("index", self.index.last_modified, self.feed.base_path, self.filenames)
        if not stage.ok:
            return self._abort(report, stage, started)
        remote = stage.value

        changed = self.sync_engine.diff(remote)
        report.changed = len(changed)
        logger.info(f"[{self.feed_id}] {len(changed)}/{len(self.filenames)} files changed")
        if not changed:
            self.sync_engine.commit(remote)
            report.duration_seconds = time.time() - started
            return report

        stage = run_stage(
            "fetch",
            self.retrieval.fetch,
            self.feed.base_path,
            changed,
            self.work_dir,
            local_name=self.feed.local_name,
        )
        if not stage.ok:
            return self._abort(report, stage, started)
        downloaded = stage.value
        report.downloaded = len(downloaded)

        corrupt: List[Path] = []
        stage = run_stage(
            "decompress", self.retrieval.decompress, self.work_dir, archives=downloaded, failed=corrupt
        )
        if not stage.ok:
            return self._abort(report, stage, started)
        report.failed_files = self._unprocessed(changed, downloaded, corrupt)

        stage = run_stage("parse", self.parse, stage.value)
        if not stage.ok:
            return self._abort(report, stage, started)
        rows = stage.value
        report.parsed_rows = len(rows)

        stage = run_stage("transform", self.transformer.transform, rows, self.feed)
        if not stage.ok:
            return self._abort(report, stage, started)
        records = stage.value
        report.records = len(records)

        stage = run_stage("upsert", self.store.upsert, self.feed, records)
        if not stage.ok:
            return self._abort(report, stage, started)
        report.upserted = stage.value.upserted
        report.failed_records = list(stage.value.failed)
        report.missing_records = list(stage.value.missing)

        self.sync_engine.commit(remote, keep=report.failed_files)

        stage = run_stage("purge", self.retrieval.purge, self.work_dir)
        if not stage.ok:
            return self._abort(report, stage, started)

        report.duration_seconds = time.time() - started
        logger.info(report.summary())
        return report
