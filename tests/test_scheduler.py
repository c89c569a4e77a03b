"""Tests for the cycle scheduler."""

import threading
from datetime import date
from unittest.mock import MagicMock

import pytest

from dwd_sync.config.settings import Settings
from dwd_sync.pipeline.orchestrator import CycleReport
from dwd_sync.pipeline.scheduler import FeedScheduler, build_pipelines


def fake_pipeline(feed_id, report=None, error=None):
    pipeline = MagicMock()
    pipeline.feed_id = feed_id
    pipeline.feed.feed_id = feed_id
    if error is not None:
        pipeline.run_cycle.side_effect = error
    else:
        pipeline.run_cycle.return_value = report or CycleReport(feed_id=feed_id)
    return pipeline


class TestRunCycle:
    """Test one scheduler cycle."""

    def test_all_feeds_run(self):
        pipelines = [fake_pipeline(f) for f in ("precip_1min", "wind_10min", "mosmix")]
        scheduler = FeedScheduler(pipelines)

        reports = scheduler.run_cycle()

        assert sorted(r.feed_id for r in reports) == ["mosmix", "precip_1min", "wind_10min"]
        assert all(p.run_cycle.call_count == 1 for p in pipelines)
        assert scheduler.cycles == 1

    def test_feeds_run_concurrently(self):
        barrier = threading.Barrier(2, timeout=5)

        def wait_for_peer(feed_id):
            def run():
                barrier.wait()
                return CycleReport(feed_id=feed_id)

            return run

        a, b = fake_pipeline("wind_10min"), fake_pipeline("temp_10min")
        a.run_cycle.side_effect = wait_for_peer("wind_10min")
        b.run_cycle.side_effect = wait_for_peer("temp_10min")

        reports = FeedScheduler([a, b]).run_cycle()

        assert all(r.ok for r in reports)

    def test_crashing_feed_isolated(self):
        good = fake_pipeline("wind_10min")
        bad = fake_pipeline("mosmix", error=RuntimeError("boom"))

        reports = {r.feed_id: r for r in FeedScheduler([good, bad]).run_cycle()}

        assert reports["wind_10min"].ok
        assert reports["mosmix"].aborted_stage == "cycle"
        assert "boom" in reports["mosmix"].error

    def test_no_pipelines(self):
        assert FeedScheduler([]).run_cycle() == []


class TestRetention:
    """Test the daily prune pass."""

    def test_disabled_without_retention(self):
        store = MagicMock()
        scheduler = FeedScheduler([fake_pipeline("wind_10min")], store=store)
        assert scheduler.maybe_prune() == 0
        store.prune.assert_not_called()

    def test_once_per_day(self):
        store = MagicMock()
        store.prune.return_value = 3
        today = MagicMock(return_value=date(2021, 1, 9))
        scheduler = FeedScheduler(
            [fake_pipeline("wind_10min"), fake_pipeline("temp_10min")],
            store=store,
            retention_days=7,
            today=today,
        )

        assert scheduler.maybe_prune() == 6
        assert scheduler.maybe_prune() == 0
        today.return_value = date(2021, 1, 10)
        assert scheduler.maybe_prune() == 6
        assert store.prune.call_count == 4

    def test_failing_feed_does_not_stop_others(self):
        store = MagicMock()
        store.prune.side_effect = [RuntimeError("locked"), 2]
        scheduler = FeedScheduler(
            [fake_pipeline("wind_10min"), fake_pipeline("temp_10min")],
            store=store,
            retention_days=7,
        )
        assert scheduler.maybe_prune() == 2


class TestLifecycle:
    """Test stop handling."""

    def test_wait_returns_when_stopped(self):
        scheduler = FeedScheduler([])
        scheduler.stop()
        scheduler._wait(600)
        assert scheduler.stopping

    def test_run_forever_stops_after_cycle(self):
        pipeline = fake_pipeline("wind_10min")
        scheduler = FeedScheduler([pipeline], interval_seconds=600)
        pipeline.run_cycle.side_effect = lambda: (
            scheduler.stop() or CycleReport(feed_id="wind_10min")
        )

        scheduler.run_forever()

        assert scheduler.cycles == 1


class TestBuildPipelines:
    """Test pipeline construction from settings."""

    def test_one_pipeline_per_feed(self, stations, tmp_path):
        settings = Settings(data_dir=str(tmp_path), enabled_feeds=["wind_10min", "mosmix"])

        pipelines = build_pipelines(settings, stations, store=MagicMock(), client=MagicMock())

        assert [p.feed_id for p in pipelines] == ["wind_10min", "mosmix"]
        assert pipelines[1].filenames == [
            "10488/kml/MOSMIX_L_LATEST_10488.kmz",
            "P0036/kml/MOSMIX_L_LATEST_P0036.kmz",
        ]
        assert pipelines[0].work_dir == settings.data_path / "wind_10min"

    def test_explicit_feed_ids(self, stations, tmp_path):
        settings = Settings(data_dir=str(tmp_path))
        pipelines = build_pipelines(
            settings, stations, store=MagicMock(), feed_ids=["temp_10min"], client=MagicMock()
        )
        assert [p.feed_id for p in pipelines] == ["temp_10min"]

    def test_unknown_feed(self, stations, tmp_path):
        settings = Settings(data_dir=str(tmp_path))
        with pytest.raises(ValueError, match="Unknown feed"):
            build_pipelines(settings, stations, store=MagicMock(), feed_ids=["hail"], client=MagicMock())
