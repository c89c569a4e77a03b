"""Feed pipeline: update detection, transform, per-feed orchestration, scheduling."""

from dwd_sync.pipeline.orchestrator import CycleReport, FeedPipeline, StageResult, run_stage
from dwd_sync.pipeline.scheduler import FeedScheduler, build_pipelines
from dwd_sync.pipeline.sync_state import SENTINEL_MS, FeedSyncEngine
from dwd_sync.pipeline.transform import TransformStage

__all__ = [
    "CycleReport",
    "FeedPipeline",
    "StageResult",
    "run_stage",
    "FeedScheduler",
    "build_pipelines",
    "SENTINEL_MS",
    "FeedSyncEngine",
    "TransformStage",
]
