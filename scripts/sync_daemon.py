#!/usr/bin/env python3
"""
DWD live sync daemon.

Every cycle (default 10 minutes) all enabled feeds run in parallel:
- precip_1min:  1-minute precipitation (RS_01)
- precip_10min: 10-minute precipitation (RWS_10)
- wind_10min:   10-minute wind speed and direction (FF_10, DD_10)
- temp_10min:   10-minute pressure and air temperature (PP_10, TT_10)
- mosmix:       MOSMIX_L single-station forecasts (PPPP, TTT, FF, DD, RRL1c, R101)

Only files whose remote timestamp changed are downloaded. SyncState is kept in
memory, so the first cycle after a start downloads everything once.

Usage:
    python scripts/sync_daemon.py
    python scripts/sync_daemon.py --once                 # Single cycle, then exit
    python scripts/sync_daemon.py --feed wind_10min      # Single feed
    python scripts/sync_daemon.py --interval 300

Deployment:
    systemctl start dwd-sync
"""

import argparse
import logging
import signal
import sys
from typing import Optional

from dwd_sync.config import FEED_IDS, get_settings, load_stations
from dwd_sync.db import RecordStore, close_engine, test_connection
from dwd_sync.pipeline import FeedScheduler, build_pipelines

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Scheduler to stop on SIGTERM/SIGINT
scheduler: Optional[FeedScheduler] = None


def signal_handler(signum, frame):
    """Handle SIGTERM/SIGINT for graceful shutdown."""
    logger.info(f"Received signal {signum}, requesting graceful shutdown...")
    if scheduler is not None:
        scheduler.stop()


def main():
    global scheduler

    parser = argparse.ArgumentParser(description="DWD live sync daemon")
    parser.add_argument(
        "--once", action="store_true",
        help="Run a single cycle then exit"
    )
    parser.add_argument(
        "--feed", type=str, action="append", choices=FEED_IDS,
        help="Only run this feed (repeatable, default: settings.enabled_feeds)"
    )
    parser.add_argument(
        "--interval", type=int,
        help="Seconds between cycles (default: settings.cycle_interval_seconds)"
    )
    parser.add_argument(
        "--metadata", type=str,
        help="Station table (default: settings.metadata_path)"
    )

    args = parser.parse_args()

    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    stations = load_stations(args.metadata)
    if not stations:
        logger.error("Station table is empty")
        sys.exit(1)

    if not test_connection():
        logger.error("Database not reachable, exiting")
        sys.exit(1)

    store = RecordStore()
    pipelines = build_pipelines(settings, stations, store, feed_ids=args.feed)
    scheduler = FeedScheduler(
        pipelines,
        interval_seconds=args.interval or settings.cycle_interval_seconds,
        store=store,
        retention_days=settings.retention_days,
    )

    try:
        if args.once:
            logger.info("Running single cycle...")
            reports = scheduler.run_cycle()
            if not all(r.ok for r in reports):
                sys.exit(2)
        else:
            scheduler.run_forever()
    finally:
        close_engine()


if __name__ == "__main__":
    main()
