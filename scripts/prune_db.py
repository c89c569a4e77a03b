#!/usr/bin/env python3
"""
Drop readings older than a retention window from the stored series.

The sync daemon replaces series with whatever the current "now" files hold,
so this is only needed when older readings should not survive a station
dropping out of the archive.

Usage:
    python scripts/prune_db.py --days 2
    python scripts/prune_db.py --days 10 --feed mosmix
"""

import argparse
import logging
import sys

from dwd_sync.config import FEED_IDS, get_feed, get_settings
from dwd_sync.db import RecordStore, close_engine, test_connection

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def main():
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Prune old readings")
    parser.add_argument(
        "--days", type=int, default=settings.retention_days,
        help="Keep readings of the last N days (default: settings.retention_days)"
    )
    parser.add_argument(
        "--feed", type=str, action="append", choices=FEED_IDS,
        help="Only prune this feed (repeatable, default: all enabled feeds)"
    )
    args = parser.parse_args()

    logging.getLogger().setLevel(settings.log_level.upper())

    if args.days is None:
        logger.error("No retention window: pass --days or set RETENTION_DAYS")
        sys.exit(1)

    if not test_connection():
        logger.error("Database not reachable, exiting")
        sys.exit(1)

    store = RecordStore()
    total = 0
    try:
        for feed_id in args.feed or settings.enabled_feeds:
            total += store.prune(get_feed(feed_id), args.days)
    finally:
        close_engine()

    logger.info(f"Removed {total} readings older than {args.days} days")


if __name__ == "__main__":
    main()
