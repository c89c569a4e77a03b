#!/usr/bin/env python3
"""
Create the database tables and one Station, Measurement and Forecast entity
per station of the station table.

The sync daemon never creates entities; run this once before the first start
and again whenever stations are added to the table.

Usage:
    python scripts/init_db.py
    python scripts/init_db.py --metadata cfg/metadata.txt
    python scripts/init_db.py --reset      # Drop all tables first
"""

import argparse
import logging
import sys

from dwd_sync.config import get_settings, load_stations
from dwd_sync.db import RecordStore, close_engine, get_engine, init_schema, test_connection

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Initialize the DWD sync database")
    parser.add_argument(
        "--metadata", type=str,
        help="Station table (default: settings.metadata_path)"
    )
    parser.add_argument(
        "--reset", action="store_true",
        help="Drop all tables and their data before creating them"
    )
    args = parser.parse_args()

    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    if not test_connection():
        logger.error("Database not reachable, exiting")
        sys.exit(1)

    stations = load_stations(args.metadata)

    try:
        if args.reset:
            logger.warning("Resetting database: all stored series are deleted")
        init_schema(get_engine(), reset=args.reset)

        created = RecordStore().create_station_entities(stations)
        logger.info(f"Done: {created} new of {len(stations)} stations")
    finally:
        close_engine()


if __name__ == "__main__":
    main()
