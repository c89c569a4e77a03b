"""
Station table loading.

The station table is produced once at setup and is read-only afterwards. One
station per line, semicolon separated, UTF-8:

    01048; 10488; Dresden-Klotzsche; 51.1280; 13.7543

The file must end with a newline; the text after the last newline is
discarded like in every other fixed-layout file.
"""

import logging
from pathlib import Path
from typing import Optional, Tuple, Union

from dwd_sync.config.settings import get_settings
from dwd_sync.models import StationMetadata
from dwd_sync.parsers.fixed_width import FixedWidthParser, RecordKind

logger = logging.getLogger(__name__)


def load_stations(path: Optional[Union[str, Path]] = None) -> Tuple[StationMetadata, ...]:
    """
    Load the canonical station table.

    Args:
        path: Table location (default: settings.metadata_path)

    Returns:
        Stations in file order. Malformed lines are logged and skipped.
    """
    path = Path(path) if path is not None else get_settings().metadata_file
    stations = FixedWidthParser().parse_file(path, RecordKind.COMPOSITE)

    seen = set()
    unique = []
    for station in stations:
        if station.station_code in seen:
            logger.warning(f"Duplicate station {station.station_code} in {path}, keeping first")
            continue
        seen.add(station.station_code)
        unique.append(station)

    logger.info(f"Loaded {len(unique)} stations from {path}")
    return tuple(unique)
