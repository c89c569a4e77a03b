"""
Feed configuration - Single source of truth for the five DWD feeds.

Each feed is described once here: where its files live on the archive, how a
station maps to a remote file name, how the files are parsed and which store
fields the resulting series replace. Stage code is generic over these
descriptors; adding a feed means adding an entry to FEEDS.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from dwd_sync.models import StationMetadata
from dwd_sync.parsers.fixed_width import RecordKind
from dwd_sync.utils.time_codec import TimeFormat

OBSERVATIONS_ROOT = "/climate_environment/CDC/observations_germany/climate"
MOSMIX_ROOT = "/weather/local_forecasts/mos/MOSMIX_L/single_stations"


class IdentityKind(str, Enum):
    """Which station identifier a feed is keyed by."""

    ARCHIVE = "archive"  # 5-char archive code, store key of Measurement
    FORECAST = "forecast"  # whitespace-stripped forecast code, store key of Forecast


@dataclass(frozen=True)
class FeedDescriptor:
    """Configuration for a single feed."""

    feed_id: str  # 'wind_10min', 'mosmix', etc.
    base_path: str  # Remote directory, trailing slash
    filename_template: str  # Remote file name relative to base_path, '{code}' placeholder
    identity: IdentityKind
    record_kind: Optional[RecordKind]  # None for KML feeds
    time_format: TimeFormat  # Format of the row timestamp column
    # Ordered (store field, row quantity) pairs
    series: Tuple[Tuple[str, str], ...]
    nested_remote: bool = False  # One remote subdirectory per station
    document_suffix: str = ".txt"  # Suffix of the extracted files to parse
    skip_lines: int = 1  # Header lines in each extracted file
    ignore_prefix: str = "Metadaten"  # Extracted files that are not data

    @property
    def local_dir(self) -> str:
        """Scratch subdirectory name under the data root."""
        return self.feed_id

    @property
    def fields(self) -> Tuple[str, ...]:
        """Store fields written by this feed."""
        return tuple(field for field, _ in self.series)

    @property
    def is_forecast(self) -> bool:
        return self.identity is IdentityKind.FORECAST

    def station_key(self, station: StationMetadata) -> str:
        """Identifier of a station as used in this feed's file names and store keys."""
        if self.identity is IdentityKind.FORECAST:
            return station.forecast_key
        return station.station_code

    def filename_for(self, station: StationMetadata) -> str:
        """Remote file name for one station."""
        return self.filename_template.format(code=self.station_key(station))

    def filenames(self, stations: Iterable[StationMetadata]) -> List[str]:
        """Remote file names for a station list, in station order."""
        return [self.filename_for(station) for station in stations]

    def local_name(self, filename: str, index: int) -> str:
        """
        Local file name for a download.

        Nested feeds share one literal basename across stations, so the file is
        named after its position in the download list instead.
        """
        if self.nested_remote:
            return f"{index}.zip"
        return Path(filename).name

    def is_document(self, path: Path) -> bool:
        """True for extracted files this feed parses."""
        return path.suffix == self.document_suffix and not path.name.startswith(
            self.ignore_prefix
        )


FEEDS: Dict[str, FeedDescriptor] = {
    "precip_1min": FeedDescriptor(
        feed_id="precip_1min",
        base_path=f"{OBSERVATIONS_ROOT}/1_minute/precipitation/now/",
        filename_template="1minutenwerte_nieder_{code}_now.zip",
        identity=IdentityKind.ARCHIVE,
        record_kind=RecordKind.PRECIP_1MIN,
        time_format=TimeFormat.COMPACT,
        series=(("rs_01", "precipitation"),),
    ),
    "precip_10min": FeedDescriptor(
        feed_id="precip_10min",
        base_path=f"{OBSERVATIONS_ROOT}/10_minutes/precipitation/now/",
        filename_template="10minutenwerte_nieder_{code}_now.zip",
        identity=IdentityKind.ARCHIVE,
        record_kind=RecordKind.PRECIP_10MIN,
        time_format=TimeFormat.COMPACT,
        series=(("rws_10", "precipitation"),),
    ),
    "wind_10min": FeedDescriptor(
        feed_id="wind_10min",
        base_path=f"{OBSERVATIONS_ROOT}/10_minutes/wind/now/",
        filename_template="10minutenwerte_wind_{code}_now.zip",
        identity=IdentityKind.ARCHIVE,
        record_kind=RecordKind.WIND_10MIN,
        time_format=TimeFormat.COMPACT,
        series=(("ff_10", "speed"), ("dd_10", "direction")),
    ),
    "temp_10min": FeedDescriptor(
        feed_id="temp_10min",
        base_path=f"{OBSERVATIONS_ROOT}/10_minutes/air_temperature/now/",
        filename_template="10minutenwerte_TU_{code}_now.zip",
        identity=IdentityKind.ARCHIVE,
        record_kind=RecordKind.TEMP_10MIN,
        time_format=TimeFormat.COMPACT,
        series=(("pp_10", "pressure"), ("tt_10", "temperature")),
    ),
    "mosmix": FeedDescriptor(
        feed_id="mosmix",
        base_path=f"{MOSMIX_ROOT}/",
        filename_template="{code}/kml/MOSMIX_L_LATEST_{code}.kmz",
        identity=IdentityKind.FORECAST,
        record_kind=None,
        time_format=TimeFormat.ISO,
        series=(
            ("pppp", "pppp"),
            ("ttt", "ttt"),
            ("ff", "ff"),
            ("dd", "dd"),
            ("rrl1c", "rrl1c"),
            ("r101", "r101"),
        ),
        nested_remote=True,
        document_suffix=".kml",
        skip_lines=0,
    ),
}

FEED_IDS = list(FEEDS.keys())


def get_feed(feed_id: str) -> FeedDescriptor:
    """Get feed configuration by ID."""
    if feed_id not in FEEDS:
        raise ValueError(f"Unknown feed: {feed_id}. Available: {FEED_IDS}")
    return FEEDS[feed_id]
