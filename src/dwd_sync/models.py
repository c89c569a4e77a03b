"""
Data models shared across the pipeline.

Parsers produce one row type per record kind; the transform stage turns rows
into FeedRecords, which are the unit written to the store.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

Value = Optional[Union[float, str]]


def pad_station_code(raw: str) -> str:
    """Left-pad an archive station id with zeros to the fixed width of 5."""
    return ("00000" + raw.strip())[-5:]


def normalize_forecast_code(code: str) -> str:
    """Strip all whitespace from a forecast network station code."""
    return re.sub(r"\s", "", code)


@dataclass(frozen=True)
class StationMetadata:
    """One row of the canonical station table."""

    station_code: str  # 5-char archive code: '01048'
    forecast_code: str  # Forecast network code as written, may hold whitespace: '10488', 'P0036'
    name: str
    longitude: float
    latitude: float

    @property
    def forecast_key(self) -> str:
        """Forecast code with whitespace removed, as used for remote paths and store keys."""
        return normalize_forecast_code(self.forecast_code)


@dataclass(frozen=True)
class FileTimestampEntry:
    """Last-modified time of one remote file."""

    filename: str
    last_modified_ms: int


@dataclass(frozen=True)
class Reading:
    """A single timestamped value."""

    timestamp_ms: int
    value: Value

    def as_dict(self) -> Dict[str, Any]:
        return {"date": self.timestamp_ms, "value": self.value}


@dataclass
class FeedRecord:
    """All series of one feed for one station, written in a single upsert."""

    feed_id: str
    station_key: str
    series: Dict[str, List[Reading]] = field(default_factory=dict)

    @property
    def reading_count(self) -> int:
        return sum(len(readings) for readings in self.series.values())


# =============================================================================
# Parsed rows (one type per record kind)
# =============================================================================


@dataclass(frozen=True)
class CatalogRow:
    """Station catalog entry: code and lower-cased name."""

    station_code: str
    name: str


@dataclass(frozen=True)
class MetadataRow:
    """Archive station description: code, name and coordinates."""

    station_code: str
    name: str
    latitude: str
    longitude: str


@dataclass(frozen=True)
class IdMapRow:
    """Archive code to forecast code mapping."""

    station_code: str
    forecast_code: str


@dataclass(frozen=True)
class StationIdRow:
    """A single identifier column."""

    code: str


@dataclass(frozen=True)
class RawLine:
    """Unparsed line, passed through as-is."""

    text: str


@dataclass(frozen=True)
class PrecipitationRow:
    """1- or 10-minute precipitation measurement."""

    station_id: str
    timestamp: str
    precipitation: Optional[float]

    def quantities(self) -> Dict[str, Optional[float]]:
        return {"precipitation": self.precipitation}


@dataclass(frozen=True)
class WindRow:
    """10-minute mean wind speed (m/s) and direction (deg)."""

    station_id: str
    timestamp: str
    speed: Optional[float]
    direction: Optional[float]

    def quantities(self) -> Dict[str, Optional[float]]:
        return {"speed": self.speed, "direction": self.direction}


@dataclass(frozen=True)
class TemperatureRow:
    """10-minute station pressure (hPa) and air temperature at 2 m (degC)."""

    station_id: str
    timestamp: str
    pressure: Optional[float]
    temperature: Optional[float]

    def quantities(self) -> Dict[str, Optional[float]]:
        return {"pressure": self.pressure, "temperature": self.temperature}


@dataclass(frozen=True)
class ForecastRow:
    """
    One MOSMIX time step.

    ``values`` only holds the elements that have a value at this step, so a
    short or missing element block never shows up as a fabricated reading.
    """

    station_id: str
    timestep: str
    values: Mapping[str, Optional[float]]

    @property
    def timestamp(self) -> str:
        return self.timestep

    def quantities(self) -> Dict[str, Optional[float]]:
        return dict(self.values)


MeasurementRow = Union[PrecipitationRow, WindRow, TemperatureRow, ForecastRow]
