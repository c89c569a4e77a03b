"""
Fixed-width parser for DWD text files.

Every record kind has a fixed table of [start, end) slices. The archive files
look like this (10-minute wind, one header line):

```
STATIONS_ID;MESS_DATUM;  QN;FF_10;DD_10;eor
       1048;202101090000;    3;   3.4; 240;eor
       1048;202101090010;    3;   3.1; 230;eor
```

Even though the files are semicolon separated, the column widths are stable,
so fields are cut by offset. Archive station ids are left-padded with zeros to
5 characters. The last line of a file is always the empty string after the
trailing newline and is discarded.

Raw archive text is Latin-1 (umlauts in station names); the composite station
table written by our own setup tooling is UTF-8. Decoding with the wrong one
does not fail, it silently corrupts names, so the encoding is fixed per kind.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from dwd_sync.exceptions import FormatError
from dwd_sync.models import (
    CatalogRow,
    IdMapRow,
    MetadataRow,
    PrecipitationRow,
    RawLine,
    StationIdRow,
    StationMetadata,
    TemperatureRow,
    WindRow,
    pad_station_code,
)

logger = logging.getLogger(__name__)


class RecordKind(str, Enum):
    """Line layouts understood by :class:`FixedWidthParser`."""

    FORECAST_CATALOG = "cfg"  # MOSMIX station catalog
    ARCHIVE_CATALOG = "dwd"  # DWD station description, names only
    METADATA = "meta"  # DWD station description with coordinates
    ID_MAP = "miss"  # archive code -> forecast code
    PASSTHROUGH = "match"
    COMPOSITE = "init"  # our station table: code; forecast code; name; lat; lon
    ARCHIVE_ID = "dwdid"  # first column of the station table
    FORECAST_ID = "mosid"  # second column of the station table
    PRECIP_1MIN = "1minrr"
    PRECIP_10MIN = "10minrr"
    WIND_10MIN = "10minff"
    TEMP_10MIN = "10mintu"


UTF8 = "utf-8"
LATIN1 = "latin-1"

# [start, end) offsets per field
LAYOUTS: Dict[RecordKind, Dict[str, Tuple[int, int]]] = {
    RecordKind.FORECAST_CATALOG: {"station_code": (12, 17), "name": (23, 43)},
    RecordKind.ARCHIVE_CATALOG: {"station_code": (0, 5), "name": (61, 101)},
    RecordKind.METADATA: {
        "station_code": (0, 5),
        "latitude": (39, 50),
        "longitude": (51, 60),
        "name": (61, 101),
    },
    RecordKind.ID_MAP: {"station_code": (0, 5), "forecast_code": (7, 12)},
    RecordKind.ARCHIVE_ID: {"code": (0, 5)},
    RecordKind.FORECAST_ID: {"code": (7, 12)},
    RecordKind.PRECIP_1MIN: {"station_id": (0, 11), "timestamp": (12, 24), "rs_01": (31, 38)},
    RecordKind.PRECIP_10MIN: {"station_id": (0, 11), "timestamp": (12, 24), "rws_10": (39, 43)},
    RecordKind.WIND_10MIN: {
        "station_id": (0, 11),
        "timestamp": (12, 24),
        "ff_10": (31, 37),
        "dd_10": (38, 42),
    },
    RecordKind.TEMP_10MIN: {
        "station_id": (0, 11),
        "timestamp": (12, 24),
        "pp_10": (31, 38),
        "tt_10": (39, 45),
    },
}

COMPOSITE_FIELDS = 5
MISSING_MARKERS = {"", "-"}


def encoding_for(kind: RecordKind) -> str:
    """Text encoding of files of the given kind."""
    return UTF8 if kind is RecordKind.COMPOSITE else LATIN1


def _number(text: str, field: str) -> Optional[float]:
    if text in MISSING_MARKERS:
        return None
    try:
        return float(text)
    except ValueError as e:
        raise FormatError(f"Field {field} is not numeric: {text!r}") from e


def _slice(line: str, kind: RecordKind) -> Dict[str, str]:
    layout = LAYOUTS[kind]
    required = max(end for _, end in layout.values())
    if len(line) < required:
        raise FormatError(
            f"Line too short for {kind.value}: {len(line)} < {required} chars"
        )
    return {name: line[start:end] for name, (start, end) in layout.items()}


def _build_composite(line: str) -> StationMetadata:
    raw_parts = line.split(";")
    if len(raw_parts) < COMPOSITE_FIELDS:
        raise FormatError(
            f"Station table line has {len(raw_parts)} fields, expected {COMPOSITE_FIELDS}"
        )
    station_code, _, name, lat, lon = (part.strip() for part in raw_parts[:COMPOSITE_FIELDS])
    try:
        latitude = float(lat)
        longitude = float(lon)
    except ValueError as e:
        raise FormatError(f"Bad coordinates in station table: {lat!r}, {lon!r}") from e

    # Forecast codes are fixed 5-char fields and may carry padding whitespace
    forecast_code = raw_parts[1]
    if forecast_code.startswith(" "):
        forecast_code = forecast_code[1:]

    return StationMetadata(
        station_code=pad_station_code(station_code),
        forecast_code=forecast_code,
        name=name,
        longitude=longitude,
        latitude=latitude,
    )


def _build_row(line: str, kind: RecordKind) -> Any:
    if kind is RecordKind.PASSTHROUGH:
        return RawLine(text=line)
    if kind is RecordKind.COMPOSITE:
        return _build_composite(line)

    f = _slice(line, kind)

    if kind in (RecordKind.FORECAST_CATALOG, RecordKind.ARCHIVE_CATALOG):
        return CatalogRow(station_code=f["station_code"], name=f["name"].lower().strip())
    if kind is RecordKind.METADATA:
        return MetadataRow(
            station_code=f["station_code"],
            name=f["name"].strip(),
            latitude=f["latitude"].strip(),
            longitude=f["longitude"].strip(),
        )
    if kind is RecordKind.ID_MAP:
        return IdMapRow(station_code=f["station_code"], forecast_code=f["forecast_code"])
    if kind in (RecordKind.ARCHIVE_ID, RecordKind.FORECAST_ID):
        return StationIdRow(code=f["code"])

    station_id = pad_station_code(f["station_id"])
    timestamp = f["timestamp"].strip()

    if kind is RecordKind.PRECIP_1MIN:
        return PrecipitationRow(station_id, timestamp, _number(f["rs_01"].strip(), "RS_01"))
    if kind is RecordKind.PRECIP_10MIN:
        return PrecipitationRow(station_id, timestamp, _number(f["rws_10"].strip(), "RWS_10"))
    if kind is RecordKind.WIND_10MIN:
        return WindRow(
            station_id,
            timestamp,
            speed=_number(f["ff_10"].strip(), "FF_10"),
            direction=_number(f["dd_10"].strip(), "DD_10"),
        )
    return TemperatureRow(
        station_id,
        timestamp,
        pressure=_number(f["pp_10"].strip(), "PP_10"),
        temperature=_number(f["tt_10"].strip(), "TT_10"),
    )


class FixedWidthParser:
    """Decode fixed-width text into typed rows."""

    def parse_line(self, line: str, kind: Union[RecordKind, str]) -> Any:
        """
        Decode a single line.

        Raises:
            FormatError: If the line is too short for the layout or a numeric
                field cannot be read
        """
        return _build_row(line.rstrip("\r"), RecordKind(kind))

    def parse(
        self,
        raw: Union[bytes, str],
        kind: Union[RecordKind, str],
        skip_lines: int = 0,
        strict: bool = False,
    ) -> List[Any]:
        """
        Decode a whole file.

        Args:
            raw: File content. Bytes are decoded with the kind's encoding
            kind: Record kind selecting the column layout
            skip_lines: Number of leading header lines to discard
            strict: Raise on the first malformed line instead of dropping it

        Returns:
            Rows in file order, without the trailing-newline artifact

        Raises:
            FormatError: Only when ``strict`` is set
        """
        kind = RecordKind(kind)
        text = raw.decode(encoding_for(kind)) if isinstance(raw, bytes) else raw

        lines = text.split("\n")[skip_lines:]
        # Last element is the empty remainder after the final newline
        lines = lines[:-1]

        rows = []
        dropped = 0
        for lineno, line in enumerate(lines, start=skip_lines + 1):
            try:
                rows.append(self.parse_line(line, kind))
            except FormatError as e:
                if strict:
                    raise
                dropped += 1
                logger.warning(f"Dropping {kind.value} line {lineno}: {e}")

        if dropped:
            logger.info(f"Parsed {len(rows)} {kind.value} rows ({dropped} dropped)")
        return rows

    def parse_file(
        self,
        path: Union[str, Path],
        kind: Union[RecordKind, str],
        skip_lines: int = 0,
        strict: bool = False,
    ) -> List[Any]:
        """Read a file from disk and decode it."""
        return self.parse(Path(path).read_bytes(), kind, skip_lines=skip_lines, strict=strict)
