"""Tests for the fixed-width parser."""

import pytest

from dwd_sync.exceptions import FormatError
from dwd_sync.models import (
    CatalogRow,
    IdMapRow,
    PrecipitationRow,
    RawLine,
    StationIdRow,
    StationMetadata,
    TemperatureRow,
    WindRow,
)
from dwd_sync.parsers.fixed_width import FixedWidthParser, RecordKind, encoding_for


@pytest.fixture
def parser():
    return FixedWidthParser()


class TestMeasurementKinds:
    """Test measurement record kinds."""

    def test_wind_file(self, parser, wind_file_text):
        """Header skipped, trailing artifact dropped, station code padded."""
        rows = parser.parse(wind_file_text, RecordKind.WIND_10MIN, skip_lines=1)

        assert rows == [
            WindRow("01048", "202101090330", speed=3.4, direction=240.0),
            WindRow("01048", "202101090340", speed=3.1, direction=230.0),
        ]

    def test_final_line_is_always_dropped(self, parser, wind_line):
        """The last element after splitting is discarded even if not empty."""
        text = "\n".join([
            wind_line("1048", "202101090330", "3.4", "240"),
            wind_line("1048", "202101090340", "3.1", "230"),
        ])
        rows = parser.parse(text, RecordKind.WIND_10MIN)
        assert len(rows) == 1
        assert rows[0].timestamp == "202101090330"

    def test_station_codes_zero_padded(self, parser, wind_line):
        text = wind_line("44", "202101090330", "1.0", "90") + "\n"
        rows = parser.parse(text, RecordKind.WIND_10MIN)
        assert rows[0].station_id == "00044"

    def test_temperature(self, parser, temp_line):
        text = "HEADER\n" + temp_line("01048", "202101090330", "993.4", "-0.9") + "\n"
        rows = parser.parse(text, RecordKind.TEMP_10MIN, skip_lines=1)
        assert rows == [TemperatureRow("01048", "202101090330", pressure=993.4, temperature=-0.9)]

    def test_precipitation_10min(self, parser, precip_10min_line):
        text = "HEADER\n" + precip_10min_line("433", "202101090330", "0.25") + "\n"
        rows = parser.parse(text, "10minrr", skip_lines=1)
        assert rows == [PrecipitationRow("00433", "202101090330", 0.25)]

    def test_precipitation_1min(self, parser, precip_1min_line):
        text = "HEADER\n" + precip_1min_line("433", "202101090331", "0.01") + "\n"
        rows = parser.parse(text, RecordKind.PRECIP_1MIN, skip_lines=1)
        assert rows == [PrecipitationRow("00433", "202101090331", 0.01)]

    def test_missing_marker_becomes_none(self, parser, wind_line):
        rows = parser.parse(wind_line("1048", "202101090330", "-", "240") + "\n", "10minff")
        assert rows[0].speed is None
        assert rows[0].direction == 240.0


class TestMalformedLines:
    """Test FormatError handling."""

    def test_short_line_raises(self, parser):
        with pytest.raises(FormatError, match="too short"):
            parser.parse_line("       1048;202101090330", RecordKind.WIND_10MIN)

    def test_non_numeric_raises(self, parser, wind_line):
        with pytest.raises(FormatError, match="FF_10"):
            parser.parse_line(wind_line("1048", "202101090330", "abc", "240"), "10minff")

    def test_short_line_dropped_batch_continues(self, parser, wind_line):
        text = "\n".join([
            wind_line("1048", "202101090330", "3.4", "240"),
            "       1048;2021",
            wind_line("1048", "202101090350", "2.9", "220"),
            "",
        ])
        rows = parser.parse(text, RecordKind.WIND_10MIN)
        assert [r.timestamp for r in rows] == ["202101090330", "202101090350"]

    def test_strict_raises(self, parser):
        with pytest.raises(FormatError):
            parser.parse("short\n", RecordKind.WIND_10MIN, strict=True)

    def test_carriage_returns_ignored(self, parser, wind_line):
        text = wind_line("1048", "202101090330", "3.4", "240") + "\r\n"
        rows = parser.parse(text, RecordKind.WIND_10MIN)
        assert rows[0].direction == 240.0


class TestEncoding:
    """Test per-kind character decoding."""

    def test_encoding_is_property_of_kind(self):
        assert encoding_for(RecordKind.COMPOSITE) == "utf-8"
        assert encoding_for(RecordKind.WIND_10MIN) == "latin-1"
        assert encoding_for(RecordKind.ARCHIVE_CATALOG) == "latin-1"

    def test_composite_decoded_as_utf8(self, parser):
        raw = "01262; 10870; München-Flughafen; 48.3477; 11.8134\n".encode("utf-8")
        (station,) = parser.parse(raw, RecordKind.COMPOSITE)
        assert station == StationMetadata(
            station_code="01262",
            forecast_code="10870",
            name="München-Flughafen",
            longitude=11.8134,
            latitude=48.3477,
        )

    def test_archive_catalog_decoded_as_latin1(self, parser):
        line = "01262" + " " * 56 + "München-Flughafen".ljust(40)
        rows = parser.parse((line + "\n").encode("latin-1"), RecordKind.ARCHIVE_CATALOG)
        assert rows == [CatalogRow(station_code="01262", name="münchen-flughafen")]


class TestCatalogKinds:
    """Test station catalog and mapping kinds."""

    def test_forecast_catalog(self, parser):
        line = "10488 0000 " + " " + "10488" + " " * 6 + "DRESDEN/FLUGHAFEN".ljust(20)
        rows = parser.parse(line + "\n", RecordKind.FORECAST_CATALOG)
        assert rows == [CatalogRow(station_code="10488", name="dresden/flughafen")]

    def test_metadata(self, parser):
        line = (
            "01048"
            + " " * 34
            + "51.1280".rjust(11)
            + " "
            + "13.7543".rjust(9)
            + " "
            + "Dresden-Klotzsche".ljust(40)
        )
        (row,) = parser.parse(line + "\n", RecordKind.METADATA)
        assert row.station_code == "01048"
        assert row.latitude == "51.1280"
        assert row.longitude == "13.7543"
        assert row.name == "Dresden-Klotzsche"

    def test_id_map_keeps_forecast_code_as_written(self, parser):
        rows = parser.parse("00433; P0036\n", RecordKind.ID_MAP)
        assert rows == [IdMapRow(station_code="00433", forecast_code="P0036")]

    def test_id_columns(self, parser):
        text = "01048; 10488; Dresden; 51.1; 13.7\n"
        assert parser.parse(text, RecordKind.ARCHIVE_ID) == [StationIdRow("01048")]
        assert parser.parse(text, RecordKind.FORECAST_ID) == [StationIdRow("10488")]

    def test_passthrough(self, parser):
        assert parser.parse("anything\n", RecordKind.PASSTHROUGH) == [RawLine("anything")]

    def test_composite_keeps_forecast_code_padding(self, parser):
        (station,) = parser.parse("433; P036 ; Berlin; 52.4675; 13.4021\n", "init")
        assert station.station_code == "00433"
        assert station.forecast_code == "P036 "
        assert station.forecast_key == "P036"

    def test_composite_bad_coordinates_dropped(self, parser):
        assert parser.parse("01048; 10488; Dresden; north; 13.7\n", "init") == []

    def test_parse_file(self, parser, metadata_file):
        stations = parser.parse_file(metadata_file, RecordKind.COMPOSITE)
        assert [s.station_code for s in stations] == ["01048", "02014", "01262"]
