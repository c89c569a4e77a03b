"""Parsers for DWD fixed-width text files and MOSMIX KML documents."""

from dwd_sync.parsers.fixed_width import FixedWidthParser, RecordKind, encoding_for
from dwd_sync.parsers.forecast_xml import ELEMENTS, ForecastXmlParser, station_id_from_filename

__all__ = [
    "FixedWidthParser",
    "RecordKind",
    "encoding_for",
    "ELEMENTS",
    "ForecastXmlParser",
    "station_id_from_filename",
]
