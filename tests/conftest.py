"""Pytest fixtures and configuration."""

import io
import zipfile
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dwd_sync.db.models import Base
from dwd_sync.db.store import RecordStore
from dwd_sync.models import StationMetadata


@pytest.fixture(scope="function")
def db_engine():
    """In-memory SQLite engine shared across threads, tables created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory bound to the test engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def store(session_factory):
    """RecordStore without settling delay."""
    return RecordStore(session_factory=session_factory, settle_delay=0.0, sleep=MagicMock())


# ============================================================================
# Stations
# ============================================================================


@pytest.fixture
def stations():
    """Two stations, the second with a padded forecast code."""
    return (
        StationMetadata(
            station_code="01048",
            forecast_code="10488",
            name="Dresden-Klotzsche",
            longitude=13.7543,
            latitude=51.1280,
        ),
        StationMetadata(
            station_code="00433",
            forecast_code="P0036 ",
            name="Berlin-Tempelhof",
            longitude=13.4021,
            latitude=52.4675,
        ),
    )


@pytest.fixture
def metadata_file(tmp_path):
    """Station table on disk, UTF-8 with a non-ASCII name."""
    path = tmp_path / "metadata.txt"
    path.write_text(
        "01048; 10488; Dresden-Klotzsche; 51.1280; 13.7543\n"
        "02014; 10338; Hannover; 52.4644; 9.6779\n"
        "01262; 10870; München-Flughafen; 48.3477; 11.8134\n",
        encoding="utf-8",
    )
    return path


# ============================================================================
# Archive file builders
# ============================================================================


def _station(code: str) -> str:
    # Archive files right-align the unpadded id in 11 chars
    return f"{code.lstrip('0'):>11}"


@pytest.fixture
def wind_line():
    """Build one 10-minute wind line (FF_10 at 31-37, DD_10 at 38-42)."""

    def build(code: str, ts: str, ff: str, dd: str) -> str:
        return f"{_station(code)};{ts};{3:>5};{ff:>6};{dd:>4};eor"

    return build


@pytest.fixture
def temp_line():
    """Build one 10-minute temperature line (PP_10 at 31-38, TT_10 at 39-45)."""

    def build(code: str, ts: str, pp: str, tt: str) -> str:
        return f"{_station(code)};{ts};{3:>5};{pp:>7};{tt:>6};{tt:>6};  85.0;{tt:>6};eor"

    return build


@pytest.fixture
def precip_10min_line():
    """Build one 10-minute precipitation line (RWS_10 at 39-43)."""

    def build(code: str, ts: str, rws: str) -> str:
        return f"{_station(code)};{ts};{3:>5};{0:>4};{rws:>7};{0:>4};eor"

    return build


@pytest.fixture
def precip_1min_line():
    """Build one 1-minute precipitation line (RS_01 at 31-38)."""

    def build(code: str, ts: str, rs: str) -> str:
        return f"{_station(code)};{ts};{3:>5};{rs:>7};{0:>4};eor"

    return build


@pytest.fixture
def wind_file_text(wind_line):
    """Complete wind file for station 01048 with header and trailing newline."""
    lines = [
        "STATIONS_ID;MESS_DATUM;  QN;FF_10;DD_10;eor",
        wind_line("01048", "202101090330", "3.4", "240"),
        wind_line("01048", "202101090340", "3.1", "230"),
    ]
    return "\n".join(lines) + "\n"


def make_zip(members):
    """Zip bytes holding the given {name: bytes} members."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, data in members.items():
            zf.writestr(name, data)
    return buffer.getvalue()


@pytest.fixture
def zip_bytes():
    """Factory for zip archives in memory."""
    return make_zip


# ============================================================================
# MOSMIX documents
# ============================================================================

KML_TEMPLATE = """<?xml version="1.0" encoding="ISO-8859-1" standalone="no"?>
<kml:kml xmlns:dwd="https://opendata.dwd.de/weather/lib/pointforecast_dwd_extension_V1_0.xsd" xmlns:kml="http://www.opengis.net/kml/2.2">
<kml:Document>
<kml:ExtendedData>
<dwd:ProductDefinition>
<dwd:IssueTime>2021-01-09T03:00:00.000Z</dwd:IssueTime>
<dwd:ForecastTimeSteps>
{timesteps}
</dwd:ForecastTimeSteps>
</dwd:ProductDefinition>
</kml:ExtendedData>
<kml:Placemark>
<kml:name>10488</kml:name>
<kml:description>DRESDEN/FLUGHAFEN</kml:description>
<kml:ExtendedData>
{forecasts}
</kml:ExtendedData>
</kml:Placemark>
</kml:Document>
</kml:kml>
"""


def make_kml(timesteps, elements):
    """KML bytes with the given time steps and {element: value text} blocks."""
    steps = "\n".join(f"<dwd:TimeStep>{ts}</dwd:TimeStep>" for ts in timesteps)
    blocks = "\n".join(
        f'<dwd:Forecast dwd:elementName="{name}">\n<dwd:value>{text}</dwd:value>\n</dwd:Forecast>'
        for name, text in elements.items()
    )
    return KML_TEMPLATE.format(timesteps=steps, forecasts=blocks).encode("latin-1")


@pytest.fixture
def kml_document():
    """Factory for MOSMIX KML documents."""
    return make_kml


@pytest.fixture
def timesteps():
    """Five hourly MOSMIX time steps."""
    return [f"2021-01-09T{h:02d}:00:00.000Z" for h in range(4, 9)]
