"""
SQLAlchemy ORM models for stations and their reading series.

Each station has one Measurement row (keyed by archive code) and one Forecast
row (keyed by the whitespace-stripped forecast code). Reading series are JSON
arrays of ``{"date": epoch_ms, "value": v}`` and are replaced wholesale on
every write.
"""

from typing import Any, Dict, List, Optional, Type

from sqlalchemy import JSON, Float, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from dwd_sync.config.feeds import FeedDescriptor, IdentityKind

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
SeriesType = JSON().with_variant(JSONB(), "postgresql")

Series = List[Dict[str, Any]]


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Station(Base):
    """Station metadata, written once at initialization."""

    __tablename__ = "station"

    station_code: Mapped[str] = mapped_column(String(5), primary_key=True)
    forecast_code: Mapped[str] = mapped_column(String(16), index=True)
    name: Mapped[str] = mapped_column(Text)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    def __repr__(self) -> str:
        return f"<Station {self.station_code} {self.name!r}>"


class Measurement(Base):
    """Observation series of one station.

    - RS_01:  1-minute precipitation (mm)
    - RWS_10: 10-minute precipitation (mm)
    - FF_10, DD_10: 10-minute mean wind speed (m/s) and direction (deg)
    - PP_10, TT_10: station pressure (hPa) and air temperature 2 m (degC)
    """

    __tablename__ = "measurement"

    station_code: Mapped[str] = mapped_column(String(5), primary_key=True)

    rs_01: Mapped[Series] = mapped_column("RS_01", SeriesType, default=list)
    rws_10: Mapped[Series] = mapped_column("RWS_10", SeriesType, default=list)
    ff_10: Mapped[Series] = mapped_column("FF_10", SeriesType, default=list)
    dd_10: Mapped[Series] = mapped_column("DD_10", SeriesType, default=list)
    pp_10: Mapped[Series] = mapped_column("PP_10", SeriesType, default=list)
    tt_10: Mapped[Series] = mapped_column("TT_10", SeriesType, default=list)


class Forecast(Base):
    """MOSMIX forecast series of one station."""

    __tablename__ = "forecast"

    forecast_code: Mapped[str] = mapped_column(String(16), primary_key=True)

    pppp: Mapped[Series] = mapped_column("PPPP", SeriesType, default=list)  # Pa
    ttt: Mapped[Series] = mapped_column("TTT", SeriesType, default=list)  # K
    ff: Mapped[Series] = mapped_column("FF", SeriesType, default=list)  # m/s
    dd: Mapped[Series] = mapped_column("DD", SeriesType, default=list)  # deg
    rrl1c: Mapped[Series] = mapped_column("RRL1c", SeriesType, default=list)  # kg/m2
    r101: Mapped[Series] = mapped_column("R101", SeriesType, default=list)  # %


def entity_for(feed: FeedDescriptor) -> Type[Base]:
    """ORM class holding a feed's fields."""
    if feed.identity is IdentityKind.FORECAST:
        return Forecast
    return Measurement
