"""Tests for engine and session management."""

import pytest
from sqlalchemy import create_engine, inspect

from dwd_sync.config.settings import Settings
from dwd_sync.db import connection
from dwd_sync.db.models import Station


@pytest.fixture
def sqlite_settings(monkeypatch):
    """Point the global engine at an in-memory database."""
    monkeypatch.setattr(connection, "get_settings", lambda: Settings(database_url="sqlite://"))
    connection.close_engine()
    yield
    connection.close_engine()


class TestEngine:
    """Test the lazily created global engine."""

    def test_engine_cached(self, sqlite_settings):
        engine = connection.get_engine()
        assert connection.get_engine() is engine
        assert engine.dialect.name == "sqlite"

    def test_close_resets(self, sqlite_settings):
        engine = connection.get_engine()
        connection.close_engine()
        assert connection.get_engine() is not engine

    def test_connection_ok(self, db_engine):
        assert connection.test_connection(db_engine) is True

    def test_connection_failure(self, tmp_path):
        engine = create_engine(f"sqlite:///{tmp_path}/missing/dir/db.sqlite")
        assert connection.test_connection(engine) is False


class TestSchema:
    """Test table creation."""

    def test_init_schema(self):
        engine = create_engine("sqlite://")
        connection.init_schema(engine)
        assert set(inspect(engine).get_table_names()) == {"station", "measurement", "forecast"}

    def test_reset_drops_rows(self, tmp_path):
        engine = create_engine(f"sqlite:///{tmp_path}/dwd.sqlite")
        connection.init_schema(engine)
        with engine.begin() as conn:
            conn.execute(
                Station.__table__.insert().values(
                    station_code="01048", forecast_code="10488", name="Dresden-Klotzsche"
                )
            )

        connection.init_schema(engine, reset=True)

        with engine.connect() as conn:
            assert conn.execute(Station.__table__.select()).fetchall() == []


class TestSession:
    """Test the session context manager."""

    def test_commits(self, sqlite_settings):
        connection.init_schema()
        with connection.get_db_session() as session:
            session.add(Station(station_code="01048", forecast_code="10488", name="Dresden-Klotzsche"))

        with connection.get_db_session() as session:
            assert session.get(Station, "01048").name == "Dresden-Klotzsche"

    def test_rolls_back_on_error(self, sqlite_settings):
        connection.init_schema()
        with pytest.raises(RuntimeError):
            with connection.get_db_session() as session:
                session.add(Station(station_code="00433", forecast_code="10384", name="Berlin-Tempelhof"))
                session.flush()
                raise RuntimeError("abort")

        with connection.get_db_session() as session:
            assert session.get(Station, "00433") is None
