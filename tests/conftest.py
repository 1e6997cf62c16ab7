"""Shared fixtures: a file-backed SQLite database per test."""
from datetime import datetime, timedelta, UTC

import pytest
from sqlalchemy import event
from sqlmodel import create_engine

from migrator.migrations import MigrationContext


def _enable_transactional_ddl(engine):
    # pysqlite commits implicitly before DDL; take over BEGIN so DDL can be rolled back.
    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'test.db'}")
    _enable_transactional_ddl(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def ctx(engine):
    return MigrationContext(engine=engine)


class FakeClock:
    """Deterministic clock, each call advances one second."""

    def __init__(self, start=None):
        self.current = start or datetime(2026, 1, 1, tzinfo=UTC)

    def __call__(self):
        value = self.current
        self.current += timedelta(seconds=1)
        return value


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_table(engine):
    """Create a table from raw DDL."""

    def _make(ddl):
        with engine.begin() as conn:
            conn.exec_driver_sql(ddl)

    return _make
