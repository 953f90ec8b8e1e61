"""Shared fixtures: one app per run, one rolled-back transaction per test.

Every database test runs inside an outer transaction on a single in-memory
SQLite connection. Code under test commits and rolls back SAVEPOINTs inside
it, and the outer transaction is rolled back when the test ends.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import event
from sqlalchemy.orm import scoped_session, sessionmaker
from tokenguard.core.config import TestingConfig
from tokenguard.core.extensions import db as _db
from tokenguard.factory import create_app


class TestConfig(TestingConfig):
    """In-memory SQLite, relational store, quiet logs."""

    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    LOG_LEVEL = "WARNING"


class FrozenClock:
    """Manually advanced clock injected into services and stores."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(scope="session")
def app():
    os.environ.pop("DATABASE_URL", None)
    return create_app(TestConfig, instance_config_filename=None)


@pytest.fixture(scope="session")
def db(app):
    """Create ``refresh_sessions`` once; drop it at the end of the run."""
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="session")
def connection(db):
    """The single DBAPI connection every test transaction runs on.

    pysqlite defers ``BEGIN`` until the first write, which lets a released
    SAVEPOINT commit for real. ``BEGIN`` is emitted explicitly instead.
    """
    engine = db.engine
    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "begin")
        def _emit_begin(conn):  # pragma: no cover - driver glue
            conn.exec_driver_sql("BEGIN")

    conn = engine.connect()
    if engine.dialect.name == "sqlite":
        conn.connection.dbapi_connection.isolation_level = None
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture()
def session(db, connection):
    """A session whose commits and rollbacks stay inside the test transaction.

    ``db.session`` is swapped for it, so ``SQLAlchemyUnitOfWork()``, the
    repositories and the factories all share it.
    """
    outer = connection.begin()
    scoped = scoped_session(
        sessionmaker(bind=connection, join_transaction_mode="create_savepoint")
    )

    original = _db.session
    _db.session = scoped
    try:
        yield scoped
    finally:
        scoped.remove()
        _db.session = original
        outer.rollback()


@pytest.fixture(scope="session")
def faker():
    """Seeded :class:`faker.Faker`."""
    from faker import Faker

    Faker.seed(1337)
    return Faker()


@pytest.fixture()
def clock() -> FrozenClock:
    """Injectable clock starting at 2026-01-01 12:00 UTC."""
    return FrozenClock()
