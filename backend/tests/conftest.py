"""Pytest fixtures configuring an isolated transactional database layer.

Each test runs inside a SAVEPOINT-backed transaction against an in-memory
SQLite database so data changes never leak between cases.
"""

from __future__ import annotations

import os

import pytest
from sqlalchemy import event
from sqlalchemy.orm import scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from credvault.api.deps import (
    OBJECT_STORE_KEY,
    password_hasher_from_config,
    token_issuer_from_config,
)
from credvault.core.config import TestingConfig
from credvault.core.extensions import db as _db  # Flask-SQLAlchemy instance
from credvault.factory import create_app  # application factory under test
from credvault.services._shared.ports import InMemoryObjectStore
from credvault.services.session import SessionService


class TestConfig(TestingConfig):
    """Testing configuration for creating the Flask app.

    Notes
    -----
    - Uses a single shared in-memory SQLite connection.
    - Fast PBKDF2 hashing and fixed, distinct signing secrets.
    - Token cookies are not marked ``Secure`` so the test client keeps them.
    """

    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {
        "poolclass": StaticPool,
        "connect_args": {"check_same_thread": False},
    }
    LOG_LEVEL = "WARNING"
    USE_PROXYFIX = False


@pytest.fixture(scope="session")
def app():
    """Create a Flask application configured for testing."""
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    app = create_app(TestConfig)
    app.logger.setLevel("WARNING")
    return app


@pytest.fixture(scope="session")
def db(app):
    """Create database tables once per test session.

    Yields
    ------
    flask_sqlalchemy.SQLAlchemy
        Database extension bound to the testing application.
    """
    with app.app_context():
        # pysqlite defers BEGIN on its own, which breaks SAVEPOINT-based
        # isolation; apply SQLAlchemy's documented pysqlite recipe.
        @event.listens_for(_db.engine, "connect")
        def _disable_pysqlite_begin(dbapi_connection, _record):
            dbapi_connection.isolation_level = None

        @event.listens_for(_db.engine, "begin")
        def _emit_begin(conn):
            conn.exec_driver_sql("BEGIN")

        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="session")
def connection(db):
    """Keep a dedicated DBAPI connection open for the whole session."""
    conn = db.engine.connect()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(autouse=True)
def session(db, connection):
    """Provide a SQLAlchemy session wrapped in an outer transaction.

    Notes
    -----
    The fixture follows the SQLAlchemy 2.0 recipe for joining a session into
    an external transaction: the session runs with
    ``join_transaction_mode="create_savepoint"``, so every commit issued by a
    Unit of Work only releases a SAVEPOINT. The outer transaction is rolled
    back after the test.
    """
    top_trans = connection.begin()

    SessionFactory = sessionmaker(
        bind=connection,
        future=True,
        join_transaction_mode="create_savepoint",
    )
    scoped = scoped_session(SessionFactory)

    original_session = db.session
    db.session.remove()
    db.session = scoped

    try:
        yield scoped
    finally:
        scoped.remove()
        db.session = original_session
        top_trans.rollback()


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


# -- Service wiring -------------------------------------------------------------
@pytest.fixture()
def object_store(app, monkeypatch) -> InMemoryObjectStore:
    """Install an in-memory object store as the app-wide store."""
    store = InMemoryObjectStore()
    monkeypatch.setitem(app.extensions, OBJECT_STORE_KEY, store)
    return store


@pytest.fixture()
def upload_dir(app, tmp_path, monkeypatch):
    """Stage multipart uploads under a per-test temporary directory."""
    target = tmp_path / "uploads"
    monkeypatch.setitem(app.config, "UPLOAD_TEMP_DIR", str(target))
    return target


@pytest.fixture()
def hasher(app):
    return password_hasher_from_config(app.config)


@pytest.fixture()
def tokens(app):
    return token_issuer_from_config(app.config)


@pytest.fixture()
def service(hasher, tokens, object_store) -> SessionService:
    """SessionService wired to the test config and the in-memory store."""
    return SessionService(hasher=hasher, tokens=tokens, object_store=object_store)


@pytest.fixture()
def client(app):
    """Return a Flask test client."""
    return app.test_client()
