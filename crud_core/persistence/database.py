"""
CRUD core database bindings and functions using sqlalchemy
"""

import logging
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine as _Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool


DEFAULT_DATABASE_URL: str = "sqlite://"
PRINT_SQLITE_WARNING: bool = True

Base = declarative_base()
Base.__allow_unmapped__ = True  # plain annotations on Column and relationship attributes
_engine: Optional[_Engine] = None
_make_session: Optional[sessionmaker] = None
_logger: logging.Logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, _):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def init(database_url: str, echo: bool = True, create_all: bool = True):
    """
    Create the engine and the session factory for the given database URL

    Call this once at startup, before any session is requested. Otherwise
    the first access falls back to ``DEFAULT_DATABASE_URL``, an in-memory
    database shared by all sessions, and logs a warning about it.

    Row versions are always stamped by the application (see the
    ``versioning`` module), so every supported backend behaves alike.

    :param database_url: SQLAlchemy URL of the database
    :param echo: log every emitted SQL statement
    :param create_all: create missing tables from the model metadata
        (disabled when the alembic migrations manage the schema)
    """

    global _engine, _make_session
    if _engine is not None:
        _engine.dispose()

    options = {"echo": echo}
    if database_url.startswith("sqlite:"):
        options["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url == "sqlite://":
            _logger.warning("In-memory sqlite3 database in use, all data will be lost on shutdown.")
            options["poolclass"] = StaticPool
        if PRINT_SQLITE_WARNING:
            _logger.warning(
                "Using a sqlite database is supported for development and testing environments "
                "only. You should use a production-grade database server for deployment."
            )

    _engine = create_engine(database_url, **options)
    if _engine.dialect.name == "sqlite":
        event.listen(_engine, "connect", _enable_sqlite_foreign_keys)
    if create_all:
        Base.metadata.create_all(bind=_engine)

    _make_session = sessionmaker(autoflush=False, bind=_engine)


def _warn(obj: str):
    _logger.warning(
        f"The database {obj} has not been set up yet, falling back to {DEFAULT_DATABASE_URL!r}. "
        "Data stored now won't persist; call 'init' during startup to avoid this."
    )


def get_engine() -> _Engine:
    if _engine is None:
        _warn("engine")
        init(DEFAULT_DATABASE_URL)
    return _engine


def get_new_session() -> Session:
    if _make_session is None or _engine is None:
        _warn("engine or its session maker")
        init(DEFAULT_DATABASE_URL)
    return _make_session()


def reset(session: Session):
    """
    Delete all rows of all tables known to the declarative base (the schema stays untouched)
    """

    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    _logger.warning("All tables have been emptied.")
