"""Database engine and session factory.

Provides database connectivity and session management for the core.

SQLite engines are created in "BEGIN IMMEDIATE" mode: every transaction
takes the database write lock when it starts, which is what serializes
reference allocation on SQLite (see stockyard.sequencing.locking).
"""

import logging
from contextlib import contextmanager
from typing import Any, Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from .config import settings

logger = logging.getLogger(__name__)

# Connection-record flag read by the SQLite lock strategy
BEGIN_IMMEDIATE_FLAG = "stockyard_begin_immediate"


def _install_sqlite_immediate_begin(engine: Engine) -> None:
    """Take over BEGIN from pysqlite and emit BEGIN IMMEDIATE instead."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # pysqlite must not emit its own deferred BEGIN
        dbapi_connection.isolation_level = None
        connection_record.info[BEGIN_IMMEDIATE_FLAG] = True

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_db_engine(database_url: Optional[str] = None, **kwargs: Any) -> Engine:
    """Create an engine with the settings this core relies on.

    Args:
        database_url: Connection string (defaults to settings.DATABASE_URL)
        **kwargs: Extra create_engine() arguments

    Returns:
        Engine: Configured SQLAlchemy engine
    """
    url = database_url or settings.DATABASE_URL

    engine_kwargs: dict = {
        "pool_pre_ping": True,  # Verify connections before using
        "echo": False,  # Set to True for SQL query logging
    }

    if url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {
            "check_same_thread": False,
            "timeout": settings.SQLITE_BUSY_TIMEOUT,
        }
    else:
        # Pool settings only apply to server databases
        engine_kwargs["pool_size"] = 5
        engine_kwargs["max_overflow"] = 10

    engine_kwargs.update(kwargs)
    engine = create_engine(url, **engine_kwargs)

    if engine.dialect.name == "sqlite":
        _install_sqlite_immediate_begin(engine)

    logger.debug("Database engine created", extra={"dialect": engine.dialect.name})
    return engine


engine = create_db_engine()

# Create session factory
SessionLocal = sessionmaker(
    autoflush=False,
    bind=engine,
)


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Context manager owning one business transaction.

    Usage:
        with get_db_session() as session:
            allocator.assign(session, invoice, scope)

    Commits on success, rolls back on any exception (including an
    aborted request), then closes the session.
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """Dependency for FastAPI endpoints.

    Usage:
        @app.get("/invoices")
        def list_invoices(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
