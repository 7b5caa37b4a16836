"""Database engine and session management."""

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from cafeteria.core.config import settings

READ_ONLY_OPTION: str = "cafeteria_read_only"


def build_engine(database_url: str) -> Engine:
    """Create an engine; SQLite transactions take the write lock up front.

    pysqlite defers BEGIN until the first write, which lets two transactions read
    the same stock level before either one writes. ``BEGIN IMMEDIATE`` makes the
    database serialize writers for the whole transaction instead.

    SQLite is the development store, and it locks the whole database rather than
    rows. A writing session therefore holds that lock from its first statement to
    commit, including the payment intent call in order creation. Read-only
    sessions from ``get_read_db`` skip the BEGIN and run each statement in
    autocommit, so they neither wait for that lock nor hold one.
    """
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)

    connect_args: dict[str, Any] = {"check_same_thread": False, "timeout": 30}
    engine = create_engine(database_url, connect_args=connect_args)

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(connection) -> None:
        if connection.get_execution_options().get(READ_ONLY_OPTION):
            return
        connection.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


engine: Engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a database session and ensure proper cleanup."""
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_read_db() -> Generator[Session, None, None]:
    """Yield a session for lookups that never write."""
    db: Session = SessionLocal()
    db.bind = db.get_bind().execution_options(**{READ_ONLY_OPTION: True})
    try:
        yield db
    finally:
        db.close()
