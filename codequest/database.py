"""
Database engine, session factory and declarative base
"""
import logging
from datetime import datetime, timezone
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from codequest.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def configure_sqlite(engine: Engine) -> None:
    """
    Let SQLAlchemy own transaction boundaries on pysqlite connections.

    pysqlite defers BEGIN until the first DML statement, which breaks
    SAVEPOINT handling. The reconciler relies on savepoints, so BEGIN is
    emitted explicitly and foreign keys are switched on.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def build_engine(url: str, **kwargs) -> Engine:
    """Create an engine, applying SQLite fixes when needed"""
    if url.startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        engine = create_engine(url, connect_args=connect_args, **kwargs)
        configure_sqlite(engine)
        return engine
    return create_engine(url, pool_pre_ping=True, **kwargs)


engine = build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a request-scoped session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create all tables"""
    # Import models so they register on Base.metadata
    import codequest.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ensured")


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the TIMESTAMP columns"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
