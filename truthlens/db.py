# database engine and session utils
from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .orm_models import Base

logger = logging.getLogger(__name__)

DATA_DIR = Path("data")
DB_PATH = DATA_DIR / "truthlens.sqlite3"

_engine: Optional[Engine] = None
SessionLocal = sessionmaker(autoflush=False, autocommit=False, future=True)


def get_database_url() -> str:
    """
    Resolve the database URL.

    Priority: DATABASE_URL env var, then the local SQLite file.
    """
    url = os.getenv("DATABASE_URL")
    if url:
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+psycopg://", 1)
        elif url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql+psycopg://", 1)
        return url
    DATA_DIR.mkdir(exist_ok=True, parents=True)
    return f"sqlite:///{DB_PATH}"


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """
    Let SQLAlchemy emit BEGIN itself on pysqlite connections.

    The driver otherwise defers BEGIN until the first DML statement, so a
    SAVEPOINT issued first opens the transaction and its RELEASE commits it.
    """

    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_db_engine(url: str, **kwargs) -> Engine:
    """Engine for ``url``; SQLite engines get thread sharing and working savepoints."""
    if url.startswith("sqlite"):
        connect_args = kwargs.setdefault("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
    engine = create_engine(url, future=True, **kwargs)
    if engine.dialect.name == "sqlite":
        _enable_sqlite_savepoints(engine)
    return engine


def get_engine() -> Engine:
    """Create the engine on first use and bind the session factory to it."""
    global _engine
    if _engine is None:
        _engine = create_db_engine(get_database_url())
        SessionLocal.configure(bind=_engine)
        logger.debug(f"Database engine created for {_engine.url.render_as_string()}")
    return _engine


@contextmanager
def session_scope() -> Iterator[Session]:
    get_engine()
    sess = SessionLocal()
    try:
        yield sess
        sess.commit()
    except Exception:
        sess.rollback()
        raise
    finally:
        sess.close()


def init_db(engine: Optional[Engine] = None) -> None:
    """
    Create all tables that do not exist yet.

    Production deployments should run the alembic migrations instead; this is
    the quick path for development databases and tests.
    """
    engine = engine or get_engine()
    Base.metadata.create_all(engine)
    logger.info("✅ Database schema verification complete")
