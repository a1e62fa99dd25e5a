"""Database engine and session management."""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from .config import get_settings


settings = get_settings()


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


def configure_sqlite(engine: Engine) -> Engine:
    """Let SQLAlchemy own transaction boundaries on pysqlite.

    The driver otherwise defers BEGIN until the first DML statement, which
    breaks SAVEPOINT handling used by the attendance upsert.
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

    return engine


def build_engine(url: str, **kwargs) -> Engine:
    if url.startswith("sqlite"):
        # handlers run in a threadpool
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        return configure_sqlite(create_engine(url, **kwargs))
    return create_engine(url, **kwargs)


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Iterator[Session]:
    """FastAPI dependency yielding one session per request."""

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Transactional session context for scripts."""

    session: Session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
