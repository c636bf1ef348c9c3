from __future__ import annotations

import logging
from collections.abc import Generator, Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from cashledger.app.core.config import settings
from cashledger.app.core.errors import PersistenceError

logger = logging.getLogger(__name__)


def _build_engine(url: str) -> Engine:
    if not url.startswith("sqlite"):
        return create_engine(url, echo=False, pool_pre_ping=True)

    kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise every checkout sees an empty database
        kwargs["poolclass"] = StaticPool
    sqlite_engine = create_engine(url, echo=False, **kwargs)

    # pysqlite defers BEGIN on its own, which breaks SAVEPOINT handling;
    # take over transaction control so nested transactions behave.
    @event.listens_for(sqlite_engine, "connect")
    def _on_connect(dbapi_connection: Any, _record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(sqlite_engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")

    return sqlite_engine


engine = _build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


class Base(DeclarativeBase):
    pass


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """Commit on clean exit, roll back on every other exit path.

    Storage faults are logged and re-raised as :class:`PersistenceError`;
    any other exception is re-raised unchanged after the rollback.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Unit of work rolled back after storage error")
        raise PersistenceError() from exc
    except BaseException:
        db.rollback()
        raise
