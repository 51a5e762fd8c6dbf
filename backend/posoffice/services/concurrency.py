# Overview: Service-layer operations for concurrency; row locks, units of work, read retries.

from __future__ import annotations

import time
from enum import Enum

from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from ..errors import UnitOfWorkError


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    SQLite writers are serialized by UnitOfWork's BEGIN IMMEDIATE instead.
    """
    return query.with_for_update()


def run_read_with_retry(session, func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a read-only DB operation with retry on lock-related failures.

    Writes are never retried here: a write that failed mid-way has been
    rolled back and the caller decides whether to resubmit.
    """
    for attempt in range(attempts):
        try:
            return func()
        except OperationalError:
            session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))


class UnitOfWorkState(str, Enum):
    ACTIVE = "ACTIVE"
    COMMITTED = "COMMITTED"
    ROLLED_BACK = "ROLLED_BACK"


def _begin_immediate(session) -> None:
    # SQLite takes the write lock lazily; grab it up front so two writers
    # queue on the busy timeout instead of deadlocking on lock upgrade.
    if session.get_bind().dialect.name != "sqlite":
        return
    dbapi_conn = session.connection().connection.dbapi_connection
    if not dbapi_conn.in_transaction:
        session.execute(text("BEGIN IMMEDIATE"))


class UnitOfWork:
    """
    One atomic set of writes on a session: commit all or roll back all.

    Usage:
        with UnitOfWork(session) as uow:
            ...writes...
        # committed on clean exit, rolled back on exception

    The unit tracks whether it has concluded, so a second commit or a
    rollback after commit never reaches the database.
    """

    def __init__(self, session, *, label: str = "unit of work"):
        self.session = session
        self.label = label
        self.state: UnitOfWorkState | None = None

    @property
    def finished(self) -> bool:
        return self.state in (UnitOfWorkState.COMMITTED, UnitOfWorkState.ROLLED_BACK)

    def __enter__(self) -> "UnitOfWork":
        if self.state is not None:
            raise UnitOfWorkError(f"{self.label} already started")
        _begin_immediate(self.session)
        self.state = UnitOfWorkState.ACTIVE
        return self

    def commit(self) -> None:
        if self.state != UnitOfWorkState.ACTIVE:
            raise UnitOfWorkError(f"Cannot commit {self.label} in state {self.state}")
        try:
            self.session.commit()
        except Exception:
            self.rollback()
            raise
        self.state = UnitOfWorkState.COMMITTED

    def rollback(self) -> None:
        if self.finished:
            return
        self.session.rollback()
        self.state = UnitOfWorkState.ROLLED_BACK

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            self.rollback()
            return False
        if not self.finished:
            self.commit()
        return False
