# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
SQLAlchemy engine, session factory, declarative base, and the transaction
scopes every service operation runs in.

There is no module-level engine.  A ``Database`` is constructed explicitly
(by the application factory, a script, or a test fixture), injected into
the services, and closed by whoever opened it.

Atomicity contract
------------------
* ``transaction()`` commits only when the block finishes cleanly.  Any
  exception rolls the whole block back and is propagated; SQLAlchemy errors
  are re-raised as ``InternalError``.
* ``run_steps()`` runs a sequence of dependent writes.  Each step reports an
  explicit ``StepResult``; the sequence stops at the first failure and the
  transaction commits only if every result is ``ok``.
* A ``Deadline`` is checked on entry, between steps and right before commit.
  An expired or cancelled deadline rolls back exactly like an error.
"""

import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, List, Optional

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from core.errors import InternalError, LmsError, OperationTimeout
from core.logger import logger

Base = declarative_base()


# ---------------------------------------------------------------------------
# Deadline / cancellation
# ---------------------------------------------------------------------------


class Deadline:
    """
    External deadline and cancellation signal for one operation.

    ``seconds=None`` never expires on its own but can still be cancelled
    from another thread with :meth:`cancel`.
    """

    def __init__(self, seconds: Optional[float] = None):
        self._expires_at = None if seconds is None else time.monotonic() + seconds
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        if self.cancelled:
            return True
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    def check(self) -> None:
        if self.cancelled:
            raise OperationTimeout("Operation cancelled")
        if self.expired:
            raise OperationTimeout()


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Step:
    """One named write inside a multi-step transaction."""

    name: str
    apply: Callable[[Session], None]


@dataclass(frozen=True)
class StepResult:
    name: str
    ok: bool
    error: Optional[Exception] = None


# ---------------------------------------------------------------------------
# Database handle
# ---------------------------------------------------------------------------


# execution option marking a transaction that will write
_SQLITE_WRITE_OPTION = "lms_sqlite_write"


def _enable_sqlite_transactions(engine) -> None:
    """
    pysqlite defers BEGIN until the first DML statement, so a pure read
    sequence would run outside any transaction.  Take over transaction
    control and emit BEGIN ourselves; also turn on FK enforcement, which
    SQLite leaves off by default.

    Write scopes start with BEGIN IMMEDIATE: the write lock is taken up
    front, waiting on the busy timeout, instead of upgrading a read lock
    mid-transaction, which SQLite refuses at once when another
    connection holds one.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        if conn.get_execution_options().get(_SQLITE_WRITE_OPTION):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


class Database:
    """Process-wide store handle: one engine, one connection pool."""

    def __init__(self, url: str, default_timeout: Optional[float] = None, **engine_kwargs):
        # pool_pre_ping keeps idle connections alive across MySQL's wait_timeout
        engine_kwargs.setdefault("pool_pre_ping", True)
        self.engine = create_engine(url, **engine_kwargs)
        if self.engine.dialect.name == "sqlite":
            _enable_sqlite_transactions(self.engine)

        # expire_on_commit=False: records are copied out of ORM rows after
        # commit, so attribute access must not trigger a reload.
        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine,
        )
        self.default_timeout = default_timeout

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    def create_all(self) -> None:
        """Create every mapped table.  Used by tests and local bootstrap."""
        # Import every ORM model so that Base.metadata knows about all tables.
        import models.user           # noqa: F401
        import models.course         # noqa: F401
        import models.user_progress  # noqa: F401

        Base.metadata.create_all(self.engine)

    def close(self) -> None:
        """Release every pooled connection.  The handle is unusable afterwards."""
        self.engine.dispose()

    # -- transaction scopes -------------------------------------------------

    def _deadline(self, deadline: Optional[Deadline]) -> Optional[Deadline]:
        if deadline is None and self.default_timeout is not None:
            return Deadline(self.default_timeout)
        return deadline

    @contextmanager
    def transaction(
        self,
        deadline: Optional[Deadline] = None,
        snapshot: bool = False,
        write: bool = False,
    ) -> Iterator[Session]:
        """
        Yield a session bound to one transaction.

        ``write=True`` declares that the block will modify rows; on SQLite the
        write lock is then taken when the transaction begins.

        ``snapshot=True`` asks for REPEATABLE READ so that several SELECTs in
        the block observe one point in time.  SQLite transactions are already
        serializable once BEGIN has been issued.
        """
        deadline = self._deadline(deadline)
        if deadline is not None:
            deadline.check()

        session = self.SessionLocal()
        try:
            if self.dialect == "sqlite":
                if write:
                    session.connection(execution_options={_SQLITE_WRITE_OPTION: True})
            elif snapshot:
                session.connection(execution_options={"isolation_level": "REPEATABLE READ"})
            yield session
            if deadline is not None:
                deadline.check()
            session.commit()
        except LmsError as exc:
            session.rollback()
            logger.warning("Transaction rolled back: %s", exc.code)
            raise
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Transaction rolled back on store failure", exc_info=True)
            raise InternalError() from exc
        except BaseException:
            session.rollback()
            raise
        finally:
            session.close()

    def run_steps(
        self,
        steps: Iterable[Step],
        deadline: Optional[Deadline] = None,
    ) -> List[StepResult]:
        """
        Apply *steps* in order inside one transaction.

        Returns the per-step results when everything committed.  Otherwise
        the transaction is rolled back and the first failure is raised;
        steps after it are never attempted.
        """
        deadline = self._deadline(deadline)
        results: List[StepResult] = []

        with self.transaction(deadline, write=True) as session:
            for step in steps:
                if deadline is not None:
                    deadline.check()
                results.append(self._apply_step(session, step))
                if not results[-1].ok:
                    break

            failed = [r for r in results if not r.ok]
            if failed:
                raise failed[0].error

        return results

    @staticmethod
    def _apply_step(session: Session, step: Step) -> StepResult:
        try:
            step.apply(session)
            # flush now so constraint violations surface on this step
            session.flush()
        except (LmsError, SQLAlchemyError) as exc:
            logger.warning("Step '%s' failed: %s", step.name, type(exc).__name__)
            return StepResult(step.name, False, exc)
        return StepResult(step.name, True)


# ---------------------------------------------------------------------------
# FastAPI dependency
# ---------------------------------------------------------------------------


def get_db(request: Request) -> Database:
    """
    FastAPI dependency.  Returns the ``Database`` the application factory
    attached to ``app.state``.  Each service call opens and closes its own
    transaction.  Use with Depends(get_db).
    """
    return request.app.state.db
