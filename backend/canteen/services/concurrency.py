# Overview: Write-transaction helpers; every ledger mutation runs through run_atomic.

from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConstraintViolation
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_write() takes the
    database-wide write lock there instead.
    """
    return query.with_for_update()


def begin_write() -> None:
    """
    Start the write transaction before the first read of a mutation.

    On SQLite this issues BEGIN IMMEDIATE so the balance read and the balance
    write happen under the same reserved lock; concurrent writers wait on the
    busy timeout instead of both reading the same stale balance.
    """
    if db.engine.dialect.name != "sqlite":
        return
    raw = db.session.connection().connection.driver_connection
    if not raw.in_transaction:
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_atomic(func):
    """
    Run a mutation as one all-or-nothing unit.

    The operation either commits completely or the session is rolled back and
    the original error is raised. No retries: a rejected write is a terminal
    result for the caller.
    """
    try:
        begin_write()
        result = func()
        db.session.commit()
        return result
    except IntegrityError as exc:
        db.session.rollback()
        raise ConstraintViolation(
            "Write rejected by storage constraint",
            {"reason": str(exc.orig)},
        ) from exc
    except StaleDataError as exc:
        db.session.rollback()
        raise ConstraintViolation("Row was modified concurrently") from exc
    except Exception:
        db.session.rollback()
        raise
