# Overview: Transaction helpers shared by every write path.

from __future__ import annotations

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import LedgerError, TransactionAborted
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; writers there are serialized
    by begin_write() instead.
    """
    return query.with_for_update()


def begin_write() -> None:
    """
    Open the write transaction up front.

    On SQLite this takes the database RESERVED lock immediately, so two
    writers never interleave their read-check-write sequences.
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_in_transaction(func, *, operation: str):
    """
    Run func as one all-or-nothing unit and commit it.

    func must not commit. Domain errors roll back and propagate unchanged.
    Storage conflicts (lock timeouts, deadlocks, optimistic version
    conflicts, constraint violations) roll back and surface as
    TransactionAborted; there is no automatic retry.
    """
    try:
        begin_write()
        result = func()
        db.session.commit()
        return result
    except LedgerError:
        db.session.rollback()
        raise
    except (OperationalError, StaleDataError, IntegrityError) as exc:
        db.session.rollback()
        current_app.logger.warning("Transaction aborted during %s: %s", operation, exc.__class__.__name__)
        raise TransactionAborted(
            "The operation conflicted with a concurrent change and was not applied. Retry the request.",
            details={"operation": operation},
        ) from exc
    except Exception:
        db.session.rollback()
        raise
