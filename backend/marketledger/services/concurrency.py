# Overview: Row locking and retry helpers for balance-affecting transactions.

from __future__ import annotations

import time

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


class InsertRaceError(Exception):
    """Another transaction inserted the same unique row first; re-running wins."""


def lock_for_update(query):
    """
    Apply row-level locking to a query that reads a balance or counter.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; the version_id columns
    still catch lost updates there (StaleDataError on flush).
    """
    return query.with_for_update()


def insert_unique(instance):
    """
    Add and flush a row guarded by a unique constraint.

    A concurrent insert of the same key surfaces as InsertRaceError, which
    run_with_retry treats like lock contention: the retry re-selects the
    row the other transaction committed.
    """
    db.session.add(instance)
    try:
        db.session.flush()
    except IntegrityError as exc:
        raise InsertRaceError(str(exc.orig)) from exc
    return instance


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a unit of work, retrying on lock contention and stale versions.

    func must be safe to re-run from scratch: the session is rolled back
    before each retry. Any other exception rolls back and propagates, so a
    rejected operation never leaves half-applied writes in the session.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError, InsertRaceError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
