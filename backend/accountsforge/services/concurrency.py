# Overview: Transaction helpers shared by the ledger and workflow services.

from __future__ import annotations

from contextlib import contextmanager

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for state transitions.

    The locked read overwrites any copy already in the session identity map,
    so a caller that loaded the row earlier in the request sees the status
    committed by whoever held the lock before it.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The commissions unique constraint still holds on SQLite.
    """
    return query.with_for_update().populate_existing()


@contextmanager
def atomic():
    """
    Commit everything done inside the block as one unit, or nothing.

    A status transition and its side effects (commission, notification) are
    written inside one atomic() block so a failed side effect never leaves
    the new status visible.
    """
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
