from __future__ import annotations
"""Transaction helper for multi-row authorization writes.

    with atomic(session):
        session.add(...)
        session.execute(delete(...))

Commits once at the end; on any exception rolls back and re-raises, so concurrent
readers never observe a half-applied change.
"""
from contextlib import contextmanager


@contextmanager
def atomic(session):
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


__all__ = ['atomic']
