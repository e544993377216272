from __future__ import annotations
"""Temporal validity windows shared by role assignments and resource grants.

A row is effective iff now lies inside [valid_from, valid_until]; a NULL bound is
unbounded on that side. Timestamps are stored as naive UTC.
"""
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import and_, or_


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def window_covers(model, now: Optional[datetime] = None):
    """SQL clause: model.valid_from/valid_until window contains now (inclusive)."""
    now = now or utcnow()
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc).replace(tzinfo=None)
    return and_(
        or_(model.valid_from.is_(None), model.valid_from <= now),
        or_(model.valid_until.is_(None), model.valid_until >= now),
    )


__all__ = ['utcnow', 'window_covers']
