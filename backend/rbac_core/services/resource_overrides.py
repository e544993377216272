from __future__ import annotations
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select, delete

from rbac_core import get_db
from rbac_core.models.authz import ResourcePermission
from rbac_core.utils.tx import atomic
from rbac_core.utils.validity import window_covers

logger = logging.getLogger(__name__)


def has_resource_permission(
    user_id: int,
    resource_type: str,
    resource_id,
    permission_code: str,
    tenant_id: Optional[int] = None,
    *,
    session=None,
    now: Optional[datetime] = None,
) -> bool:
    """True iff an object-level grant matches every field and is inside its window.

    The tenant filter is only applied when tenant_id is given. Pure read.
    """
    session = session or get_db()
    stmt = select(ResourcePermission.id).where(
        ResourcePermission.user_id == user_id,
        ResourcePermission.resource_type == resource_type,
        ResourcePermission.resource_id == str(resource_id),
        ResourcePermission.permission_code == permission_code,
        window_covers(ResourcePermission, now),
    )
    if tenant_id is not None:
        stmt = stmt.where(ResourcePermission.tenant_id == tenant_id)
    return session.execute(stmt.limit(1)).first() is not None


def grant_resource_permission(
    user_id: int,
    resource_type: str,
    resource_id,
    permission_code: str,
    tenant_id: Optional[int] = None,
    *,
    valid_from: Optional[datetime] = None,
    valid_until: Optional[datetime] = None,
    granted_by: Optional[int] = None,
    session=None,
) -> ResourcePermission:
    session = session or get_db()
    with atomic(session):
        grant = ResourcePermission(
            user_id=user_id,
            tenant_id=tenant_id,
            resource_type=resource_type,
            resource_id=str(resource_id),
            permission_code=permission_code,
            valid_from=valid_from,
            valid_until=valid_until,
            granted_by=granted_by,
        )
        session.add(grant)
    logger.info('Granted %s on %s:%s to user %s', permission_code, resource_type, resource_id, user_id)
    return grant


def revoke_resource_permission(
    user_id: int,
    resource_type: str,
    resource_id,
    permission_code: str,
    *,
    session=None,
) -> int:
    """Delete matching grants; returns the number of rows removed."""
    session = session or get_db()
    with atomic(session):
        result = session.execute(
            delete(ResourcePermission).where(
                ResourcePermission.user_id == user_id,
                ResourcePermission.resource_type == resource_type,
                ResourcePermission.resource_id == str(resource_id),
                ResourcePermission.permission_code == permission_code,
            )
        )
    return result.rowcount or 0


__all__ = ['has_resource_permission', 'grant_resource_permission', 'revoke_resource_permission']
