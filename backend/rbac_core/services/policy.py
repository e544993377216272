from __future__ import annotations
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import select, false

from rbac_core import get_db
from rbac_core.constants.permissions import (
    SUPER_ADMIN_ROLE_CODE, MAX_ROLE_DEPTH,
    DATA_ACCESS_ALL, DATA_ACCESS_NONE, DATA_ACCESS_OWN, DATA_ACCESS_TEAM,
)
from rbac_core.models.authz import Permission, User
from rbac_core.services.hierarchy import RoleResolution, load_seed_roles, expand_roles
from rbac_core.services.precedence import ModuleShadowingPrecedence
from rbac_core.services.resource_overrides import has_resource_permission
from rbac_core.services.sources import LegacyPermissionSource, ModuleScopedPermissionSource, SourceGrants
from rbac_core.utils.codes import WildcardMatcher

logger = logging.getLogger(__name__)

LEGACY_SOURCE = LegacyPermissionSource()
MODULE_SCOPED_SOURCE = ModuleScopedPermissionSource()
PRECEDENCE = ModuleShadowingPrecedence()


class EffectivePermissions:
    """Outcome of one resolution for a (user, tenant) pair. Never persisted or cached."""

    def __init__(self, codes: Set[str], resolution: RoleResolution, super_admin: bool = False,
                 scoped: Optional[SourceGrants] = None):
        self.codes = codes
        self.resolution = resolution
        self.super_admin = super_admin
        self.scoped = scoped or SourceGrants()


def _all_active_codes(session) -> Set[str]:
    return set(session.execute(select(Permission.code).where(Permission.is_active.is_(True))).scalars())


def resolve_effective_permissions(
    user_id: int,
    tenant_id: Optional[int] = None,
    *,
    session=None,
    now: Optional[datetime] = None,
    max_depth: int = MAX_ROLE_DEPTH,
) -> EffectivePermissions:
    session = session or get_db()
    seeds = load_seed_roles(session, user_id, tenant_id, now)
    if not seeds:
        return EffectivePermissions(set(), RoleResolution())

    # Super admin bypass: direct assignment only, skips hierarchy and both sources
    if any(r.code == SUPER_ADMIN_ROLE_CODE for r in seeds):
        logger.debug('User %s resolved as super admin', user_id)
        return EffectivePermissions(_all_active_codes(session), RoleResolution(seed_roles=seeds, roles=seeds), super_admin=True)

    resolution = expand_roles(session, seeds, max_depth=max_depth)
    role_ids = resolution.role_ids
    scoped = MODULE_SCOPED_SOURCE.collect(session, role_ids)
    legacy = LEGACY_SOURCE.collect(session, role_ids)
    codes = PRECEDENCE.merge(legacy, scoped)
    logger.debug('User %s tenant %s resolved %d roles, %d permissions', user_id, tenant_id, len(role_ids), len(codes))
    return EffectivePermissions(codes, resolution, scoped=scoped)


def get_user_permissions(user_id: int, tenant_id: Optional[int] = None, *, session=None, now: Optional[datetime] = None) -> Set[str]:
    return resolve_effective_permissions(user_id, tenant_id, session=session, now=now).codes


def user_has_permission(
    user_id: int,
    permission_code: str,
    tenant_id: Optional[int] = None,
    resource_type: Optional[str] = None,
    resource_id=None,
    *,
    session=None,
    now: Optional[datetime] = None,
) -> bool:
    """Point query. An object-level grant wins before any role state is consulted."""
    session = session or get_db()
    if resource_type and resource_id is not None and resource_id != '':
        if has_resource_permission(user_id, resource_type, resource_id, permission_code, tenant_id, session=session, now=now):
            return True
    codes = get_user_permissions(user_id, tenant_id, session=session, now=now)
    return WildcardMatcher(codes).matches(permission_code)


def user_has_any_permission(user_id: int, permission_codes: Iterable[str], tenant_id: Optional[int] = None, *, session=None, now: Optional[datetime] = None) -> bool:
    # Resource-level overrides are intentionally not consulted here.
    matcher = WildcardMatcher(get_user_permissions(user_id, tenant_id, session=session, now=now))
    if matcher.grants_everything:
        return True
    return matcher.matches_any(permission_codes)


def user_has_all_permissions(user_id: int, permission_codes: Iterable[str], tenant_id: Optional[int] = None, *, session=None, now: Optional[datetime] = None) -> bool:
    # Resource-level overrides are intentionally not consulted here.
    matcher = WildcardMatcher(get_user_permissions(user_id, tenant_id, session=session, now=now))
    if matcher.grants_everything:
        return True
    return matcher.matches_all(permission_codes)


def get_user_roles(user_id: int, tenant_id: Optional[int] = None, *, session=None, now: Optional[datetime] = None) -> List[Dict]:
    """Direct, effective role assignments sorted by priority (highest first). No hierarchy."""
    session = session or get_db()
    seeds = load_seed_roles(session, user_id, tenant_id, now)
    ordered = sorted(seeds, key=lambda r: r.priority, reverse=True)
    return [{'id': r.id, 'name': r.name, 'code': r.code, 'priority': r.priority} for r in ordered]


def get_user_role(user_id: int, tenant_id: Optional[int] = None, *, session=None, now: Optional[datetime] = None) -> Optional[Dict]:
    """Primary role (highest priority) or None."""
    roles = get_user_roles(user_id, tenant_id, session=session, now=now)
    return roles[0] if roles else None


def user_has_role(user_id: int, role_code: str, tenant_id: Optional[int] = None, *, session=None, now: Optional[datetime] = None) -> bool:
    return any(r['code'] == role_code for r in get_user_roles(user_id, tenant_id, session=session, now=now))


def is_user_super_admin(user_id: int, *, session=None, now: Optional[datetime] = None) -> bool:
    return user_has_role(user_id, SUPER_ADMIN_ROLE_CODE, session=session, now=now)


def get_user_permissions_with_modules(user_id: int, tenant_id: Optional[int] = None, *, session=None, now: Optional[datetime] = None) -> List[Dict]:
    session = session or get_db()
    codes = get_user_permissions(user_id, tenant_id, session=session, now=now)
    if not codes:
        return []
    rows = session.execute(
        select(Permission)
        .where(Permission.code.in_(sorted(codes)), Permission.is_active.is_(True))
        .order_by(Permission.code.asc())
    ).scalars()
    return [
        {
            'permission_code': p.code,
            'permission_name': p.name,
            'module': p.module,
            'resource': p.resource,
            'action': p.action,
        }
        for p in rows
    ]


# --- Tenant resolution ---

def get_user_tenant_id(user_id: int, *, session=None) -> Optional[int]:
    session = session or get_db()
    return session.execute(
        select(User.tenant_id).where(User.id == user_id, User.deleted_at.is_(None))
    ).scalar_one_or_none()


def user_belongs_to_tenant(user_id: int, tenant_id: int, *, session=None) -> bool:
    session = session or get_db()
    row = session.execute(
        select(User.id, User.tenant_id).where(User.id == user_id, User.deleted_at.is_(None))
    ).first()
    if row is None:
        return False
    # System-level identities (no tenant) can access all tenants
    if row.tenant_id is None:
        return True
    return row.tenant_id == tenant_id


# --- Data access scope ---

def get_user_data_access(user_id: int, module_code: str, tenant_id: Optional[int] = None, *, session=None, now: Optional[datetime] = None) -> str:
    """Strongest data access level across the user's resolved roles for a module.

    Only access rows with has_access=True count. Super admins see everything.
    """
    effective = resolve_effective_permissions(user_id, tenant_id, session=session, now=now)
    if effective.super_admin:
        return DATA_ACCESS_ALL
    return effective.scoped.data_access.get(module_code.lower(), DATA_ACCESS_NONE)


def apply_data_access_scope(query, level: str, *, owner_column, user_id: int, team_column=None, team_ids: Iterable[int] = ()):
    """Narrow a select() to the rows a data access level allows."""
    if level == DATA_ACCESS_ALL:
        return query
    if level == DATA_ACCESS_TEAM:
        team_ids = list(team_ids)
        if team_column is not None and team_ids:
            return query.where(team_column.in_(team_ids))
        return query.where(owner_column == user_id)
    if level == DATA_ACCESS_OWN:
        return query.where(owner_column == user_id)
    return query.where(false())


__all__ = [
    'EffectivePermissions', 'resolve_effective_permissions',
    'get_user_permissions', 'user_has_permission', 'user_has_any_permission', 'user_has_all_permissions',
    'get_user_roles', 'get_user_role', 'user_has_role', 'is_user_super_admin', 'get_user_permissions_with_modules',
    'get_user_tenant_id', 'user_belongs_to_tenant', 'get_user_data_access', 'apply_data_access_scope',
]
