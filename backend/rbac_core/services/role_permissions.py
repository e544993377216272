from __future__ import annotations
"""Write path for the authorization graph.

Every mutation here runs in a single transaction (utils.tx.atomic) so readers never
see a role with half of its rows replaced. The resolution engine only reads what
these functions write.
"""
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select, delete

from rbac_core import get_db
from rbac_core.constants.permissions import DATA_ACCESS_LEVELS, DATA_ACCESS_ALL, DATA_ACCESS_NONE, DATA_ACCESS_TEAM, SUPER_ADMIN_ROLE_CODE
from rbac_core.errors import InvalidDataAccessError, RoleHierarchyCycleError, UnknownEntityError
from rbac_core.models.authz import Permission, Role, RolePermission, UserRole
from rbac_core.models.module_access import Module, ModuleField, RoleFieldPermission, RoleModuleAccess, RoleModulePermission
from rbac_core.services.field_permissions import normalize_field_flags
from rbac_core.utils.tx import atomic

logger = logging.getLogger(__name__)


def _require(session, model, ident, label: str):
    obj = session.get(model, ident)
    if obj is None:
        raise UnknownEntityError(label, ident)
    return obj


def update_role_module_permissions(
    role_id: int,
    module_id: int,
    *,
    has_access: bool,
    data_access: str,
    permissions: Iterable[Tuple[int, bool]] = (),
    fields: Iterable[Tuple[int, bool, bool]] = (),
    updated_by: Optional[int] = None,
    session=None,
) -> None:
    """Upsert module access and replace the role's module permissions and field flags.

    permissions: (permission_id, granted) pairs; only granted ones are stored.
    fields: (field_id, visible, editable); editable is stored as editable and visible.
    """
    session = session or get_db()
    if data_access not in DATA_ACCESS_LEVELS:
        raise InvalidDataAccessError(data_access)
    _require(session, Role, role_id, 'Role')
    _require(session, Module, module_id, 'Module')
    permissions = list(permissions)
    fields = list(fields)
    with atomic(session):
        access = session.execute(
            select(RoleModuleAccess).where(RoleModuleAccess.role_id == role_id, RoleModuleAccess.module_id == module_id)
        ).scalar_one_or_none()
        if access is None:
            access = RoleModuleAccess(role_id=role_id, module_id=module_id)
            session.add(access)
        access.has_access = bool(has_access)
        access.data_access = data_access
        access.updated_by = updated_by

        session.execute(delete(RoleModulePermission).where(
            RoleModulePermission.role_id == role_id, RoleModulePermission.module_id == module_id))
        seen = set()
        for permission_id, granted in permissions:
            if not permission_id or not granted or permission_id in seen:
                continue
            seen.add(permission_id)
            session.add(RoleModulePermission(
                role_id=role_id, module_id=module_id, permission_id=permission_id, granted=True, updated_by=updated_by))

        session.execute(delete(RoleFieldPermission).where(
            RoleFieldPermission.role_id == role_id, RoleFieldPermission.module_id == module_id))
        seen_fields = set()
        for field_id, visible, editable in fields:
            if not field_id or field_id in seen_fields:
                continue
            seen_fields.add(field_id)
            flags = normalize_field_flags(visible, editable)
            session.add(RoleFieldPermission(
                role_id=role_id, module_id=module_id, field_id=field_id,
                is_visible=flags.visible, is_editable=flags.editable, updated_by=updated_by))
    logger.info('Role %s module %s updated: access=%s data=%s perms=%d fields=%d',
                role_id, module_id, has_access, data_access, len(seen), len(seen_fields))


def replace_role_permissions(role_id: int, codes: Iterable[str], *, session=None) -> List[str]:
    """Replace the legacy role_permissions rows of a role by permission codes."""
    session = session or get_db()
    role = _require(session, Role, role_id, 'Role')
    codes = sorted(set(codes))
    perms = session.execute(select(Permission).where(Permission.code.in_(codes))).scalars().all() if codes else []
    missing = set(codes) - {p.code for p in perms}
    if missing:
        raise UnknownEntityError('Permission', sorted(missing))
    with atomic(session):
        session.execute(delete(RolePermission).where(RolePermission.role_id == role.id))
        for p in perms:
            session.add(RolePermission(role_id=role.id, permission_id=p.id))
    return codes


def set_role_parent(role_id: int, parent_role_id: Optional[int], *, session=None) -> Role:
    """Attach a role to a parent; rejects any assignment that would close a cycle."""
    session = session or get_db()
    role = _require(session, Role, role_id, 'Role')
    if parent_role_id is not None:
        _require(session, Role, parent_role_id, 'Role')
        # Walk up from the new parent; reaching role_id means a cycle.
        cursor, visited = parent_role_id, set()
        while cursor is not None and cursor not in visited:
            if cursor == role_id:
                raise RoleHierarchyCycleError(role_id, parent_role_id)
            visited.add(cursor)
            cursor = session.execute(select(Role.parent_role_id).where(Role.id == cursor)).scalar_one_or_none()
    with atomic(session):
        role.parent_role_id = parent_role_id
    return role


def assign_user_role(
    user_id: int,
    role_id: int,
    tenant_id: Optional[int] = None,
    *,
    valid_from: Optional[datetime] = None,
    valid_until: Optional[datetime] = None,
    session=None,
) -> UserRole:
    session = session or get_db()
    _require(session, Role, role_id, 'Role')
    with atomic(session):
        assignment = session.execute(
            select(UserRole).where(UserRole.user_id == user_id, UserRole.role_id == role_id, UserRole.tenant_id == tenant_id)
        ).scalar_one_or_none()
        if assignment is None:
            assignment = UserRole(user_id=user_id, role_id=role_id, tenant_id=tenant_id)
            session.add(assignment)
        assignment.valid_from = valid_from
        assignment.valid_until = valid_until
        assignment.is_active = True
    return assignment


def get_role_permissions(role_id: int, *, session=None) -> Dict:
    """Module-by-module matrix of a role as configured in the module-scoped system.

    SUPER_ADMIN is rendered as full access everywhere. Legacy grants are not used
    as a fallback here.
    """
    session = session or get_db()
    role = _require(session, Role, role_id, 'Role')
    is_super_admin = role.code == SUPER_ADMIN_ROLE_CODE
    modules = session.execute(select(Module).where(Module.is_active.is_(True)).order_by(Module.sort_order.asc(), Module.id.asc())).scalars().all()
    perms = session.execute(select(Permission).where(Permission.is_active.is_(True)).order_by(Permission.code.asc())).scalars().all()
    access_by_module = {a.module_id: a for a in session.execute(select(RoleModuleAccess).where(RoleModuleAccess.role_id == role_id)).scalars()}
    granted = {(mp.module_id, mp.permission_id) for mp in session.execute(
        select(RoleModulePermission).where(RoleModulePermission.role_id == role_id, RoleModulePermission.granted.is_(True))).scalars()}
    field_rows = {fp.field_id: fp for fp in session.execute(
        select(RoleFieldPermission).where(RoleFieldPermission.role_id == role_id)).scalars()}
    fields = session.execute(select(ModuleField).where(ModuleField.is_active.is_(True)).order_by(ModuleField.sort_order.asc())).scalars().all()

    out = []
    for m in modules:
        access = access_by_module.get(m.id)
        module_perms = [p for p in perms if p.module.lower() == m.code.lower()]
        if is_super_admin:
            has_access, data_access = True, DATA_ACCESS_ALL
        else:
            has_access = access.has_access if access else False
            data_access = access.data_access if access and access.data_access else (DATA_ACCESS_TEAM if has_access else DATA_ACCESS_NONE)
        out.append({
            'module_id': m.id,
            'module_code': m.code,
            'module_name': m.name,
            'has_access': has_access,
            'data_access': data_access,
            'permissions': [
                {'permission_id': p.id, 'permission_code': p.code,
                 'granted': is_super_admin or (m.id, p.id) in granted}
                for p in module_perms
            ],
            'fields': [
                {'field_id': f.id, 'field_code': f.code,
                 'is_visible': True if is_super_admin else bool(field_rows.get(f.id) and field_rows[f.id].is_visible),
                 'is_editable': True if is_super_admin else bool(field_rows.get(f.id) and field_rows[f.id].is_editable)}
                for f in fields if f.module_id == m.id
            ],
        })
    return {'role_id': role_id, 'modules': out}


__all__ = [
    'update_role_module_permissions', 'replace_role_permissions', 'set_role_parent',
    'assign_user_role', 'get_role_permissions',
]
