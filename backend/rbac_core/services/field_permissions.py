from __future__ import annotations
"""Field-level visibility / editability per role and module.

Reads return the stored flags as-is (default: not visible, not editable) and never
repair inconsistent rows. Every write in this module keeps editable => visible:
  * setting editable=True also sets visible=True
  * setting visible=False also forces editable=False
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import select

from rbac_core import get_db
from rbac_core.constants.permissions import FIELD_EDITOR_ROLE_CODES
from rbac_core.errors import DuplicateFieldError, UnknownEntityError
from rbac_core.models.authz import Role
from rbac_core.models.module_access import Module, ModuleField, RoleFieldPermission
from rbac_core.services.policy import resolve_effective_permissions
from rbac_core.utils.tx import atomic

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldAccess:
    visible: bool = False
    editable: bool = False


def normalize_field_flags(visible: bool, editable: bool) -> FieldAccess:
    return FieldAccess(visible=bool(visible), editable=bool(editable) and bool(visible))


def get_field_permission(role_id: int, module_id: int, field_id: int, *, session=None) -> FieldAccess:
    session = session or get_db()
    row = session.execute(
        select(RoleFieldPermission).where(
            RoleFieldPermission.role_id == role_id,
            RoleFieldPermission.module_id == module_id,
            RoleFieldPermission.field_id == field_id,
        )
    ).scalar_one_or_none()
    if row is None:
        return FieldAccess()
    return FieldAccess(visible=row.is_visible, editable=row.is_editable)


def _upsert_field_row(session, role_id: int, module_id: int, field_id: int, access: FieldAccess, updated_by: Optional[int] = None) -> RoleFieldPermission:
    row = session.execute(
        select(RoleFieldPermission).where(
            RoleFieldPermission.role_id == role_id,
            RoleFieldPermission.module_id == module_id,
            RoleFieldPermission.field_id == field_id,
        )
    ).scalar_one_or_none()
    if row is None:
        row = RoleFieldPermission(role_id=role_id, module_id=module_id, field_id=field_id)
        session.add(row)
    row.is_visible = access.visible
    row.is_editable = access.editable
    row.updated_by = updated_by
    return row


def set_field_permission(
    role_id: int,
    module_id: int,
    field_id: int,
    *,
    visible: Optional[bool] = None,
    editable: Optional[bool] = None,
    updated_by: Optional[int] = None,
    session=None,
) -> FieldAccess:
    """Toggle one or both flags; omitted flags keep their stored value."""
    session = session or get_db()
    current = get_field_permission(role_id, module_id, field_id, session=session)
    if visible is not None and editable is not None:
        access = normalize_field_flags(visible, editable)
    elif editable is not None:
        access = FieldAccess(visible=current.visible or bool(editable), editable=bool(editable))
    elif visible is not None:
        access = FieldAccess(visible=bool(visible), editable=current.editable and bool(visible))
    else:
        access = normalize_field_flags(current.visible, current.editable)
    with atomic(session):
        _upsert_field_row(session, role_id, module_id, field_id, access, updated_by)
    return access


def apply_default_field_permissions(field: ModuleField, *, session=None, updated_by: Optional[int] = None) -> int:
    """Fan a new field out to every existing role in one transaction.

    visible=True for all roles, editable=True only for SUPER_ADMIN / ADMIN. Roles that
    already have a row for the field are left untouched. Returns rows created.
    """
    session = session or get_db()
    with atomic(session):
        created = _fan_out(session, field, updated_by)
    return created


def _fan_out(session, field: ModuleField, updated_by: Optional[int]) -> int:
    existing = set(session.execute(
        select(RoleFieldPermission.role_id).where(RoleFieldPermission.field_id == field.id)
    ).scalars())
    created = 0
    for role in session.execute(select(Role).order_by(Role.id.asc())).scalars():
        if role.id in existing:
            continue
        access = normalize_field_flags(True, role.code in FIELD_EDITOR_ROLE_CODES)
        session.add(RoleFieldPermission(
            role_id=role.id,
            module_id=field.module_id,
            field_id=field.id,
            is_visible=access.visible,
            is_editable=access.editable,
            updated_by=updated_by,
        ))
        created += 1
    logger.info('Fanned out field %s (module %s) to %d roles', field.code, field.module_id, created)
    return created


def register_module_field(
    module_id: int,
    code: str,
    name: str,
    *,
    label: Optional[str] = None,
    field_type: Optional[str] = None,
    is_system_field: bool = False,
    sort_order: Optional[int] = None,
    created_by: Optional[int] = None,
    session=None,
) -> ModuleField:
    """Create a field and its default role permissions atomically."""
    session = session or get_db()
    if session.get(Module, module_id) is None:
        raise UnknownEntityError('Module', module_id)
    duplicate = session.execute(
        select(ModuleField.id).where(ModuleField.module_id == module_id, ModuleField.code == code)
    ).first()
    if duplicate:
        raise DuplicateFieldError(module_id, code)
    if sort_order is None:
        orders = session.execute(select(ModuleField.sort_order).where(ModuleField.module_id == module_id)).scalars().all()
        sort_order = (max(orders) if orders else 0) + 1
    with atomic(session):
        field = ModuleField(
            module_id=module_id,
            code=code,
            name=name,
            label=label or name,
            field_type=field_type,
            is_system_field=is_system_field,
            is_active=True,
            sort_order=sort_order,
        )
        session.add(field)
        session.flush()
        _fan_out(session, field, created_by)
    return field


def get_user_field_permissions(
    user_id: int,
    module_code: Optional[str] = None,
    tenant_id: Optional[int] = None,
    *,
    session=None,
    now: Optional[datetime] = None,
) -> List[Dict]:
    """Per-module field flags for a user, OR-aggregated across resolved roles.

    Super admins see and edit every active field. Users without roles get an empty list.
    """
    session = session or get_db()
    effective = resolve_effective_permissions(user_id, tenant_id, session=session, now=now)
    if not effective.resolution.roles:
        return []
    modules_q = select(Module).where(Module.is_active.is_(True)).order_by(Module.sort_order.asc(), Module.id.asc())
    modules = [m for m in session.execute(modules_q).scalars()
               if module_code is None or m.code.lower() == module_code.lower()]
    if not modules:
        return []
    module_ids = [m.id for m in modules]
    fields = session.execute(
        select(ModuleField)
        .where(ModuleField.module_id.in_(module_ids), ModuleField.is_active.is_(True))
        .order_by(ModuleField.sort_order.asc(), ModuleField.id.asc())
    ).scalars().all()

    flags: Dict[int, FieldAccess] = {}
    if effective.super_admin:
        flags = {f.id: FieldAccess(True, True) for f in fields}
    else:
        rows = session.execute(
            select(RoleFieldPermission).where(
                RoleFieldPermission.role_id.in_(list(effective.resolution.role_ids)),
                RoleFieldPermission.module_id.in_(module_ids),
            )
        ).scalars()
        for row in rows:
            prev = flags.get(row.field_id, FieldAccess())
            flags[row.field_id] = FieldAccess(prev.visible or row.is_visible, prev.editable or row.is_editable)

    out = []
    for m in modules:
        out.append({
            'module_code': m.code,
            'module_name': m.name,
            'fields': [
                {
                    'field_code': f.code,
                    'field_name': f.name,
                    'field_label': f.label or f.name,
                    'is_visible': flags.get(f.id, FieldAccess()).visible,
                    'is_editable': flags.get(f.id, FieldAccess()).editable,
                }
                for f in fields if f.module_id == m.id
            ],
        })
    return out


__all__ = [
    'FieldAccess', 'normalize_field_flags', 'get_field_permission', 'set_field_permission',
    'apply_default_field_permissions', 'register_module_field', 'get_user_field_permissions',
]
