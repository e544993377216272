from __future__ import annotations
"""Permission sources feeding the precedence merge.

LegacyPermissionSource        flat role -> permission grants (role_permissions)
ModuleScopedPermissionSource  per-role module access flag + granted permissions
                              (role_module_access / role_module_permissions)

Both take the resolved role id set and return SourceGrants. Neither expands
wildcards; 'users:*' is collected as a literal code.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List

from sqlalchemy import select

from rbac_core.constants.permissions import DATA_ACCESS_NONE, DATA_ACCESS_RANK
from rbac_core.models.authz import Permission, RolePermission
from rbac_core.models.module_access import Module, RoleModuleAccess, RoleModulePermission


@dataclass(frozen=True)
class Grant:
    code: str
    module: str


@dataclass(frozen=True)
class SourceGrants:
    grants: List[Grant] = field(default_factory=list)
    # lowercased codes of modules with any access row for the roles
    owned_modules: FrozenSet[str] = frozenset()
    # lowercased module code -> strongest data access among rows with has_access
    data_access: Dict[str, str] = field(default_factory=dict)

    @property
    def codes(self) -> FrozenSet[str]:
        return frozenset(g.code for g in self.grants)


class PermissionSource(ABC):
    @abstractmethod
    def collect(self, session, role_ids: Iterable[int]) -> SourceGrants:
        raise NotImplementedError


class LegacyPermissionSource(PermissionSource):
    def collect(self, session, role_ids: Iterable[int]) -> SourceGrants:
        role_ids = list(role_ids)
        if not role_ids:
            return SourceGrants()
        rows = session.execute(
            select(Permission.code, Permission.module)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .where(RolePermission.role_id.in_(role_ids), Permission.is_active.is_(True))
        ).all()
        return SourceGrants(grants=[Grant(code=code, module=module) for code, module in rows])


class ModuleScopedPermissionSource(PermissionSource):
    def collect(self, session, role_ids: Iterable[int]) -> SourceGrants:
        role_ids = list(role_ids)
        if not role_ids:
            return SourceGrants()
        access_rows = session.execute(
            select(RoleModuleAccess.module_id, Module.code, RoleModuleAccess.has_access, RoleModuleAccess.data_access)
            .join(Module, Module.id == RoleModuleAccess.module_id)
            .where(RoleModuleAccess.role_id.in_(role_ids))
        ).all()
        owned = frozenset(code.lower() for _, code, _, _ in access_rows)
        accessible_ids = {module_id for module_id, _, has_access, _ in access_rows if has_access}

        data_access: Dict[str, str] = {}
        for _, code, has_access, level in access_rows:
            if not has_access:
                continue
            level = level if level in DATA_ACCESS_RANK else DATA_ACCESS_NONE
            key = code.lower()
            current = data_access.get(key, DATA_ACCESS_NONE)
            data_access[key] = level if DATA_ACCESS_RANK[level] > DATA_ACCESS_RANK[current] else current

        grants: List[Grant] = []
        if accessible_ids:
            rows = session.execute(
                select(Permission.code, Permission.module)
                .join(RoleModulePermission, RoleModulePermission.permission_id == Permission.id)
                .where(
                    RoleModulePermission.role_id.in_(role_ids),
                    RoleModulePermission.module_id.in_(list(accessible_ids)),
                    RoleModulePermission.granted.is_(True),
                    Permission.is_active.is_(True),
                )
            ).all()
            grants = [Grant(code=code, module=module) for code, module in rows]
        return SourceGrants(grants=grants, owned_modules=owned, data_access=data_access)


__all__ = ['Grant', 'SourceGrants', 'PermissionSource', 'LegacyPermissionSource', 'ModuleScopedPermissionSource']
