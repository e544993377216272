from __future__ import annotations
"""Static module registry.

Modules are handed to the engine as configuration (a list of descriptors) instead of
being discovered at runtime. Codes are compared case-insensitively everywhere.

    registry = ModuleRegistry([
        ModuleDescriptor('customers', 'Customers', fields=[FieldDescriptor('email', 'Email')]),
    ])
    sync_modules(registry, session=session)
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, func

from rbac_core import get_db
from rbac_core.models.module_access import Module, ModuleField
from rbac_core.services.field_permissions import register_module_field
from rbac_core.utils.tx import atomic

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldDescriptor:
    code: str
    name: str
    field_type: Optional[str] = None
    is_system_field: bool = True


@dataclass(frozen=True)
class ModuleDescriptor:
    code: str
    name: str
    sort_order: int = 0
    fields: List[FieldDescriptor] = field(default_factory=list)


class ModuleRegistry:
    def __init__(self, descriptors: Iterable[ModuleDescriptor] = ()):
        self._by_code: Dict[str, ModuleDescriptor] = {}
        for d in descriptors:
            self.register(d)

    def register(self, descriptor: ModuleDescriptor) -> None:
        key = descriptor.code.lower()
        if key in self._by_code:
            raise ValueError(f'Module {descriptor.code!r} registered twice')
        self._by_code[key] = descriptor

    def get(self, code: str) -> Optional[ModuleDescriptor]:
        return self._by_code.get(code.lower())

    def __contains__(self, code: str) -> bool:
        return code.lower() in self._by_code

    def __iter__(self):
        return iter(self._by_code.values())

    def __len__(self) -> int:
        return len(self._by_code)


def find_module(code: str, *, session=None) -> Optional[Module]:
    session = session or get_db()
    return session.execute(select(Module).where(func.lower(Module.code) == code.lower())).scalar_one_or_none()


def sync_modules(registry: ModuleRegistry, *, session=None) -> Dict[str, int]:
    """Persist registry modules and their fields; idempotent.

    Modules are upserted in one transaction; each new field goes through
    register_module_field so its role fan-out stays atomic with the field insert.
    """
    session = session or get_db()
    created_modules = 0
    with atomic(session):
        for d in registry:
            module = find_module(d.code, session=session)
            if module is None:
                session.add(Module(code=d.code, name=d.name, sort_order=d.sort_order, is_active=True))
                created_modules += 1
            else:
                module.name = d.name
                module.sort_order = d.sort_order
    created_fields = 0
    for d in registry:
        module = find_module(d.code, session=session)
        existing = set(session.execute(select(ModuleField.code).where(ModuleField.module_id == module.id)).scalars())
        for fd in d.fields:
            if fd.code in existing:
                continue
            register_module_field(module.id, fd.code, fd.name, field_type=fd.field_type,
                                  is_system_field=fd.is_system_field, session=session)
            created_fields += 1
    logger.info('Module sync: %d modules, %d fields created', created_modules, created_fields)
    return {'modules': created_modules, 'fields': created_fields}


__all__ = ['FieldDescriptor', 'ModuleDescriptor', 'ModuleRegistry', 'find_module', 'sync_modules']
