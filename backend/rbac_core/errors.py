"""Write-path validation errors.

Read-path resolution never raises these: missing users, roles or tenants resolve to
empty sets / False. Routes translate them into 400/404 responses.
"""
from __future__ import annotations


class AuthzError(ValueError):
    """Base class for rejected authorization-graph mutations."""


class UnknownEntityError(AuthzError):
    def __init__(self, entity: str, ident):
        super().__init__(f'{entity} {ident} not found')
        self.entity = entity
        self.ident = ident


class RoleHierarchyCycleError(AuthzError):
    def __init__(self, role_id: int, parent_role_id: int):
        super().__init__(f'Setting parent {parent_role_id} on role {role_id} would create a cycle')
        self.role_id = role_id
        self.parent_role_id = parent_role_id


class DuplicateFieldError(AuthzError):
    def __init__(self, module_id: int, code: str):
        super().__init__(f'Field with code "{code}" already exists for module {module_id}')
        self.module_id = module_id
        self.code = code


class InvalidDataAccessError(AuthzError):
    def __init__(self, level):
        super().__init__(f'Unknown data access level: {level!r}')
        self.level = level


__all__ = ['AuthzError', 'UnknownEntityError', 'RoleHierarchyCycleError', 'DuplicateFieldError', 'InvalidDataAccessError']
