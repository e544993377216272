from __future__ import annotations
"""Structured permission codes and wildcard matching.

Codes are parsed once into a PermissionKey:
    'users:read'               -> module='users', resource=None, action='read'
    'settings:general:read'    -> module='settings', resource='general', action='read'
    'legacy'                   -> module='legacy', resource=None, action=None  (malformed, no ':')

Matching a requested code against a granted set:
    1. exact code present
    2. '<module>:*' present (module-level wildcard, never crosses modules)
    3. 'admin:*' present (grants everything)
"""
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional

from rbac_core.constants.permissions import ADMIN_WILDCARD, CODE_SEPARATOR, WILDCARD_ACTION


@dataclass(frozen=True)
class PermissionKey:
    raw: str
    module: str
    resource: Optional[str] = None
    action: Optional[str] = None

    @classmethod
    def parse(cls, code: str) -> 'PermissionKey':
        parts = code.split(CODE_SEPARATOR)
        if len(parts) == 1:
            return cls(raw=code, module=code)
        if len(parts) == 2:
            return cls(raw=code, module=parts[0], action=parts[1])
        return cls(raw=code, module=parts[0], resource=CODE_SEPARATOR.join(parts[1:-1]), action=parts[-1])

    @property
    def is_malformed(self) -> bool:
        return self.action is None

    @property
    def is_wildcard(self) -> bool:
        return self.resource is None and self.action == WILDCARD_ACTION

    @property
    def module_wildcard(self) -> str:
        return f'{self.module}{CODE_SEPARATOR}{WILDCARD_ACTION}'


class WildcardMatcher:
    def __init__(self, granted: Iterable[str]):
        self.granted: FrozenSet[str] = frozenset(granted)

    @property
    def grants_everything(self) -> bool:
        return ADMIN_WILDCARD in self.granted

    def matches(self, code: str) -> bool:
        if code in self.granted:
            return True
        key = PermissionKey.parse(code)
        if key.module_wildcard in self.granted:
            return True
        return self.grants_everything

    def matches_any(self, codes: Iterable[str]) -> bool:
        return any(self.matches(c) for c in codes)

    def matches_all(self, codes: Iterable[str]) -> bool:
        return all(self.matches(c) for c in codes)


__all__ = ['PermissionKey', 'WildcardMatcher']
