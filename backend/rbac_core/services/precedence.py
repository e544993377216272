from __future__ import annotations
"""Precedence between the module-scoped and the legacy permission systems.

A module with any role_module_access row for the resolved roles is owned by the
module-scoped system: every legacy grant for that module is dropped, even when the
module-scoped system currently grants nothing for it (has_access=False). Legacy
grants for modules without such a row pass through unchanged.

Adopting a module into the new model therefore takes a single access row; the old
role_permissions rows can stay in place.
"""
from typing import Set

from rbac_core.services.sources import SourceGrants


class ModuleShadowingPrecedence:
    def surviving_legacy(self, legacy: SourceGrants, scoped: SourceGrants) -> Set[str]:
        owned = scoped.owned_modules
        return {g.code for g in legacy.grants if g.module.lower() not in owned}

    def merge(self, legacy: SourceGrants, scoped: SourceGrants) -> Set[str]:
        return set(scoped.codes) | self.surviving_legacy(legacy, scoped)


__all__ = ['ModuleShadowingPrecedence']
