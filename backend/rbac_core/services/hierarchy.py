from __future__ import annotations
"""Role hierarchy resolution.

Seed roles are the user's direct assignments that are active, inside their validity
window, scoped to the tenant when one is given and whose role status is 'active'.
Each seed's single-parent chain is then walked. Parent lookups only filter on role
status; tenant and temporal filters apply to the seed query alone.

Depth: one budget of MAX_ROLE_DEPTH parent hops is shared by all seeds of a
resolution. Seeds cost nothing, every parent lookup costs one hop. With the default
of 5 a chain R0 -> R1 -> ... -> R5 resolves all six roles and anything reachable only
through a 6th hop is dropped (the result is flagged ``truncated``).

Cycles: a parent already on the chain being walked stops that chain and flags
``cycle_detected``. Resolution never raises on cycles.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Set

from sqlalchemy import select

from rbac_core.constants.permissions import MAX_ROLE_DEPTH, ROLE_STATUS_ACTIVE
from rbac_core.models.authz import Role, UserRole
from rbac_core.utils.validity import window_covers

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoleNode:
    id: int
    code: str
    parent_role_id: Optional[int]
    name: str = ''
    priority: int = 0


@dataclass
class RoleResolution:
    seed_roles: List[RoleNode] = field(default_factory=list)
    roles: List[RoleNode] = field(default_factory=list)
    cycle_detected: bool = False
    truncated: bool = False

    @property
    def role_ids(self) -> Set[int]:
        return {r.id for r in self.roles}


def _node(role: Role) -> RoleNode:
    return RoleNode(id=role.id, code=role.code, parent_role_id=role.parent_role_id, name=role.name, priority=role.priority)


def load_seed_roles(session, user_id: int, tenant_id: Optional[int] = None, now: Optional[datetime] = None) -> List[RoleNode]:
    """Direct, currently effective role assignments (deduplicated, assignment order)."""
    stmt = (
        select(Role)
        .join(UserRole, UserRole.role_id == Role.id)
        .where(
            UserRole.user_id == user_id,
            UserRole.is_active.is_(True),
            Role.status == ROLE_STATUS_ACTIVE,
            window_covers(UserRole, now),
        )
        .order_by(UserRole.id.asc())
    )
    if tenant_id is not None:
        stmt = stmt.where(UserRole.tenant_id == tenant_id)
    seeds: Dict[int, RoleNode] = {}
    for role in session.execute(stmt).scalars():
        seeds.setdefault(role.id, _node(role))
    return list(seeds.values())


def _load_parent(session, parent_role_id: int) -> Optional[RoleNode]:
    role = session.execute(
        select(Role).where(Role.id == parent_role_id, Role.status == ROLE_STATUS_ACTIVE)
    ).scalar_one_or_none()
    return _node(role) if role else None


def expand_roles(session, seeds: List[RoleNode], max_depth: int = MAX_ROLE_DEPTH) -> RoleResolution:
    result = RoleResolution(seed_roles=list(seeds))
    resolved: Dict[int, RoleNode] = {}
    hops = 0
    for seed in seeds:
        if seed.id in resolved:
            continue
        resolved[seed.id] = seed
        chain = {seed.id}
        current = seed
        while current.parent_role_id is not None:
            parent_id = current.parent_role_id
            if parent_id in chain:
                result.cycle_detected = True
                logger.warning('Role hierarchy cycle detected at role %s (parent %s)', current.id, parent_id)
                break
            if parent_id in resolved:
                # ancestors already walked from an earlier seed
                break
            parent = _load_parent(session, parent_id)
            if parent is None:
                break
            if hops >= max_depth:
                # only an active ancestor left out counts as truncation
                result.truncated = True
                logger.warning('Role hierarchy depth cap %s reached below role %s', max_depth, current.id)
                break
            hops += 1
            resolved[parent.id] = parent
            chain.add(parent.id)
            current = parent
    result.roles = list(resolved.values())
    return result


def resolve_role_hierarchy(
    session,
    user_id: int,
    tenant_id: Optional[int] = None,
    *,
    now: Optional[datetime] = None,
    max_depth: int = MAX_ROLE_DEPTH,
) -> RoleResolution:
    seeds = load_seed_roles(session, user_id, tenant_id, now)
    if not seeds:
        return RoleResolution()
    return expand_roles(session, seeds, max_depth=max_depth)


__all__ = ['RoleNode', 'RoleResolution', 'load_seed_roles', 'expand_roles', 'resolve_role_hierarchy']
