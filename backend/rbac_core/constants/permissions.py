"""Central enum-like definitions for role codes, wildcard codes and scope levels.
Extend cautiously; role codes are referenced by stored data and must never be renamed silently.
"""
from __future__ import annotations
from typing import Dict, Tuple

SUPER_ADMIN_ROLE_CODE = 'SUPER_ADMIN'
ADMIN_ROLE_CODE = 'ADMIN'

# Roles that receive editable=True when a new field is fanned out to every role
FIELD_EDITOR_ROLE_CODES = frozenset({SUPER_ADMIN_ROLE_CODE, ADMIN_ROLE_CODE})

WILDCARD_ACTION = '*'
ADMIN_WILDCARD = 'admin:*'
CODE_SEPARATOR = ':'

# Parent hops shared by every seed role of a single resolution
MAX_ROLE_DEPTH = 5

ROLE_STATUS_ACTIVE = 'active'
ROLE_STATUSES: Tuple[str, ...] = ('active', 'inactive', 'deprecated')

DATA_ACCESS_NONE = 'none'
DATA_ACCESS_OWN = 'own'
DATA_ACCESS_TEAM = 'team'
DATA_ACCESS_ALL = 'all'

# Ordered weakest -> strongest
DATA_ACCESS_LEVELS: Tuple[str, ...] = (DATA_ACCESS_NONE, DATA_ACCESS_OWN, DATA_ACCESS_TEAM, DATA_ACCESS_ALL)
DATA_ACCESS_RANK: Dict[str, int] = {level: rank for rank, level in enumerate(DATA_ACCESS_LEVELS)}
