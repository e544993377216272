"""Route -> required permission mapping used by the route check endpoint.

Entries are checked in order; the first match wins.
  exact=True      only the path itself
  exact=False     the path and everything below it ('/settings' matches '/settings/smtp')
  compiled regex  any path the pattern finds a match in (anchor it for full matches)
A list of permissions means any of them grants access.
"""
from __future__ import annotations
import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Tuple, Union


@dataclass(frozen=True)
class RoutePermission:
    route: Union[str, Pattern[str]]
    permission: Union[str, Tuple[str, ...]]
    exact: bool = False

    def matches(self, pathname: str) -> bool:
        if isinstance(self.route, re.Pattern):
            return self.route.search(pathname) is not None
        if self.exact:
            return pathname == self.route
        return pathname == self.route or pathname.startswith(self.route + '/')

    @property
    def codes(self) -> List[str]:
        return [self.permission] if isinstance(self.permission, str) else list(self.permission)


# Specific entries must precede their prefixes
ROUTE_PERMISSIONS: List[RoutePermission] = [
    RoutePermission('/dashboard', 'dashboard:read'),
    RoutePermission('/profile', 'profile:read'),
    RoutePermission('/users', 'users:read'),
    RoutePermission('/roles', 'roles:read'),
    RoutePermission('/settings/general', 'settings:general:read', exact=True),
    RoutePermission('/settings/registration', 'settings:registration:read', exact=True),
    RoutePermission('/settings/notification-methods', 'settings:notification-methods:read', exact=True),
    RoutePermission('/settings/smtp-settings', 'settings:smtp-settings:read', exact=True),
    RoutePermission('/settings/custom-fields', 'settings:custom-fields:read', exact=True),
    RoutePermission('/settings', 'settings:read'),
]


def get_route_permission(pathname: str, table: Optional[List[RoutePermission]] = None) -> Optional[List[str]]:
    for entry in (ROUTE_PERMISSIONS if table is None else table):
        if entry.matches(pathname):
            return entry.codes
    return None


def route_requires_permission(pathname: str) -> bool:
    return get_route_permission(pathname) is not None
