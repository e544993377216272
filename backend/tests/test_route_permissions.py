import re

from rbac_core.config.routes import RoutePermission, get_route_permission, route_requires_permission


def test_prefix_routes_cover_subpaths():
    assert get_route_permission('/users') == ['users:read']
    assert get_route_permission('/users/15/edit') == ['users:read']
    assert get_route_permission('/usersettings') is None


def test_specific_settings_entries_win_over_prefix():
    assert get_route_permission('/settings/general') == ['settings:general:read']
    assert get_route_permission('/settings/custom-fields') == ['settings:custom-fields:read']
    assert get_route_permission('/settings') == ['settings:read']
    # exact entries do not swallow deeper paths
    assert get_route_permission('/settings/general/advanced') == ['settings:read']


def test_unmapped_route():
    assert get_route_permission('/login') is None
    assert not route_requires_permission('/login')
    assert route_requires_permission('/dashboard')


def test_custom_table_with_alternatives():
    table = [RoutePermission('/reports', ('reports:read', 'admin:*'), exact=True)]
    assert get_route_permission('/reports', table) == ['reports:read', 'admin:*']
    assert get_route_permission('/reports/x', table) is None


def test_pattern_routes():
    table = [
        RoutePermission(re.compile(r'^/reports/\d+$'), 'reports:read'),
        RoutePermission('/reports', 'reports:list'),
    ]
    assert get_route_permission('/reports/42', table) == ['reports:read']
    assert get_route_permission('/reports/42/export', table) == ['reports:list']
    assert get_route_permission('/reports/draft', table) == ['reports:list']
