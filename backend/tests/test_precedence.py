from rbac_core import get_db
from rbac_core.services.policy import get_user_permissions, user_has_permission
from rbac_core.services.precedence import ModuleShadowingPrecedence
from rbac_core.services.sources import Grant, SourceGrants, LegacyPermissionSource, ModuleScopedPermissionSource
from test_utils_seed import ensure_role, ensure_module, grant_module_access, seed_user_with_roles


def test_access_row_without_access_shadows_legacy_grants():
    role = ensure_role('SHADOWED', ['users:read', 'dashboard:read'])
    users = ensure_module('users')
    grant_module_access(role, users, has_access=False, data_access='none')
    user = seed_user_with_roles('shadow-neg@example.com', role)
    perms = get_user_permissions(user.id)
    assert 'users:read' not in perms
    assert 'dashboard:read' in perms
    assert not user_has_permission(user.id, 'users:read')


def test_module_scoped_grants_replace_legacy_for_owned_module():
    role = ensure_role('SCOPED', ['users:read', 'users:delete'])
    users = ensure_module('users')
    grant_module_access(role, users, has_access=True, perm_codes=['users:update'])
    user = seed_user_with_roles('shadow-pos@example.com', role)
    perms = get_user_permissions(user.id)
    assert perms == {'users:update'}


def test_no_access_row_means_no_shadowing():
    role = ensure_role('LEGACY_ONLY', ['customers:read', 'customers:export'])
    ensure_module('customers')
    user = seed_user_with_roles('legacy@example.com', role)
    assert get_user_permissions(user.id) == {'customers:read', 'customers:export'}


def test_module_code_comparison_is_case_insensitive():
    role = ensure_role('MIXED_CASE', ['inventory:read'])
    inv = ensure_module('Inventory')
    grant_module_access(role, inv, has_access=False)
    user = seed_user_with_roles('case@example.com', role)
    assert 'inventory:read' not in get_user_permissions(user.id)


def test_access_row_on_any_resolved_role_shadows_all_roles():
    parent = ensure_role('PARENT_OWNER', [])
    child = ensure_role('CHILD_LEGACY', ['payments:read'], parent=parent)
    payments = ensure_module('payments')
    grant_module_access(parent, payments, has_access=True, perm_codes=['payments:create'])
    user = seed_user_with_roles('cross-role@example.com', child)
    assert get_user_permissions(user.id) == {'payments:create'}


def test_granted_permission_without_module_access_is_ignored():
    role = ensure_role('NO_ACCESS_GRANTS', [])
    sup = ensure_module('suppliers')
    grant_module_access(role, sup, has_access=False, perm_codes=['suppliers:read'])
    user = seed_user_with_roles('noaccess@example.com', role)
    assert get_user_permissions(user.id) == set()


def test_inactive_permissions_are_dropped_from_both_sources():
    from test_utils_seed import ensure_permissions
    ensure_permissions(['old:read'], active=False)
    role = ensure_role('INACTIVE_PERM', ['old:read', 'new:read'])
    user = seed_user_with_roles('inactive-perm@example.com', role)
    assert get_user_permissions(user.id) == {'new:read'}


def test_sources_collect_literal_wildcards():
    role = ensure_role('WILD', ['users:*'])
    legacy = LegacyPermissionSource().collect(get_db(), [role.id])
    assert legacy.codes == frozenset({'users:*'})
    assert ModuleScopedPermissionSource().collect(get_db(), []) == SourceGrants()


def test_merge_is_pure_set_logic():
    legacy = SourceGrants(grants=[Grant('users:read', 'users'), Grant('roles:read', 'Roles')])
    scoped = SourceGrants(grants=[Grant('users:update', 'users')], owned_modules=frozenset({'users', 'roles'}))
    assert ModuleShadowingPrecedence().merge(legacy, scoped) == {'users:update'}
    assert ModuleShadowingPrecedence().merge(legacy, SourceGrants()) == {'users:read', 'roles:read'}
