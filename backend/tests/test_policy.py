from datetime import timedelta, timezone

from sqlalchemy import select

from rbac_core import get_db
from rbac_core.models.authz import Permission, User
from rbac_core.services.policy import (
    get_user_permissions, user_has_permission, user_has_any_permission, user_has_all_permissions,
    get_user_roles, get_user_role, user_has_role, is_user_super_admin, get_user_permissions_with_modules,
    get_user_tenant_id, user_belongs_to_tenant, get_user_data_access, apply_data_access_scope,
    resolve_effective_permissions,
)
from rbac_core.utils.validity import utcnow
from test_utils_seed import (
    ensure_permissions, ensure_role, ensure_user, ensure_tenant, ensure_module, grant_module_access,
    assign_role, seed_user_with_roles,
)


def test_super_admin_gets_every_active_permission():
    ensure_permissions(['users:read', 'roles:update', 'settings:general:read'])
    ensure_permissions(['retired:read'], active=False)
    sa = ensure_role('SUPER_ADMIN')
    user = seed_user_with_roles('root@example.com', sa)
    perms = get_user_permissions(user.id)
    assert perms == {'users:read', 'roles:update', 'settings:general:read'}
    assert user_has_permission(user.id, 'roles:update')
    assert user_has_all_permissions(user.id, ['users:read', 'settings:general:read'])


def test_super_admin_via_parent_is_not_a_bypass():
    sa = ensure_role('SUPER_ADMIN')
    child = ensure_role('SUPPORT', ['support:read'], parent=sa)
    ensure_permissions(['users:read'])
    user = seed_user_with_roles('support@example.com', child)
    eff = resolve_effective_permissions(user.id)
    assert not eff.super_admin
    assert eff.codes == {'support:read'}
    assert not is_user_super_admin(user.id)


def test_super_admin_bypass_ignores_module_shadowing():
    sa = ensure_role('SUPER_ADMIN', ['users:read'])
    grant_module_access(sa, ensure_module('users'), has_access=False)
    user = seed_user_with_roles('root2@example.com', sa)
    assert 'users:read' in get_user_permissions(user.id)


def test_temporal_window_bounds():
    role = ensure_role('WINDOWED', ['reports:read'])
    user = ensure_user('windowed@example.com')
    now = utcnow()
    assign_role(user, role, valid_from=now - timedelta(days=1), valid_until=now + timedelta(days=1))
    assert user_has_permission(user.id, 'reports:read', now=now)
    assert not user_has_permission(user.id, 'reports:read', now=now - timedelta(days=2))
    assert not user_has_permission(user.id, 'reports:read', now=now + timedelta(days=2))
    # inclusive bounds
    assert user_has_permission(user.id, 'reports:read', now=now + timedelta(days=1))


def test_future_assignment_not_yet_effective():
    role = ensure_role('FUTURE', ['future:read'])
    user = ensure_user('future@example.com')
    assign_role(user, role, valid_from=utcnow() + timedelta(hours=1))
    assert get_user_permissions(user.id) == set()


def test_aware_now_is_normalised_to_utc():
    role = ensure_role('AWARE', ['aware:read'])
    user = ensure_user('aware@example.com')
    now = utcnow()
    assign_role(user, role, valid_until=now + timedelta(minutes=30))
    aware = (now + timedelta(minutes=10)).replace(tzinfo=timezone.utc).astimezone(timezone(timedelta(hours=5)))
    assert user_has_permission(user.id, 'aware:read', now=aware)


def test_module_wildcard_has_no_cross_module_leakage():
    role = ensure_role('CUSTOMER_ADMIN', ['customers:*'])
    user = seed_user_with_roles('cust@example.com', role)
    assert user_has_permission(user.id, 'customers:delete')
    assert user_has_permission(user.id, 'customers:notes:read')
    assert not user_has_permission(user.id, 'users:read')


def test_admin_wildcard_grants_any_code():
    role = ensure_role('ADMIN', ['admin:*'])
    user = seed_user_with_roles('admin@example.com', role)
    assert user_has_permission(user.id, 'whatever:delete')
    assert user_has_any_permission(user.id, [])
    assert user_has_all_permissions(user.id, ['a:b', 'c:d'])


def test_resolution_is_idempotent():
    role = ensure_role('STABLE', ['a:read', 'b:read'])
    user = seed_user_with_roles('stable@example.com', role)
    assert get_user_permissions(user.id) == get_user_permissions(user.id)


def test_any_and_all_empty_list_asymmetry():
    role = ensure_role('PLAIN', ['a:read'])
    user = seed_user_with_roles('plain@example.com', role)
    assert user_has_any_permission(user.id, []) is False
    assert user_has_all_permissions(user.id, []) is True
    assert user_has_any_permission(user.id, ['x:read', 'a:read'])
    assert not user_has_all_permissions(user.id, ['x:read', 'a:read'])


def test_malformed_code_in_grants_and_queries():
    role = ensure_role('ODD', ['legacy'])
    user = seed_user_with_roles('odd@example.com', role)
    assert user_has_permission(user.id, 'legacy')
    assert not user_has_permission(user.id, 'legacy:read')


def test_user_without_roles():
    user = ensure_user('nobody@example.com')
    assert get_user_permissions(user.id) == set()
    assert not user_has_permission(user.id, 'users:read')
    assert get_user_roles(user.id) == []
    assert get_user_role(user.id) is None


def test_roles_sorted_by_priority_and_not_expanded():
    parent = ensure_role('GRAND', priority=99)
    low = ensure_role('LOW', priority=1)
    high = ensure_role('HIGH', priority=50, parent=parent)
    user = seed_user_with_roles('prio@example.com', low, high)
    roles = get_user_roles(user.id)
    assert [r['code'] for r in roles] == ['HIGH', 'LOW']
    assert get_user_role(user.id)['code'] == 'HIGH'
    assert user_has_role(user.id, 'LOW')
    assert not user_has_role(user.id, 'GRAND')


def test_is_user_super_admin_ignores_tenant():
    t = ensure_tenant('acme')
    sa = ensure_role('SUPER_ADMIN')
    user = ensure_user('tenant-root@example.com', t)
    assign_role(user, sa, t)
    assert is_user_super_admin(user.id)
    assert user_has_role(user.id, 'SUPER_ADMIN', t.id)


def test_permissions_with_modules():
    ensure_permissions(['settings:general:read'])
    role = ensure_role('DETAILED', ['settings:general:read', 'settings:*'])
    user = seed_user_with_roles('detailed@example.com', role)
    rows = get_user_permissions_with_modules(user.id)
    assert [r['permission_code'] for r in rows] == ['settings:*', 'settings:general:read']
    detail = rows[1]
    assert (detail['module'], detail['resource'], detail['action']) == ('settings', 'general', 'read')


def test_tenant_helpers():
    t1 = ensure_tenant('one')
    t2 = ensure_tenant('two')
    scoped = ensure_user('scoped@example.com', t1)
    system = ensure_user('system@example.com')
    assert get_user_tenant_id(scoped.id) == t1.id
    assert get_user_tenant_id(system.id) is None
    assert user_belongs_to_tenant(scoped.id, t1.id)
    assert not user_belongs_to_tenant(scoped.id, t2.id)
    assert user_belongs_to_tenant(system.id, t2.id)
    assert not user_belongs_to_tenant(424242, t1.id)


def test_deleted_user_has_no_tenant():
    t = ensure_tenant('gone')
    user = ensure_user('deleted@example.com', t)
    session = get_db()
    user.deleted_at = utcnow()
    session.commit()
    assert get_user_tenant_id(user.id) is None
    assert not user_belongs_to_tenant(user.id, t.id)


def test_data_access_takes_strongest_level():
    r1 = ensure_role('OWNER_SCOPE')
    r2 = ensure_role('TEAM_SCOPE')
    r3 = ensure_role('ALL_BUT_OFF')
    customers = ensure_module('customers')
    grant_module_access(r1, customers, has_access=True, data_access='own')
    grant_module_access(r2, customers, has_access=True, data_access='team')
    grant_module_access(r3, customers, has_access=False, data_access='all')
    user = seed_user_with_roles('scope@example.com', r1, r2, r3)
    assert get_user_data_access(user.id, 'CUSTOMERS') == 'team'
    assert get_user_data_access(user.id, 'inventory') == 'none'


def test_super_admin_data_access_is_all():
    user = seed_user_with_roles('scope-root@example.com', ensure_role('SUPER_ADMIN'))
    assert get_user_data_access(user.id, 'anything') == 'all'


def test_apply_data_access_scope():
    session = get_db()
    a = ensure_user('a@example.com')
    b = ensure_user('b@example.com')
    base = select(User.id)

    def ids(level, **kw):
        q = apply_data_access_scope(base, level, owner_column=User.id, user_id=a.id, **kw)
        return set(session.execute(q).scalars())

    assert ids('all') == {a.id, b.id}
    assert ids('own') == {a.id}
    assert ids('team', team_column=User.id, team_ids=[a.id, b.id]) == {a.id, b.id}
    assert ids('team') == {a.id}
    assert ids('none') == set()


def test_permission_rows_are_not_mutated_by_reads():
    role = ensure_role('READER', ['r:read'])
    user = seed_user_with_roles('reader@example.com', role)
    before = get_db().execute(select(Permission.code)).scalars().all()
    get_user_permissions(user.id)
    assert get_db().execute(select(Permission.code)).scalars().all() == before
