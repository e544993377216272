from datetime import timedelta

from rbac_core.services.policy import user_has_permission, user_has_any_permission, user_has_all_permissions
from rbac_core.services.resource_overrides import (
    has_resource_permission, grant_resource_permission, revoke_resource_permission,
)
from rbac_core.utils.validity import utcnow
from test_utils_seed import ensure_user, ensure_tenant, ensure_role, seed_user_with_roles


def test_override_grants_without_any_role():
    user = ensure_user('override@example.com')
    grant_resource_permission(user.id, 'document', 42, 'documents:update')
    assert user_has_permission(user.id, 'documents:update', None, 'document', 42)
    assert user_has_permission(user.id, 'documents:update', None, 'document', '42')
    # other objects, codes and the role-level check stay denied
    assert not user_has_permission(user.id, 'documents:update', None, 'document', 43)
    assert not user_has_permission(user.id, 'documents:delete', None, 'document', 42)
    assert not user_has_permission(user.id, 'documents:update')


def test_override_is_exact_match_only():
    user = ensure_user('exact-override@example.com')
    grant_resource_permission(user.id, 'document', 7, 'documents:*')
    assert not has_resource_permission(user.id, 'document', 7, 'documents:read')
    assert has_resource_permission(user.id, 'document', 7, 'documents:*')


def test_override_not_consulted_by_any_or_all():
    user = ensure_user('any-override@example.com')
    grant_resource_permission(user.id, 'document', 1, 'documents:read')
    assert not user_has_any_permission(user.id, ['documents:read'])
    assert not user_has_all_permissions(user.id, ['documents:read'])


def test_override_window_and_tenant():
    t1 = ensure_tenant('ov1')
    t2 = ensure_tenant('ov2')
    user = ensure_user('window-override@example.com', t1)
    now = utcnow()
    grant_resource_permission(user.id, 'invoice', 'INV-1', 'payments:refund', t1.id,
                              valid_from=now - timedelta(hours=1), valid_until=now + timedelta(hours=1))
    assert has_resource_permission(user.id, 'invoice', 'INV-1', 'payments:refund', t1.id, now=now)
    assert has_resource_permission(user.id, 'invoice', 'INV-1', 'payments:refund', now=now)
    assert not has_resource_permission(user.id, 'invoice', 'INV-1', 'payments:refund', t2.id, now=now)
    assert not has_resource_permission(user.id, 'invoice', 'INV-1', 'payments:refund', t1.id, now=now + timedelta(hours=2))


def test_role_grant_still_applies_when_override_missing():
    role = ensure_role('DOC_READER', ['documents:read'])
    user = seed_user_with_roles('fallback@example.com', role)
    assert user_has_permission(user.id, 'documents:read', None, 'document', 99)


def test_empty_resource_id_skips_override_lookup():
    user = ensure_user('empty-id@example.com')
    grant_resource_permission(user.id, 'document', '', 'documents:read')
    assert not user_has_permission(user.id, 'documents:read', None, 'document', '')


def test_revoke_removes_grant():
    user = ensure_user('revoke@example.com')
    grant_resource_permission(user.id, 'document', 5, 'documents:read')
    assert revoke_resource_permission(user.id, 'document', 5, 'documents:read') == 1
    assert not has_resource_permission(user.id, 'document', 5, 'documents:read')
    assert revoke_resource_permission(user.id, 'document', 5, 'documents:read') == 0
