from sqlalchemy import select

from rbac_core import get_db
from rbac_core.models.authz import Permission, Role, User
from rbac_core.services.policy import get_user_permissions, user_has_permission, is_user_super_admin
from scripts import seed_authz


def _seed(session):
    seed_authz.ensure_modules(session)
    seed_authz.ensure_permissions(session)
    seed_authz.ensure_roles(session)
    seed_authz.ensure_initial_admin(session)
    session.commit()


def test_seed_is_idempotent(monkeypatch):
    monkeypatch.setenv('SEED_ADMIN_EMAIL', 'root@seed.local')
    session = get_db()
    _seed(session)
    counts = (len(session.execute(select(Permission)).all()), len(session.execute(select(Role)).all()))
    assert seed_authz.ensure_modules(session) == 0
    assert seed_authz.ensure_permissions(session) == 0
    assert seed_authz.ensure_roles(session) == 0
    seed_authz.ensure_initial_admin(session)
    session.commit()
    assert counts == (len(session.execute(select(Permission)).all()), len(session.execute(select(Role)).all()))
    assert len(session.execute(select(User)).all()) == 1


def test_seeded_roles_resolve(monkeypatch):
    monkeypatch.setenv('SEED_ADMIN_EMAIL', 'root@seed.local')
    session = get_db()
    _seed(session)
    admin = session.execute(select(User).where(User.email == 'root@seed.local')).scalar_one()
    assert is_user_super_admin(admin.id)
    assert 'settings:custom-fields:create' in get_user_permissions(admin.id)

    from test_utils_seed import ensure_user, assign_role
    manager_role = session.execute(select(Role).where(Role.code == 'MANAGER')).scalar_one()
    manager = ensure_user('manager@seed.local')
    assign_role(manager, manager_role)
    # inherits USER through the seeded parent link
    assert user_has_permission(manager.id, 'profile:update')
    assert user_has_permission(manager.id, 'customers:export')
    assert not user_has_permission(manager.id, 'roles:update')


def test_validate_reports_no_problems():
    session = get_db()
    _seed(session)
    assert seed_authz.validate(session, seed_authz.build_role_permission_map(session)) == []
