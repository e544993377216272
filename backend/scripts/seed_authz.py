#!/usr/bin/env python
"""Idempotent seed script for modules, permissions & system roles.

Usage:
    python backend/scripts/seed_authz.py               # seed normally
    python backend/scripts/seed_authz.py --show-roles  # print role -> permission counts (after ensuring seed)
    python backend/scripts/seed_authz.py --dry-run     # run logic then rollback (no DB changes)
    python backend/scripts/seed_authz.py --validate    # check codes & role references; exit 2 on problems
"""
from __future__ import annotations
import os, sys, argparse, textwrap, json, hashlib
from sqlalchemy import select, text

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from rbac_core import create_app, get_db  # type: ignore
from rbac_core.models.authz import Base, Permission, Role, RolePermission, User, UserRole
from rbac_core.models.module_access import Module
from rbac_core.constants.permissions import SUPER_ADMIN_ROLE_CODE
from rbac_core.utils.codes import PermissionKey
from seeds.permissions_roles import MODULES, ROLES, ROLE_PARENTS, DEFAULT_ROLE, build_all_permission_codes


def ensure_modules(session):
    existing = {m.code.lower() for m in session.execute(select(Module)).scalars().all()}
    created = 0
    for order, (code, (name, _)) in enumerate(MODULES.items(), start=1):
        if code not in existing:
            session.add(Module(code=code, name=name, sort_order=order, is_active=True))
            created += 1
    return created


def ensure_permissions(session):
    existing = {p.code for p in session.execute(select(Permission)).scalars().all()}
    created = 0
    for code in build_all_permission_codes():
        if code in existing:
            continue
        key = PermissionKey.parse(code)
        session.add(Permission(
            code=code,
            name=code.replace(':', ' - '),
            module=key.module,
            resource=key.resource,
            action=key.action,
            is_active=True,
        ))
        created += 1
    session.flush()
    return created


def ensure_roles(session):
    # System roles are global (tenant_id NULL)
    existing_roles = {r.code: r for r in session.execute(select(Role).where(Role.tenant_id.is_(None))).scalars().all()}
    created = 0
    for code, (name, priority, _) in ROLES.items():
        if code not in existing_roles:
            role = Role(code=code, name=name, priority=priority, is_system=True, is_default=(code == DEFAULT_ROLE))
            session.add(role)
            existing_roles[code] = role
            created += 1
    session.flush()

    for code, parent_code in ROLE_PARENTS.items():
        existing_roles[code].parent_role_id = existing_roles[parent_code].id

    perms_map = {p.code: p for p in session.execute(select(Permission)).scalars()}
    for code, role in existing_roles.items():
        if code not in ROLES:
            continue
        desired = set(ROLES[code][2])
        current = {rp.permission.code for rp in role.permissions}
        for perm_code in sorted(desired - current):
            if perm_code not in perms_map:
                print(f"[WARN] Missing permission referenced by role {code}: {perm_code}")
                continue
            session.add(RolePermission(role=role, permission=perms_map[perm_code]))
    return created


def ensure_initial_admin(session):
    super_admin = session.execute(
        select(Role).where(Role.code == SUPER_ADMIN_ROLE_CODE, Role.tenant_id.is_(None))
    ).scalar_one_or_none()
    if not super_admin:
        print('[WARN] SUPER_ADMIN role missing; skipping admin user creation')
        return
    admin_email = os.getenv('SEED_ADMIN_EMAIL', 'admin@example.com')
    existing_admin = session.execute(select(User).where(User.email == admin_email)).scalar_one_or_none()
    if not existing_admin:
        # tenant-less identity: may act in every tenant
        user = User(full_name='Super Admin', email=admin_email, tenant_id=None)
        session.add(user)
        session.flush()
        session.add(UserRole(user_id=user.id, role_id=super_admin.id, tenant_id=None, is_active=True))
        print(f"[INFO] Created initial super admin user {admin_email}.")


def build_role_permission_map(session):
    mapping = {}
    for role in session.execute(select(Role).order_by(Role.code)).scalars().all():
        mapping[role.code] = sorted({rp.permission.code for rp in role.permissions})
    return mapping


def print_role_summary(session):
    rows = [(code, len(perms), perms[:8]) for code, perms in build_role_permission_map(session).items()]
    if not rows:
        print("[INFO] No roles present.")
        return
    name_w = max(len(r[0]) for r in rows)
    print(f"{'Role'.ljust(name_w)} | Count | Sample (up to 8)")
    print('-' * (name_w + 40))
    for name, cnt, sample in rows:
        print(f"{name.ljust(name_w)} | {str(cnt).rjust(5)} | {', '.join(sample)}")


def validate(session, role_perm_map):
    problems = []
    valid_modules = set(MODULES) | {'admin'}
    for code in session.execute(select(Permission.code)).scalars().all():
        key = PermissionKey.parse(code)
        if key.is_malformed:
            problems.append(f"Invalid format (missing ':'): {code}")
        elif key.module not in valid_modules:
            problems.append(f"Unknown module '{key.module}' in code: {code}")
    all_codes = set(session.execute(select(Permission.code)).scalars().all())
    for role_code, codes in role_perm_map.items():
        for c in codes:
            if c not in all_codes:
                problems.append(f"Role '{role_code}' references missing permission code: {c}")
    for code, parent in ROLE_PARENTS.items():
        if code not in ROLES or parent not in ROLES:
            problems.append(f"Role parent references unknown role: {code} -> {parent}")
    return problems


def parse_args():
    p = argparse.ArgumentParser(
        description="Seed RBAC modules, permissions & roles",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed normally: seed_authz.py\n  dry run: seed_authz.py --dry-run\n  show roles: seed_authz.py --show-roles\n""")
    )
    p.add_argument('--show-roles', action='store_true', help='Print role permission counts after seeding')
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    p.add_argument('--export-json', nargs='?', const='-', metavar='FILE', help='Export role->permissions JSON (to FILE or stdout if omitted)')
    p.add_argument('--validate', action='store_true', help='Validate permission codes & role references; exits non-zero on problems')
    return p.parse_args()


def main():
    args = parse_args()
    app = create_app()
    with app.app_context():
        session = get_db()
        try:
            session.execute(text('SELECT 1 FROM permissions LIMIT 1'))
        except Exception:
            # Bootstrap fallback when migrations have not run; prefer `alembic upgrade head`
            session.rollback()
            import rbac_core.models.module_access  # noqa: F401
            Base.metadata.create_all(session.get_bind())
        finally:
            session.commit()

        try:
            created_m = ensure_modules(session)
            created_p = ensure_permissions(session)
            created_r = ensure_roles(session)
            ensure_initial_admin(session)
            session.flush()
            role_perm_map = build_role_permission_map(session)
            if args.validate:
                problems = validate(session, role_perm_map)
                if problems:
                    print('\n[VALIDATION] FAIL:')
                    for p in problems:
                        print(' -', p)
                    session.rollback()
                    sys.exit(2)
                print('[VALIDATION] OK: All permission codes & role references valid.')
            if args.dry_run:
                session.rollback()
                print(f"[DRY-RUN] (rolled back) Modules would create: {created_m}, Permissions: {created_p}, Roles: {created_r}")
            else:
                session.commit()
                print(f"[DONE] Modules created: {created_m}, Permissions created: {created_p}, Roles created: {created_r}")
            if args.show_roles:
                print('\nRole Permission Summary:')
                print_role_summary(session)
            if args.export_json is not None:
                canonical = json.dumps(role_perm_map, sort_keys=True, separators=(',', ':'))
                payload = {
                    'roles': role_perm_map,
                    'meta': {
                        'roles_checksum_sha256': hashlib.sha256(canonical.encode('utf-8')).hexdigest(),
                        'dry_run': args.dry_run,
                    },
                }
                if args.export_json == '-':
                    print(json.dumps(payload, indent=2, sort_keys=True))
                else:
                    with open(args.export_json, 'w', encoding='utf-8') as f:
                        json.dump(payload, f, indent=2, sort_keys=True)
                    print(f"[INFO] Exported JSON to {args.export_json}")
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


if __name__ == '__main__':
    main()
