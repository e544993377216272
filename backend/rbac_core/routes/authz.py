from flask import Blueprint, request, abort
from sqlalchemy import select
from rbac_core import get_db
from rbac_core.config.routes import get_route_permission
from rbac_core.constants.permissions import SUPER_ADMIN_ROLE_CODE
from rbac_core.decorators.auth import current_user_id, require_permission
from rbac_core.errors import AuthzError, UnknownEntityError
from rbac_core.models.authz import Role
from rbac_core.services.field_permissions import get_user_field_permissions, register_module_field
from rbac_core.services.policy import (
    get_user_permissions, get_user_roles, get_user_tenant_id, is_user_super_admin, user_has_any_permission,
)
from rbac_core.services.role_permissions import update_role_module_permissions, set_role_parent, get_role_permissions

auth_bp = Blueprint('auth', __name__)
roles_bp = Blueprint('roles', __name__)
modules_bp = Blueprint('modules', __name__)


def _abort_for(e: AuthzError):
    abort(404 if isinstance(e, UnknownEntityError) else 400, description=str(e))


# --- Current user ---

@auth_bp.get('/permissions')
def my_permissions():
    user_id = current_user_id()
    tenant_id = get_user_tenant_id(user_id)
    perms = get_user_permissions(user_id, tenant_id)
    return {'success': True, 'permissions': sorted(perms)}


@auth_bp.get('/roles')
def my_roles():
    user_id = current_user_id()
    return {'success': True, 'roles': get_user_roles(user_id, get_user_tenant_id(user_id))}


@auth_bp.post('/check-route-permission')
def check_route_permission():
    user_id = current_user_id()
    data = request.json or {}
    pathname = data.get('pathname')
    if not pathname:
        return {'error': 'Pathname is required', 'hasAccess': False}, 400
    required = get_route_permission(pathname)
    # Routes without a mapping are protected by authentication only
    if not required:
        return {'hasAccess': True}
    if not user_has_any_permission(user_id, required, get_user_tenant_id(user_id)):
        return {'hasAccess': False, 'error': 'Forbidden - Insufficient permissions', 'requiredPermissions': required}, 403
    return {'hasAccess': True}


@auth_bp.get('/field-permissions')
def my_field_permissions():
    user_id = current_user_id()
    module_code = request.args.get('moduleCode') or None
    data = get_user_field_permissions(user_id, module_code, get_user_tenant_id(user_id))
    return {'success': True, 'data': data}


# --- Role administration ---

def _load_role(role_id) -> Role:
    role = get_db().execute(select(Role).where(Role.id == role_id)).scalar_one_or_none()
    if not role:
        abort(404)
    return role


def _visible_to(role: Role, caller_tenant, *, write: bool = False) -> bool:
    # Tenant-less callers administer every tenant
    if caller_tenant is None:
        return True
    if role.tenant_id is None:
        # global roles are shared; only system-level callers may change them
        return not write
    return role.tenant_id == caller_tenant


def _target_role(role_id: int, *, write: bool = False) -> Role:
    """Load a role the caller may see (write=False) or administer (write=True).

    Roles outside the caller's tenant answer 404 so their existence is not
    disclosed. SUPER_ADMIN is hidden from non super admins on reads and
    guarded with 403 on writes.
    """
    role = _load_role(role_id)
    caller = current_user_id()
    if is_user_super_admin(caller):
        return role
    if role.code == SUPER_ADMIN_ROLE_CODE:
        if write:
            abort(403, description='Forbidden - Only Super Admins can modify Super Admin role permissions')
        abort(404, description='Role not found')
    if not _visible_to(role, get_user_tenant_id(caller), write=write):
        abort(404, description='Role not found')
    return role


@roles_bp.get('/<int:role_id>/permissions')
@require_permission('roles:read')
def role_permission_matrix(role_id: int):
    _target_role(role_id)
    try:
        return get_role_permissions(role_id)
    except AuthzError as e:
        _abort_for(e)


@roles_bp.put('/<int:role_id>/permissions/<int:module_id>')
@require_permission('roles:update')
def update_role_module(role_id: int, module_id: int):
    _target_role(role_id, write=True)
    data = request.json or {}
    permissions = [(p.get('permissionId'), bool(p.get('granted'))) for p in data.get('permissions') or []]
    fields = [(f.get('fieldId'), bool(f.get('isVisible')), bool(f.get('isEditable'))) for f in data.get('fields') or []]
    try:
        update_role_module_permissions(
            role_id,
            module_id,
            has_access=bool(data.get('hasAccess')),
            data_access=data.get('dataAccess') or 'none',
            permissions=permissions,
            fields=fields,
            updated_by=current_user_id(),
        )
    except AuthzError as e:
        _abort_for(e)
    return {'success': True, 'role_id': role_id, 'module_id': module_id}


@roles_bp.put('/<int:role_id>/parent')
@require_permission('roles:update')
def update_role_parent(role_id: int):
    _target_role(role_id, write=True)
    data = request.json or {}
    parent_role_id = data.get('parentRoleId')
    if parent_role_id is not None:
        # the new parent must be visible to the caller as well
        _target_role(parent_role_id)
    try:
        role = set_role_parent(role_id, parent_role_id)
    except AuthzError as e:
        _abort_for(e)
    return {'id': role.id, 'parent_role_id': role.parent_role_id}


# --- Module fields ---

@modules_bp.post('/<int:module_id>/fields')
@require_permission('settings:custom-fields:create')
def create_module_field(module_id: int):
    data = request.json or {}
    code, name = data.get('code'), data.get('name')
    if not code or not name:
        abort(400, description='code & name required')
    try:
        field = register_module_field(
            module_id, code, name,
            label=data.get('label'),
            field_type=data.get('fieldType'),
            created_by=current_user_id(),
        )
    except AuthzError as e:
        _abort_for(e)
    return {'id': field.id, 'module_id': field.module_id, 'code': field.code}, 201
