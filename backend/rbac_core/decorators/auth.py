from functools import wraps
from flask import abort
from flask_jwt_extended import verify_jwt_in_request, get_jwt_identity
from rbac_core.services.policy import (
    user_has_permission, user_has_any_permission, user_has_all_permissions, get_user_tenant_id,
)


def current_user_id() -> int:
    verify_jwt_in_request()
    # Identity is stored as a string (flask-jwt-extended v4 requirement)
    return int(get_jwt_identity())


def _guard(check):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user_id = current_user_id()
            tenant_id = get_user_tenant_id(user_id)
            if not check(user_id, tenant_id, kwargs):
                abort(403, description='Forbidden - Insufficient permissions')
            return fn(*args, **kwargs)
        return wrapper
    return outer


def require_permission(code: str, resource_type: str = None, resource_id_arg: str = None):
    """Single-code guard; with resource_type + resource_id_arg an object-level grant on
    the path parameter also satisfies it."""
    def check(user_id, tenant_id, kwargs):
        resource_id = kwargs.get(resource_id_arg) if resource_id_arg else None
        return user_has_permission(user_id, code, tenant_id, resource_type, resource_id)
    return _guard(check)


def require_any_permission(*codes: str):
    return _guard(lambda user_id, tenant_id, kwargs: user_has_any_permission(user_id, list(codes), tenant_id))


def require_all_permissions(*codes: str):
    return _guard(lambda user_id, tenant_id, kwargs: user_has_all_permissions(user_id, list(codes), tenant_id))
