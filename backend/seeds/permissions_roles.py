"""Seed definitions for modules, permissions & role composition.
Single source of truth consumed by scripts/seed_authz.py.
"""

# Module code -> (display name, actions). Nested resources use 'resource:action'.
MODULES = {
    'dashboard': ('Dashboard', ['read']),
    'profile': ('Profile', ['read', 'update']),
    'users': ('Users', ['read', 'create', 'update', 'delete']),
    'roles': ('Roles', ['read', 'create', 'update', 'delete']),
    'settings': ('Settings', [
        'read', 'update',
        'general:read', 'general:update',
        'registration:read', 'registration:update',
        'notification-methods:read', 'notification-methods:update',
        'smtp-settings:read', 'smtp-settings:update',
        'custom-fields:read', 'custom-fields:create', 'custom-fields:update', 'custom-fields:delete',
    ]),
    'customers': ('Customers', ['read', 'create', 'update', 'delete', 'export']),
    'inventory': ('Inventory', ['read', 'create', 'update', 'delete', 'adjust']),
    'payments': ('Payments', ['read', 'create', 'refund']),
    'suppliers': ('Suppliers', ['read', 'create', 'update', 'delete']),
}

# Role code -> (name, priority, explicit permission codes)
ROLES = {
    # SUPER_ADMIN is resolved by code; no grants needed
    'SUPER_ADMIN': ('Super Admin', 100, []),
    'ADMIN': ('Admin', 90, ['admin:*']),
    'MANAGER': ('Manager', 50, [
        'dashboard:read', 'profile:read', 'profile:update',
        'users:read', 'roles:read',
        'customers:*', 'inventory:*', 'payments:read', 'suppliers:*',
    ]),
    'USER': ('User', 10, ['dashboard:read', 'profile:read', 'profile:update']),
}

# Role code -> parent role code
ROLE_PARENTS = {
    'MANAGER': 'USER',
}

DEFAULT_ROLE = 'USER'


def build_all_permission_codes():
    codes = []
    for module, (_, actions) in MODULES.items():
        codes.append(f'{module}:*')
        codes.extend(f'{module}:{action}' for action in actions)
    codes.append('admin:*')
    return codes
