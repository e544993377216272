"""initial authorization tables

Revision ID: 0001_initial_authz
Revises:
Create Date: 2026-10-18
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = '0001_initial_authz'
down_revision = None
branch_labels = None
depends_on = None

NOW = sa.text('CURRENT_TIMESTAMP')


def upgrade():
    op.create_table('tenants',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('code', sa.String(length=64), nullable=False, unique=True),
        sa.Column('created_at', sa.DateTime(), server_default=NOW),
    )

    op.create_table('permissions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(length=100), nullable=False, unique=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('module', sa.String(length=50), nullable=False),
        sa.Column('resource', sa.String(length=50)),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), server_default=NOW),
    )
    op.create_index('ix_permissions_code', 'permissions', ['code'])
    op.create_index('ix_permissions_module', 'permissions', ['module'])

    op.create_table('roles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenants.id', ondelete='CASCADE')),
        sa.Column('parent_role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='SET NULL')),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('is_system', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('updated_at', sa.DateTime(), server_default=NOW),
        sa.UniqueConstraint('tenant_id', 'code', name='uq_role_tenant_code'),
    )

    op.create_table('users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenants.id', ondelete='CASCADE')),
        sa.Column('email', sa.String(length=255), nullable=False, unique=True),
        sa.Column('full_name', sa.String(length=255)),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('deleted_at', sa.DateTime()),
        sa.Column('updated_at', sa.DateTime(), server_default=NOW),
    )
    op.create_index('ix_users_email', 'users', ['email'])

    op.create_table('role_permissions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('permission_id', sa.Integer(), sa.ForeignKey('permissions.id', ondelete='CASCADE'), nullable=False),
        sa.UniqueConstraint('role_id', 'permission_id', name='uq_role_permission'),
    )

    op.create_table('user_roles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenants.id', ondelete='CASCADE')),
        sa.Column('valid_from', sa.DateTime()),
        sa.Column('valid_until', sa.DateTime()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('assigned_at', sa.DateTime(), server_default=NOW),
        sa.UniqueConstraint('user_id', 'role_id', 'tenant_id', name='uq_user_role_tenant'),
    )

    op.create_table('resource_permissions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenants.id', ondelete='CASCADE')),
        sa.Column('resource_type', sa.String(length=50), nullable=False),
        sa.Column('resource_id', sa.String(length=64), nullable=False),
        sa.Column('permission_code', sa.String(length=100), nullable=False),
        sa.Column('valid_from', sa.DateTime()),
        sa.Column('valid_until', sa.DateTime()),
        sa.Column('granted_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('created_at', sa.DateTime(), server_default=NOW),
    )
    op.create_index('ix_resource_permissions_lookup', 'resource_permissions', ['user_id', 'resource_type', 'resource_id'])

    op.create_table('modules',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(length=100), nullable=False, unique=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
    )

    op.create_table('role_module_access',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('module_id', sa.Integer(), sa.ForeignKey('modules.id', ondelete='CASCADE'), nullable=False),
        sa.Column('has_access', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('data_access', sa.String(length=20), nullable=False, server_default='none'),
        sa.Column('updated_by', sa.Integer()),
        sa.Column('updated_at', sa.DateTime(), server_default=NOW),
        sa.UniqueConstraint('role_id', 'module_id', name='uq_role_module_access'),
    )
    op.create_index('ix_role_module_access_role_id', 'role_module_access', ['role_id'])
    op.create_index('ix_role_module_access_module_id', 'role_module_access', ['module_id'])

    op.create_table('role_module_permissions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('module_id', sa.Integer(), sa.ForeignKey('modules.id', ondelete='CASCADE'), nullable=False),
        sa.Column('permission_id', sa.Integer(), sa.ForeignKey('permissions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('granted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('updated_by', sa.Integer()),
        sa.UniqueConstraint('role_id', 'module_id', 'permission_id', name='uq_role_module_permission'),
    )
    op.create_index('ix_role_module_permissions_role_id', 'role_module_permissions', ['role_id'])
    op.create_index('ix_role_module_permissions_module_id', 'role_module_permissions', ['module_id'])
    op.create_index('ix_role_module_permissions_permission_id', 'role_module_permissions', ['permission_id'])

    op.create_table('module_fields',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('module_id', sa.Integer(), sa.ForeignKey('modules.id', ondelete='CASCADE'), nullable=False),
        sa.Column('code', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('label', sa.String(length=255)),
        sa.Column('field_type', sa.String(length=50)),
        sa.Column('is_system_field', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.UniqueConstraint('module_id', 'code', name='uq_module_field_code'),
    )
    op.create_index('ix_module_fields_module_id', 'module_fields', ['module_id'])

    op.create_table('role_field_permissions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('module_id', sa.Integer(), sa.ForeignKey('modules.id', ondelete='CASCADE'), nullable=False),
        sa.Column('field_id', sa.Integer(), sa.ForeignKey('module_fields.id', ondelete='CASCADE'), nullable=False),
        sa.Column('is_visible', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_editable', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('updated_by', sa.Integer()),
        sa.UniqueConstraint('role_id', 'module_id', 'field_id', name='uq_role_field_permission'),
    )
    op.create_index('ix_role_field_permissions_role_id', 'role_field_permissions', ['role_id'])
    op.create_index('ix_role_field_permissions_module_id', 'role_field_permissions', ['module_id'])
    op.create_index('ix_role_field_permissions_field_id', 'role_field_permissions', ['field_id'])


def downgrade():
    for tbl in ['role_field_permissions', 'module_fields', 'role_module_permissions', 'role_module_access', 'modules',
                'resource_permissions', 'user_roles', 'role_permissions', 'users', 'roles', 'permissions', 'tenants']:
        op.drop_table(tbl)
