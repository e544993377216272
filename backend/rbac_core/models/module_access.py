from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Integer, Boolean, ForeignKey, UniqueConstraint, DateTime, text

from .authz import Base  # reuse same metadata


class Module(Base):
    __tablename__ = 'modules'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # unique; always compared case-insensitively
    code: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    fields = relationship('ModuleField', back_populates='module', cascade='all, delete-orphan')


class RoleModuleAccess(Base):
    """Presence of a row hands the module over to the module-scoped system for that role."""
    __tablename__ = 'role_module_access'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    role_id: Mapped[int] = mapped_column(ForeignKey('roles.id', ondelete='CASCADE'), nullable=False, index=True)
    module_id: Mapped[int] = mapped_column(ForeignKey('modules.id', ondelete='CASCADE'), nullable=False, index=True)
    has_access: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    data_access: Mapped[str] = mapped_column(String(20), default='none', nullable=False)
    updated_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=text('CURRENT_TIMESTAMP'), server_onupdate=text('CURRENT_TIMESTAMP'))

    __table_args__ = (UniqueConstraint('role_id', 'module_id', name='uq_role_module_access'),)


class RoleModulePermission(Base):
    __tablename__ = 'role_module_permissions'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    role_id: Mapped[int] = mapped_column(ForeignKey('roles.id', ondelete='CASCADE'), nullable=False, index=True)
    module_id: Mapped[int] = mapped_column(ForeignKey('modules.id', ondelete='CASCADE'), nullable=False, index=True)
    permission_id: Mapped[int] = mapped_column(ForeignKey('permissions.id', ondelete='CASCADE'), nullable=False, index=True)
    granted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    updated_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (UniqueConstraint('role_id', 'module_id', 'permission_id', name='uq_role_module_permission'),)


class ModuleField(Base):
    __tablename__ = 'module_fields'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    module_id: Mapped[int] = mapped_column(ForeignKey('modules.id', ondelete='CASCADE'), nullable=False, index=True)
    code: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    label: Mapped[Optional[str]] = mapped_column(String(255))
    field_type: Mapped[Optional[str]] = mapped_column(String(50))
    is_system_field: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    module = relationship('Module', back_populates='fields')

    __table_args__ = (UniqueConstraint('module_id', 'code', name='uq_module_field_code'),)


class RoleFieldPermission(Base):
    """Invariant: is_editable implies is_visible. Enforced by the write path only."""
    __tablename__ = 'role_field_permissions'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    role_id: Mapped[int] = mapped_column(ForeignKey('roles.id', ondelete='CASCADE'), nullable=False, index=True)
    module_id: Mapped[int] = mapped_column(ForeignKey('modules.id', ondelete='CASCADE'), nullable=False, index=True)
    field_id: Mapped[int] = mapped_column(ForeignKey('module_fields.id', ondelete='CASCADE'), nullable=False, index=True)
    is_visible: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_editable: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    updated_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (UniqueConstraint('role_id', 'module_id', 'field_id', name='uq_role_field_permission'),)
