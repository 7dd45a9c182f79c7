from __future__ import annotations
from sqlalchemy.orm import declarative_base, relationship, Mapped, mapped_column
from sqlalchemy import String, Integer, Boolean, ForeignKey, JSON, DateTime, Text, func
from typing import Optional, Dict, Any
from datetime import datetime

from vendorhub.utils.dates import utcnow

Base = declarative_base()

# --- Role templates & per-vendor grants ---
class Role(Base):
    __tablename__ = 'roles'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    role_name: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    level: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    permissions: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    can_delegate: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    delegatable_permissions: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class DefaultPermissionGrant(Base):
    __tablename__ = 'default_permission_grants'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # One grant per vendor; the unique index is what rejects a second assignment
    vendor_unique_id: Mapped[str] = mapped_column(ForeignKey('vendors.unique_id'), unique=True, nullable=False, index=True)
    vendor_level: Mapped[int] = mapped_column(Integer, nullable=False)
    # Copied from the role at assignment time, never a live reference
    granted_permissions: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    history = relationship(
        'PermissionHistoryEntry',
        back_populates='grant',
        cascade='all, delete-orphan',
        order_by='PermissionHistoryEntry.id',
    )

    __mapper_args__ = {'version_id_col': version}


class PermissionHistoryEntry(Base):
    __tablename__ = 'permission_history'
    CHANGE_DEFAULT = 'DEFAULT'
    CHANGE_GRANTED = 'GRANTED'
    CHANGE_REVOKED = 'REVOKED'
    ALL_CHANGE_TYPES = (CHANGE_DEFAULT, CHANGE_GRANTED, CHANGE_REVOKED)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    grant_id: Mapped[int] = mapped_column(ForeignKey('default_permission_grants.id', ondelete='CASCADE'), nullable=False, index=True)
    granted_by: Mapped[str] = mapped_column(String(64), nullable=False)
    change_type: Mapped[str] = mapped_column(String(16), nullable=False)
    permission: Mapped[str] = mapped_column(String(128), nullable=False)
    previous_value: Mapped[bool] = mapped_column(Boolean, nullable=False)
    new_value: Mapped[bool] = mapped_column(Boolean, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    grant = relationship('DefaultPermissionGrant', back_populates='history')
