from __future__ import annotations
from datetime import datetime
from typing import Optional, Dict, Any, List
from sqlalchemy.orm import relationship, Mapped, mapped_column
from sqlalchemy import Integer, String, ForeignKey, JSON, DateTime, Text, Index

from vendorhub.utils.dates import utcnow
from .authz import Base

STATUS_ACTIVE = 'ACTIVE'
STATUS_REVOKED = 'REVOKED'
STATUS_EXPIRED = 'EXPIRED'


def effective_status(status: str, end_date: Optional[datetime], now: datetime) -> str:
    """Derived lifecycle state: an ACTIVE row whose end date has passed reads as EXPIRED.

    Expiry is never written back; every read site goes through this function.
    """
    if status != STATUS_ACTIVE:
        return status
    if end_date is not None and end_date <= now:
        return STATUS_EXPIRED
    return STATUS_ACTIVE


class Delegation(Base):
    __tablename__ = 'delegations'
    TYPE_TEMPORARY = 'TEMPORARY'
    TYPE_CONDITIONAL = 'CONDITIONAL'
    TYPE_PERMANENT = 'PERMANENT'
    ALL_TYPES = (TYPE_TEMPORARY, TYPE_CONDITIONAL, TYPE_PERMANENT)
    STATUS_ACTIVE = STATUS_ACTIVE
    STATUS_REVOKED = STATUS_REVOKED
    STATUS_EXPIRED = STATUS_EXPIRED
    ALL_STATUSES = (STATUS_ACTIVE, STATUS_REVOKED, STATUS_EXPIRED)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    delegator_id: Mapped[str] = mapped_column(ForeignKey('vendors.unique_id'), nullable=False, index=True)
    delegate_id: Mapped[str] = mapped_column(ForeignKey('vendors.unique_id'), nullable=False, index=True)
    delegation_type: Mapped[str] = mapped_column(String(16), nullable=False)
    delegated_permissions: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    delegation_scope: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    conditions: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, index=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_ACTIVE, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    audit_log = relationship(
        'DelegationAuditEntry',
        back_populates='delegation',
        cascade='all, delete-orphan',
        order_by='DelegationAuditEntry.id',
    )

    __table_args__ = (
        Index('ix_delegations_pair_status', 'delegator_id', 'delegate_id', 'status'),
    )

    def effective_status(self, now: Optional[datetime] = None) -> str:
        return effective_status(self.status, self.end_date, now or utcnow())

    def is_active(self, now: Optional[datetime] = None) -> bool:
        return self.effective_status(now) == STATUS_ACTIVE


class DelegationAuditEntry(Base):
    __tablename__ = 'delegation_audit_entries'
    ACTION_CREATED = 'DELEGATION_CREATED'
    ACTION_REVOKED = 'DELEGATION_REVOKED'
    ACTION_CONDITIONS_UPDATED = 'CONDITIONS_UPDATED'
    ALL_ACTIONS = (ACTION_CREATED, ACTION_REVOKED, ACTION_CONDITIONS_UPDATED)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    delegation_id: Mapped[int] = mapped_column(ForeignKey('delegations.id', ondelete='CASCADE'), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    performed_by: Mapped[str] = mapped_column(String(64), nullable=False)
    details: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    delegation = relationship('Delegation', back_populates='audit_log')

__all__ = ['Delegation', 'DelegationAuditEntry', 'effective_status']
