from __future__ import annotations
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, DateTime, ForeignKey, Index, func
from .authz import Base


class Vendor(Base):
    __tablename__ = 'vendors'
    STATUS_ACTIVE = 'ACTIVE'
    STATUS_INACTIVE = 'INACTIVE'
    STATUS_SUSPENDED = 'SUSPENDED'
    ALL_STATUSES = (STATUS_ACTIVE, STATUS_INACTIVE, STATUS_SUSPENDED)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    # Business key referenced by delegations, grants and parent links
    unique_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    email: Mapped[str] = mapped_column(String(150), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(32))
    address: Mapped[Optional[str]] = mapped_column(String(255))
    level: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    region: Mapped[Optional[str]] = mapped_column(String(16))
    city: Mapped[Optional[str]] = mapped_column(String(100))
    locality: Mapped[Optional[str]] = mapped_column(String(100))
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=STATUS_ACTIVE, index=True)
    parent_id: Mapped[Optional[str]] = mapped_column(ForeignKey('vendors.unique_id'), nullable=True, index=True)
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index('ix_vendors_level_region', 'level', 'region'),
        Index('ix_vendors_level_city', 'level', 'city'),
    )

    def set_password(self, raw: str):
        from werkzeug.security import generate_password_hash
        self.password_hash = generate_password_hash(raw)

    def verify_password(self, raw: str) -> bool:
        from werkzeug.security import check_password_hash
        return check_password_hash(self.password_hash, raw)

__all__ = ["Vendor"]
