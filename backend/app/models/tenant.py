"""
Newsdesk Editorial Core — Tenant Models
=======================================
Tenants, their publishing domains, languages, categories, and the reporter
profile that links a user to exactly one tenant.
"""

import enum
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    Boolean, Column, DateTime, Enum, ForeignKey, Index, String, UniqueConstraint,
)

from app.core.database import Base


def _uuid() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DomainStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(200), nullable=False)
    slug = Column(String(120), nullable=False, unique=True)
    ai_rewrite_enabled = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    def __repr__(self):
        return f"<Tenant {self.slug}>"


class Domain(Base):
    __tablename__ = "domains"

    id = Column(String(36), primary_key=True, default=_uuid)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    host = Column(String(255), nullable=False, unique=True)
    status = Column(
        Enum(DomainStatus, name="domain_status", native_enum=False, length=20),
        nullable=False,
        default=DomainStatus.ACTIVE,
    )
    is_primary = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class Language(Base):
    __tablename__ = "languages"

    id = Column(String(36), primary_key=True, default=_uuid)
    code = Column(String(10), nullable=False, unique=True)
    name = Column(String(80), nullable=False)


class Category(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=_uuid)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=True)
    slug = Column(String(120), nullable=False)
    name = Column(String(200), nullable=False)

    __table_args__ = (
        UniqueConstraint("tenant_id", "slug", name="uq_categories_tenant_slug"),
    )


class Reporter(Base):
    """Profile link between an authenticated user and a tenant."""
    __tablename__ = "reporters"

    id = Column(String(36), primary_key=True, default=_uuid)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(64), nullable=False, unique=True)
    auto_publish = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        Index("ix_reporters_tenant", "tenant_id"),
    )
