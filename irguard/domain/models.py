from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    func,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class Organization(Base):
    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100))
    # Subscription tier identifier; drives lazy limits defaults.
    license_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class TeamMember(Base):
    __tablename__ = "team_members"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id"), index=True
    )
    user_id: Mapped[int] = mapped_column(Integer)
    role: Mapped[str] = mapped_column(String(50), default="member")
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class Incident(Base):
    __tablename__ = "incidents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id"), index=True
    )
    title: Mapped[str] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(String(50), default="open")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class Asset(Base):
    __tablename__ = "assets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id"), index=True
    )
    name: Mapped[str] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class Runbook(Base):
    __tablename__ = "runbooks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id"), index=True
    )
    title: Mapped[str] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class CommunicationTemplate(Base):
    __tablename__ = "communication_templates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id"), index=True
    )
    name: Mapped[str] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class OrganizationLimits(Base):
    __tablename__ = "organization_limits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Unique per organization; guards lazy creation against duplicate rows.
    organization_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id"), unique=True, nullable=False
    )

    max_users: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # Informational seat counter. Admission always live-counts team_members, and
    # nothing decrements it, so it is never read for a quota decision.
    current_users: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )

    # Storage is always bounded; current usage is a cached counter.
    max_storage_mb: Mapped[int] = mapped_column(Integer, nullable=False)
    current_storage_mb: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )

    # NULL means unlimited for count-based resources.
    max_incidents: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_assets: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_runbooks: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_templates: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Calls permitted per rolling window.
    api_rate_limit: Mapped[int] = mapped_column(Integer, nullable=False)
    api_calls_this_hour: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    api_reset_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    custom_domains_allowed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    whitelabeling_allowed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    api_access_allowed: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    sso_allowed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
