"""SQLAlchemy ORM models for the employee directory."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, List

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utc_now() -> datetime:
    """Return a timezone-aware UTC timestamp."""

    return datetime.now(timezone.utc)


def _uuid() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


class Company(Base):
    """Registered tenant organisation."""

    __tablename__ = "companies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    industry: Mapped[str] = mapped_column(String(255), nullable=False)
    domain: Mapped[str] = mapped_column(String(255), nullable=False)
    hr_contact_name: Mapped[str] = mapped_column(String(255), nullable=False)
    hr_contact_email: Mapped[str] = mapped_column(String(255), nullable=False)
    hr_contact_role: Mapped[str] = mapped_column(String(255), nullable=False)
    verification_status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    learning_path_approval: Mapped[str] = mapped_column(String(20), nullable=False, default="manual")
    primary_kpis: Mapped[str | None] = mapped_column(Text, nullable=True)
    logo_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now, onupdate=_utc_now)

    __table_args__ = (UniqueConstraint("domain", name="uq_companies_domain"),)


class Department(Base):
    """Department declared by a company's hierarchy upload."""

    __tablename__ = "departments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    company_id: Mapped[str] = mapped_column(ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    department_id: Mapped[str] = mapped_column(String(100), nullable=False)
    department_name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)

    teams: Mapped[List["Team"]] = relationship(back_populates="department", order_by="Team.team_name")

    __table_args__ = (UniqueConstraint("company_id", "department_id", name="uq_departments_department_id"),)


class Team(Base):
    """Team belonging to a department."""

    __tablename__ = "teams"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    company_id: Mapped[str] = mapped_column(ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    department_id: Mapped[str] = mapped_column(ForeignKey("departments.id", ondelete="CASCADE"), nullable=False, index=True)
    team_id: Mapped[str] = mapped_column(String(100), nullable=False)
    team_name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)

    department: Mapped[Department] = relationship(back_populates="teams")

    __table_args__ = (UniqueConstraint("company_id", "team_id", name="uq_teams_team_id"),)


class Employee(Base):
    """Employee record, including OAuth data and enrichment output."""

    __tablename__ = "employees"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    company_id: Mapped[str] = mapped_column(ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    employee_id: Mapped[str] = mapped_column(String(100), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    current_role_in_company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    target_role_in_company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    preferred_language: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    profile_status: Mapped[str] = mapped_column(String(20), nullable=False, default="basic")
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    value_proposition: Mapped[str | None] = mapped_column(Text, nullable=True)
    linkedin_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    linkedin_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    github_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    github_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    enrichment_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    enrichment_completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now, onupdate=_utc_now)

    roles: Mapped[List["EmployeeRole"]] = relationship(
        back_populates="employee", cascade="all, delete-orphan", order_by="EmployeeRole.role_type"
    )
    team_links: Mapped[List["EmployeeTeam"]] = relationship(
        back_populates="employee", cascade="all, delete-orphan"
    )
    project_summaries: Mapped[List["EmployeeProjectSummary"]] = relationship(
        back_populates="employee", cascade="all, delete-orphan", order_by="EmployeeProjectSummary.repository_name"
    )
    trainer_settings: Mapped["TrainerSettings | None"] = relationship(
        back_populates="employee", cascade="all, delete-orphan", uselist=False
    )

    __table_args__ = (
        UniqueConstraint("email", name="uq_employees_email"),
        UniqueConstraint("company_id", "employee_id", name="uq_employees_employee_id"),
    )

    @property
    def role_types(self) -> list[str]:
        return [role.role_type for role in self.roles]


class EmployeeRole(Base):
    """One of the five directory roles held by an employee."""

    __tablename__ = "employee_roles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[str] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    role_type: Mapped[str] = mapped_column(String(50), nullable=False)

    employee: Mapped[Employee] = relationship(back_populates="roles")

    __table_args__ = (UniqueConstraint("employee_id", "role_type", name="uq_employee_roles_role_type"),)


class EmployeeTeam(Base):
    """Membership of an employee in a team."""

    __tablename__ = "employee_teams"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[str] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    team_id: Mapped[str] = mapped_column(ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)

    employee: Mapped[Employee] = relationship(back_populates="team_links")
    team: Mapped[Team] = relationship()

    __table_args__ = (UniqueConstraint("employee_id", "team_id", name="uq_employee_teams_team_id"),)


class EmployeeManager(Base):
    """Reporting line between an employee and their manager."""

    __tablename__ = "employee_managers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[str] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    manager_id: Mapped[str] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    relationship_type: Mapped[str] = mapped_column(String(30), nullable=False)

    __table_args__ = (UniqueConstraint("employee_id", "manager_id", name="uq_employee_managers_pair"),)


class TrainerSettings(Base):
    """Publishing preferences for employees holding the TRAINER role."""

    __tablename__ = "trainer_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[str] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, unique=True)
    ai_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    public_publish_enable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now, onupdate=_utc_now)

    employee: Mapped[Employee] = relationship(back_populates="trainer_settings")


class EmployeeProjectSummary(Base):
    """AI-written summary of one of the employee's GitHub repositories."""

    __tablename__ = "employee_project_summaries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    employee_id: Mapped[str] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    repository_name: Mapped[str] = mapped_column(String(255), nullable=False)
    repository_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)

    employee: Mapped[Employee] = relationship(back_populates="project_summaries")


class EmployeeProfileApproval(Base):
    """HR review gate for an enriched profile; one row per employee."""

    __tablename__ = "employee_profile_approvals"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    employee_id: Mapped[str] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, unique=True)
    company_id: Mapped[str] = mapped_column(ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    requested_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    employee: Mapped[Employee] = relationship()


class EmployeeRequest(Base):
    """Learning or trainer request raised by an approved employee."""

    __tablename__ = "employee_requests"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    employee_id: Mapped[str] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    company_id: Mapped[str] = mapped_column(ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    request_type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    requested_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    response_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    employee: Mapped[Employee] = relationship()

    __table_args__ = (Index("ix_employee_requests_company_status", "company_id", "status"),)


class DirectoryAdmin(Base):
    """Operator account that can browse every company."""

    __tablename__ = "directory_admins"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)


class AuditLog(Base):
    """Audit trail of HTTP requests."""

    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ts: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)
    company_id: Mapped[str | None] = mapped_column(String(36), index=True, nullable=True)
    actor_id: Mapped[str | None] = mapped_column(String(36), index=True, nullable=True)
    actor_role: Mapped[str | None] = mapped_column(String(30), nullable=True)
    method: Mapped[str] = mapped_column(String(10))
    action: Mapped[str] = mapped_column(String(500))
    args_hash: Mapped[str] = mapped_column(String(64))
    result_code: Mapped[int] = mapped_column(Integer)
    request_id: Mapped[str] = mapped_column(String(64), index=True)
