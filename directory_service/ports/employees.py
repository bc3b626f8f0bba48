"""Employee management: single adds, edits, soft deletes and manager views.

The record builders here are shared with the CSV import so that a hierarchy
upload and a single HR-created employee end up with identical rows.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping

from loguru import logger
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from directory_service.application.csv_validator import EMAIL_RE, split_roles, validate_employee_fields
from directory_service.config import settings
from directory_service.domain import models as m
from directory_service.domain.errors import ConflictError, NotFoundError, ValidationError
from directory_service.domain.schemas import (
    DepartmentResp,
    EmployeeCreateReq,
    EmployeeResp,
    EmployeeSummaryResp,
    EmployeeUpdateReq,
    ManagerHierarchy,
    ProjectSummaryResp,
    TeamNode,
    TeamResp,
    TrainerSettingsResp,
)
from directory_service.ports.companies import get_company
from directory_service.utils.error_translator import translate_integrity_error, translate_validation_error
from directory_service.utils.passwords import hash_password

_EDITABLE_FIELDS = (
    "full_name",
    "email",
    "current_role_in_company",
    "target_role_in_company",
    "preferred_language",
    "status",
    "bio",
)


# --- record builders -----------------------------------------------------------


def reserved_emails(db: Session) -> List[str]:
    """Emails that belong to directory admins and may not be used by employees."""

    emails = {row[0].lower() for row in db.query(m.DirectoryAdmin.email).all()}
    if settings.admin_email:
        emails.add(settings.admin_email.lower())
    return sorted(emails)


def get_or_create_department(db: Session, *, company_id: str, department_id: str, department_name: str) -> m.Department:
    department = (
        db.query(m.Department)
        .filter(m.Department.company_id == company_id, m.Department.department_id == department_id)
        .one_or_none()
    )
    if department is None:
        department = m.Department(company_id=company_id, department_id=department_id, department_name=department_name)
        db.add(department)
        db.flush()
    return department


def get_or_create_team(db: Session, *, company_id: str, department: m.Department, team_id: str, team_name: str) -> m.Team:
    team = db.query(m.Team).filter(m.Team.company_id == company_id, m.Team.team_id == team_id).one_or_none()
    if team is None:
        team = m.Team(company_id=company_id, department_id=department.id, team_id=team_id, team_name=team_name)
        db.add(team)
        db.flush()
    return team


def create_employee_record(db: Session, *, company_id: str, data: Mapping[str, Any], team: m.Team) -> m.Employee:
    """Insert an employee with roles, team membership and trainer settings."""

    employee = m.Employee(
        company_id=company_id,
        employee_id=data["employee_id"],
        full_name=data["full_name"],
        email=data["email"].strip().lower(),
        password_hash=hash_password(data["password"]),
        current_role_in_company=data.get("current_role_in_company"),
        target_role_in_company=data.get("target_role_in_company"),
        preferred_language=data.get("preferred_language"),
        status=data.get("status") or "active",
    )
    db.add(employee)
    db.flush()

    roles = split_roles(data.get("role_type"))
    for role in dict.fromkeys(roles):
        db.add(m.EmployeeRole(employee_id=employee.id, role_type=role))
    db.add(m.EmployeeTeam(employee_id=employee.id, team_id=team.id))

    if "TRAINER" in roles:
        upsert_trainer_settings(
            db,
            employee_id=employee.id,
            ai_enabled=bool(data.get("ai_enabled", True)),
            public_publish_enable=bool(data.get("public_publish_enable", False)),
        )
    db.flush()
    return employee


def upsert_trainer_settings(db: Session, *, employee_id: str, ai_enabled: bool, public_publish_enable: bool) -> m.TrainerSettings:
    row = db.query(m.TrainerSettings).filter(m.TrainerSettings.employee_id == employee_id).one_or_none()
    if row is None:
        row = m.TrainerSettings(employee_id=employee_id)
        db.add(row)
    row.ai_enabled = ai_enabled
    row.public_publish_enable = public_publish_enable
    return row


def manager_relationship(manager_roles: Iterable[str]) -> str | None:
    """``department_manager`` wins over ``team_manager``; other roles manage nobody."""

    roles = set(manager_roles)
    if "DEPARTMENT_MANAGER" in roles:
        return "department_manager"
    if "TEAM_MANAGER" in roles:
        return "team_manager"
    return None


def link_manager(db: Session, *, employee: m.Employee, manager: m.Employee, manager_roles: Iterable[str]) -> bool:
    relationship_type = manager_relationship(manager_roles)
    if relationship_type is None:
        logger.info("Skipping manager link {} -> {}: manager holds no managing role", employee.id, manager.id)
        return False
    db.add(m.EmployeeManager(employee_id=employee.id, manager_id=manager.id, relationship_type=relationship_type))
    return True


# --- response shaping ------------------------------------------------------------


def _primary_team(employee: m.Employee) -> m.Team | None:
    return employee.team_links[0].team if employee.team_links else None


def to_employee_resp(employee: m.Employee) -> EmployeeResp:
    roles = employee.role_types
    team = _primary_team(employee)
    settings_row = employee.trainer_settings
    return EmployeeResp(
        id=employee.id,
        company_id=employee.company_id,
        employee_id=employee.employee_id,
        full_name=employee.full_name,
        email=employee.email,
        current_role_in_company=employee.current_role_in_company,
        target_role_in_company=employee.target_role_in_company,
        preferred_language=employee.preferred_language,
        status=employee.status,
        profile_status=employee.profile_status,
        bio=employee.bio,
        value_proposition=employee.value_proposition,
        linkedin_url=employee.linkedin_url,
        github_url=employee.github_url,
        enrichment_completed=employee.enrichment_completed,
        enrichment_completed_at=employee.enrichment_completed_at,
        roles=roles,
        is_trainer="TRAINER" in roles,
        is_decision_maker="DECISION_MAKER" in roles,
        trainer_settings=TrainerSettingsResp.model_validate(settings_row) if settings_row else None,
        project_summaries=[ProjectSummaryResp.model_validate(row) for row in employee.project_summaries],
        department=team.department.department_name if team else None,
        team=team.team_name if team else None,
    )


def to_employee_summary(employee: m.Employee) -> EmployeeSummaryResp:
    return EmployeeSummaryResp(
        id=employee.id,
        employee_id=employee.employee_id,
        full_name=employee.full_name,
        email=employee.email,
        current_role_in_company=employee.current_role_in_company,
        status=employee.status,
        profile_status=employee.profile_status,
        roles=employee.role_types,
        team_ids=[link.team_id for link in employee.team_links],
    )


# --- operations ---------------------------------------------------------------------


def get_company_employee(db: Session, *, company_id: str, employee_pk: str) -> m.Employee:
    employee = db.get(m.Employee, employee_pk)
    if employee is None or employee.company_id != company_id:
        raise NotFoundError("Employee not found")
    return employee


def _raise_validation_errors(errors: List[Dict[str, Any]]) -> None:
    if errors:
        messages = [error["message"] for error in errors]
        raise ValidationError("; ".join(messages))


def add_employee(db: Session, *, company_id: str, req: EmployeeCreateReq) -> EmployeeResp:
    """Create one employee inside the company's existing hierarchy."""

    get_company(db, company_id)
    data = req.model_dump()
    for key, value in list(data.items()):
        if isinstance(value, str):
            data[key] = value.strip() or None
    data["status"] = data.get("status") or "active"
    _raise_validation_errors(validate_employee_fields(data, reserved_emails=reserved_emails(db)))

    email = data["email"].lower()
    owner = db.query(m.Employee).filter(func.lower(m.Employee.email) == email).one_or_none()
    if owner is not None:
        if owner.company_id != company_id:
            raise ConflictError("This email address is already registered with another company")
        raise ConflictError("An employee with this email already exists in your company")
    duplicate = (
        db.query(m.Employee)
        .filter(m.Employee.company_id == company_id, m.Employee.employee_id == data["employee_id"])
        .one_or_none()
    )
    if duplicate is not None:
        raise ConflictError(f"Employee ID {data['employee_id']} already exists in your company")

    manager: m.Employee | None = None
    if data.get("manager_id"):
        manager = (
            db.query(m.Employee)
            .filter(m.Employee.company_id == company_id, m.Employee.employee_id == data["manager_id"])
            .one_or_none()
        )
        if manager is None:
            raise ValidationError(f"Manager {data['manager_id']} does not exist in your company")

    try:
        department = get_or_create_department(
            db, company_id=company_id, department_id=data["department_id"], department_name=data["department_name"]
        )
        team = get_or_create_team(
            db, company_id=company_id, department=department, team_id=data["team_id"], team_name=data["team_name"]
        )
        employee = create_employee_record(db, company_id=company_id, data=data, team=team)
        if manager is not None:
            link_manager(db, employee=employee, manager=manager, manager_roles=manager.role_types)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(translate_integrity_error(exc)) from exc

    db.refresh(employee)
    logger.info("Added employee {} to company {}", employee.id, company_id)
    return to_employee_resp(employee)


def update_employee(db: Session, *, company_id: str, employee_pk: str, req: EmployeeUpdateReq) -> EmployeeResp:
    employee = get_company_employee(db, company_id=company_id, employee_pk=employee_pk)
    changes = {k: v for k, v in req.model_dump(exclude_unset=True).items() if k in _EDITABLE_FIELDS}

    if "email" in changes and changes["email"] is not None:
        email = changes["email"].strip().lower()
        if not EMAIL_RE.match(email):
            raise ValidationError(
                translate_validation_error(
                    {"type": "invalid_format", "message": f"Invalid email format: {email}", "column": "email"}
                )
            )
        if email in reserved_emails(db):
            raise ValidationError(f"The email address {email} is reserved for the directory admin and cannot be used.")
        owner = db.query(m.Employee).filter(func.lower(m.Employee.email) == email).one_or_none()
        if owner is not None and owner.id != employee.id:
            raise ConflictError("This email address is already registered. Each employee must have a unique email address.")
        changes["email"] = email

    for name, value in changes.items():
        if name in ("full_name", "email", "status") and value is None:
            continue
        setattr(employee, name, value)
    db.commit()
    db.refresh(employee)
    return to_employee_resp(employee)


def delete_employee(db: Session, *, company_id: str, employee_pk: str) -> EmployeeResp:
    """Soft delete: the employee is marked ``inactive`` and keeps their history."""

    employee = get_company_employee(db, company_id=company_id, employee_pk=employee_pk)
    employee.status = "inactive"
    db.commit()
    db.refresh(employee)
    logger.info("Deactivated employee {} in company {}", employee.id, company_id)
    return to_employee_resp(employee)


def get_employee(db: Session, *, company_id: str, employee_pk: str) -> EmployeeResp:
    return to_employee_resp(get_company_employee(db, company_id=company_id, employee_pk=employee_pk))


def get_employee_any_company(db: Session, *, employee_pk: str) -> EmployeeResp:
    employee = db.get(m.Employee, employee_pk)
    if employee is None:
        raise NotFoundError("Employee not found")
    return to_employee_resp(employee)


# --- manager hierarchy ----------------------------------------------------------------


def _team_members(db: Session, team: m.Team) -> List[EmployeeSummaryResp]:
    rows = (
        db.query(m.Employee)
        .join(m.EmployeeTeam, m.EmployeeTeam.employee_id == m.Employee.id)
        .filter(m.EmployeeTeam.team_id == team.id)
        .order_by(m.Employee.full_name.asc())
        .all()
    )
    return [to_employee_summary(row) for row in rows]


def _managed_teams(db: Session, manager: m.Employee, relationship_type: str) -> List[m.Team]:
    return (
        db.query(m.Team)
        .join(m.EmployeeTeam, m.EmployeeTeam.team_id == m.Team.id)
        .join(m.EmployeeManager, m.EmployeeManager.employee_id == m.EmployeeTeam.employee_id)
        .filter(
            m.EmployeeManager.manager_id == manager.id,
            m.EmployeeManager.relationship_type == relationship_type,
        )
        .distinct()
        .all()
    )


def get_manager_hierarchy(db: Session, *, company_id: str, employee_pk: str) -> ManagerHierarchy | None:
    """Department or team view for a manager; ``None`` for anyone else."""

    manager = get_company_employee(db, company_id=company_id, employee_pk=employee_pk)
    relationship_type = manager_relationship(manager.role_types)
    if relationship_type is None:
        return None

    if relationship_type == "department_manager":
        teams = _managed_teams(db, manager, "department_manager")
        own_team = _primary_team(manager)
        department = teams[0].department if teams else (own_team.department if own_team else None)
        if department is None:
            return None
        return ManagerHierarchy(
            manager_type="department_manager",
            department=DepartmentResp.model_validate(department),
            teams=[
                TeamNode(team=TeamResp.model_validate(team), employees=_team_members(db, team))
                for team in department.teams
            ],
        )

    teams = _managed_teams(db, manager, "team_manager")
    team = teams[0] if teams else _primary_team(manager)
    if team is None:
        return None
    return ManagerHierarchy(
        manager_type="team_manager",
        team=TeamResp.model_validate(team),
        employees=_team_members(db, team),
    )
