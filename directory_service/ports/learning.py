"""Learning-platform views proxied to downstream microservices.

All of them are gated on an HR-approved profile.
"""

from __future__ import annotations

from typing import Any, Dict

from sqlalchemy.orm import Session

from directory_service.adapters import microservice_client
from directory_service.domain import models as m
from directory_service.domain.errors import PermissionDeniedError
from directory_service.ports.employees import get_company_employee
from directory_service.utils.redaction import strip_secrets


def _approved_employee(db: Session, *, company_id: str, employee_pk: str, what: str) -> m.Employee:
    employee = get_company_employee(db, company_id=company_id, employee_pk=employee_pk)
    if employee.profile_status != "approved":
        raise PermissionDeniedError(f"Employee profile must be approved to view {what}")
    return employee


def get_employee_skills(db: Session, *, company_id: str, employee_pk: str) -> Dict[str, Any]:
    employee = _approved_employee(db, company_id=company_id, employee_pk=employee_pk, what="skills")
    employee_type = "trainer" if "TRAINER" in employee.role_types else "regular_employee"
    skills = microservice_client.get_employee_skills(
        employee.employee_id,
        employee.company_id,
        employee_type,
        {"github": strip_secrets(employee.github_data or {}), "linkedin": strip_secrets(employee.linkedin_data or {})},
    )
    return {"success": True, "skills": skills}


def get_employee_courses(db: Session, *, company_id: str, employee_pk: str) -> Dict[str, Any]:
    employee = _approved_employee(db, company_id=company_id, employee_pk=employee_pk, what="courses")
    return {"success": True, "courses": microservice_client.get_employee_courses(employee.employee_id, employee.company_id)}


def get_learning_path(db: Session, *, company_id: str, employee_pk: str) -> Dict[str, Any]:
    employee = _approved_employee(db, company_id=company_id, employee_pk=employee_pk, what="learning path")
    return {"success": True, "learningPath": microservice_client.get_learning_path(employee.employee_id, employee.company_id)}


def get_learning_dashboard(db: Session, *, company_id: str, employee_pk: str) -> Dict[str, Any]:
    employee = _approved_employee(db, company_id=company_id, employee_pk=employee_pk, what="dashboard")
    dashboard = microservice_client.get_learning_dashboard(employee.employee_id, employee.company_id)
    return {"success": True, "dashboard": dashboard}
