"""Hierarchy CSV import: parse, validate, then insert everything in one transaction."""

from __future__ import annotations

from typing import Any, Dict, List

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from directory_service.application.csv_parser import ParsedRow, parse_csv
from directory_service.application.csv_validator import ValidationReport, validate_rows
from directory_service.domain import models as m
from directory_service.domain.errors import ConflictError, ValidationError
from directory_service.domain.schemas import (
    CsvCreatedCounts,
    CsvIssue,
    CsvSummary,
    CsvUploadResp,
    CsvValidationReport,
)
from directory_service.instrumentation.trace import tracepoint
from directory_service.ports.companies import get_company
from directory_service.ports.employees import (
    create_employee_record,
    get_or_create_department,
    get_or_create_team,
    link_manager,
    reserved_emails,
)
from directory_service.utils.error_translator import translate_database_error, translate_validation_error

FAILED_MESSAGE = "CSV validation failed. Please correct errors before proceeding."


def _issues(records: List[Dict[str, Any]]) -> List[CsvIssue]:
    return [CsvIssue(**record, friendly_message=translate_validation_error(record)) for record in records]


def _to_report(report: ValidationReport) -> CsvValidationReport:
    return CsvValidationReport(
        isValid=report.is_valid,
        errors=_issues(report.errors),
        warnings=_issues(report.warnings),
        summary=CsvSummary(**report.summary),
    )


def _insert_rows(db: Session, company: m.Company, rows: List[ParsedRow]) -> CsvCreatedCounts:
    first = rows[0].data
    company.learning_path_approval = first.get("learning_path_approval") or "manual"
    if first.get("primary_kpis"):
        company.primary_kpis = first["primary_kpis"]

    departments: Dict[str, m.Department] = {}
    teams: Dict[str, m.Team] = {}
    employees: Dict[str, m.Employee] = {}

    for parsed in rows:
        data = parsed.data
        department = departments.get(data["department_id"])
        if department is None:
            department = get_or_create_department(
                db,
                company_id=company.id,
                department_id=data["department_id"],
                department_name=data["department_name"],
            )
            departments[data["department_id"]] = department
        team = teams.get(data["team_id"])
        if team is None:
            team = get_or_create_team(
                db,
                company_id=company.id,
                department=department,
                team_id=data["team_id"],
                team_name=data["team_name"],
            )
            teams[data["team_id"]] = team
        employees[data["employee_id"]] = create_employee_record(db, company_id=company.id, data=data, team=team)

    # Managers are linked once every row exists so forward references resolve.
    for parsed in rows:
        manager_id = parsed.data.get("manager_id")
        manager = employees.get(manager_id) if manager_id else None
        if manager is None:
            continue
        link_manager(
            db,
            employee=employees[parsed.data["employee_id"]],
            manager=manager,
            manager_roles=manager.role_types,
        )

    db.flush()
    return CsvCreatedCounts(departments=len(departments), teams=len(teams), employees=len(employees))


def import_csv(db: Session, *, company_id: str, content: bytes) -> tuple[int, CsvUploadResp]:
    """Import a hierarchy upload; returns the HTTP status with the outcome."""

    company = get_company(db, company_id)
    try:
        rows = parse_csv(content)
    except UnicodeDecodeError as exc:
        raise ValidationError("CSV file must be UTF-8 encoded") from exc

    report = validate_rows(rows, reserved_emails=reserved_emails(db))
    validation = _to_report(report)
    tracepoint("csv.validated", company_id=company_id, **report.summary)
    if not report.is_valid:
        logger.info("CSV upload for company {} rejected with {} errors", company_id, len(report.errors))
        return 400, CsvUploadResp(success=False, message=FAILED_MESSAGE, validation=validation)

    try:
        created = _insert_rows(db, company, report.valid_rows)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("CSV import for company {} rolled back: {}", company_id, getattr(exc, "orig", None) or exc)
        raise ConflictError(translate_database_error(exc)) from exc

    logger.info(
        "CSV import company={} employees={} departments={} teams={}",
        company_id,
        created.employees,
        created.departments,
        created.teams,
    )
    return 200, CsvUploadResp(
        success=True,
        message=(
            f"Successfully processed {created.employees} employees, "
            f"{created.departments} departments, and {created.teams} teams."
        ),
        validation=validation,
        created=created,
    )
