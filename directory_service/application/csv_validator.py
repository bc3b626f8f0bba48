"""Row-level validation for hierarchy CSV uploads."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Sequence

from directory_service.application.csv_parser import ParsedRow

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
VALID_ROLES = ("REGULAR_EMPLOYEE", "TRAINER", "TEAM_MANAGER", "DEPARTMENT_MANAGER", "DECISION_MAKER")
VALID_STATUSES = ("active", "inactive")

# Columns that must hold a value on every row.
_REQUIRED_VALUES = (
    "password",
    "preferred_language",
    "status",
    "current_role_in_company",
    "target_role_in_company",
    "department_id",
    "department_name",
    "team_id",
    "team_name",
)


@dataclass
class ValidationReport:
    errors: List[Dict[str, Any]] = field(default_factory=list)
    warnings: List[Dict[str, Any]] = field(default_factory=list)
    valid_rows: List[ParsedRow] = field(default_factory=list)
    summary: Dict[str, int] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def _issue(kind: str, message: str, row: int | None, column: str | None) -> Dict[str, Any]:
    return {"type": kind, "message": message, "row": row, "column": column}


def split_roles(role_type: str | None) -> List[str]:
    """``"TRAINER+TEAM_MANAGER"`` -> ``["TRAINER", "TEAM_MANAGER"]``; defaults to REGULAR_EMPLOYEE."""

    roles = [part.strip() for part in (role_type or "").split("+") if part.strip()]
    return roles or ["REGULAR_EMPLOYEE"]


def is_valid_role_type(role_type: str) -> bool:
    parts = [part.strip() for part in role_type.split("+")]
    return bool(parts) and all(part in VALID_ROLES for part in parts)


def validate_employee_fields(
    data: Dict[str, Any],
    *,
    row: int | None = None,
    reserved_emails: Iterable[str] = (),
    require_manager_column: bool = False,
) -> List[Dict[str, Any]]:
    """Validate one employee record; shared by CSV rows and single-employee creation."""

    errors: List[Dict[str, Any]] = []
    reserved = {email.lower() for email in reserved_emails if email}

    if not data.get("employee_id"):
        errors.append(_issue("missing_field", "employee_id is required", row, "employee_id"))
    if not data.get("full_name"):
        errors.append(_issue("missing_field", "full_name is required", row, "full_name"))

    email = data.get("email")
    if not email:
        errors.append(_issue("missing_field", "email is required", row, "email"))
    elif not EMAIL_RE.match(email):
        errors.append(_issue("invalid_format", f"Invalid email format: {email}", row, "email"))
    elif email.lower() in reserved:
        errors.append(
            _issue(
                "reserved_email",
                f"The email address {email} is reserved for the directory admin and cannot be used.",
                row,
                "email",
            )
        )

    role_type = data.get("role_type")
    if not role_type:
        errors.append(_issue("missing_field", "role_type is required", row, "role_type"))
    elif not is_valid_role_type(role_type):
        errors.append(
            _issue(
                "invalid_format",
                f"Invalid role_type: {role_type}. Must be one of {', '.join(VALID_ROLES)} or a '+' combination",
                row,
                "role_type",
            )
        )

    if require_manager_column:
        errors.append(
            _issue("missing_field", 'manager_id is required (leave the cell empty if no manager)', row, "manager_id")
        )

    for column in _REQUIRED_VALUES:
        if not data.get(column):
            errors.append(_issue("missing_field", f"{column} is required", row, column))

    status = data.get("status")
    if status and status not in VALID_STATUSES:
        errors.append(_issue("invalid_format", f"Invalid status: {status}. Must be active or inactive", row, "status"))

    return errors


def validate_rows(rows: Sequence[ParsedRow], *, reserved_emails: Iterable[str] = ()) -> ValidationReport:
    """Validate parsed rows, detecting duplicates and dangling manager references."""

    report = ValidationReport()
    if not rows:
        report.errors.append(
            _issue("empty_file", "CSV file is empty or contains no valid data rows", None, None)
        )
        report.summary = _summary(rows, report, set(), set())
        return report

    reserved = [email for email in reserved_emails if email]
    seen_ids: set[str] = set()
    seen_emails: set[str] = set()
    departments: set[str] = set()
    teams: set[str] = set()
    error_rows: set[int] = set()

    for parsed in rows:
        data = parsed.data
        row_errors = validate_employee_fields(
            data,
            row=parsed.row_number,
            reserved_emails=reserved,
            require_manager_column="manager_id" not in parsed.present_columns,
        )

        employee_id = data.get("employee_id")
        if employee_id:
            if employee_id in seen_ids:
                row_errors.append(
                    _issue("duplicate_employee_id", f"Duplicate employee_id: {employee_id}", parsed.row_number, "employee_id")
                )
            seen_ids.add(employee_id)

        email = (data.get("email") or "").lower()
        if email:
            if email in seen_emails:
                row_errors.append(_issue("duplicate_email", f"Duplicate email: {data['email']}", parsed.row_number, "email"))
            seen_emails.add(email)

        if data.get("department_id"):
            departments.add(data["department_id"])
        if data.get("team_id"):
            teams.add(data["team_id"])

        if row_errors:
            report.errors.extend(row_errors)
            error_rows.add(parsed.row_number)
        else:
            report.valid_rows.append(parsed)

    valid_ids = {parsed.data["employee_id"] for parsed in report.valid_rows}
    for parsed in report.valid_rows:
        manager_id = parsed.data.get("manager_id")
        if manager_id and manager_id not in valid_ids:
            report.warnings.append(
                _issue(
                    "invalid_manager_reference",
                    f"manager_id {manager_id} does not exist in CSV",
                    parsed.row_number,
                    "manager_id",
                )
            )

    report.summary = _summary(rows, report, departments, teams, error_rows=len(error_rows))
    return report


def _summary(
    rows: Sequence[ParsedRow],
    report: ValidationReport,
    departments: set[str],
    teams: set[str],
    *,
    error_rows: int = 0,
) -> Dict[str, int]:
    return {
        "totalRows": len(rows),
        "validRows": len(report.valid_rows),
        "errorRows": error_rows,
        "warningRows": len({w["row"] for w in report.warnings}),
        "uniqueDepartments": len(departments),
        "uniqueTeams": len(teams),
        "uniqueEmployees": len({p.data.get("employee_id") for p in report.valid_rows}),
    }
