"""Turn database and CSV validation errors into sentences HR can act on."""

from __future__ import annotations

from typing import Any, Mapping

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

_UNIQUE_MESSAGES = (
    ("email", "This email address is already registered. Each employee must have a unique email address."),
    ("employee_id", "An employee with this ID already exists in your company."),
    ("department_id", "A department with this ID already exists in your company."),
    ("team_id", "A team with this ID already exists in your company."),
    ("domain", "A company with this domain already exists."),
)

_NOT_NULL_MESSAGES = {
    "email": "Email address is required for all employees.",
    "full_name": "Full name is required for all employees.",
    "employee_id": "Employee ID is required for all employees.",
}


def _pgcode(exc: IntegrityError) -> str | None:
    return getattr(exc.orig, "pgcode", None)


def _constraint_and_column(exc: IntegrityError) -> tuple[str, str | None]:
    diag = getattr(exc.orig, "diag", None)
    constraint = getattr(diag, "constraint_name", None) or ""
    column = getattr(diag, "column_name", None)
    return constraint, column


def translate_integrity_error(exc: IntegrityError) -> str:
    """Map a unique, foreign-key, check or not-null violation to a friendly message."""

    code = _pgcode(exc)
    constraint, column = _constraint_and_column(exc)
    text = str(exc.orig or exc).lower()

    if code == "23505" or "unique" in text:
        haystack = constraint.lower() or text
        for needle, message in _UNIQUE_MESSAGES:
            if needle in haystack:
                return message
        return "This record already exists. Please check for duplicates."

    if code == "23503" or "foreign key" in text:
        return "A referenced record does not exist. Please check your data relationships."

    if code == "23502" or "not null" in text or "not-null" in text:
        if column is None and "." in text:
            column = text.rsplit(".", 1)[-1].strip()
        if column in _NOT_NULL_MESSAGES:
            return _NOT_NULL_MESSAGES[column]
        if column:
            return f'The field "{column}" is required but was not provided.'
        return "A required field is missing. Please check your data."

    if code == "23514" or "check constraint" in text:
        if "status" in (constraint or text):
            return 'Employee status must be either "active" or "inactive".'
        if "role_type" in (constraint or text):
            return (
                "Invalid role type. Valid roles are: REGULAR_EMPLOYEE, TRAINER, TEAM_MANAGER, "
                "DEPARTMENT_MANAGER, DECISION_MAKER."
            )
        return "One of the fields has an invalid value. Please check your data."

    return "An error occurred while processing your request. Please try again."


def translate_database_error(exc: SQLAlchemyError) -> str:
    """Like :func:`translate_integrity_error`, for any database failure."""

    if isinstance(exc, IntegrityError):
        return translate_integrity_error(exc)
    return "The database could not save your changes. No data was modified; please try again."


def _value_after_colon(message: str) -> str:
    return message.split(": ", 1)[1] if ": " in message else message


def translate_validation_error(error: Mapping[str, Any]) -> str:
    """Render a CSV validation record ``{type, message, row, column}`` as a sentence."""

    kind = error.get("type")
    message = error.get("message") or ""
    row = error.get("row")
    column = error.get("column")

    if kind == "missing_field":
        return f'The field "{column}" is required but is missing in row {row}.'
    if kind == "invalid_format":
        return f'The field "{column}" in row {row} has an invalid format: {message}'
    if kind == "duplicate_email":
        return (
            f'The email address "{_value_after_colon(message)}" appears multiple times in your CSV file. '
            "Each employee must have a unique email address."
        )
    if kind == "duplicate_employee_id":
        return (
            f'The employee ID "{_value_after_colon(message)}" appears multiple times in your CSV file. '
            "Each employee must have a unique ID."
        )
    if kind == "reserved_email":
        return message or "The email address is reserved for the directory admin and cannot be used."
    if kind == "empty_file":
        return "The CSV file is empty or contains no data. Please upload a file with employee information."
    if kind == "invalid_manager_reference":
        manager_id = message.split(" ")[1] if len(message.split(" ")) > 1 else ""
        return (
            f'The manager ID "{manager_id}" in row {row} does not exist in your CSV file. '
            "Please ensure all manager IDs reference existing employees."
        )
    return message or "A validation error occurred."
