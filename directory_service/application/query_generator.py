"""Natural-language to SQL helpers for the universal fill-content-metrics endpoint.

The LLM is only trusted to *propose* a query. Everything it returns goes
through :func:`extract_sql` and :func:`validate_sql` before execution, and
payload values are always bound as parameters, never interpolated.
"""

from __future__ import annotations

import copy
import json
import re
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from directory_service.adapters.gemini_client import strip_code_fences
from directory_service.domain.errors import ValidationError
from directory_service.utils.redaction import SECRET_COLUMNS, SECRET_KEYS

SCHEMA_DESCRIPTION = """\
companies(id, company_name, industry, domain, hr_contact_name, hr_contact_email, hr_contact_role,
          verification_status, learning_path_approval, primary_kpis, created_at)
departments(id, company_id -> companies.id, department_id, department_name)
teams(id, company_id -> companies.id, department_id -> departments.id, team_id, team_name)
employees(id, company_id -> companies.id, employee_id, full_name, email, current_role_in_company,
          target_role_in_company, preferred_language, status, profile_status, bio, value_proposition,
          linkedin_url, linkedin_data, github_url, github_data, enrichment_completed, created_at)
employee_roles(id, employee_id -> employees.id, role_type)
employee_teams(id, employee_id -> employees.id, team_id -> teams.id)
employee_managers(id, employee_id -> employees.id, manager_id -> employees.id, relationship_type)
trainer_settings(id, employee_id -> employees.id, ai_enabled, public_publish_enable)
employee_project_summaries(id, employee_id -> employees.id, repository_name, repository_url, summary)
employee_requests(id, employee_id -> employees.id, company_id -> companies.id, request_type, title,
                  description, status, requested_at)
"""

FORBIDDEN_KEYWORDS = ("DROP", "DELETE", "TRUNCATE", "ALTER", "CREATE", "INSERT", "UPDATE", "GRANT", "REVOKE")

# directory column -> names other services use for it
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "employee_id": ("user_id", "employee_id"),
    "company_id": ("company_id",),
    "full_name": ("name", "full_name", "employee_name"),
    "email": ("email",),
    "current_role_in_company": ("role", "current_role"),
    "target_role_in_company": ("target_role",),
    "preferred_language": ("language", "preferred_language"),
    "status": ("status", "employee_status"),
    "bio": ("bio", "biography", "description"),
    "linkedin_url": ("linkedin",),
    "github_url": ("github",),
    "linkedin_data": ("linkedin_data",),
    "github_data": ("github_data",),
}

_SELECT_RE = re.compile(r"(SELECT.*?;)", re.IGNORECASE | re.DOTALL)
_PLACEHOLDER_RE = re.compile(r"\$(\d+)")
_SECRET_RE = re.compile(
    r"\b(" + "|".join(sorted(SECRET_COLUMNS | SECRET_KEYS)) + r")\b", re.IGNORECASE
)


def build_prompt(payload: Mapping[str, Any], template: Any, requester_service: str) -> str:
    """Prompt asking the model for a single parameterised SELECT."""

    return "\n".join(
        [
            "You are a SQL query generator for a PostgreSQL database. Generate one SQL query that "
            "retrieves the data needed to fill the response template from the payload.",
            "",
            "DATABASE SCHEMA:",
            SCHEMA_DESCRIPTION,
            f"REQUESTER SERVICE: {requester_service}",
            "",
            "PAYLOAD (input data, in this key order):",
            json.dumps(payload, indent=2, default=str),
            "",
            "RESPONSE TEMPLATE (structure to fill):",
            json.dumps(template, indent=2, default=str),
            "",
            "RULES:",
            "- Return a single SELECT statement terminated by a semicolon and nothing else.",
            "- Use $1, $2, ... for payload values; $n refers to the n-th payload key above.",
            "- Alias selected columns with the template field names where they differ "
            "(e.g. employees.employee_id AS user_id).",
            "- Directory uses employee_id and company_id; other services may say user_id.",
            "- Use JOINs across employees, companies, departments, teams and employee_roles as needed.",
        ]
    )


def extract_sql(text: str) -> str:
    """Pull the first ``SELECT ... ;`` out of model output."""

    cleaned = strip_code_fences(text or "")
    match = _SELECT_RE.search(cleaned)
    sql = (match.group(1) if match else cleaned).strip()
    if not sql.endswith(";"):
        sql += ";"
    return sql


def validate_sql(sql: str) -> str:
    """Return *sql* without the trailing semicolon, or raise :class:`ValidationError`."""

    statement = (sql or "").strip().rstrip(";").strip()
    if not statement:
        raise ValidationError("Generated SQL is empty", code="unsafe_sql")
    if ";" in statement:
        raise ValidationError("Generated SQL contains multiple statements", code="unsafe_sql")

    upper = statement.upper()
    if not upper.startswith("SELECT"):
        raise ValidationError("Generated SQL must be a SELECT query", code="unsafe_sql")
    for keyword in FORBIDDEN_KEYWORDS:
        if re.search(rf"\b{keyword}\b", upper):
            raise ValidationError(f"Generated SQL uses forbidden keyword {keyword}", code="unsafe_sql")
    secret = _SECRET_RE.search(statement)
    if secret:
        raise ValidationError(f"Generated SQL reads credential field {secret.group(1)}", code="unsafe_sql")
    return statement


def bind_parameters(sql: str, payload: Mapping[str, Any]) -> Tuple[str, Dict[str, Any]]:
    """Rewrite ``$n`` placeholders to ``:pn`` and bind the n-th payload value.

    Placeholders beyond the payload's length bind ``None``.
    """

    values = list(payload.values())
    params: Dict[str, Any] = {}

    def _replace(match: re.Match[str]) -> str:
        index = int(match.group(1))
        name = f"p{index}"
        value = values[index - 1] if 0 < index <= len(values) else None
        if isinstance(value, (dict, list)):
            value = json.dumps(value)
        params[name] = value
        return f":{name}"

    return _PLACEHOLDER_RE.sub(_replace, sql), params


def _lookup(row: Mapping[str, Any], key: str) -> Any:
    if key in row:
        return row[key]
    for column, aliases in FIELD_ALIASES.items():
        if key in aliases and column in row:
            return row[column]
    return None


def map_row(row: Mapping[str, Any], template: Mapping[str, Any]) -> Dict[str, Any]:
    """Fill one template object from a result row."""

    mapped: Dict[str, Any] = {}
    for key, default in template.items():
        value = _lookup(row, key)
        if value is not None:
            mapped[key] = value
        elif isinstance(default, dict):
            mapped[key] = map_row(row, default)
        elif isinstance(default, list):
            mapped[key] = []
        else:
            mapped[key] = copy.deepcopy(default)
    return mapped


def _item_template(value: Sequence[Any]) -> Dict[str, Any]:
    first = value[0] if value else None
    return first if isinstance(first, dict) else {}


def map_results_to_template(rows: Sequence[Mapping[str, Any]], template: Any) -> Any:
    """Project query *rows* onto *template*.

    A list template yields one object per row. For an object template,
    list-valued keys receive every row and scalar keys the first row's value.
    """

    if isinstance(template, list):
        item = _item_template(template)
        return [map_row(row, item) if item else dict(row) for row in rows]
    if not isinstance(template, dict):
        return copy.deepcopy(template)
    if not rows:
        return copy.deepcopy(template)

    filled = map_row(rows[0], template)
    for key, default in template.items():
        if not isinstance(default, list):
            continue
        direct = _lookup(rows[0], key)
        if direct is not None and len(rows) == 1:
            continue
        item = _item_template(default)
        filled[key] = [map_row(row, item) if item else _scalar_or_row(row) for row in rows]
    return filled


def _scalar_or_row(row: Mapping[str, Any]) -> Any:
    values: List[Any] = list(row.values())
    return values[0] if len(values) == 1 else dict(row)
