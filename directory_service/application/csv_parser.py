"""Parse hierarchy CSV uploads into normalised row dictionaries."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from typing import Any, Dict, List

_TRUTHY = {"TRUE", "1", "YES"}

_TEXT_FIELDS = (
    "company_name",
    "industry",
    "department_id",
    "department_name",
    "team_id",
    "team_name",
    "employee_id",
    "full_name",
    "email",
    "role_type",
    "current_role_in_company",
    "target_role_in_company",
    "manager_id",
    "password",
    "preferred_language",
)


@dataclass
class ParsedRow:
    """A non-empty CSV data row; ``row_number`` counts the header as row 1."""

    row_number: int
    data: Dict[str, Any] = field(default_factory=dict)
    present_columns: frozenset[str] = frozenset()


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_bool(value: Any, *, default: bool = False) -> bool:
    text = _clean(value)
    if text is None:
        return default
    return text.upper() in _TRUTHY


def normalize_row(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Map raw CSV cells onto the canonical row shape with defaults applied."""

    row: Dict[str, Any] = {name: _clean(raw.get(name)) for name in _TEXT_FIELDS}
    row["learning_path_approval"] = _clean(raw.get("learning_path_approval")) or "manual"
    row["primary_kpis"] = _clean(raw.get("primary_KPIs")) or _clean(raw.get("primary_kpis"))
    row["status"] = _clean(raw.get("status")) or "active"
    row["ai_enabled"] = parse_bool(raw.get("ai_enabled"))
    row["public_publish_enable"] = parse_bool(raw.get("public_publish_enable"))
    return row


def parse_csv(content: bytes | str) -> List[ParsedRow]:
    """Decode and parse *content*, skipping rows without any value."""

    text = content.decode("utf-8-sig") if isinstance(content, bytes) else content.lstrip("﻿")
    reader = csv.DictReader(io.StringIO(text))
    if reader.fieldnames:
        reader.fieldnames = [name.strip() for name in reader.fieldnames]
    columns = frozenset(reader.fieldnames or ())

    rows: List[ParsedRow] = []
    for index, raw in enumerate(reader, start=2):
        values = [v for k, v in raw.items() if k is not None]
        if not any(_clean(v) for v in values):
            continue
        rows.append(ParsedRow(row_number=index, data=normalize_row(raw), present_columns=columns))
    return rows
