"""Strip stored credentials from data that leaves the service."""

from __future__ import annotations

import json
from typing import Any, Dict, Mapping

# Keys written into ``linkedin_data``/``github_data`` by the OAuth callback.
SECRET_KEYS = frozenset({"access_token", "refresh_token", "id_token"})
SECRET_COLUMNS = frozenset({"password_hash"})


def strip_secrets(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: strip_secrets(val) for key, val in value.items() if key not in SECRET_KEYS}
    if isinstance(value, list):
        return [strip_secrets(item) for item in value]
    return value


def _scrub_value(value: Any) -> Any:
    # JSON columns come back as text from raw SQL on some drivers.
    if isinstance(value, str) and value.lstrip().startswith(("{", "[")):
        try:
            decoded = json.loads(value)
        except ValueError:
            return value
        cleaned = strip_secrets(decoded)
        return value if cleaned == decoded else json.dumps(cleaned)
    return strip_secrets(value)


def scrub_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop credential columns and token keys from one query result row."""

    return {
        column: _scrub_value(value)
        for column, value in row.items()
        if column not in SECRET_COLUMNS and column not in SECRET_KEYS
    }
