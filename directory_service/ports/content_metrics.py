"""Universal endpoint: fill another service's response template from directory data."""

from __future__ import annotations

import copy
from typing import Any, Dict, Mapping, Tuple

from loguru import logger
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from directory_service.adapters import gemini_client
from directory_service.application import query_generator
from directory_service.domain.errors import ExternalServiceError, ValidationError
from directory_service.instrumentation.trace import tracepoint
from directory_service.utils.redaction import scrub_row


def _error_envelope(requester_service: str, payload: Any, message: str) -> Dict[str, Any]:
    return {
        "requester_service": requester_service,
        "payload": payload if isinstance(payload, dict) else {},
        "response": {"error": message},
    }


def validate_envelope(envelope: Any) -> Tuple[int, Dict[str, Any]] | None:
    """Return ``(400, error envelope)`` for malformed input, otherwise ``None``."""

    if not isinstance(envelope, dict):
        return 400, _error_envelope(
            "unknown",
            {},
            "Invalid request format. Expected envelope with requester_service, payload, and response fields.",
        )
    requester = envelope.get("requester_service")
    payload = envelope.get("payload", {})
    if not requester or not isinstance(requester, str):
        return 400, _error_envelope("unknown", payload, "Missing or invalid requester_service field")
    if payload is not None and not isinstance(payload, dict):
        return 400, _error_envelope(requester, {}, "Missing or invalid payload field")
    if not isinstance(envelope.get("response"), (dict, list)):
        return 400, _error_envelope(requester, payload, "Missing or invalid response template field")
    return None


def generate_query(payload: Mapping[str, Any], template: Any, requester_service: str) -> str:
    """Ask the LLM for SQL and return it only if it passes the SELECT-only guard."""

    raw = gemini_client.generate_content(query_generator.build_prompt(payload, template, requester_service))
    return query_generator.validate_sql(query_generator.extract_sql(raw))


def _run_query(db: Session, sql: str, payload: Mapping[str, Any]) -> list[Dict[str, Any]]:
    statement, params = query_generator.bind_parameters(sql, payload)
    try:
        if db.get_bind().dialect.name == "postgresql":
            db.execute(text("SET TRANSACTION READ ONLY"))
        rows = db.execute(text(statement), params).mappings().all()
        return [scrub_row(row) for row in rows]
    finally:
        db.rollback()


def fill_template(db: Session, *, payload: Mapping[str, Any], template: Any, requester_service: str) -> Any:
    """Fill *template*; any generation or query failure yields the template unchanged."""

    try:
        sql = generate_query(payload, template, requester_service)
    except (ExternalServiceError, ValidationError) as exc:
        logger.warning("Query generation for {} failed: {}", requester_service, exc.message)
        return copy.deepcopy(template)

    try:
        rows = _run_query(db, sql, payload)
    except SQLAlchemyError as exc:
        logger.warning("Generated query for {} failed to execute: {}", requester_service, exc.__class__.__name__)
        return copy.deepcopy(template)

    tracepoint("content_metrics.filled", requester=requester_service, rows=len(rows))
    return query_generator.map_results_to_template(rows, template)


def fill_content_metrics(db: Session, *, envelope: Any) -> Tuple[int, Dict[str, Any]]:
    invalid = validate_envelope(envelope)
    if invalid is not None:
        return invalid

    requester = envelope["requester_service"]
    payload = envelope.get("payload") or {}
    filled = fill_template(db, payload=payload, template=envelope["response"], requester_service=requester)
    return 200, {"requester_service": requester, "payload": payload, "response": filled}
