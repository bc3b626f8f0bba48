"""AI profile enrichment once both LinkedIn and GitHub are connected."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

from loguru import logger
from sqlalchemy.orm import Session

from directory_service import deps
from directory_service.adapters import gemini_client, mock_data
from directory_service.domain import models as m
from directory_service.domain.errors import AppError, ConflictError, ExternalServiceError, NotFoundError, ValidationError
from directory_service.domain.schemas import ApprovalRequestSummary, EnrichedEmployee, EnrichResp
from directory_service.instrumentation.trace import request_id_context, tracepoint

MAX_REPOSITORIES = 20


def _basic_info(employee: m.Employee) -> Dict[str, Any]:
    return {
        "full_name": employee.full_name,
        "current_role_in_company": employee.current_role_in_company,
        "target_role_in_company": employee.target_role_in_company,
    }


def is_ready_for_enrichment(db: Session, *, employee_pk: str) -> bool:
    employee = db.get(m.Employee, employee_pk)
    if employee is None:
        return False
    return bool(employee.linkedin_data and employee.github_data and not employee.enrichment_completed)


def _bio(employee: m.Employee) -> str:
    info = _basic_info(employee)
    try:
        return gemini_client.generate_bio(employee.linkedin_data, employee.github_data, info)
    except ExternalServiceError as exc:
        logger.warning("Gemini bio generation failed for {} ({}); using mock bio", employee.id, exc.message)
        return mock_data.mock_bio(info)


def _project_summaries(employee: m.Employee) -> List[Dict[str, Any]]:
    repositories = list((employee.github_data or {}).get("repositories") or [])[:MAX_REPOSITORIES]
    if not repositories:
        return []
    try:
        return gemini_client.generate_project_summaries(repositories)
    except ExternalServiceError as exc:
        logger.warning("Gemini project summaries failed for {} ({}); using mock summaries", employee.id, exc.message)
        return mock_data.mock_project_summaries(repositories)


def _value_proposition(employee: m.Employee) -> str | None:
    try:
        return gemini_client.generate_value_proposition(_basic_info(employee))
    except ExternalServiceError as exc:
        logger.warning("Gemini value proposition failed for {}: {}", employee.id, exc.message)
        return None


def upsert_approval_request(db: Session, *, employee: m.Employee) -> m.EmployeeProfileApproval:
    """Open (or reopen) the employee's single approval row as ``pending``."""

    approval = (
        db.query(m.EmployeeProfileApproval)
        .filter(m.EmployeeProfileApproval.employee_id == employee.id)
        .one_or_none()
    )
    if approval is None:
        approval = m.EmployeeProfileApproval(employee_id=employee.id, company_id=employee.company_id)
        db.add(approval)
    approval.status = "pending"
    approval.requested_at = datetime.now(timezone.utc)
    approval.reviewed_at = None
    approval.reviewed_by = None
    approval.rejection_reason = None
    return approval


def enrich_profile(db: Session, *, employee_pk: str) -> EnrichResp:
    """Generate bio and project summaries, then queue the profile for HR review."""

    employee = db.get(m.Employee, employee_pk)
    if employee is None:
        raise NotFoundError("Employee not found")
    if employee.enrichment_completed:
        raise ConflictError("Profile has already been enriched. This is a one-time process.")
    if not employee.linkedin_data or not employee.github_data:
        raise ValidationError("Both LinkedIn and GitHub must be connected before enrichment")

    bio = _bio(employee)
    summaries = _project_summaries(employee)
    value_proposition = _value_proposition(employee)

    employee.bio = bio
    if value_proposition:
        employee.value_proposition = value_proposition
    employee.project_summaries.clear()
    for item in summaries:
        employee.project_summaries.append(
            m.EmployeeProjectSummary(
                repository_name=item["repository_name"],
                repository_url=item.get("repository_url"),
                summary=item["summary"],
            )
        )
    employee.enrichment_completed = True
    employee.enrichment_completed_at = datetime.now(timezone.utc)
    employee.profile_status = "enriched"
    approval = upsert_approval_request(db, employee=employee)

    db.commit()
    db.refresh(employee)
    db.refresh(approval)
    tracepoint("enrichment.completed", employee_id=employee.id, summaries=len(summaries))
    logger.info("Enriched profile {} with {} project summaries", employee.id, len(summaries))

    return EnrichResp(
        employee=EnrichedEmployee(
            id=employee.id,
            employee_id=employee.employee_id,
            bio=employee.bio,
            value_proposition=employee.value_proposition,
            enrichment_completed=employee.enrichment_completed,
            enrichment_completed_at=employee.enrichment_completed_at,
            profile_status=employee.profile_status,
            project_summaries_count=len(summaries),
        ),
        approval_request=ApprovalRequestSummary(
            id=approval.id,
            status=approval.status,
            requested_at=approval.requested_at,
        ),
    )


def enrich_in_background(employee_pk: str, request_id: str | None = None) -> None:
    """Background-task entry point with its own session."""

    with request_id_context(request_id), deps.SessionLocal() as db:
        try:
            if not is_ready_for_enrichment(db, employee_pk=employee_pk):
                return
            enrich_profile(db, employee_pk=employee_pk)
        except AppError as exc:
            db.rollback()
            logger.error("Background enrichment failed for {}: {}", employee_pk, exc.message)
