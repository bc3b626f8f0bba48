"""Employee requests (training, trainer applications) and their HR review."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

from loguru import logger
from sqlalchemy.orm import Session

from directory_service.domain import models as m
from directory_service.domain.errors import NotFoundError, PermissionDeniedError, ValidationError
from directory_service.domain.schemas import (
    EmployeeRequestCreateReq,
    EmployeeRequestResp,
    EmployeeRequestUpdateReq,
)
from directory_service.ports.employees import get_company_employee

REQUEST_TYPES = ("learn-new-skills", "apply-trainer", "self-learning", "other")
REQUEST_STATUSES = ("pending", "approved", "rejected", "in_progress", "completed")


def _to_request_resp(row: m.EmployeeRequest) -> EmployeeRequestResp:
    resp = EmployeeRequestResp.model_validate(row)
    resp.employee_name = row.employee.full_name if row.employee else None
    return resp


def submit_request(
    db: Session,
    *,
    company_id: str,
    employee_pk: str,
    req: EmployeeRequestCreateReq,
) -> EmployeeRequestResp:
    employee = get_company_employee(db, company_id=company_id, employee_pk=employee_pk)
    if employee.profile_status != "approved":
        raise ValidationError("Employee profile must be approved to submit requests")
    if not req.request_type:
        raise ValidationError("Request type is required")
    if req.request_type not in REQUEST_TYPES:
        raise ValidationError(f"Invalid request type. Must be one of: {', '.join(REQUEST_TYPES)}")
    title = (req.title or "").strip()
    if not title:
        raise ValidationError("Request title is required")

    description = (req.description or "").strip() or None
    row = m.EmployeeRequest(
        employee_id=employee.id,
        company_id=company_id,
        request_type=req.request_type,
        title=title,
        description=description,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("Employee {} submitted {} request {}", employee.id, row.request_type, row.id)
    return _to_request_resp(row)


def list_employee_requests(db: Session, *, company_id: str, employee_pk: str) -> List[EmployeeRequestResp]:
    employee = get_company_employee(db, company_id=company_id, employee_pk=employee_pk)
    if employee.profile_status != "approved":
        raise PermissionDeniedError("Employee profile must be approved to view requests")
    rows = (
        db.query(m.EmployeeRequest)
        .filter(m.EmployeeRequest.employee_id == employee.id)
        .order_by(m.EmployeeRequest.requested_at.desc())
        .all()
    )
    return [_to_request_resp(row) for row in rows]


def list_company_requests(db: Session, *, company_id: str, status: str | None = None) -> List[EmployeeRequestResp]:
    query = db.query(m.EmployeeRequest).filter(m.EmployeeRequest.company_id == company_id)
    if status:
        if status not in REQUEST_STATUSES:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(REQUEST_STATUSES)}")
        query = query.filter(m.EmployeeRequest.status == status)
    return [_to_request_resp(row) for row in query.order_by(m.EmployeeRequest.requested_at.desc()).all()]


def update_request(
    db: Session,
    *,
    company_id: str,
    request_id: str,
    req: EmployeeRequestUpdateReq,
    reviewer: Dict[str, Any],
) -> EmployeeRequestResp:
    row = db.get(m.EmployeeRequest, request_id)
    if row is None or row.company_id != company_id:
        raise NotFoundError("Request not found")
    if not req.status or req.status not in REQUEST_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(REQUEST_STATUSES)}")

    row.status = req.status
    row.reviewed_at = datetime.now(timezone.utc)
    row.reviewed_by = reviewer.get("employee_id")
    if req.rejection_reason is not None:
        row.rejection_reason = req.rejection_reason
    if req.response_notes is not None:
        row.response_notes = req.response_notes
    db.commit()
    db.refresh(row)
    return _to_request_resp(row)
