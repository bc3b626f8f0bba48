"""HR review of enriched employee profiles."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

from loguru import logger
from sqlalchemy.orm import Session

from directory_service.domain import models as m
from directory_service.domain.errors import NotFoundError, PermissionDeniedError, ValidationError
from directory_service.domain.schemas import ApprovalListResp, ApprovalResp


def _to_approval_resp(approval: m.EmployeeProfileApproval) -> ApprovalResp:
    employee = approval.employee
    team = employee.team_links[0].team if employee and employee.team_links else None
    return ApprovalResp(
        id=approval.id,
        employee_id=approval.employee_id,
        company_id=approval.company_id,
        status=approval.status,
        requested_at=approval.requested_at,
        reviewed_at=approval.reviewed_at,
        reviewed_by=approval.reviewed_by,
        rejection_reason=approval.rejection_reason,
        full_name=employee.full_name if employee else None,
        email=employee.email if employee else None,
        employee_code=employee.employee_id if employee else None,
        current_role_in_company=employee.current_role_in_company if employee else None,
        bio=employee.bio if employee else None,
        team_name=team.team_name if team else None,
        department_name=team.department.department_name if team else None,
    )


def list_pending_approvals(db: Session, *, company_id: str) -> ApprovalListResp:
    rows: List[m.EmployeeProfileApproval] = (
        db.query(m.EmployeeProfileApproval)
        .filter(
            m.EmployeeProfileApproval.company_id == company_id,
            m.EmployeeProfileApproval.status == "pending",
        )
        .order_by(m.EmployeeProfileApproval.requested_at.asc())
        .all()
    )
    return ApprovalListResp(approvals=[_to_approval_resp(row) for row in rows])


def _review(
    db: Session,
    *,
    company_id: str,
    approval_id: str,
    reviewer: Dict[str, Any],
    status: str,
    reason: str | None = None,
) -> ApprovalResp:
    approval = db.get(m.EmployeeProfileApproval, approval_id)
    if approval is None:
        raise NotFoundError("Approval request not found")
    if approval.company_id != company_id:
        raise PermissionDeniedError("Approval request belongs to another company")
    if approval.status != "pending":
        raise ValidationError(f"Approval request is already {approval.status}")

    approval.status = status
    approval.reviewed_at = datetime.now(timezone.utc)
    approval.reviewed_by = reviewer.get("employee_id")
    approval.rejection_reason = reason if status == "rejected" else None
    approval.employee.profile_status = status
    db.commit()
    db.refresh(approval)
    logger.info("Profile approval {} {} by {}", approval.id, status, approval.reviewed_by)
    return _to_approval_resp(approval)


def approve_profile(db: Session, *, company_id: str, approval_id: str, reviewer: Dict[str, Any]) -> ApprovalResp:
    return _review(db, company_id=company_id, approval_id=approval_id, reviewer=reviewer, status="approved")


def reject_profile(
    db: Session,
    *,
    company_id: str,
    approval_id: str,
    reviewer: Dict[str, Any],
    reason: str | None = None,
) -> ApprovalResp:
    return _review(
        db,
        company_id=company_id,
        approval_id=approval_id,
        reviewer=reviewer,
        status="rejected",
        reason=reason,
    )


def get_approval_status(db: Session, *, employee_pk: str) -> ApprovalResp | None:
    """Latest approval for the employee, or ``None`` if never enriched."""

    approval = (
        db.query(m.EmployeeProfileApproval)
        .filter(m.EmployeeProfileApproval.employee_id == employee_pk)
        .order_by(m.EmployeeProfileApproval.requested_at.desc())
        .first()
    )
    return _to_approval_resp(approval) if approval else None
