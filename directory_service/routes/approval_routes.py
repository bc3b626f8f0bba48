"""HR profile approval routes."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from directory_service.deps import get_db, require_company_hr
from directory_service.domain.schemas import ApprovalListResp, ApprovalResp, CompanyDecisionReq
from directory_service.ports.approvals import approve_profile, list_pending_approvals, reject_profile

router = APIRouter(prefix="/api/v1/companies/{company_id}/profile-approvals", tags=["approvals"])


@router.get("", response_model=ApprovalListResp)
def list_approvals_route(
    company_id: str,
    db: Session = Depends(get_db),
    _: Dict[str, Any] = Depends(require_company_hr),
) -> ApprovalListResp:
    """Pending approvals for the caller's company."""

    return list_pending_approvals(db, company_id=company_id)


@router.post("/{approval_id}/approve", response_model=ApprovalResp)
def approve_route(
    company_id: str,
    approval_id: str,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(require_company_hr),
) -> ApprovalResp:
    return approve_profile(db, company_id=company_id, approval_id=approval_id, reviewer=user)


@router.post("/{approval_id}/reject", response_model=ApprovalResp)
def reject_route(
    company_id: str,
    approval_id: str,
    body: CompanyDecisionReq | None = None,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(require_company_hr),
) -> ApprovalResp:
    return reject_profile(
        db,
        company_id=company_id,
        approval_id=approval_id,
        reviewer=user,
        reason=body.reason if body else None,
    )
