"""Employee-level profile routes: manual enrichment and approval status."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from directory_service.deps import ensure_self_or_company_hr, get_current_user, get_db
from directory_service.domain import models as m
from directory_service.domain.errors import NotFoundError
from directory_service.domain.schemas import EnrichResp
from directory_service.ports.approvals import get_approval_status
from directory_service.ports.enrichment import enrich_profile

router = APIRouter(prefix="/api/v1/employees", tags=["profiles"])


def _authorize(db: Session, user: Dict[str, Any], employee_id: str) -> None:
    employee = db.get(m.Employee, employee_id)
    if employee is None:
        raise NotFoundError("Employee not found")
    ensure_self_or_company_hr(user, employee_pk=employee.id, company_id=employee.company_id)


@router.post("/{employee_id}/enrich", response_model=EnrichResp)
def enrich_route(
    employee_id: str,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> EnrichResp:
    """Run enrichment now instead of waiting for the OAuth callback trigger."""

    _authorize(db, user, employee_id)
    return enrich_profile(db, employee_pk=employee_id)


@router.get("/{employee_id}/approval-status")
def approval_status_route(
    employee_id: str,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    _authorize(db, user, employee_id)
    approval = get_approval_status(db, employee_pk=employee_id)
    return {"success": True, "approval": approval.model_dump(mode="json") if approval else None}
