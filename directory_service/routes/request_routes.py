"""Employee request routes and their HR review."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from directory_service.deps import ensure_self_or_company_hr, get_current_user, get_db, require_company_hr
from directory_service.domain.schemas import (
    EmployeeRequestCreateReq,
    EmployeeRequestResp,
    EmployeeRequestUpdateReq,
    EnvelopeResp,
)
from directory_service.ports.requests import (
    list_company_requests,
    list_employee_requests,
    submit_request,
    update_request,
)

router = APIRouter(prefix="/api/v1/companies/{company_id}", tags=["requests"])


@router.post("/employees/{employee_id}/requests", response_model=EnvelopeResp, status_code=201)
def submit_request_route(
    company_id: str,
    employee_id: str,
    body: EmployeeRequestCreateReq,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> EnvelopeResp:
    if str(user.get("employee_id")) != str(employee_id):
        raise HTTPException(status_code=403, detail="Employees can only submit their own requests")
    created = submit_request(db, company_id=company_id, employee_pk=employee_id, req=body)
    return EnvelopeResp(
        response={
            "success": True,
            "request": created.model_dump(mode="json"),
            "message": "Request submitted successfully",
        }
    )


@router.get("/employees/{employee_id}/requests")
def employee_requests_route(
    company_id: str,
    employee_id: str,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    ensure_self_or_company_hr(user, employee_pk=employee_id, company_id=company_id)
    rows = list_employee_requests(db, company_id=company_id, employee_pk=employee_id)
    return {"success": True, "requests": [row.model_dump(mode="json") for row in rows]}


@router.get("/requests")
def company_requests_route(
    company_id: str,
    status: str | None = None,
    db: Session = Depends(get_db),
    _: Dict[str, Any] = Depends(require_company_hr),
) -> Dict[str, Any]:
    """Company-wide request queue for HR, optionally filtered by status."""

    rows = list_company_requests(db, company_id=company_id, status=status)
    return {"success": True, "requests": [row.model_dump(mode="json") for row in rows]}


@router.put("/requests/{request_id}", response_model=EmployeeRequestResp)
def update_request_route(
    company_id: str,
    request_id: str,
    body: EmployeeRequestUpdateReq,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(require_company_hr),
) -> EmployeeRequestResp:
    return update_request(db, company_id=company_id, request_id=request_id, req=body, reviewer=user)
