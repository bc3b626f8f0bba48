"""Directory admin routes: login and read-only views across companies."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from directory_service.deps import get_db, require_role
from directory_service.domain.schemas import (
    CompanyDecisionReq,
    CompanyDetailResp,
    CompanyListResp,
    EmployeeDetailResp,
    LoginReq,
    LoginResult,
    VerifyResp,
)
from directory_service.ports.auth import ADMIN_ROLE, admin_login
from directory_service.ports.companies import approve_company, get_company_detail, list_companies, reject_company
from directory_service.ports.employees import get_employee_any_company

router = APIRouter(prefix="/api/v1/admin", tags=["admin"])


@router.post("/login", response_model=LoginResult)
def admin_login_route(body: LoginReq, db: Session = Depends(get_db)) -> LoginResult:
    return admin_login(db, email=body.email, password=body.password)


@router.get("/companies", response_model=CompanyListResp)
def list_companies_route(
    db: Session = Depends(get_db),
    _: Dict[str, Any] = Depends(require_role(ADMIN_ROLE)),
) -> CompanyListResp:
    """All registered companies, newest first."""

    return list_companies(db)


@router.get("/companies/{company_id}", response_model=CompanyDetailResp)
def get_company_route(
    company_id: str,
    db: Session = Depends(get_db),
    _: Dict[str, Any] = Depends(require_role(ADMIN_ROLE)),
) -> CompanyDetailResp:
    return get_company_detail(db, company_id=company_id)


@router.post("/companies/{company_id}/approve", response_model=VerifyResp)
def approve_company_route(
    company_id: str,
    db: Session = Depends(get_db),
    _: Dict[str, Any] = Depends(require_role(ADMIN_ROLE)),
) -> VerifyResp:
    return approve_company(db, company_id=company_id)


@router.post("/companies/{company_id}/reject", response_model=VerifyResp)
def reject_company_route(
    company_id: str,
    body: CompanyDecisionReq | None = None,
    db: Session = Depends(get_db),
    _: Dict[str, Any] = Depends(require_role(ADMIN_ROLE)),
) -> VerifyResp:
    return reject_company(db, company_id=company_id, reason=body.reason if body else None)


@router.get("/employees/{employee_id}", response_model=EmployeeDetailResp)
def get_employee_route(
    employee_id: str,
    db: Session = Depends(get_db),
    _: Dict[str, Any] = Depends(require_role(ADMIN_ROLE)),
) -> EmployeeDetailResp:
    return EmployeeDetailResp(employee=get_employee_any_company(db, employee_pk=employee_id))
