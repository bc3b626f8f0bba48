"""Company onboarding routes: registration, verification, CSV upload and profile."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from directory_service import deps
from directory_service.config import settings
from directory_service.deps import get_current_user, get_db
from directory_service.domain import models as m
from directory_service.domain.schemas import (
    CompanyProfileResp,
    CompanyRegisterReq,
    CompanyRegisterResp,
    CsvUploadResp,
    VerificationStatusResp,
    VerifyResp,
)
from directory_service.ports.company_profile import get_company_profile
from directory_service.ports.companies import get_verification_status, register_company, verify_domain
from directory_service.ports.csv_import import import_csv

router = APIRouter(prefix="/api/v1/companies", tags=["companies"])

_CSV_CONTENT_TYPES = {"text/csv", "application/vnd.ms-excel"}


@router.post("/register", response_model=CompanyRegisterResp, status_code=status.HTTP_201_CREATED)
def register_route(body: CompanyRegisterReq, db: Session = Depends(get_db)) -> CompanyRegisterResp:
    return register_company(db, req=body)


@router.get("/{company_id}/verification", response_model=VerificationStatusResp)
def verification_status_route(company_id: str, db: Session = Depends(get_db)) -> VerificationStatusResp:
    return get_verification_status(db, company_id=company_id)


@router.post("/{company_id}/verify", response_model=VerifyResp)
def verify_route(company_id: str, db: Session = Depends(get_db)) -> VerifyResp:
    """Run DNS checks against the company's domain."""

    return verify_domain(db, company_id=company_id)


def _check_upload_access(request: Request, db: Session, company_id: str) -> None:
    # The first upload happens before any account exists; later uploads need HR.
    has_employees = db.query(m.Employee.id).filter(m.Employee.company_id == company_id).first() is not None
    if not has_employees:
        return
    claims = getattr(request.state, "user", None) or {}
    if not claims:
        claims = deps.get_current_user(request)
    if claims.get("role") != "HR" or str(claims.get("company_id")) != str(company_id):
        raise HTTPException(status_code=403, detail="Access denied. HR privileges required.")


@router.post("/{company_id}/upload", response_model=CsvUploadResp)
async def upload_csv_route(
    company_id: str,
    request: Request,
    file: UploadFile | None = File(None),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """Import the company hierarchy from a CSV file in the ``file`` form field."""

    if file is None:
        raise HTTPException(status_code=400, detail="No CSV file provided")
    filename = (file.filename or "").lower()
    if file.content_type not in _CSV_CONTENT_TYPES and not filename.endswith(".csv"):
        raise HTTPException(status_code=400, detail="Only CSV files are allowed")

    _check_upload_access(request, db, company_id)
    data = await file.read()
    if len(data) > settings.csv_max_bytes:
        limit_mb = settings.csv_max_bytes // (1024 * 1024)
        raise HTTPException(status_code=400, detail=f"CSV file exceeds the {limit_mb} MB limit")

    code, result = import_csv(db, company_id=company_id, content=data)
    return JSONResponse(status_code=code, content=result.model_dump(mode="json"))


@router.get("/{company_id}/profile", response_model=CompanyProfileResp)
def company_profile_route(
    company_id: str,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> CompanyProfileResp:
    """Departments, teams, employees and head counts for the company."""

    is_company_hr = user.get("role") == "HR" and str(user.get("company_id")) == str(company_id)
    if not is_company_hr and user.get("role") != "DIRECTORY_ADMIN":
        raise HTTPException(status_code=403, detail="Access denied. HR privileges required.")
    return get_company_profile(db, company_id=company_id)
