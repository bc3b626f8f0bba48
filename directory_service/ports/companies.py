"""Company registration, domain verification and admin views."""

from __future__ import annotations

import re
from typing import Dict, List

from loguru import logger
from sqlalchemy import func
from sqlalchemy.orm import Session

from directory_service.adapters import domain_dns
from directory_service.application.csv_validator import EMAIL_RE
from directory_service.domain import models as m
from directory_service.domain.errors import ConflictError, NotFoundError, ValidationError
from directory_service.domain.schemas import (
    CompanyDetailResp,
    CompanyListResp,
    CompanyRegisterReq,
    CompanyRegisterResp,
    CompanySummaryResp,
    VerificationStatusResp,
    VerifyResp,
)

DOMAIN_RE = re.compile(
    r"^[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)
_REQUIRED_FIELDS = (
    "company_name",
    "industry",
    "domain",
    "hr_contact_name",
    "hr_contact_email",
    "hr_contact_role",
)


def get_company(db: Session, company_id: str) -> m.Company:
    company = db.get(m.Company, company_id)
    if company is None:
        raise NotFoundError("Company not found")
    return company


def _clean_registration(req: CompanyRegisterReq) -> Dict[str, str]:
    data = {name: (getattr(req, name) or "").strip() for name in _REQUIRED_FIELDS}
    missing = [name for name, value in data.items() if not value]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    if not EMAIL_RE.match(data["hr_contact_email"]):
        raise ValidationError("Invalid email format")
    if not DOMAIN_RE.match(data["domain"]):
        raise ValidationError("Invalid domain format")
    data["domain"] = data["domain"].lower()
    return data


def register_company(db: Session, *, req: CompanyRegisterReq) -> CompanyRegisterResp:
    """Create a company in ``pending`` verification state."""

    data = _clean_registration(req)
    existing = db.query(m.Company).filter(func.lower(m.Company.domain) == data["domain"]).one_or_none()
    if existing is not None:
        raise ConflictError("A company with this domain already exists")

    company = m.Company(**data, verification_status="pending")
    db.add(company)
    db.commit()
    db.refresh(company)
    logger.info("Registered company {} domain={}", company.id, company.domain)
    return CompanyRegisterResp(
        company_id=company.id,
        company_name=company.company_name,
        domain=company.domain,
        verification_status=company.verification_status,
    )


def get_verification_status(db: Session, *, company_id: str) -> VerificationStatusResp:
    company = get_company(db, company_id)
    return VerificationStatusResp(
        id=company.id,
        company_name=company.company_name,
        domain=company.domain,
        verification_status=company.verification_status,
        industry=company.industry,
        hr_contact_name=company.hr_contact_name,
        hr_contact_email=company.hr_contact_email,
        created_at=company.created_at,
    )


def verify_domain(db: Session, *, company_id: str) -> VerifyResp:
    """Run DNS checks and auto-approve companies whose domain resolves."""

    company = get_company(db, company_id)
    if company.verification_status == "approved":
        return VerifyResp(
            company_id=company.id,
            verification_status="approved",
            message="Company already verified",
        )

    validation = domain_dns.validate_domain(company.domain)
    company.verification_status = "approved" if validation.is_valid else "pending"
    db.commit()
    db.refresh(company)
    logger.info(
        "Domain verification company={} domain={} valid={}", company.id, company.domain, validation.is_valid
    )
    return VerifyResp(
        company_id=company.id,
        verification_status=company.verification_status,
        message="Company verified successfully" if validation.is_valid else "Verification pending review",
        domain_validation=validation,
    )


def _set_status(db: Session, company_id: str, status: str, reason: str | None) -> VerifyResp:
    company = get_company(db, company_id)
    company.verification_status = status
    company.rejection_reason = reason if status == "rejected" else None
    db.commit()
    db.refresh(company)
    return VerifyResp(
        company_id=company.id,
        verification_status=company.verification_status,
        message=f"Company {status}",
    )


def approve_company(db: Session, *, company_id: str) -> VerifyResp:
    return _set_status(db, company_id, "approved", None)


def reject_company(db: Session, *, company_id: str, reason: str | None = None) -> VerifyResp:
    return _set_status(db, company_id, "rejected", reason)


def list_companies(db: Session) -> CompanyListResp:
    """All companies, newest first."""

    rows: List[m.Company] = db.query(m.Company).order_by(m.Company.created_at.desc()).all()
    return CompanyListResp(
        companies=[
            CompanySummaryResp(
                id=row.id,
                company_name=row.company_name,
                industry=row.industry,
                domain=row.domain,
                status=row.verification_status,
                created_date=row.created_at,
            )
            for row in rows
        ]
    )


def get_company_detail(db: Session, *, company_id: str) -> CompanyDetailResp:
    return CompanyDetailResp.model_validate(get_company(db, company_id))
