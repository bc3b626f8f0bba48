"""Login, admin login and current-user lookups."""

from __future__ import annotations

from typing import Any, Dict

from loguru import logger
from sqlalchemy import func
from sqlalchemy.orm import Session

from directory_service.adapters.auth_providers import (
    AuthProvider,
    get_auth_provider,
    issue_token,
)
from directory_service.config import settings
from directory_service.domain import models as m
from directory_service.domain.errors import AuthenticationError, NotFoundError, ValidationError
from directory_service.domain.schemas import AuthUser, LoginResult
from directory_service.utils.passwords import verify_and_upgrade

ADMIN_ROLE = "DIRECTORY_ADMIN"


def _to_auth_user(employee: m.Employee, claims: Dict[str, Any]) -> AuthUser:
    profile_status = employee.profile_status or "basic"
    return AuthUser(
        id=employee.id,
        email=employee.email,
        employeeId=employee.employee_id,
        companyId=employee.company_id,
        fullName=employee.full_name,
        isHR=bool(claims.get("is_hr")),
        role=claims.get("role", "EMPLOYEE"),
        profileStatus=profile_status,
        isFirstLogin=profile_status == "basic",
        isProfileApproved=profile_status == "approved",
    )


def _to_admin_user(admin: m.DirectoryAdmin) -> AuthUser:
    return AuthUser(id=admin.id, email=admin.email, fullName=admin.full_name, isAdmin=True, role=ADMIN_ROLE)


def _require_credentials(email: str | None, password: str | None) -> tuple[str, str]:
    if not email or not password:
        raise ValidationError("Email and password are required")
    return email.strip().lower(), password


def login(db: Session, *, email: str | None, password: str | None, provider: AuthProvider | None = None) -> LoginResult:
    """Authenticate an employee through the configured auth provider."""

    email, password = _require_credentials(email, password)
    provider = provider or get_auth_provider()
    result = provider.authenticate(db, email=email, password=password)

    employee = db.get(m.Employee, result.claims["employee_id"])
    if employee is None:
        raise AuthenticationError("Invalid email or password")

    if db.is_modified(employee):
        db.commit()
        logger.info("Upgraded password hash for employee {}", employee.id)

    return LoginResult(token=result.token, expires_in=result.expires_in, user=_to_auth_user(employee, result.claims))


def admin_login(db: Session, *, email: str | None, password: str | None) -> LoginResult:
    """Authenticate a directory admin and issue a company-less token."""

    email, password = _require_credentials(email, password)
    admin = db.query(m.DirectoryAdmin).filter(func.lower(m.DirectoryAdmin.email) == email).one_or_none()
    if admin is None or not verify_and_upgrade(admin, password):
        raise AuthenticationError("Invalid email or password")
    if not admin.is_active:
        raise AuthenticationError("Admin account is inactive")
    if db.is_modified(admin):
        db.commit()

    claims = {
        "sub": admin.email,
        "admin_id": admin.id,
        "company_id": None,
        "full_name": admin.full_name,
        "is_hr": False,
        "role": ADMIN_ROLE,
    }
    return LoginResult(
        token=issue_token(claims),
        expires_in=settings.jwt_ttl_seconds,
        user=_to_admin_user(admin),
    )


def current_user(db: Session, *, claims: Dict[str, Any]) -> AuthUser:
    """Return the user record behind a validated token."""

    if claims.get("role") == ADMIN_ROLE:
        admin = db.get(m.DirectoryAdmin, claims.get("admin_id"))
        if admin is None:
            raise NotFoundError("Admin not found")
        return _to_admin_user(admin)

    employee = db.get(m.Employee, claims.get("employee_id"))
    if employee is None:
        raise NotFoundError("Employee not found")
    return _to_auth_user(employee, claims)
