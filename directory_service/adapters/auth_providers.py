"""Pluggable authentication strategies selected by ``AUTH_MODE``.

``local`` verifies bcrypt credentials stored in the directory and issues HS256
JWTs. ``auth-service`` delegates credential checks and token validation to the
central auth service, while still accepting tokens signed with the shared
``JWT_SECRET``.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Mapping

import httpx
import jwt
from jwt import PyJWTError
from sqlalchemy import func
from sqlalchemy.orm import Session

from directory_service.config import settings
from directory_service.domain import models as m
from directory_service.domain.errors import AuthenticationError, ExternalServiceError
from directory_service.utils.http import sync_client
from directory_service.utils.passwords import verify_and_upgrade


@dataclass
class AuthResult:
    token: str
    claims: Dict[str, Any]
    expires_in: int


def issue_token(claims: Mapping[str, Any], *, ttl: int | None = None) -> str:
    """Sign *claims* with the shared secret, adding the registered claims."""

    now = int(time.time())
    payload: Dict[str, Any] = dict(claims)
    payload.update(
        {
            "iss": settings.jwt_iss,
            "iat": now,
            "exp": now + (ttl or settings.jwt_ttl_seconds),
        }
    )
    if settings.jwt_aud:
        payload["aud"] = settings.jwt_aud
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


def decode_token(token: str) -> Dict[str, Any]:
    options = {
        "verify_signature": True,
        "verify_exp": True,
        "verify_aud": bool(settings.jwt_aud),
        "verify_iss": False,
    }
    decode_kwargs: Dict[str, Any] = {
        "key": settings.jwt_secret,
        "algorithms": ["HS256"],
        "options": options,
    }
    if settings.jwt_aud:
        decode_kwargs["audience"] = settings.jwt_aud
    try:
        return jwt.decode(token, **decode_kwargs)
    except PyJWTError as exc:
        raise AuthenticationError(f"Invalid token: {exc}", code="invalid_token") from exc


def employee_claims(employee: m.Employee, company: m.Company | None) -> Dict[str, Any]:
    """Claims carried by an employee token."""

    is_hr = bool(company and company.hr_contact_email and company.hr_contact_email.lower() == employee.email.lower())
    return {
        "sub": employee.email,
        "employee_id": employee.id,
        "company_id": employee.company_id,
        "full_name": employee.full_name,
        "is_hr": is_hr,
        "role": "HR" if is_hr else "EMPLOYEE",
    }


def find_employee_by_email(db: Session, email: str) -> m.Employee | None:
    return (
        db.query(m.Employee)
        .filter(func.lower(m.Employee.email) == email.strip().lower())
        .one_or_none()
    )


class AuthProvider(ABC):
    """Strategy interface shared by the authentication modes."""

    mode: str = ""

    def extract_token(self, headers: Mapping[str, str]) -> str | None:
        auth = headers.get("Authorization") or headers.get("authorization") or ""
        if not auth.startswith("Bearer "):
            return None
        token = auth.split(" ", 1)[1].strip()
        return token or None

    @abstractmethod
    def authenticate(self, db: Session, *, email: str, password: str) -> AuthResult:
        """Verify credentials and return a bearer token for the employee."""

    @abstractmethod
    def validate_token(self, token: str) -> Dict[str, Any]:
        """Return the claims carried by *token* or raise :class:`AuthenticationError`."""


class LocalAuthProvider(AuthProvider):
    mode = "local"

    def authenticate(self, db: Session, *, email: str, password: str) -> AuthResult:
        employee = find_employee_by_email(db, email)
        if employee is None or not verify_and_upgrade(employee, password):
            raise AuthenticationError("Invalid email or password")
        if employee.status == "inactive":
            raise AuthenticationError("Employee account is inactive")

        company = db.get(m.Company, employee.company_id)
        claims = employee_claims(employee, company)
        return AuthResult(token=issue_token(claims), claims=claims, expires_in=settings.jwt_ttl_seconds)

    def validate_token(self, token: str) -> Dict[str, Any]:
        return decode_token(token)


class AuthServiceProvider(AuthProvider):
    mode = "auth-service"

    def _url(self, path: str) -> str:
        if not settings.auth_service_url:
            raise ExternalServiceError("Auth service is not configured (missing AUTH_SERVICE_URL)")
        return f"{settings.auth_service_url.rstrip('/')}{path}"

    def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        url = self._url(path)
        try:
            with sync_client(timeout=settings.auth_service_timeout) as client:
                response = client.post(url, json=body)
                if response.status_code == 401:
                    raise AuthenticationError("Invalid email or password")
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as exc:
            raise ExternalServiceError(f"Auth service request failed: {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise ExternalServiceError("Auth service is unreachable") from exc
        except ValueError as exc:
            raise ExternalServiceError("Auth service returned an unexpected payload") from exc

    def authenticate(self, db: Session, *, email: str, password: str) -> AuthResult:
        data = self._post("/api/auth/login", {"email": email, "password": password})
        token = data.get("token") or data.get("access_token")
        if not data.get("success", True) or not token:
            raise AuthenticationError(data.get("error") or "Invalid email or password")

        employee = find_employee_by_email(db, email)
        if employee is None:
            raise AuthenticationError("No directory profile exists for this account")
        claims = employee_claims(employee, db.get(m.Company, employee.company_id))
        return AuthResult(token=token, claims=claims, expires_in=int(data.get("expires_in") or settings.jwt_ttl_seconds))

    def validate_token(self, token: str) -> Dict[str, Any]:
        try:
            return decode_token(token)
        except AuthenticationError:
            pass

        data = self._post("/api/auth/validate", {"token": token})
        if not data.get("valid"):
            raise AuthenticationError(data.get("error") or "Invalid token", code="invalid_token")
        user = data.get("user") or {}
        is_hr = bool(user.get("isHR"))
        return {
            "sub": user.get("email"),
            "employee_id": user.get("employeeId") or user.get("id"),
            "company_id": user.get("companyId"),
            "full_name": user.get("fullName"),
            "is_hr": is_hr,
            "role": "HR" if is_hr else user.get("role", "EMPLOYEE"),
        }


_PROVIDERS: Dict[str, type[AuthProvider]] = {
    LocalAuthProvider.mode: LocalAuthProvider,
    AuthServiceProvider.mode: AuthServiceProvider,
}


def get_auth_provider(mode: str | None = None) -> AuthProvider:
    """Instantiate the provider for *mode* (defaults to ``AUTH_MODE``)."""

    selected = mode or settings.auth_mode
    try:
        return _PROVIDERS[selected]()
    except KeyError as exc:
        raise ValueError(f"Unsupported auth mode: {selected}") from exc
