"""One-time LinkedIn and GitHub account connection for employees."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from types import ModuleType
from typing import Any, Dict
from urllib.parse import urlencode

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from directory_service.adapters import github_client, linkedin_client
from directory_service.adapters.auth_providers import decode_token, issue_token
from directory_service.config import settings
from directory_service.domain import models as m
from directory_service.domain.errors import AppError, ConflictError, NotFoundError, ValidationError
from directory_service.domain.schemas import AuthorizeResp
from directory_service.ports.enrichment import is_ready_for_enrichment

PROVIDERS = ("linkedin", "github")
_STATE_TYPE = "oauth_state"


@dataclass
class CallbackOutcome:
    redirect_url: str
    enrich_employee_id: str | None = None


def _client(provider: str) -> ModuleType:
    if provider == "linkedin":
        return linkedin_client
    if provider == "github":
        return github_client
    raise NotFoundError(f"Unknown OAuth provider: {provider}")


def _connected(employee: m.Employee, provider: str) -> bool:
    return bool(getattr(employee, f"{provider}_data"))


def build_state(employee_pk: str, provider: str) -> str:
    return issue_token(
        {"sub": employee_pk, "provider": provider, "typ": _STATE_TYPE, "ts": int(time.time())},
        ttl=settings.oauth_state_ttl_seconds,
    )


def decode_state(state: str, provider: str) -> str:
    """Return the employee id carried by *state* or raise :class:`ValidationError`."""

    try:
        claims = decode_token(state)
    except AppError as exc:
        raise ValidationError("Invalid or expired OAuth state", code="invalid_state") from exc
    if claims.get("typ") != _STATE_TYPE or claims.get("provider") != provider or not claims.get("sub"):
        raise ValidationError("Invalid or expired OAuth state", code="invalid_state")
    return str(claims["sub"])


def get_authorization_url(db: Session, *, provider: str, employee_pk: str) -> AuthorizeResp:
    client = _client(provider)
    employee = db.get(m.Employee, employee_pk)
    if employee is None:
        raise NotFoundError("Employee not found")
    if _connected(employee, provider):
        raise ConflictError(f"{provider.capitalize()} is already connected. This is a one-time process.")

    state = build_state(employee.id, provider)
    return AuthorizeResp(authorizationUrl=client.build_authorization_url(state), state=state)


def _redirect(**params: str) -> str:
    return f"{settings.frontend_url.rstrip('/')}/enrich?{urlencode(params)}"


def _token_blob(token: Dict[str, Any]) -> Dict[str, Any]:
    expires_in = token.get("expires_in")
    expires_at = None
    if expires_in:
        expires_at = (datetime.now(timezone.utc) + timedelta(seconds=int(expires_in))).isoformat()
    return {
        "access_token": token.get("access_token"),
        "token_expires_at": expires_at,
        "refresh_token": token.get("refresh_token"),
        "connected_at": datetime.now(timezone.utc).isoformat(),
    }


def connect_account(db: Session, *, provider: str, code: str, state: str) -> m.Employee:
    """Exchange *code*, fetch the provider profile and store it on the employee."""

    client = _client(provider)
    employee_pk = decode_state(state, provider)
    employee = db.get(m.Employee, employee_pk)
    if employee is None:
        raise NotFoundError("Employee not found")
    if _connected(employee, provider):
        raise ConflictError(f"{provider.capitalize()} is already connected. This is a one-time process.")

    token = client.exchange_code_for_token(code)
    profile = client.fetch_profile(token["access_token"])
    blob = {**profile, **_token_blob(token)}

    if provider == "linkedin":
        employee.linkedin_url = linkedin_client.profile_url(profile)
        employee.linkedin_data = blob
    else:
        login = profile.get("login")
        employee.github_url = profile.get("html_url") or (f"https://github.com/{login}" if login else None)
        employee.github_data = blob
    db.commit()
    db.refresh(employee)
    logger.info("Connected {} for employee {}", provider, employee.id)
    return employee


def handle_callback(
    db: Session,
    *,
    provider: str,
    code: str | None,
    state: str | None,
    error: str | None,
) -> CallbackOutcome:
    """Resolve a provider callback into a frontend redirect.

    Failures never surface as HTTP errors here; they become ``error=`` query
    parameters on the redirect.
    """

    if error:
        return CallbackOutcome(_redirect(error=error))
    if not code or not state:
        return CallbackOutcome(_redirect(error="missing_code_or_state"))

    try:
        employee = connect_account(db, provider=provider, code=code, state=state)
    except AppError as exc:
        db.rollback()
        logger.warning("OAuth {} callback failed: {}", provider, exc.message)
        return CallbackOutcome(_redirect(error=exc.message))
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("OAuth {} callback could not store the profile: {}", provider, exc)
        return CallbackOutcome(_redirect(error="connection_failed"))

    if is_ready_for_enrichment(db, employee_pk=employee.id):
        return CallbackOutcome(_redirect(linkedin="connected", github="connected"), enrich_employee_id=employee.id)
    return CallbackOutcome(_redirect(**{provider: "connected"}))
