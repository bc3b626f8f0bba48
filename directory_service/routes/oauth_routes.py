"""LinkedIn and GitHub OAuth connection routes."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from directory_service.deps import get_current_user, get_db
from directory_service.domain.schemas import AuthorizeResp
from directory_service.instrumentation.trace import get_request_id
from directory_service.ports import enrichment
from directory_service.ports.oauth import PROVIDERS, get_authorization_url, handle_callback

router = APIRouter(prefix="/api/v1/oauth", tags=["oauth"])


def _provider(provider: str) -> str:
    if provider not in PROVIDERS:
        raise HTTPException(status_code=404, detail=f"Unknown OAuth provider: {provider}")
    return provider


@router.get("/{provider}/authorize", response_model=AuthorizeResp)
def authorize_route(
    provider: str,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> AuthorizeResp:
    """Return the provider consent URL with a signed ``state``."""

    if not user.get("employee_id"):
        raise HTTPException(status_code=403, detail="Only employees can connect accounts")
    return get_authorization_url(db, provider=_provider(provider), employee_pk=user["employee_id"])


@router.get("/{provider}/callback")
def callback_route(
    provider: str,
    background_tasks: BackgroundTasks,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    db: Session = Depends(get_db),
) -> RedirectResponse:
    outcome = handle_callback(db, provider=_provider(provider), code=code, state=state, error=error)
    if outcome.enrich_employee_id:
        background_tasks.add_task(enrichment.enrich_in_background, outcome.enrich_employee_id, get_request_id())
    return RedirectResponse(outcome.redirect_url, status_code=302)
