"""Employee authentication routes."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from directory_service.deps import get_current_user, get_db
from directory_service.domain.schemas import AuthUser, EnvelopeResp, LoginReq
from directory_service.ports.auth import current_user, login

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post("/login", response_model=EnvelopeResp)
def login_route(body: LoginReq, db: Session = Depends(get_db)) -> EnvelopeResp:
    """Exchange email and password for a bearer token wrapped in the service envelope."""

    result = login(db, email=body.email, password=body.password)
    return EnvelopeResp(response=result.model_dump(mode="json"))


@router.post("/logout")
def logout_route(_: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    # Tokens are stateless; the client simply discards it.
    return {"success": True, "message": "Logged out successfully"}


@router.get("/me", response_model=AuthUser)
def me_route(
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> AuthUser:
    return current_user(db, claims=user)
