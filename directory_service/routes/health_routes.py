"""Liveness probe."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter

from directory_service import __version__
from directory_service.domain.schemas import HealthResp

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResp)
def health() -> HealthResp:
    return HealthResp(timestamp=datetime.now(timezone.utc), version=__version__)
