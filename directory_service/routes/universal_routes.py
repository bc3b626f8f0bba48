"""Universal inter-service endpoint."""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from directory_service.deps import get_db
from directory_service.ports.content_metrics import fill_content_metrics

router = APIRouter(tags=["universal"])


@router.post("/api/fill-content-metrics")
async def fill_content_metrics_route(request: Request, db: Session = Depends(get_db)) -> JSONResponse:
    """Fill the caller's ``response`` template with directory data."""

    raw = await request.body()
    envelope: Any
    try:
        envelope = json.loads(raw or b"null")
        # Some callers double-encode the envelope.
        if isinstance(envelope, str):
            envelope = json.loads(envelope)
    except ValueError:
        envelope = None

    # Gemini calls block and sleep between rate-limit retries.
    code, body = await run_in_threadpool(fill_content_metrics, db, envelope=envelope)
    return JSONResponse(status_code=code, content=jsonable_encoder(body))
