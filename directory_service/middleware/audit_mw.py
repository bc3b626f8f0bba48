"""Middleware that records audit logs for incoming HTTP requests."""

from __future__ import annotations

import hashlib
from typing import Awaitable, Callable

from loguru import logger as loguru_logger
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from directory_service import deps
from directory_service.domain.models import AuditLog
from directory_service.logging_setup import RequestLogger

request_logger = RequestLogger(loguru_logger)

_SKIPPED_PATHS = frozenset({"/health"})


def _fingerprint(method: str, path: str, query: str) -> str:
    return hashlib.sha256(f"audit::{method} {path}?{query}".encode("utf-8")).hexdigest()


class AuditMiddleware(BaseHTTPMiddleware):
    """Persist minimal request metadata for auditing purposes."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        route = request.url.path
        if route in _SKIPPED_PATHS:
            return await call_next(request)

        req_id = getattr(request.state, "request_id", "") or request.headers.get("X-Request-Id", "")
        user_claims = getattr(request.state, "user", {}) or {}
        company = str(user_claims.get("company_id") or "-")
        started_at = request_logger.request_start(req_id, route, company)

        response = await call_next(request)

        user_claims = getattr(request.state, "user", {}) or user_claims
        actor_id = user_claims.get("employee_id") or user_claims.get("admin_id")
        company_id = user_claims.get("company_id")

        session = deps.SessionLocal()
        try:
            session.add(
                AuditLog(
                    company_id=company_id,
                    actor_id=actor_id,
                    actor_role=user_claims.get("role"),
                    method=request.method,
                    action=route,
                    args_hash=_fingerprint(request.method, route, request.url.query),
                    result_code=response.status_code,
                    request_id=req_id,
                )
            )
            session.commit()
        except SQLAlchemyError as exc:
            loguru_logger.error("Failed to persist audit log: {}", exc)
            session.rollback()
        finally:
            session.close()

        request_logger.request_end(started_at, req_id, route, company, response.status_code)
        return response
