"""Middleware that hydrates ``request.state.user`` from bearer tokens."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from directory_service.adapters.auth_providers import LocalAuthProvider
from directory_service.domain.errors import AppError
from directory_service.instrumentation.trace import push_company_id, reset_company_id


class AuthMiddleware(BaseHTTPMiddleware):
    """Decode locally signed tokens opportunistically for logging and auditing.

    Enforcement happens in :func:`directory_service.deps.get_current_user`; this
    middleware never rejects a request.
    """

    def __init__(self, app: Any) -> None:
        super().__init__(app)
        self._provider = LocalAuthProvider()

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        claims: Dict[str, Any] = {}
        token = self._provider.extract_token(request.headers)
        if token:
            try:
                claims = self._provider.validate_token(token)
            except AppError:
                claims = {}

        request.state.user = claims
        company_token = push_company_id(claims.get("company_id"))
        try:
            return await call_next(request)
        finally:
            reset_company_id(company_token)
