"""Application factory for the Directory Service API."""

from __future__ import annotations

from fastapi import FastAPI

from directory_service import __version__, deps
from directory_service.config import settings
from directory_service.domain.errors import add_exception_handlers
from directory_service.domain.models import Base
from directory_service.instrumentation.middleware import TraceRequestMiddleware
from directory_service.instrumentation.trace import tracepoint
from directory_service.logging_setup import setup_logging
from directory_service.middleware.audit_mw import AuditMiddleware
from directory_service.middleware.auth_mw import AuthMiddleware
from directory_service.utils.seed_data import ensure_seed_data


def create_app() -> FastAPI:
    """Initialise and configure the FastAPI application."""

    setup_logging()
    Base.metadata.create_all(bind=deps.engine)
    ensure_seed_data()
    tracepoint("app.startup", env=settings.env, auth_mode=settings.auth_mode)

    app = FastAPI(title="Directory Service", version=__version__)
    add_exception_handlers(app)
    app.add_middleware(AuthMiddleware)
    app.add_middleware(AuditMiddleware)
    app.add_middleware(TraceRequestMiddleware)
    from directory_service.routes import (
        admin_routes,
        approval_routes,
        auth_routes,
        company_routes,
        employee_routes,
        health_routes,
        oauth_routes,
        profile_routes,
        request_routes,
        universal_routes,
    )

    app.include_router(health_routes.router)
    app.include_router(auth_routes.router)
    app.include_router(admin_routes.router)
    app.include_router(company_routes.router)
    app.include_router(employee_routes.router)
    app.include_router(profile_routes.router)
    app.include_router(oauth_routes.router)
    app.include_router(approval_routes.router)
    app.include_router(request_routes.router)
    app.include_router(universal_routes.router)
    return app


app = create_app()
