# FILE: directory_service/deps.py
from __future__ import annotations
from typing import Any, Callable, Dict, Generator, Iterable
from fastapi import Depends, HTTPException, Request
from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.engine import URL
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import sessionmaker, Session

from directory_service.adapters.auth_providers import get_auth_provider
from directory_service.config import settings
from directory_service.domain.errors import AppError


# --- SQLAlchemy engine + session factory ----------------------------------------------------
def _build_db_url() -> URL:
    """Construct the SQLAlchemy URL used for engine creation."""

    if settings.database_url:
        return make_url(settings.database_url)

    return URL.create(
        drivername="postgresql+psycopg2",
        username=settings.postgres_user,
        password=settings.postgres_password,
        host=settings.postgres_host,
        port=settings.postgres_port,
        database=settings.postgres_db,
    )


def _build_postgres_connect_args() -> Dict[str, Any]:
    """Apply SSL / timeout settings when connecting to Postgres."""

    connect_args: Dict[str, Any] = {}
    if settings.postgres_sslmode:
        connect_args["sslmode"] = settings.postgres_sslmode
    if settings.postgres_connect_timeout:
        connect_args["connect_timeout"] = settings.postgres_connect_timeout
    return connect_args


def _build_connect_args(url: URL) -> Dict[str, Any]:
    dialect_name = url.get_dialect().name
    if dialect_name == "sqlite":
        return {"check_same_thread": False}
    if dialect_name.startswith("postgresql"):
        return _build_postgres_connect_args()
    return {}


def _build_engine_kwargs(url: URL) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {"connect_args": _build_connect_args(url), "pool_pre_ping": True}
    if url.get_dialect().name != "sqlite":
        kwargs.update(pool_recycle=300, pool_size=5, max_overflow=10)
    return kwargs


_db_url = _build_db_url()
logger.info("Initializing database engine db_url={}", _db_url.render_as_string(hide_password=True))
engine = create_engine(_db_url, **_build_engine_kwargs(_db_url))

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency that yields a scoped Session per-request.
    Properly annotated as a Generator to satisfy type checkers.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_current_user(request: Request) -> Dict[str, Any]:
    """
    Validate the bearer token through the configured auth provider.
    Also sets request.state.user for middleware (audit, etc.).
    """
    provider = get_auth_provider()
    token = provider.extract_token(request.headers)
    if not token:
        raise HTTPException(status_code=401, detail="Authentication required")

    try:
        claims = provider.validate_token(token)
    except AppError as exc:
        raise HTTPException(status_code=401, detail=exc.message) from exc

    # Make claims available to middlewares / handlers that read request.state.user
    request.state.user = claims
    return claims

def require_role(*allowed: str | Iterable[str]) -> Callable[[Dict[str, Any]], Dict[str, Any]]:
    """Dependency factory allowing multiple roles (supports tuples/lists)."""

    roles: set[str] = set()
    for item in allowed:
        if isinstance(item, str):
            roles.add(item)
        else:
            roles.update(str(role) for role in item)

    if not roles:
        raise ValueError("require_role must receive at least one allowed role")

    def _dep(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        role = user.get("role")
        if role not in roles:
            if roles == {"HR"}:
                raise HTTPException(status_code=403, detail="Access denied. HR privileges required.")
            raise HTTPException(
                status_code=403,
                detail=f"Role {role} not allowed, need one of {sorted(roles)}",
            )
        return user

    return _dep


def require_company_hr(company_id: str, user: Dict[str, Any] = Depends(require_role("HR"))) -> Dict[str, Any]:
    """HR caller whose token is scoped to the ``company_id`` path parameter."""

    if str(user.get("company_id")) != str(company_id):
        raise HTTPException(status_code=403, detail="Access denied. HR privileges required.")
    return user


def ensure_self_or_company_hr(user: Dict[str, Any], *, employee_pk: str, company_id: str | None) -> None:
    """Allow the employee themself or HR of the employee's company."""

    if str(user.get("employee_id")) == str(employee_pk):
        return
    if user.get("role") == "HR" and company_id is not None and str(user.get("company_id")) == str(company_id):
        return
    raise HTTPException(status_code=403, detail="Access denied")
