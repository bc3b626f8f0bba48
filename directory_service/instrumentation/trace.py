"""Structured tracepoints for the directory service.

Each tracepoint is one compact JSON log line stamped with the request id and
company of the work that produced it. Tracepoints are silent unless
``TRACE_MODE`` is set and are sampled by ``TRACE_SAMPLING``; exceptions are
always written.
"""

from __future__ import annotations

import json
import random
import traceback
from contextlib import contextmanager
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Mapping

from loguru import logger

from directory_service.config import settings

_request_id: ContextVar[str | None] = ContextVar("directory_request_id", default=None)
_company_id: ContextVar[str | None] = ContextVar("directory_company_id", default=None)


def push_request_id(request_id: str) -> Token[str | None]:
    return _request_id.set(request_id)


def reset_request_id(token: Token[str | None]) -> None:
    _request_id.reset(token)


def get_request_id() -> str | None:
    return _request_id.get()


def push_company_id(company_id: str | None) -> Token[str | None]:
    return _company_id.set(company_id)


def reset_company_id(token: Token[str | None]) -> None:
    _company_id.reset(token)


@contextmanager
def request_id_context(request_id: str | None) -> Iterator[None]:
    """Bind *request_id* for background enrichment, which runs after the response is sent."""

    token = push_request_id(request_id or "")
    try:
        yield
    finally:
        reset_request_id(token)


def _jsonable(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(key): _jsonable(val) for key, val in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(item) for item in value]
    if isinstance(value, datetime):
        return value.isoformat()
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def _should_emit(force: bool) -> bool:
    if not settings.trace_mode:
        return False
    if force:
        return True
    rate = min(max(float(settings.trace_sampling or 0.0), 0.0), 1.0)
    return rate >= 1.0 or (rate > 0.0 and random.random() < rate)


def _write(event: Dict[str, Any], *, force: bool = False) -> None:
    if not _should_emit(force):
        return
    record: Dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
        "evt": "trace",
        "request_id": _request_id.get() or "",
        "company_id": _company_id.get() or "",
    }
    record.update(event)
    logger.info(json.dumps(_jsonable(record), ensure_ascii=False, separators=(",", ":")))


def tracepoint(name: str, **fields: Any) -> None:
    _write({"name": name, **fields})


def trace_exception(name: str, exc: BaseException, **fields: Any) -> None:
    """Always-on tracepoint describing *exc*; ``AppError`` subclasses also carry their status code."""

    lines = [line.strip() for line in traceback.format_exception_only(type(exc), exc) if line.strip()]
    details: Dict[str, Any] = {"type": type(exc).__name__, "message": str(exc), "stack": lines[:4]}
    status_code = getattr(exc, "status_code", None)
    if status_code is not None:
        details["status_code"] = status_code
    _write({"name": name, "exception": details, **fields}, force=True)
