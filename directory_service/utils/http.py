from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Iterator, Mapping, Optional

import httpx

from directory_service.domain.errors import ExternalServiceError

_USER_AGENT = "directory-service/1.0"


@contextmanager
def sync_client(
    timeout: Optional[float] = 30,
    *,
    headers: Optional[Mapping[str, str]] = None,
) -> Iterator[httpx.Client]:
    """Yield a configured httpx.Client shared by the outbound adapters."""

    merged = {"User-Agent": _USER_AGENT}
    if headers:
        merged.update(headers)
    client = httpx.Client(timeout=timeout or 30, headers=merged, follow_redirects=True)
    try:
        yield client
    finally:
        client.close()


def send(call: Callable[..., httpx.Response], url: str, *, service: str, **kwargs: Any) -> httpx.Response:
    """Run ``call(url, **kwargs)`` with transport failures raised as :class:`ExternalServiceError`."""

    try:
        return call(url, **kwargs)
    except httpx.HTTPError as exc:
        raise ExternalServiceError(f"{service} is unreachable: {exc.__class__.__name__}") from exc


def json_body(response: httpx.Response, *, service: str) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise ExternalServiceError(f"{service} returned an unexpected payload") from exc
