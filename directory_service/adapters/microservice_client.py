"""Envelope client for the downstream learning microservices.

Every call posts ``{requester_service, payload, response}`` where ``response``
is the template of fields the caller wants filled. When a service is not
configured, unreachable or answers with garbage, the caller still gets a
usable object: canned mock data when available, otherwise the template.
"""

from __future__ import annotations

import copy
import json
from typing import Any, Dict, Mapping

import httpx
from loguru import logger

from directory_service.adapters import mock_data
from directory_service.config import REQUESTER_SERVICE, settings
from directory_service.domain.errors import ExternalServiceError
from directory_service.utils.http import sync_client

DEFAULT_ENDPOINT = "/api/fill-content-metrics"
SERVICE_ENDPOINTS: Dict[str, str] = {
    "skills_engine": DEFAULT_ENDPOINT,
    "course_builder": DEFAULT_ENDPOINT,
    "content_studio": DEFAULT_ENDPOINT,
    "assessment": DEFAULT_ENDPOINT,
    "learner_ai": "/api/fill-learner-ai-fields",
    "management_reporting": DEFAULT_ENDPOINT,
    "learning_analytics": DEFAULT_ENDPOINT,
}


def build_envelope(payload: Mapping[str, Any] | None, template: Mapping[str, Any] | None) -> Dict[str, Any]:
    return {
        "requester_service": REQUESTER_SERVICE,
        "payload": dict(payload or {}),
        "response": copy.deepcopy(dict(template or {})),
    }


def post_envelope(service: str, envelope: Mapping[str, Any], *, endpoint: str | None = None) -> Any:
    """Post *envelope* to *service* and return the filled ``response`` section."""

    if service not in SERVICE_ENDPOINTS:
        raise ValueError(f"Unknown microservice: {service}")
    base_url = settings.microservice_url(service)
    if not base_url:
        raise ExternalServiceError(f"Microservice {service} is not configured")

    url = f"{base_url.rstrip('/')}{endpoint or SERVICE_ENDPOINTS[service]}"
    with sync_client(timeout=settings.microservice_timeout) as client:
        try:
            response = client.post(url, json=dict(envelope))
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ExternalServiceError(f"{service} request failed: {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise ExternalServiceError(f"{service} is unreachable: {exc.__class__.__name__}") from exc

        try:
            data = response.json()
            # Some services double-encode the envelope.
            if isinstance(data, str):
                data = json.loads(data)
        except ValueError as exc:
            raise ExternalServiceError(f"{service} returned an unexpected payload") from exc

    if isinstance(data, dict) and "response" in data:
        return data["response"]
    return data


def call_microservice(
    service: str,
    payload: Mapping[str, Any] | None,
    template: Mapping[str, Any],
    *,
    operation: str | None = None,
    endpoint: str | None = None,
) -> Any:
    """Call *service* and fall back to mock data, then to *template*, on failure."""

    try:
        filled = post_envelope(service, build_envelope(payload, template), endpoint=endpoint)
    except ExternalServiceError as exc:
        logger.warning("Microservice {} unavailable ({}); using fallback data", service, exc.message)
    else:
        if filled is not None:
            return filled
        logger.warning("Microservice {} returned an empty response; using fallback data", service)

    if operation:
        mocked = mock_data.get_mock_data(service, operation)
        if mocked is not None:
            return mocked
    return copy.deepcopy(dict(template))


def get_employee_skills(employee_id: str, company_id: str, employee_type: str, raw_data: Mapping[str, Any] | None) -> Any:
    payload = {
        "employee_id": employee_id,
        "company_id": company_id,
        "employee_type": employee_type,
        "raw_data": dict(raw_data or {}),
    }
    template = {"user_id": 0, "competencies": [], "relevance_score": 0, "gap": {"missing_skills": []}}
    return call_microservice("skills_engine", payload, template, operation="normalize-skills")


def get_employee_courses(employee_id: str, company_id: str) -> Any:
    payload = {"employee_id": employee_id, "company_id": company_id}
    template = {"assigned_courses": [], "in_progress_courses": [], "completed_courses": []}
    return call_microservice("course_builder", payload, template, operation="get-courses")


def get_learning_path(employee_id: str, company_id: str) -> Any:
    payload = {"employee_id": employee_id, "company_id": company_id}
    template = {"path_id": "", "courses": [], "progress": 0, "recommendations": []}
    return call_microservice("learner_ai", payload, template, operation="learning-path")


def get_learning_dashboard(employee_id: str, company_id: str) -> Any:
    payload = {"employee_id": employee_id, "company_id": company_id}
    template = {"progress_summary": {}, "recent_activity": [], "upcoming_deadlines": [], "achievements": []}
    return call_microservice("learning_analytics", payload, template, operation="dashboard")
