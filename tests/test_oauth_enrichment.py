from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from directory_service.adapters import gemini_client, github_client, linkedin_client
from directory_service.domain import models as m
from directory_service.domain.errors import ConflictError, ExternalServiceError, ValidationError
from directory_service.ports import oauth
from directory_service.ports.enrichment import enrich_profile

_REPOS = [
    {"name": "orbit", "url": "https://github.com/nora/orbit", "description": "Satellite tracker", "language": "Python"},
    {"name": "dotfiles", "url": "https://github.com/nora/dotfiles", "language": "Shell", "is_fork": True},
]


def _connect(db_session, employee: m.Employee, *, linkedin: bool = True, github: bool = True) -> None:
    if linkedin:
        employee.linkedin_data = {"id": "li-1", "name": "Nora", "access_token": "li-token"}
        employee.linkedin_url = "https://www.linkedin.com/in/li-1"
    if github:
        employee.github_data = {"login": "nora", "repositories": _REPOS, "access_token": "gh-token"}
        employee.github_url = "https://github.com/nora"
    db_session.commit()


@pytest.fixture
def fake_github(monkeypatch):
    monkeypatch.setattr(github_client, "exchange_code_for_token", lambda code: {"access_token": f"gh-{code}"})
    monkeypatch.setattr(
        github_client,
        "fetch_profile",
        lambda token: {"login": "nora", "html_url": "https://github.com/nora", "repositories": _REPOS},
    )


def _query(url: str) -> dict:
    return {key: values[0] for key, values in parse_qs(urlparse(url).query).items()}


def test_authorize_returns_signed_state(client: TestClient, hr_setup) -> None:
    response = client.get("/api/v1/oauth/github/authorize", headers=hr_setup["headers"])

    assert response.status_code == 200, response.text
    body = response.json()
    params = _query(body["authorizationUrl"])
    assert body["authorizationUrl"].startswith(github_client.AUTHORIZE_URL)
    assert params["client_id"] == "gh-client"
    assert params["state"] == body["state"]
    assert oauth.decode_state(body["state"], "github") == hr_setup["hr"].id

    with pytest.raises(ValidationError):
        oauth.decode_state(body["state"], "linkedin")


def test_authorize_rejects_unknown_provider_and_anonymous(client: TestClient, hr_setup) -> None:
    assert client.get("/api/v1/oauth/twitter/authorize", headers=hr_setup["headers"]).status_code == 404
    assert client.get("/api/v1/oauth/github/authorize").status_code == 401


def test_callback_stores_profile_and_redirects(client: TestClient, hr_setup, fake_github, db_session) -> None:
    hr = hr_setup["hr"]
    state = oauth.build_state(hr.id, "github")

    response = client.get(
        "/api/v1/oauth/github/callback",
        params={"code": "abc", "state": state},
        follow_redirects=False,
    )

    assert response.status_code == 302
    location = response.headers["location"]
    assert location.startswith("http://frontend.test/enrich?")
    assert _query(location) == {"github": "connected"}

    db_session.expire_all()
    stored = db_session.get(m.Employee, hr.id)
    assert stored.github_url == "https://github.com/nora"
    assert stored.github_data["access_token"] == "gh-abc"
    assert stored.github_data["connected_at"]

    again = client.get("/api/v1/oauth/github/authorize", headers=hr_setup["headers"])
    assert again.status_code == 409


def test_callback_errors_become_redirect_parameters(client: TestClient, hr_setup) -> None:
    denied = client.get(
        "/api/v1/oauth/linkedin/callback",
        params={"error": "user_cancelled_login"},
        follow_redirects=False,
    )
    assert _query(denied.headers["location"]) == {"error": "user_cancelled_login"}

    missing = client.get("/api/v1/oauth/linkedin/callback", follow_redirects=False)
    assert _query(missing.headers["location"]) == {"error": "missing_code_or_state"}

    forged = client.get(
        "/api/v1/oauth/linkedin/callback",
        params={"code": "abc", "state": "forged"},
        follow_redirects=False,
    )
    assert forged.status_code == 302
    assert _query(forged.headers["location"]) == {"error": "Invalid or expired OAuth state"}


def test_callback_redirects_when_provider_is_unreachable(
    client: TestClient, hr_setup, db_session, monkeypatch
) -> None:
    def unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    monkeypatch.setattr(
        github_client, "sync_client", lambda **_: httpx.Client(transport=httpx.MockTransport(unreachable))
    )
    hr = hr_setup["hr"]

    response = client.get(
        "/api/v1/oauth/github/callback",
        params={"code": "abc", "state": oauth.build_state(hr.id, "github")},
        follow_redirects=False,
    )

    assert response.status_code == 302
    assert _query(response.headers["location"]) == {"error": "GitHub is unreachable: ConnectError"}
    db_session.expire_all()
    assert db_session.get(m.Employee, hr.id).github_data is None


def test_callback_redirects_when_profile_cannot_be_stored(client: TestClient, hr_setup, monkeypatch) -> None:
    def failing_connect(*_args, **_kwargs):
        raise OperationalError("UPDATE employees", {}, Exception("database is locked"))

    monkeypatch.setattr(oauth, "connect_account", failing_connect)

    response = client.get(
        "/api/v1/oauth/linkedin/callback",
        params={"code": "abc", "state": oauth.build_state(hr_setup["hr"].id, "linkedin")},
        follow_redirects=False,
    )

    assert response.status_code == 302
    assert _query(response.headers["location"]) == {"error": "connection_failed"}

def test_second_connection_triggers_background_enrichment(
    client: TestClient, hr_setup, fake_github, db_session
) -> None:
    hr = hr_setup["hr"]
    _connect(db_session, hr, github=False)

    response = client.get(
        "/api/v1/oauth/github/callback",
        params={"code": "xyz", "state": oauth.build_state(hr.id, "github")},
        follow_redirects=False,
    )

    assert _query(response.headers["location"]) == {"linkedin": "connected", "github": "connected"}
    db_session.expire_all()
    enriched = db_session.get(m.Employee, hr.id)
    assert enriched.enrichment_completed is True
    assert enriched.profile_status == "enriched"
    assert enriched.bio.startswith("Hanna HR is a Engineer")
    approval = (
        db_session.query(m.EmployeeProfileApproval)
        .filter(m.EmployeeProfileApproval.employee_id == hr.id)
        .one()
    )
    assert approval.status == "pending"


def test_enrich_profile_uses_gemini_output(hr_setup, db_session, monkeypatch) -> None:
    hr = hr_setup["hr"]
    _connect(db_session, hr)
    captured = {}

    def _bio(linkedin, github, employee):
        captured["linkedin"] = linkedin
        return "Hanna builds reliable systems."

    monkeypatch.setattr(gemini_client, "generate_bio", _bio)
    monkeypatch.setattr(
        gemini_client,
        "generate_project_summaries",
        lambda repos: [{"repository_name": "orbit", "repository_url": repos[0]["url"], "summary": "Tracks satellites."}],
    )
    monkeypatch.setattr(gemini_client, "generate_value_proposition", lambda employee: "Growing into a senior role.")

    result = enrich_profile(db_session, employee_pk=hr.id)

    assert result.employee.bio == "Hanna builds reliable systems."
    assert result.employee.value_proposition == "Growing into a senior role."
    assert result.employee.project_summaries_count == 1
    assert result.approval_request.status == "pending"
    assert captured["linkedin"]["id"] == "li-1"
    assert [row.repository_name for row in hr.project_summaries] == ["orbit"]

    with pytest.raises(ConflictError):
        enrich_profile(db_session, employee_pk=hr.id)


def test_enrich_profile_falls_back_to_mock_content(hr_setup, db_session, monkeypatch) -> None:
    hr = hr_setup["hr"]
    _connect(db_session, hr)

    def _fail(*_args, **_kwargs):
        raise ExternalServiceError("Gemini request failed: 429 quota")

    monkeypatch.setattr(gemini_client, "generate_content", _fail)

    result = enrich_profile(db_session, employee_pk=hr.id)

    assert "Hanna HR" in result.employee.bio
    assert result.employee.value_proposition is None
    assert result.employee.project_summaries_count == 2
    summaries = {row.repository_name: row.summary for row in hr.project_summaries}
    assert summaries["orbit"] == "Satellite tracker"
    assert "(forked)" in summaries["dotfiles"]


def test_enrich_route_preconditions(client: TestClient, hr_setup, make_employee, auth_headers) -> None:
    company = hr_setup["company"]
    worker = make_employee(company, employee_id="E-W", email="worker@acme.test")

    not_connected = client.post(f"/api/v1/employees/{worker.id}/enrich", headers=auth_headers(worker))
    assert not_connected.status_code == 400
    assert not_connected.json()["error"]["message"] == "Both LinkedIn and GitHub must be connected before enrichment"

    by_peer = client.post(f"/api/v1/employees/{hr_setup['hr'].id}/enrich", headers=auth_headers(worker))
    assert by_peer.status_code == 403

    unknown = client.post("/api/v1/employees/missing/enrich", headers=auth_headers(worker))
    assert unknown.status_code == 404

    status = client.get(f"/api/v1/employees/{worker.id}/approval-status", headers=auth_headers(worker))
    assert status.json() == {"success": True, "approval": None}


def test_linkedin_profile_url() -> None:
    assert linkedin_client.profile_url({"sub": "abc"}) == "https://www.linkedin.com/in/abc"
    assert linkedin_client.profile_url({}) is None
