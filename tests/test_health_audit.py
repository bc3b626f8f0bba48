from __future__ import annotations

from fastapi.testclient import TestClient

from directory_service import __version__
from directory_service.domain import models as m


def test_health_reports_version(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["version"] == __version__
    assert response.headers["X-Request-Id"]


def test_requests_are_audited_with_actor(client: TestClient, hr_setup, db_session) -> None:
    client.get("/health")
    response = client.get("/api/v1/auth/me", headers={**hr_setup["headers"], "X-Request-Id": "req-42"})
    assert response.headers["X-Request-Id"] == "req-42"

    rows = db_session.query(m.AuditLog).all()

    assert [row.action for row in rows] == ["/api/v1/auth/me"]
    [row] = rows
    assert row.request_id == "req-42"
    assert row.actor_id == hr_setup["hr"].id
    assert row.company_id == hr_setup["company"].id
    assert row.actor_role == "HR"
    assert row.result_code == 200
    assert len(row.args_hash) == 64
