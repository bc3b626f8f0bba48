from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from directory_service.domain import models as m
from directory_service.ports.enrichment import upsert_approval_request


@pytest.fixture
def enriched(hr_setup, make_employee, db_session) -> m.Employee:
    """An enriched employee waiting for HR review."""

    employee = make_employee(
        hr_setup["company"],
        employee_id="E-N",
        email="nora@acme.test",
        full_name="Nora Enriched",
        roles=("TRAINER",),
        bio="Nora ships tools.",
        profile_status="enriched",
        enrichment_completed=True,
    )
    upsert_approval_request(db_session, employee=employee)
    db_session.commit()
    return employee


def _approval_id(db_session, employee: m.Employee) -> str:
    return (
        db_session.query(m.EmployeeProfileApproval.id)
        .filter(m.EmployeeProfileApproval.employee_id == employee.id)
        .scalar()
    )


def _approve(client: TestClient, hr_setup, approval_id: str):
    company_id = hr_setup["company"].id
    return client.post(
        f"/api/v1/companies/{company_id}/profile-approvals/{approval_id}/approve",
        headers=hr_setup["headers"],
    )


def test_hr_lists_and_approves_pending_profiles(client: TestClient, hr_setup, enriched, db_session, auth_headers) -> None:
    company_id = hr_setup["company"].id

    listing = client.get(f"/api/v1/companies/{company_id}/profile-approvals", headers=hr_setup["headers"])
    assert listing.status_code == 200
    [pending] = listing.json()["approvals"]
    assert pending["full_name"] == "Nora Enriched"
    assert pending["employee_code"] == "E-N"
    assert pending["department_name"] == "Engineering"

    approved = _approve(client, hr_setup, pending["id"])
    assert approved.status_code == 200, approved.text
    assert approved.json()["status"] == "approved"
    assert approved.json()["reviewed_by"] == hr_setup["hr"].id

    db_session.expire_all()
    assert db_session.get(m.Employee, enriched.id).profile_status == "approved"

    repeat = _approve(client, hr_setup, pending["id"])
    assert repeat.status_code == 400
    assert repeat.json()["error"]["message"] == "Approval request is already approved"

    status = client.get(f"/api/v1/employees/{enriched.id}/approval-status", headers=auth_headers(enriched))
    assert status.json()["approval"]["status"] == "approved"

    empty = client.get(f"/api/v1/companies/{company_id}/profile-approvals", headers=hr_setup["headers"])
    assert empty.json()["approvals"] == []


def test_reject_records_reason(client: TestClient, hr_setup, enriched, db_session) -> None:
    company_id = hr_setup["company"].id
    approval_id = _approval_id(db_session, enriched)

    response = client.post(
        f"/api/v1/companies/{company_id}/profile-approvals/{approval_id}/reject",
        json={"reason": "Bio mentions a personal email"},
        headers=hr_setup["headers"],
    )

    assert response.status_code == 200
    assert response.json()["rejection_reason"] == "Bio mentions a personal email"
    db_session.expire_all()
    assert db_session.get(m.Employee, enriched.id).profile_status == "rejected"


def test_approvals_are_scoped_to_the_company(
    client: TestClient, hr_setup, enriched, make_company, make_employee, auth_headers, db_session
) -> None:
    other = make_company(domain="other.test")
    other_hr = make_employee(other, employee_id="O-HR", email="hr@other.test")
    approval_id = _approval_id(db_session, enriched)

    foreign_path = client.post(
        f"/api/v1/companies/{hr_setup['company'].id}/profile-approvals/{approval_id}/approve",
        headers=auth_headers(other_hr),
    )
    assert foreign_path.status_code == 403

    own_path = client.post(
        f"/api/v1/companies/{other.id}/profile-approvals/{approval_id}/approve",
        headers=auth_headers(other_hr),
    )
    assert own_path.status_code == 403
    assert own_path.json()["error"]["code"] == "permission_denied"

    missing = _approve(client, hr_setup, "missing")
    assert missing.status_code == 404


def test_reenrichment_reopens_the_single_approval_row(hr_setup, enriched, db_session) -> None:
    approval_id = _approval_id(db_session, enriched)
    row = db_session.get(m.EmployeeProfileApproval, approval_id)
    row.status = "rejected"
    row.rejection_reason = "try again"
    db_session.commit()

    reopened = upsert_approval_request(db_session, employee=enriched)
    db_session.commit()

    assert reopened.id == approval_id
    assert reopened.status == "pending"
    assert reopened.rejection_reason is None
    assert db_session.query(m.EmployeeProfileApproval).count() == 1


def test_learning_views_require_an_approved_profile(
    client: TestClient, hr_setup, enriched, auth_headers, db_session
) -> None:
    company_id = hr_setup["company"].id
    base = f"/api/v1/companies/{company_id}/employees/{enriched.id}"
    headers = auth_headers(enriched)

    blocked = client.get(f"{base}/skills", headers=headers)
    assert blocked.status_code == 403
    assert blocked.json()["error"]["message"] == "Employee profile must be approved to view skills"

    _approve(client, hr_setup, _approval_id(db_session, enriched))

    skills = client.get(f"{base}/skills", headers=headers)
    assert skills.status_code == 200, skills.text
    assert skills.json()["success"] is True
    assert skills.json()["skills"]["relevance_score"] == 75.5

    courses = client.get(f"{base}/courses", headers=headers)
    assert courses.json()["courses"] == {"assigned_courses": [], "in_progress_courses": [], "completed_courses": []}

    path = client.get(f"{base}/learning-path", headers=headers)
    assert path.json()["learningPath"]["courses"] == []

    dashboard = client.get(f"{base}/dashboard", headers=hr_setup["headers"])
    assert dashboard.status_code == 200
    assert "achievements" in dashboard.json()["dashboard"]


def test_employee_request_lifecycle(client: TestClient, hr_setup, enriched, auth_headers, db_session) -> None:
    company_id = hr_setup["company"].id
    url = f"/api/v1/companies/{company_id}/employees/{enriched.id}/requests"
    headers = auth_headers(enriched)

    too_early = client.post(url, json={"request_type": "apply-trainer", "title": "Teach Python"}, headers=headers)
    assert too_early.status_code == 400
    assert too_early.json()["error"]["message"] == "Employee profile must be approved to submit requests"

    _approve(client, hr_setup, _approval_id(db_session, enriched))

    bad_type = client.post(url, json={"request_type": "vacation", "title": "Beach"}, headers=headers)
    assert bad_type.status_code == 400
    no_title = client.post(url, json={"request_type": "other", "title": "  "}, headers=headers)
    assert no_title.json()["error"]["message"] == "Request title is required"

    created = client.post(
        url,
        json={"request_type": "apply-trainer", "title": "Teach Python", "description": "Intro course"},
        headers=headers,
    )
    assert created.status_code == 201, created.text
    envelope = created.json()
    assert envelope["requester_service"] == "directory_service"
    request = envelope["response"]["request"]
    assert request["status"] == "pending"
    assert request["employee_name"] == "Nora Enriched"

    by_hr = client.post(url, json={"request_type": "other", "title": "On behalf"}, headers=hr_setup["headers"])
    assert by_hr.status_code == 403

    mine = client.get(url, headers=headers)
    assert [row["title"] for row in mine.json()["requests"]] == ["Teach Python"]

    queue = client.get(f"/api/v1/companies/{company_id}/requests", params={"status": "pending"}, headers=hr_setup["headers"])
    assert [row["id"] for row in queue.json()["requests"]] == [request["id"]]
    assert client.get(
        f"/api/v1/companies/{company_id}/requests", params={"status": "lost"}, headers=hr_setup["headers"]
    ).status_code == 400
    assert client.get(f"/api/v1/companies/{company_id}/requests", headers=headers).status_code == 403

    reviewed = client.put(
        f"/api/v1/companies/{company_id}/requests/{request['id']}",
        json={"status": "approved", "response_notes": "Welcome aboard"},
        headers=hr_setup["headers"],
    )
    assert reviewed.status_code == 200
    assert reviewed.json()["status"] == "approved"
    assert reviewed.json()["reviewed_by"] == hr_setup["hr"].id
    assert reviewed.json()["response_notes"] == "Welcome aboard"

    invalid = client.put(
        f"/api/v1/companies/{company_id}/requests/{request['id']}",
        json={"status": "done"},
        headers=hr_setup["headers"],
    )
    assert invalid.status_code == 400
