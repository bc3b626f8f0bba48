from __future__ import annotations

from fastapi.testclient import TestClient

from directory_service.domain import models as m
from directory_service.ports.employees import get_manager_hierarchy


def _new_employee(**overrides) -> dict:
    body = {
        "employee_id": "E100",
        "full_name": "Nora New",
        "email": "nora@acme.test",
        "role_type": "TRAINER",
        "password": "welcome-1",
        "preferred_language": "en",
        "status": "active",
        "current_role_in_company": "Engineer",
        "target_role_in_company": "Staff Engineer",
        "department_id": "D1",
        "department_name": "Engineering",
        "team_id": "T9",
        "team_name": "Tooling",
        "ai_enabled": False,
        "public_publish_enable": True,
    }
    body.update(overrides)
    return body


def test_hr_adds_employee_into_new_team(client: TestClient, hr_setup, db_session) -> None:
    company = hr_setup["company"]

    response = client.post(
        f"/api/v1/companies/{company.id}/employees",
        json=_new_employee(),
        headers=hr_setup["headers"],
    )

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["employee_id"] == "E100"
    assert body["roles"] == ["TRAINER"]
    assert body["is_trainer"] is True
    assert body["trainer_settings"] == {"ai_enabled": False, "public_publish_enable": True}
    assert body["department"] == "Engineering"
    assert body["team"] == "Tooling"
    assert body["profile_status"] == "basic"

    team = db_session.query(m.Team).filter(m.Team.team_id == "T9").one()
    assert team.department.department_id == "D1"


def test_add_employee_requires_company_hr(client: TestClient, hr_setup, make_company, make_employee, auth_headers) -> None:
    company = hr_setup["company"]
    worker = make_employee(company, employee_id="E-W", email="worker@acme.test")

    as_employee = client.post(
        f"/api/v1/companies/{company.id}/employees",
        json=_new_employee(),
        headers=auth_headers(worker),
    )
    assert as_employee.status_code == 403
    assert as_employee.json()["detail"] == "Access denied. HR privileges required."

    other = make_company(domain="other.test")
    other_hr = make_employee(other, employee_id="O-HR", email="hr@other.test")
    cross_company = client.post(
        f"/api/v1/companies/{company.id}/employees",
        json=_new_employee(),
        headers=auth_headers(other_hr),
    )
    assert cross_company.status_code == 403


def test_add_employee_validation_and_conflicts(client: TestClient, hr_setup, make_company, make_employee) -> None:
    company = hr_setup["company"]
    url = f"/api/v1/companies/{company.id}/employees"
    headers = hr_setup["headers"]

    invalid = client.post(url, json=_new_employee(email="broken", role_type="WIZARD"), headers=headers)
    assert invalid.status_code == 400
    assert "Invalid email format" in invalid.json()["error"]["message"]
    assert "Invalid role_type" in invalid.json()["error"]["message"]

    reserved = client.post(url, json=_new_employee(email="admin@directory.test"), headers=headers)
    assert reserved.status_code == 400

    other = make_company(domain="other.test")
    make_employee(other, employee_id="X1", email="taken@other.test")
    foreign = client.post(url, json=_new_employee(email="taken@other.test"), headers=headers)
    assert foreign.status_code == 409
    assert foreign.json()["error"]["message"] == "This email address is already registered with another company"

    same = client.post(url, json=_new_employee(email="hr@acme.test"), headers=headers)
    assert same.status_code == 409

    duplicate_id = client.post(url, json=_new_employee(employee_id="E-HR"), headers=headers)
    assert duplicate_id.status_code == 409
    assert duplicate_id.json()["error"]["message"] == "Employee ID E-HR already exists in your company"

    unknown_manager = client.post(url, json=_new_employee(manager_id="NOPE"), headers=headers)
    assert unknown_manager.status_code == 400


def test_update_and_soft_delete_employee(client: TestClient, hr_setup, make_employee) -> None:
    company = hr_setup["company"]
    worker = make_employee(company, employee_id="E-W", email="worker@acme.test")
    url = f"/api/v1/companies/{company.id}/employees/{worker.id}"

    updated = client.put(
        url,
        json={"full_name": "Wendy Worker", "email": "Wendy@Acme.test", "target_role_in_company": "Architect"},
        headers=hr_setup["headers"],
    )
    assert updated.status_code == 200, updated.text
    assert updated.json()["full_name"] == "Wendy Worker"
    assert updated.json()["email"] == "wendy@acme.test"
    assert updated.json()["target_role_in_company"] == "Architect"

    clash = client.put(url, json={"email": "hr@acme.test"}, headers=hr_setup["headers"])
    assert clash.status_code == 409

    deleted = client.delete(url, headers=hr_setup["headers"])
    assert deleted.status_code == 200
    assert deleted.json()["status"] == "inactive"

    fetched = client.get(url, headers=hr_setup["headers"])
    assert fetched.json()["employee"]["status"] == "inactive"


def test_employee_can_read_self_but_not_peers(client: TestClient, hr_setup, make_employee, auth_headers) -> None:
    company = hr_setup["company"]
    alice = make_employee(company, employee_id="A1", email="alice@acme.test")
    bob = make_employee(company, employee_id="B1", email="bob@acme.test")
    base = f"/api/v1/companies/{company.id}/employees"

    own = client.get(f"{base}/{alice.id}", headers=auth_headers(alice))
    assert own.status_code == 200
    assert own.json()["success"] is True
    assert own.json()["employee"]["email"] == "alice@acme.test"

    peer = client.get(f"{base}/{bob.id}", headers=auth_headers(alice))
    assert peer.status_code == 403

    missing = client.get(f"{base}/does-not-exist", headers=hr_setup["headers"])
    assert missing.status_code == 404


def test_manager_hierarchy_views(client: TestClient, hr_setup, make_employee, auth_headers, db_session) -> None:
    company = hr_setup["company"]
    head = make_employee(company, employee_id="M1", email="head@acme.test", roles=("DEPARTMENT_MANAGER",))
    lead = make_employee(company, employee_id="M2", email="lead@acme.test", roles=("TEAM_MANAGER",), team_id="T2")
    dev = make_employee(company, employee_id="D9", email="dev@acme.test", team_id="T2")
    db_session.add(m.EmployeeManager(employee_id=lead.id, manager_id=head.id, relationship_type="department_manager"))
    db_session.add(m.EmployeeManager(employee_id=dev.id, manager_id=lead.id, relationship_type="team_manager"))
    db_session.commit()

    base = f"/api/v1/companies/{company.id}/employees"
    department_view = client.get(f"{base}/{head.id}/management-hierarchy", headers=auth_headers(head))
    assert department_view.status_code == 200, department_view.text
    hierarchy = department_view.json()["hierarchy"]
    assert hierarchy["manager_type"] == "department_manager"
    assert hierarchy["department"]["department_id"] == "D1"
    assert sorted(node["team"]["team_id"] for node in hierarchy["teams"]) == ["T1", "T2"]

    team_view = client.get(f"{base}/{lead.id}/management-hierarchy", headers=auth_headers(lead))
    team_hierarchy = team_view.json()["hierarchy"]
    assert team_hierarchy["manager_type"] == "team_manager"
    assert team_hierarchy["team"]["team_id"] == "T2"
    assert {e["employee_id"] for e in team_hierarchy["employees"]} == {"M2", "D9"}

    regular = client.get(f"{base}/{dev.id}/management-hierarchy", headers=auth_headers(dev))
    assert regular.json() == {"success": True, "hierarchy": None}


def test_team_manager_without_reports_falls_back_to_own_team(hr_setup, make_employee, db_session) -> None:
    company = hr_setup["company"]
    lead = make_employee(company, employee_id="M5", email="solo@acme.test", roles=("TEAM_MANAGER",), team_id="T5")

    hierarchy = get_manager_hierarchy(db_session, company_id=company.id, employee_pk=lead.id)

    assert hierarchy is not None
    assert hierarchy.team.team_id == "T5"
    assert [e.employee_id for e in hierarchy.employees] == ["M5"]


def test_company_profile_for_hr_and_admin(client: TestClient, hr_setup, make_employee, auth_headers) -> None:
    company = hr_setup["company"]
    make_employee(company, employee_id="A1", email="alice@acme.test", team_id="T2")
    gone = make_employee(company, employee_id="B1", email="bob@acme.test", status="inactive")

    response = client.get(f"/api/v1/companies/{company.id}/profile", headers=hr_setup["headers"])

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["company"]["domain"] == "acme.test"
    assert body["metrics"] == {
        "totalEmployees": 3,
        "activeEmployees": 2,
        "inactiveEmployees": 1,
        "totalDepartments": 1,
        "totalTeams": 2,
    }
    [department] = body["hierarchy"]
    team_members = {node["team"]["team_id"]: len(node["employees"]) for node in department["teams"]}
    assert team_members == {"T1": 2, "T2": 1}

    denied = client.get(f"/api/v1/companies/{company.id}/profile", headers=auth_headers(gone))
    assert denied.status_code == 403

    admin = client.post("/api/v1/admin/login", json={"email": "admin@directory.test", "password": "admin-pass"})
    as_admin = client.get(
        f"/api/v1/companies/{company.id}/profile",
        headers={"Authorization": f"Bearer {admin.json()['token']}"},
    )
    assert as_admin.status_code == 200
