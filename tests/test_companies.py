from __future__ import annotations

from fastapi.testclient import TestClient

from directory_service.adapters import domain_dns
from directory_service.domain import models as m
from directory_service.domain.schemas import DomainValidation

_REGISTRATION = {
    "company_name": "Globex",
    "industry": "Manufacturing",
    "domain": "Globex.example",
    "hr_contact_name": "Gina HR",
    "hr_contact_email": "gina@globex.example",
    "hr_contact_role": "People Lead",
}


def _register(client: TestClient, **overrides) -> dict:
    response = client.post("/api/v1/companies/register", json={**_REGISTRATION, **overrides})
    assert response.status_code == 201, response.text
    return response.json()


def _admin_headers(client: TestClient) -> dict[str, str]:
    response = client.post(
        "/api/v1/admin/login",
        json={"email": "admin@directory.test", "password": "admin-pass"},
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


def test_register_company_starts_pending_with_lowercased_domain(client: TestClient) -> None:
    data = _register(client)

    assert data["verification_status"] == "pending"
    assert data["domain"] == "globex.example"
    assert data["company_name"] == "Globex"

    status = client.get(f"/api/v1/companies/{data['company_id']}/verification")
    assert status.status_code == 200
    assert status.json()["hr_contact_email"] == "gina@globex.example"


def test_register_company_lists_missing_fields(client: TestClient) -> None:
    response = client.post("/api/v1/companies/register", json={"company_name": "Half", "domain": "half.example"})

    assert response.status_code == 400
    message = response.json()["error"]["message"]
    assert message.startswith("Missing required fields:")
    assert "industry" in message
    assert "hr_contact_email" in message
    assert "company_name" not in message


def test_register_company_rejects_bad_email_and_domain(client: TestClient) -> None:
    bad_email = client.post("/api/v1/companies/register", json={**_REGISTRATION, "hr_contact_email": "not-an-email"})
    assert bad_email.status_code == 400
    assert bad_email.json()["error"]["message"] == "Invalid email format"

    bad_domain = client.post("/api/v1/companies/register", json={**_REGISTRATION, "domain": "-bad_domain"})
    assert bad_domain.status_code == 400
    assert bad_domain.json()["error"]["message"] == "Invalid domain format"


def test_register_company_duplicate_domain_conflicts(client: TestClient) -> None:
    _register(client)

    response = client.post("/api/v1/companies/register", json={**_REGISTRATION, "domain": "GLOBEX.example"})

    assert response.status_code == 409
    assert response.json()["error"]["message"] == "A company with this domain already exists"


def test_verify_approves_resolving_domain(client: TestClient, monkeypatch) -> None:
    company_id = _register(client)["company_id"]
    calls = []

    def _fake_validate(domain: str) -> DomainValidation:
        calls.append(domain)
        return DomainValidation(is_valid=True, has_dns_records=True, has_mail_server=True)

    monkeypatch.setattr(domain_dns, "validate_domain", _fake_validate)

    response = client.post(f"/api/v1/companies/{company_id}/verify")
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["verification_status"] == "approved"
    assert body["domain_validation"]["has_mail_server"] is True
    assert calls == ["globex.example"]

    again = client.post(f"/api/v1/companies/{company_id}/verify")
    assert again.json()["message"] == "Company already verified"
    assert calls == ["globex.example"]


def test_verify_keeps_pending_when_domain_does_not_resolve(client: TestClient, monkeypatch) -> None:
    company_id = _register(client)["company_id"]
    monkeypatch.setattr(
        domain_dns,
        "validate_domain",
        lambda domain: DomainValidation(is_valid=False, errors=[f"No A/AAAA records found for {domain}"]),
    )

    response = client.post(f"/api/v1/companies/{company_id}/verify")

    assert response.status_code == 200
    assert response.json()["verification_status"] == "pending"
    assert response.json()["domain_validation"]["errors"]


def test_verification_of_unknown_company_is_404(client: TestClient) -> None:
    response = client.get("/api/v1/companies/does-not-exist/verification")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "not_found"


def test_admin_lists_and_decides_companies(client: TestClient, db_session) -> None:
    company_id = _register(client)["company_id"]
    headers = _admin_headers(client)

    listing = client.get("/api/v1/admin/companies", headers=headers)
    assert listing.status_code == 200
    assert [row["id"] for row in listing.json()["companies"]] == [company_id]
    assert listing.json()["companies"][0]["status"] == "pending"

    rejected = client.post(
        f"/api/v1/admin/companies/{company_id}/reject",
        headers=headers,
        json={"reason": "Domain does not match the company"},
    )
    assert rejected.status_code == 200
    assert rejected.json()["verification_status"] == "rejected"

    detail = client.get(f"/api/v1/admin/companies/{company_id}", headers=headers)
    assert detail.json()["rejection_reason"] == "Domain does not match the company"

    approved = client.post(f"/api/v1/admin/companies/{company_id}/approve", headers=headers)
    assert approved.json()["verification_status"] == "approved"
    company = db_session.get(m.Company, company_id)
    assert company.rejection_reason is None


def test_admin_routes_reject_employee_tokens(client: TestClient, hr_setup) -> None:
    response = client.get("/api/v1/admin/companies", headers=hr_setup["headers"])

    assert response.status_code == 403


def test_validate_domain_reports_missing_records(monkeypatch) -> None:
    records = {("acme.example", "AAAA"), ("mailhost.example", "A"), ("mailhost.example", "MX")}
    monkeypatch.setattr(domain_dns, "_has_records", lambda host, rdtype: (host, rdtype) in records)

    result = domain_dns.validate_domain("ACME.example.")

    assert result.is_valid is True
    assert result.has_dns_records is True
    assert result.has_mail_server is False

    hosted_mail = domain_dns.validate_domain("mailhost.example")
    assert hosted_mail.has_mail_server is True

    unknown = domain_dns.validate_domain("nowhere.example")
    assert unknown.is_valid is False
    assert unknown.errors == ["No A/AAAA records found for nowhere.example"]

    malformed = domain_dns.validate_domain("bad_domain!.example")
    assert malformed.errors == ["Invalid domain format"]

    empty = domain_dns.validate_domain("  ")
    assert empty.is_valid is False
    assert empty.errors == ["Domain is empty"]
