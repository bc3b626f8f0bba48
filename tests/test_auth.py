from __future__ import annotations

import jwt
import pytest
from fastapi.testclient import TestClient
from passlib.hash import bcrypt

from directory_service.adapters import auth_providers
from directory_service.adapters.auth_providers import AuthServiceProvider, get_auth_provider
from directory_service.config import settings
from directory_service.domain import models as m
from directory_service.domain.errors import AuthenticationError


def _decode(token: str) -> dict:
    return jwt.decode(
        token,
        key=settings.jwt_secret,
        algorithms=["HS256"],
        options={"verify_aud": False},
    )


def test_login_returns_enveloped_token_for_hr(client: TestClient, hr_setup) -> None:
    response = client.post(
        "/api/v1/auth/login",
        json={"email": "HR@acme.test", "password": "secret-pass"},
    )

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["requester_service"] == "directory_service"
    result = body["response"]
    assert result["success"] is True
    user = result["user"]
    assert user["isHR"] is True
    assert user["role"] == "HR"
    assert user["companyId"] == hr_setup["company"].id
    assert user["profileStatus"] == "basic"
    assert user["isFirstLogin"] is True
    assert user["isProfileApproved"] is False

    claims = _decode(result["token"])
    assert claims["employee_id"] == hr_setup["hr"].id
    assert claims["role"] == "HR"


def test_login_rejects_bad_credentials(client: TestClient, hr_setup) -> None:
    wrong = client.post("/api/v1/auth/login", json={"email": "hr@acme.test", "password": "nope"})
    assert wrong.status_code == 401
    assert wrong.json()["error"]["code"] == "authentication_failed"

    unknown = client.post("/api/v1/auth/login", json={"email": "ghost@acme.test", "password": "x"})
    assert unknown.status_code == 401

    missing = client.post("/api/v1/auth/login", json={"email": "hr@acme.test"})
    assert missing.status_code == 400
    assert missing.json()["error"]["message"] == "Email and password are required"


def test_inactive_employee_cannot_login(client: TestClient, make_company, make_employee) -> None:
    company = make_company()
    make_employee(company, employee_id="E9", email="gone@acme.test", status="inactive")

    response = client.post("/api/v1/auth/login", json={"email": "gone@acme.test", "password": "secret-pass"})

    assert response.status_code == 401
    assert response.json()["error"]["message"] == "Employee account is inactive"


def test_login_upgrades_legacy_bcrypt_hash(client: TestClient, make_company, make_employee, db_session) -> None:
    company = make_company()
    employee = make_employee(company, employee_id="E1", email="legacy@acme.test")
    employee.password_hash = bcrypt.hash("old-pass")
    db_session.commit()

    response = client.post("/api/v1/auth/login", json={"email": "legacy@acme.test", "password": "old-pass"})

    assert response.status_code == 200, response.text
    db_session.expire_all()
    assert db_session.get(m.Employee, employee.id).password_hash.startswith("$bcrypt-sha256$")


def test_me_and_logout_require_token(client: TestClient, hr_setup) -> None:
    assert client.get("/api/v1/auth/me").status_code == 401

    me = client.get("/api/v1/auth/me", headers=hr_setup["headers"])
    assert me.status_code == 200
    assert me.json()["email"] == "hr@acme.test"

    logout = client.post("/api/v1/auth/logout", headers=hr_setup["headers"])
    assert logout.json() == {"success": True, "message": "Logged out successfully"}

    garbage = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert garbage.status_code == 401


def test_admin_login_issues_company_less_token(client: TestClient) -> None:
    response = client.post(
        "/api/v1/admin/login",
        json={"email": "admin@directory.test", "password": "admin-pass"},
    )

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["user"]["isAdmin"] is True
    assert body["user"]["role"] == "DIRECTORY_ADMIN"
    claims = _decode(body["token"])
    assert claims["company_id"] is None
    assert claims["admin_id"] == body["user"]["id"]

    me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert me.json()["isAdmin"] is True

    wrong = client.post("/api/v1/admin/login", json={"email": "admin@directory.test", "password": "bad"})
    assert wrong.status_code == 401


def test_get_auth_provider_rejects_unknown_mode() -> None:
    assert get_auth_provider("local").mode == "local"
    with pytest.raises(ValueError, match="ldap"):
        get_auth_provider("ldap")


class _DummyClient:
    def __init__(self, responses):
        self._responses = responses
        self.calls = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def post(self, url, json=None):
        self.calls.append((url, json))
        return self._responses[url.rsplit("/", 1)[-1]]


class _Resp:
    def __init__(self, status_code: int, payload: dict):
        self.status_code = status_code
        self._payload = payload

    def raise_for_status(self):
        return None

    def json(self):
        return self._payload


def test_auth_service_provider_validates_remote_tokens(monkeypatch) -> None:
    dummy = _DummyClient(
        {
            "validate": _Resp(
                200,
                {
                    "valid": True,
                    "user": {"email": "a@acme.test", "employeeId": "emp-1", "companyId": "co-1", "isHR": True},
                },
            )
        }
    )
    monkeypatch.setattr(settings, "auth_service_url", "http://auth.test/")
    monkeypatch.setattr(auth_providers, "sync_client", lambda **_: dummy)

    claims = AuthServiceProvider().validate_token("opaque-token")

    assert claims["employee_id"] == "emp-1"
    assert claims["company_id"] == "co-1"
    assert claims["role"] == "HR"
    assert dummy.calls == [("http://auth.test/api/auth/validate", {"token": "opaque-token"})]


def test_auth_service_provider_maps_401_to_authentication_error(monkeypatch) -> None:
    dummy = _DummyClient({"login": _Resp(401, {})})
    monkeypatch.setattr(settings, "auth_service_url", "http://auth.test")
    monkeypatch.setattr(auth_providers, "sync_client", lambda **_: dummy)

    with pytest.raises(AuthenticationError) as excinfo:
        AuthServiceProvider().authenticate(None, email="a@acme.test", password="x")
    assert excinfo.value.status_code == 401
