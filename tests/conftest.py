from __future__ import annotations

from collections.abc import Callable, Generator

from datetime import datetime, timezone
import os
import sqlite3
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure required settings exist before importing application modules
os.environ.setdefault("ENV", "test")
os.environ.setdefault("JWT_SECRET", "testing-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("AUTH_MODE", "local")
os.environ.setdefault("GEMINI_API_KEY", "")
os.environ.setdefault("ADMIN_EMAIL", "admin@directory.test")
os.environ.setdefault("ADMIN_PASSWORD", "admin-pass")
os.environ.setdefault("FRONTEND_URL", "http://frontend.test")
os.environ.setdefault("GITHUB_CLIENT_ID", "gh-client")
os.environ.setdefault("GITHUB_CLIENT_SECRET", "gh-secret")
os.environ.setdefault("LINKEDIN_CLIENT_ID", "li-client")
os.environ.setdefault("LINKEDIN_CLIENT_SECRET", "li-secret")

import directory_service.deps as deps
from directory_service.adapters.auth_providers import employee_claims, issue_token
from directory_service.domain import models as m
from directory_service.main import create_app
from directory_service.utils.passwords import hash_password


def _adapt_datetime(value: datetime) -> str:
    aware = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return aware.astimezone(timezone.utc).isoformat()


sqlite3.register_adapter(datetime, _adapt_datetime)


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={
            "check_same_thread": False,
            "detect_types": sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES,
        },
        poolclass=StaticPool,
        future=True,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

    deps.engine = engine
    deps.SessionLocal = TestingSessionLocal

    app = create_app()

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db_session(client: TestClient) -> Generator[Session, None, None]:
    """Provide a database session scoped to the in-memory test engine."""

    with deps.SessionLocal() as session:
        yield session


@pytest.fixture
def make_company(db_session: Session) -> Callable[..., m.Company]:
    def _make(domain: str = "acme.test", **overrides: Any) -> m.Company:
        fields = {
            "company_name": "Acme",
            "industry": "Software",
            "domain": domain,
            "hr_contact_name": "Hanna HR",
            "hr_contact_email": f"hr@{domain}",
            "hr_contact_role": "HR Manager",
            "verification_status": "approved",
        }
        fields.update(overrides)
        company = m.Company(**fields)
        db_session.add(company)
        db_session.commit()
        db_session.refresh(company)
        return company

    return _make


@pytest.fixture
def make_employee(db_session: Session) -> Callable[..., m.Employee]:
    """Insert an employee (and a default department/team) directly."""

    def _make(
        company: m.Company,
        *,
        employee_id: str,
        email: str,
        roles: tuple[str, ...] = ("REGULAR_EMPLOYEE",),
        password: str = "secret-pass",
        team_id: str = "T1",
        **fields: Any,
    ) -> m.Employee:
        department = (
            db_session.query(m.Department)
            .filter(m.Department.company_id == company.id, m.Department.department_id == "D1")
            .one_or_none()
        )
        if department is None:
            department = m.Department(company_id=company.id, department_id="D1", department_name="Engineering")
            db_session.add(department)
            db_session.flush()
        team = (
            db_session.query(m.Team)
            .filter(m.Team.company_id == company.id, m.Team.team_id == team_id)
            .one_or_none()
        )
        if team is None:
            team = m.Team(company_id=company.id, department_id=department.id, team_id=team_id, team_name=f"Team {team_id}")
            db_session.add(team)
            db_session.flush()

        employee = m.Employee(
            company_id=company.id,
            employee_id=employee_id,
            full_name=fields.pop("full_name", f"Person {employee_id}"),
            email=email,
            password_hash=hash_password(password),
            current_role_in_company=fields.pop("current_role_in_company", "Engineer"),
            target_role_in_company=fields.pop("target_role_in_company", "Senior Engineer"),
            preferred_language="en",
            **fields,
        )
        db_session.add(employee)
        db_session.flush()
        for role in roles:
            db_session.add(m.EmployeeRole(employee_id=employee.id, role_type=role))
        db_session.add(m.EmployeeTeam(employee_id=employee.id, team_id=team.id))
        db_session.commit()
        db_session.refresh(employee)
        return employee

    return _make


@pytest.fixture
def auth_headers(db_session: Session) -> Callable[[m.Employee], dict[str, str]]:
    def _headers(employee: m.Employee) -> dict[str, str]:
        claims = employee_claims(employee, db_session.get(m.Company, employee.company_id))
        return {"Authorization": f"Bearer {issue_token(claims)}"}

    return _headers


@pytest.fixture
def hr_setup(make_company, make_employee, auth_headers) -> dict[str, Any]:
    """Approved company with its HR contact as an employee."""

    company = make_company()
    hr = make_employee(company, employee_id="E-HR", email=company.hr_contact_email, full_name="Hanna HR")
    return {"company": company, "hr": hr, "headers": auth_headers(hr)}
