"""Company profile: organisational structure plus head-count metrics."""

from __future__ import annotations

from typing import Dict, List

from sqlalchemy.orm import Session

from directory_service.domain import models as m
from directory_service.domain.schemas import (
    CompanyDetailResp,
    CompanyMetrics,
    CompanyProfileResp,
    DepartmentNode,
    DepartmentResp,
    EmployeeSummaryResp,
    TeamNode,
    TeamResp,
)
from directory_service.ports.companies import get_company
from directory_service.ports.employees import to_employee_summary


def _build_hierarchy(
    departments: List[m.Department],
    teams: List[m.Team],
    employees: List[EmployeeSummaryResp],
) -> List[DepartmentNode]:
    nodes: Dict[str, DepartmentNode] = {
        dept.id: DepartmentNode(department=DepartmentResp.model_validate(dept)) for dept in departments
    }
    team_nodes: Dict[str, TeamNode] = {}
    for team in teams:
        parent = nodes.get(team.department_id)
        if parent is None:
            continue
        node = TeamNode(team=TeamResp.model_validate(team))
        parent.teams.append(node)
        team_nodes[team.id] = node

    # An employee appears under their first team only.
    for employee in employees:
        if employee.team_ids and employee.team_ids[0] in team_nodes:
            team_nodes[employee.team_ids[0]].employees.append(employee)
    return list(nodes.values())


def get_company_profile(db: Session, *, company_id: str) -> CompanyProfileResp:
    company = get_company(db, company_id)
    departments = (
        db.query(m.Department)
        .filter(m.Department.company_id == company_id)
        .order_by(m.Department.department_name.asc())
        .all()
    )
    teams = db.query(m.Team).filter(m.Team.company_id == company_id).order_by(m.Team.team_name.asc()).all()
    employees = [
        to_employee_summary(row)
        for row in db.query(m.Employee)
        .filter(m.Employee.company_id == company_id)
        .order_by(m.Employee.full_name.asc())
        .all()
    ]

    active = sum(1 for employee in employees if employee.status == "active")
    return CompanyProfileResp(
        company=CompanyDetailResp.model_validate(company),
        departments=[DepartmentResp.model_validate(row) for row in departments],
        teams=[TeamResp.model_validate(row) for row in teams],
        employees=employees,
        hierarchy=_build_hierarchy(departments, teams, employees),
        metrics=CompanyMetrics(
            totalEmployees=len(employees),
            activeEmployees=active,
            inactiveEmployees=sum(1 for employee in employees if employee.status == "inactive"),
            totalDepartments=len(departments),
            totalTeams=len(teams),
        ),
    )
