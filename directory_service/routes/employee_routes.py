"""Employee routes scoped to a company, including learning-platform views."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from directory_service.deps import ensure_self_or_company_hr, get_current_user, get_db, require_company_hr
from directory_service.domain.schemas import (
    EmployeeCreateReq,
    EmployeeDetailResp,
    EmployeeResp,
    EmployeeUpdateReq,
    ManagerHierarchyResp,
)
from directory_service.ports import learning
from directory_service.ports.employees import (
    add_employee,
    delete_employee,
    get_employee,
    get_manager_hierarchy,
    update_employee,
)

router = APIRouter(prefix="/api/v1/companies/{company_id}/employees", tags=["employees"])


@router.post("", response_model=EmployeeResp, status_code=status.HTTP_201_CREATED)
def add_employee_route(
    company_id: str,
    body: EmployeeCreateReq,
    db: Session = Depends(get_db),
    _: Dict[str, Any] = Depends(require_company_hr),
) -> EmployeeResp:
    return add_employee(db, company_id=company_id, req=body)


@router.get("/{employee_id}", response_model=EmployeeDetailResp)
def get_employee_route(
    company_id: str,
    employee_id: str,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> EmployeeDetailResp:
    ensure_self_or_company_hr(user, employee_pk=employee_id, company_id=company_id)
    return EmployeeDetailResp(employee=get_employee(db, company_id=company_id, employee_pk=employee_id))


@router.put("/{employee_id}", response_model=EmployeeResp)
def update_employee_route(
    company_id: str,
    employee_id: str,
    body: EmployeeUpdateReq,
    db: Session = Depends(get_db),
    _: Dict[str, Any] = Depends(require_company_hr),
) -> EmployeeResp:
    return update_employee(db, company_id=company_id, employee_pk=employee_id, req=body)


@router.delete("/{employee_id}", response_model=EmployeeResp)
def delete_employee_route(
    company_id: str,
    employee_id: str,
    db: Session = Depends(get_db),
    _: Dict[str, Any] = Depends(require_company_hr),
) -> EmployeeResp:
    """Mark the employee inactive."""

    return delete_employee(db, company_id=company_id, employee_pk=employee_id)


@router.get("/{employee_id}/management-hierarchy", response_model=ManagerHierarchyResp)
def management_hierarchy_route(
    company_id: str,
    employee_id: str,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> ManagerHierarchyResp:
    ensure_self_or_company_hr(user, employee_pk=employee_id, company_id=company_id)
    return ManagerHierarchyResp(hierarchy=get_manager_hierarchy(db, company_id=company_id, employee_pk=employee_id))


@router.get("/{employee_id}/skills")
def skills_route(
    company_id: str,
    employee_id: str,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    ensure_self_or_company_hr(user, employee_pk=employee_id, company_id=company_id)
    return learning.get_employee_skills(db, company_id=company_id, employee_pk=employee_id)


@router.get("/{employee_id}/courses")
def courses_route(
    company_id: str,
    employee_id: str,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    ensure_self_or_company_hr(user, employee_pk=employee_id, company_id=company_id)
    return learning.get_employee_courses(db, company_id=company_id, employee_pk=employee_id)


@router.get("/{employee_id}/learning-path")
def learning_path_route(
    company_id: str,
    employee_id: str,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    ensure_self_or_company_hr(user, employee_pk=employee_id, company_id=company_id)
    return learning.get_learning_path(db, company_id=company_id, employee_pk=employee_id)


@router.get("/{employee_id}/dashboard")
def dashboard_route(
    company_id: str,
    employee_id: str,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    ensure_self_or_company_hr(user, employee_pk=employee_id, company_id=company_id)
    return learning.get_learning_dashboard(db, company_id=company_id, employee_pk=employee_id)
