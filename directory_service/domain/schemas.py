"""Pydantic schemas for API requests and responses."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field

from directory_service.config import REQUESTER_SERVICE

VerificationStatus = Literal["pending", "approved", "rejected"]
ProfileStatus = Literal["basic", "enriched", "approved", "rejected"]
RequestType = Literal["learn-new-skills", "apply-trainer", "self-learning", "other"]
RequestStatus = Literal["pending", "approved", "rejected", "in_progress", "completed"]


class Envelope(BaseModel):
    """Inter-service wrapper carrying a payload and a response template."""

    requester_service: str | None = None
    payload: Dict[str, Any] | None = None
    response: Any = None


class EnvelopeResp(BaseModel):
    """Envelope returned by the directory service."""

    requester_service: str = REQUESTER_SERVICE
    response: Any


# --- Auth ---------------------------------------------------------------------


class LoginReq(BaseModel):
    """Credentials posted to the login endpoints."""

    email: str | None = None
    password: str | None = None


class AuthUser(BaseModel):
    """User summary embedded in login and ``/me`` responses."""

    id: str
    email: str
    employeeId: str | None = None
    companyId: str | None = None
    fullName: str | None = None
    isHR: bool = False
    isAdmin: bool = False
    role: str = "EMPLOYEE"
    profileStatus: ProfileStatus | None = None
    isFirstLogin: bool = False
    isProfileApproved: bool = False


class LoginResult(BaseModel):
    """Successful authentication outcome."""

    success: bool = True
    token: str
    token_type: Literal["bearer"] = "bearer"
    expires_in: int = 3600
    user: AuthUser


# --- Companies ----------------------------------------------------------------


class CompanyRegisterReq(BaseModel):
    """Registration form submitted by a company's HR contact."""

    company_name: str | None = None
    industry: str | None = None
    domain: str | None = None
    hr_contact_name: str | None = None
    hr_contact_email: str | None = None
    hr_contact_role: str | None = None


class CompanyRegisterResp(BaseModel):
    company_id: str
    company_name: str
    domain: str
    verification_status: VerificationStatus


class VerificationStatusResp(BaseModel):
    """Verification view of a registered company."""

    id: str
    company_name: str
    domain: str
    verification_status: VerificationStatus
    industry: str
    hr_contact_name: str
    hr_contact_email: str
    created_at: datetime | None = None


class DomainValidation(BaseModel):
    """Outcome of DNS checks against a company domain."""

    is_valid: bool
    has_dns_records: bool = False
    has_mail_server: bool = False
    errors: List[str] = Field(default_factory=list)


class VerifyResp(BaseModel):
    company_id: str
    verification_status: VerificationStatus
    message: str
    domain_validation: DomainValidation | None = None


class CompanyDecisionReq(BaseModel):
    """Optional reason supplied when approving or rejecting."""

    reason: str | None = None


class CompanySummaryResp(BaseModel):
    id: str
    company_name: str
    industry: str
    domain: str
    status: VerificationStatus
    created_date: datetime | None = None


class CompanyListResp(BaseModel):
    companies: List[CompanySummaryResp] = Field(default_factory=list)


class CompanyDetailResp(BaseModel):
    """Full company record as shown to directory admins and HR."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    company_name: str
    industry: str
    domain: str
    hr_contact_name: str
    hr_contact_email: str
    hr_contact_role: str
    verification_status: VerificationStatus
    rejection_reason: str | None = None
    learning_path_approval: str
    primary_kpis: str | None = None
    logo_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


# --- CSV import ---------------------------------------------------------------


class CsvIssue(BaseModel):
    """Validation error or warning tied to a CSV row and column."""

    type: str
    message: str
    row: int | None = None
    column: str | None = None
    friendly_message: str | None = None


class CsvSummary(BaseModel):
    totalRows: int = 0
    validRows: int = 0
    errorRows: int = 0
    warningRows: int = 0
    uniqueDepartments: int = 0
    uniqueTeams: int = 0
    uniqueEmployees: int = 0


class CsvValidationReport(BaseModel):
    isValid: bool
    errors: List[CsvIssue] = Field(default_factory=list)
    warnings: List[CsvIssue] = Field(default_factory=list)
    summary: CsvSummary = Field(default_factory=CsvSummary)


class CsvCreatedCounts(BaseModel):
    departments: int = 0
    teams: int = 0
    employees: int = 0


class CsvUploadResp(BaseModel):
    """Outcome of a hierarchy CSV upload."""

    success: bool
    message: str
    validation: CsvValidationReport
    created: CsvCreatedCounts = Field(default_factory=CsvCreatedCounts)


# --- Employees ----------------------------------------------------------------


class EmployeeCreateReq(BaseModel):
    """Single employee added outside of a CSV upload."""

    employee_id: str | None = None
    full_name: str | None = None
    email: str | None = None
    role_type: str | None = None
    password: str | None = None
    preferred_language: str | None = None
    status: str | None = "active"
    current_role_in_company: str | None = None
    target_role_in_company: str | None = None
    department_id: str | None = None
    department_name: str | None = None
    team_id: str | None = None
    team_name: str | None = None
    manager_id: str | None = None
    ai_enabled: bool = True
    public_publish_enable: bool = False


class EmployeeUpdateReq(BaseModel):
    """Editable employee fields; omitted fields stay unchanged."""

    full_name: str | None = None
    email: str | None = None
    current_role_in_company: str | None = None
    target_role_in_company: str | None = None
    preferred_language: str | None = None
    status: Literal["active", "inactive"] | None = None
    bio: str | None = None


class TrainerSettingsResp(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    ai_enabled: bool
    public_publish_enable: bool


class ProjectSummaryResp(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    repository_name: str
    repository_url: str | None = None
    summary: str


class EmployeeResp(BaseModel):
    """Employee profile as shown to HR and to the employee."""

    id: str
    company_id: str
    employee_id: str
    full_name: str
    email: str
    current_role_in_company: str | None = None
    target_role_in_company: str | None = None
    preferred_language: str | None = None
    status: str
    profile_status: ProfileStatus
    bio: str | None = None
    value_proposition: str | None = None
    linkedin_url: str | None = None
    github_url: str | None = None
    enrichment_completed: bool = False
    enrichment_completed_at: datetime | None = None
    roles: List[str] = Field(default_factory=list)
    is_trainer: bool = False
    is_decision_maker: bool = False
    trainer_settings: TrainerSettingsResp | None = None
    project_summaries: List[ProjectSummaryResp] = Field(default_factory=list)
    department: str | None = None
    team: str | None = None


class EmployeeDetailResp(BaseModel):
    success: bool = True
    employee: EmployeeResp


class DepartmentResp(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    department_id: str
    department_name: str


class TeamResp(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    team_id: str
    team_name: str
    department_id: str | None = None


class EmployeeSummaryResp(BaseModel):
    """Compact employee row used in hierarchy views."""

    id: str
    employee_id: str
    full_name: str
    email: str
    current_role_in_company: str | None = None
    status: str
    profile_status: ProfileStatus
    roles: List[str] = Field(default_factory=list)
    team_ids: List[str] = Field(default_factory=list)


class TeamNode(BaseModel):
    team: TeamResp
    employees: List[EmployeeSummaryResp] = Field(default_factory=list)


class DepartmentNode(BaseModel):
    department: DepartmentResp
    teams: List[TeamNode] = Field(default_factory=list)


class CompanyMetrics(BaseModel):
    totalEmployees: int = 0
    activeEmployees: int = 0
    inactiveEmployees: int = 0
    totalDepartments: int = 0
    totalTeams: int = 0


class CompanyProfileResp(BaseModel):
    """Company record with its organisational structure and head counts."""

    company: CompanyDetailResp
    departments: List[DepartmentResp] = Field(default_factory=list)
    teams: List[TeamResp] = Field(default_factory=list)
    employees: List[EmployeeSummaryResp] = Field(default_factory=list)
    hierarchy: List[DepartmentNode] = Field(default_factory=list)
    metrics: CompanyMetrics = Field(default_factory=CompanyMetrics)


class ManagerHierarchy(BaseModel):
    """Teams and people visible to a department or team manager."""

    manager_type: Literal["department_manager", "team_manager"]
    department: DepartmentResp | None = None
    team: TeamResp | None = None
    teams: List[TeamNode] = Field(default_factory=list)
    employees: List[EmployeeSummaryResp] = Field(default_factory=list)


class ManagerHierarchyResp(BaseModel):
    success: bool = True
    hierarchy: ManagerHierarchy | None = None


# --- OAuth --------------------------------------------------------------------


class AuthorizeResp(BaseModel):
    authorizationUrl: str
    state: str


class EnrichedEmployee(BaseModel):
    id: str
    employee_id: str
    bio: str | None = None
    value_proposition: str | None = None
    enrichment_completed: bool
    enrichment_completed_at: datetime | None = None
    profile_status: ProfileStatus
    project_summaries_count: int = 0


class ApprovalRequestSummary(BaseModel):
    id: str
    status: str
    requested_at: datetime | None = None


class EnrichResp(BaseModel):
    """Outcome of a profile enrichment run."""

    success: bool = True
    employee: EnrichedEmployee
    approval_request: ApprovalRequestSummary


# --- Approvals ----------------------------------------------------------------


class ApprovalResp(BaseModel):
    """Profile approval request joined with employee context."""

    id: str
    employee_id: str
    company_id: str
    status: str
    requested_at: datetime | None = None
    reviewed_at: datetime | None = None
    reviewed_by: str | None = None
    rejection_reason: str | None = None
    full_name: str | None = None
    email: str | None = None
    employee_code: str | None = None
    current_role_in_company: str | None = None
    bio: str | None = None
    team_name: str | None = None
    department_name: str | None = None


class ApprovalListResp(BaseModel):
    success: bool = True
    approvals: List[ApprovalResp] = Field(default_factory=list)


# --- Employee requests --------------------------------------------------------


class EmployeeRequestCreateReq(BaseModel):
    request_type: str | None = None
    title: str | None = None
    description: str | None = None


class EmployeeRequestUpdateReq(BaseModel):
    status: str | None = None
    rejection_reason: str | None = None
    response_notes: str | None = None


class EmployeeRequestResp(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    employee_id: str
    company_id: str
    request_type: str
    title: str
    description: str | None = None
    status: str
    requested_at: datetime | None = None
    reviewed_at: datetime | None = None
    reviewed_by: str | None = None
    rejection_reason: str | None = None
    response_notes: str | None = None
    employee_name: str | None = None


class HealthResp(BaseModel):
    status: Literal["ok"] = "ok"
    timestamp: datetime
    version: str
