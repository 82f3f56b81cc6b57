"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ErrorResponse(BaseModel):
    """Schema for error responses."""

    detail: str
    code: str
    field: str | None = None


# ============================================================================
# Organization / Company schemas
# ============================================================================


class OrganizationCreate(BaseModel):
    name: str = Field(min_length=1)
    owner_user_id: UUID | None = None


class OrganizationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    organization_id: UUID
    name: str
    created_at: datetime | None = None


class OrganizationMembershipResponse(OrganizationResponse):
    role: str


class CompanyCreate(BaseModel):
    name: str = Field(min_length=1)
    code: str | None = None


class CompanyUpdate(BaseModel):
    name: str | None = None
    code: str | None = None


class CompanyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    company_id: UUID
    organization_id: UUID
    name: str
    code: str | None = None
    created_at: datetime | None = None


# ============================================================================
# Employee schemas
# ============================================================================


class EmployeeFields(BaseModel):
    """Optional employee fields shared by create and update."""

    designation: str | None = None
    email: str | None = None
    phone: str | None = None
    date_of_joining: date | None = None
    bank_account_number: str | None = None
    ifsc_code: str | None = None
    uan: str | None = None
    esic_ip_number: str | None = None


class EmployeeCreate(EmployeeFields):
    employee_code: str = Field(min_length=1)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    is_pf_applicable: bool = False
    is_esi_applicable: bool = False
    fixed_basic_salary: Decimal = Field(default=Decimal("0"), ge=0)
    fixed_hra: Decimal = Field(default=Decimal("0"), ge=0)
    fixed_special_allowance: Decimal = Field(default=Decimal("0"), ge=0)


class EmployeeUpdate(EmployeeFields):
    employee_code: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    is_active: bool | None = None
    is_pf_applicable: bool | None = None
    is_esi_applicable: bool | None = None
    fixed_basic_salary: Decimal | None = Field(default=None, ge=0)
    fixed_hra: Decimal | None = Field(default=None, ge=0)
    fixed_special_allowance: Decimal | None = Field(default=None, ge=0)


class EmployeeResponse(EmployeeFields):
    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    company_id: UUID
    employee_code: str
    first_name: str
    last_name: str
    is_active: bool
    is_pf_applicable: bool
    is_esi_applicable: bool
    fixed_basic_salary: Decimal
    fixed_hra: Decimal
    fixed_special_allowance: Decimal


class EmployeeImportRequest(BaseModel):
    rows: list[dict[str, Any]]


class FailedRowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    row: dict[str, Any]
    error: str


class EmployeeImportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    created: int
    updated: int
    failed_count: int
    failed_rows: list[FailedRowResponse]


# ============================================================================
# Payroll run / item schemas
# ============================================================================


class PayrollRunCreate(BaseModel):
    month: str = Field(description="Payroll month as YYYY-MM")


class PayrollRunResponse(BaseModel):
    """Schema for a payroll run without its items."""

    model_config = ConfigDict(from_attributes=True)

    payroll_run_id: UUID
    company_id: UUID
    month: str
    status: str
    created_at: datetime | None = None
    processed_at: datetime | None = None
    locked_at: datetime | None = None


class EmployeeSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    employee_code: str
    first_name: str
    last_name: str
    full_name: str
    designation: str | None = None
    uan: str | None = None
    esic_ip_number: str | None = None
    is_pf_applicable: bool
    is_esi_applicable: bool


class PayrollItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payroll_item_id: UUID
    payroll_run_id: UUID
    employee_id: UUID
    days_worked: Decimal
    total_days: Decimal
    lop_days: Decimal
    basic_salary: Decimal
    hra: Decimal
    special_allowance: Decimal
    earned_basic: Decimal
    earned_hra: Decimal
    earned_special_allowance: Decimal
    gross_salary: Decimal
    net_salary: Decimal
    pf_employee: Decimal
    pf_employer: Decimal
    esi_employee: Decimal
    esi_employer: Decimal
    other_deductions: Decimal
    calculated_at: datetime | None = None
    employee: EmployeeSummaryResponse | None = None


class PayrollRunDetailResponse(PayrollRunResponse):
    """Schema for a payroll run with items and allowed actions."""

    items: list[PayrollItemResponse]
    allowed_actions: list[str]
    total_gross: Decimal
    total_net: Decimal


class PayrollItemUpdate(BaseModel):
    days_worked: Decimal | None = None
    lop_days: Decimal | None = None
    other_deductions: Decimal | None = None


class SkippedItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payroll_item_id: UUID
    employee_id: UUID
    reason: str


class CalculationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payroll_run_id: UUID
    calculated: int
    skipped: list[SkippedItemResponse]


class AttendanceImportRequest(BaseModel):
    """Attendance rows as JSON objects, or the raw CSV text."""

    rows: list[dict[str, Any]] | None = None
    csv: str | None = None

    @model_validator(mode="after")
    def one_source(self) -> "AttendanceImportRequest":
        if (self.rows is None) == (self.csv is None):
            raise ValueError("Provide exactly one of 'rows' or 'csv'")
        return self


class AttendanceImportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    matched: int
    skipped: int
    errors: int
    error_rows: list[FailedRowResponse]


class PayslipIssueResponse(BaseModel):
    payroll_run_id: UUID
    issued: int


# ============================================================================
# Payslip schemas
# ============================================================================


class PayslipEmployeeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    employee_code: str
    designation: str | None = None
    uan: str | None = None
    esic_ip_number: str | None = None
    bank_account_number: str | None = None
    ifsc_code: str | None = None


class PayslipAttendanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    days_worked: Decimal
    total_days: Decimal
    lop_days: Decimal


class PayslipEarningsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    basic: Decimal
    hra: Decimal
    special_allowance: Decimal
    gross: Decimal


class PayslipDeductionsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    pf_employee: Decimal
    esi_employee: Decimal
    other_deductions: Decimal
    total: Decimal


class PayslipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payroll_item_id: UUID
    company_name: str
    month: str
    employee: PayslipEmployeeResponse
    attendance: PayslipAttendanceResponse
    earnings: PayslipEarningsResponse
    deductions: PayslipDeductionsResponse
    net_pay: Decimal
    net_pay_in_words: str
