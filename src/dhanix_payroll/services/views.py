"""Read-only projections of runs and items joined with employee data."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from dhanix_payroll.models import Company, Employee, PayrollItem, PayrollRun
from dhanix_payroll.services.state_machine import PayrollRunStateMachine


@dataclass(frozen=True)
class EmployeeSummary:
    """Employee fields needed next to a payroll item."""

    employee_id: UUID
    employee_code: str
    first_name: str
    last_name: str
    designation: str | None
    uan: str | None
    esic_ip_number: str | None
    is_pf_applicable: bool
    is_esi_applicable: bool
    is_active: bool

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass(frozen=True)
class CompanySummary:
    company_id: UUID
    organization_id: UUID
    name: str
    code: str | None


@dataclass(frozen=True)
class PayrollItemView:
    """A payroll item plus the summary of its employee."""

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
    calculated_at: datetime | None
    employee: EmployeeSummary | None


@dataclass(frozen=True)
class PayrollRunView:
    """A payroll run with its items, company and allowed next actions."""

    payroll_run_id: UUID
    company_id: UUID
    month: str
    status: str
    created_at: datetime | None
    processed_at: datetime | None
    locked_at: datetime | None
    company: CompanySummary | None
    items: list[PayrollItemView] = field(default_factory=list)
    allowed_actions: list[str] = field(default_factory=list)

    @property
    def total_gross(self) -> Decimal:
        return sum((i.gross_salary for i in self.items), Decimal("0"))

    @property
    def total_net(self) -> Decimal:
        return sum((i.net_salary for i in self.items), Decimal("0"))


def summarize_employee(employee: Employee) -> EmployeeSummary:
    return EmployeeSummary(
        employee_id=employee.employee_id,
        employee_code=employee.employee_code,
        first_name=employee.first_name,
        last_name=employee.last_name,
        designation=employee.designation,
        uan=employee.uan,
        esic_ip_number=employee.esic_ip_number,
        is_pf_applicable=employee.is_pf_applicable,
        is_esi_applicable=employee.is_esi_applicable,
        is_active=employee.is_active,
    )


def summarize_company(company: Company) -> CompanySummary:
    return CompanySummary(
        company_id=company.company_id,
        organization_id=company.organization_id,
        name=company.name,
        code=company.code,
    )


def assemble_item_view(item: PayrollItem) -> PayrollItemView:
    """Build the item projection; ``item.employee`` must already be loaded."""
    employee = item.employee
    return PayrollItemView(
        payroll_item_id=item.payroll_item_id,
        payroll_run_id=item.payroll_run_id,
        employee_id=item.employee_id,
        days_worked=item.days_worked,
        total_days=item.total_days,
        lop_days=item.lop_days,
        basic_salary=item.basic_salary,
        hra=item.hra,
        special_allowance=item.special_allowance,
        earned_basic=item.earned_basic,
        earned_hra=item.earned_hra,
        earned_special_allowance=item.earned_special_allowance,
        gross_salary=item.gross_salary,
        net_salary=item.net_salary,
        pf_employee=item.pf_employee,
        pf_employer=item.pf_employer,
        esi_employee=item.esi_employee,
        esi_employer=item.esi_employer,
        other_deductions=item.other_deductions,
        calculated_at=item.calculated_at,
        employee=summarize_employee(employee) if employee is not None else None,
    )


def _item_sort_key(view: PayrollItemView) -> tuple[str, str]:
    code = view.employee.employee_code if view.employee else ""
    return (code, str(view.payroll_item_id))


def assemble_run_view(run: PayrollRun) -> PayrollRunView:
    """Build the run projection; items, their employees and the company must be loaded."""
    items = sorted((assemble_item_view(item) for item in run.items), key=_item_sort_key)
    return PayrollRunView(
        payroll_run_id=run.payroll_run_id,
        company_id=run.company_id,
        month=run.month,
        status=run.status,
        created_at=run.created_at,
        processed_at=run.processed_at,
        locked_at=run.locked_at,
        company=summarize_company(run.company) if run.company is not None else None,
        items=items,
        allowed_actions=PayrollRunStateMachine.get_allowed_actions(run.status),
    )
