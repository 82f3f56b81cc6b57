"""Payslip assembly and issuance."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from dhanix_payroll.calculators import round_to_rupee
from dhanix_payroll.errors import NotFoundError, PayrollValidationError
from dhanix_payroll.models import PayrollItem, PayrollRun, Payslip
from dhanix_payroll.services.payroll_run_service import PayrollRunService
from dhanix_payroll.services.state_machine import PayrollRunStateMachine, RunAction

logger = logging.getLogger(__name__)

_ONES = (
    "", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine",
    "Ten", "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen", "Sixteen",
    "Seventeen", "Eighteen", "Nineteen",
)
_TENS = ("", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety")

# (divisor, name), largest first; Indian grouping
_SCALES = ((10_000_000, "Crore"), (100_000, "Lakh"), (1_000, "Thousand"), (100, "Hundred"))


def _words(n: int) -> str:
    if n < 20:
        return _ONES[n]
    if n < 100:
        return _TENS[n // 10] + (" " + _ONES[n % 10] if n % 10 else "")
    for divisor, name in _SCALES:
        if n >= divisor:
            head, rest = divmod(n, divisor)
            return f"{_words(head)} {name}" + (" " + _words(rest) if rest else "")
    raise AssertionError("unreachable")


def amount_in_words(amount: Decimal | int) -> str:
    """Spell a rupee amount the Indian way, rounded to whole rupees.

    >>> amount_in_words(Decimal("125000"))
    'One Lakh Twenty Five Thousand Rupees Only'
    """
    rupees = int(round_to_rupee(Decimal(amount)))
    if rupees < 0:
        raise PayrollValidationError("amount must not be negative", field="amount")
    if rupees == 0:
        return "Zero Rupees Only"
    return f"{_words(rupees)} Rupees Only"


@dataclass(frozen=True)
class PayslipEmployee:
    name: str
    employee_code: str
    designation: str | None
    uan: str | None
    esic_ip_number: str | None
    bank_account_number: str | None
    ifsc_code: str | None


@dataclass(frozen=True)
class PayslipAttendance:
    days_worked: Decimal
    total_days: Decimal
    lop_days: Decimal


@dataclass(frozen=True)
class PayslipEarnings:
    basic: Decimal
    hra: Decimal
    special_allowance: Decimal
    gross: Decimal


@dataclass(frozen=True)
class PayslipDeductions:
    pf_employee: Decimal
    esi_employee: Decimal
    other_deductions: Decimal
    total: Decimal


@dataclass(frozen=True)
class PayslipData:
    """Everything printed on one payslip."""

    payroll_item_id: UUID
    company_name: str
    month: str
    employee: PayslipEmployee
    attendance: PayslipAttendance
    earnings: PayslipEarnings
    deductions: PayslipDeductions
    net_pay: Decimal
    net_pay_in_words: str

    def to_snapshot(self) -> dict[str, Any]:
        """JSON-safe dict; decimals and ids become strings."""
        return _json_safe(asdict(self))


def _json_safe(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    return value


def payslip_from_item(item: PayrollItem) -> PayslipData:
    """Build payslip data; the item's employee, run and company must be loaded."""
    employee = item.employee
    if employee is None:
        raise NotFoundError("Employee", item.employee_id)
    total_deductions = item.pf_employee + item.esi_employee + item.other_deductions
    return PayslipData(
        payroll_item_id=item.payroll_item_id,
        company_name=item.run.company.name,
        month=item.run.month,
        employee=PayslipEmployee(
            name=employee.full_name,
            employee_code=employee.employee_code,
            designation=employee.designation,
            uan=employee.uan,
            esic_ip_number=employee.esic_ip_number,
            bank_account_number=employee.bank_account_number,
            ifsc_code=employee.ifsc_code,
        ),
        attendance=PayslipAttendance(
            days_worked=item.days_worked,
            total_days=item.total_days,
            lop_days=item.lop_days,
        ),
        earnings=PayslipEarnings(
            basic=item.earned_basic,
            hra=item.earned_hra,
            special_allowance=item.earned_special_allowance,
            gross=item.gross_salary,
        ),
        deductions=PayslipDeductions(
            pf_employee=item.pf_employee,
            esi_employee=item.esi_employee,
            other_deductions=item.other_deductions,
            total=total_deductions,
        ),
        net_pay=item.net_salary,
        net_pay_in_words=amount_in_words(max(item.net_salary, Decimal("0"))),
    )


class PayslipService:
    """Builds payslips from stored item figures and issues them for final runs."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.runs = PayrollRunService(session)

    async def build_payslip(self, payroll_item_id: UUID) -> PayslipData:
        result = await self.session.execute(
            select(PayrollItem)
            .where(PayrollItem.payroll_item_id == payroll_item_id)
            .options(
                selectinload(PayrollItem.employee),
                selectinload(PayrollItem.run).selectinload(PayrollRun.company),
            )
        )
        item = result.scalar_one_or_none()
        if item is None:
            raise NotFoundError("Payroll item", payroll_item_id)
        return payslip_from_item(item)

    async def issue_payslips(self, payroll_run_id: UUID) -> int:
        """Store a payslip snapshot for every item that has none yet.

        Returns the number of payslips created; calling it again creates none.
        """
        run = await self.runs.lock_run_row(payroll_run_id)
        PayrollRunStateMachine.ensure_allowed(run.status, RunAction.ISSUE_PAYSLIPS)

        result = await self.session.execute(
            select(PayrollItem)
            .where(PayrollItem.payroll_run_id == payroll_run_id)
            .options(
                selectinload(PayrollItem.employee),
                selectinload(PayrollItem.payslip),
                selectinload(PayrollItem.run).selectinload(PayrollRun.company),
            )
            .execution_options(populate_existing=True)
        )

        issued = 0
        for item in result.scalars().all():
            if item.payslip is not None:
                continue
            if item.employee is None:
                logger.warning(
                    "Not issuing payslip for item %s: employee %s not found",
                    item.payroll_item_id,
                    item.employee_id,
                )
                continue
            data = payslip_from_item(item)
            self.session.add(
                Payslip(payroll_item_id=item.payroll_item_id, snapshot=data.to_snapshot())
            )
            issued += 1

        await self.session.flush()
        logger.info("Issued %d payslip(s) for payroll run %s", issued, payroll_run_id)
        return issued

    async def get_issued_snapshot(self, payroll_item_id: UUID) -> dict[str, Any] | None:
        payslip = await self.session.scalar(
            select(Payslip).where(Payslip.payroll_item_id == payroll_item_id)
        )
        return payslip.snapshot if payslip is not None else None
