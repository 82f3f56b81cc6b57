"""Statutory PF ECR and ESI contribution reports for finalized runs."""

from __future__ import annotations

import csv
import io
from dataclasses import astuple, dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from dhanix_payroll.calculators import PF_WAGE_CEILING, round_to_rupee
from dhanix_payroll.models import PayrollItem, PayrollRun
from dhanix_payroll.services.payroll_run_service import PayrollRunService
from dhanix_payroll.services.state_machine import PayrollRunStateMachine, RunAction

EPS_RATE = Decimal("0.0833")
EPS_WAGE_CEILING = Decimal("15000")

PF_ECR_HEADERS = (
    "UAN",
    "Member Name",
    "Gross Wages",
    "EPF Wages",
    "EPS Wages",
    "EDLI Wages",
    "EPF Contribution (EE)",
    "EPS Contribution",
    "EPF Contribution (ER)",
    "NCP Days",
    "Refund of Advances",
)

ESI_HEADERS = (
    "IP Number",
    "IP Name",
    "No of Days",
    "Total Monthly Wages",
    "Reason Code for Zero Workings Days",
    "Last Working Day",
)


@dataclass(frozen=True)
class PfEcrRow:
    uan: str
    member_name: str
    gross_wages: Decimal
    epf_wages: Decimal
    eps_wages: Decimal
    edli_wages: Decimal
    epf_contribution_ee: Decimal
    eps_contribution: Decimal
    epf_contribution_er: Decimal
    ncp_days: Decimal
    refund_of_advances: Decimal


@dataclass(frozen=True)
class EsiRow:
    ip_number: str
    ip_name: str
    days: Decimal
    total_monthly_wages: Decimal
    reason_code: str = ""
    last_working_day: str = ""


def format_number(value: Decimal) -> str:
    """Render a number without trailing zeros: 2.00 -> 2, 1.50 -> 1.5."""
    if value == value.to_integral_value():
        return str(int(value))
    return format(value.normalize(), "f")


def _cell(value: object) -> str:
    if isinstance(value, Decimal):
        return format_number(value)
    return str(value)


def _render(headers: tuple[str, ...], rows: list[tuple]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow([_cell(value) for value in row])
    return buffer.getvalue()


def pf_ecr_row(item: PayrollItem) -> PfEcrRow:
    """Build one ECR line from a calculated item.

    EPF wages are capped at the full ceiling even for partial months, while
    the calculator prorates the ceiling, so EPF wages x 12% can differ from
    the stored PF contribution.
    """
    employee = item.employee
    epf_wages = round_to_rupee(min(item.earned_basic, PF_WAGE_CEILING))
    eps_wages = min(epf_wages, EPS_WAGE_CEILING)
    eps_contribution = round_to_rupee(eps_wages * EPS_RATE)
    return PfEcrRow(
        uan=employee.uan or "",
        member_name=employee.full_name,
        gross_wages=round_to_rupee(item.gross_salary),
        epf_wages=epf_wages,
        eps_wages=eps_wages,
        edli_wages=epf_wages,
        epf_contribution_ee=round_to_rupee(item.pf_employee),
        eps_contribution=eps_contribution,
        epf_contribution_er=round_to_rupee(item.pf_employer - eps_contribution),
        ncp_days=item.lop_days,
        refund_of_advances=Decimal("0"),
    )


def esi_row(item: PayrollItem) -> EsiRow:
    employee = item.employee
    return EsiRow(
        ip_number=employee.esic_ip_number or "",
        ip_name=employee.full_name,
        days=round_to_rupee(item.days_worked),
        total_monthly_wages=round_to_rupee(item.gross_salary),
    )


def render_pf_ecr_csv(rows: list[PfEcrRow]) -> str:
    return _render(PF_ECR_HEADERS, [astuple(row) for row in rows])


def render_esi_csv(rows: list[EsiRow]) -> str:
    return _render(ESI_HEADERS, [astuple(row) for row in rows])


class StatutoryReportService:
    """Read-only report builder; never writes to the run or its items."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.runs = PayrollRunService(session)

    async def _finalized_run(self, payroll_run_id: UUID) -> PayrollRun:
        run = await self.runs.get_run_model(payroll_run_id, load_items=True)
        PayrollRunStateMachine.ensure_allowed(run.status, RunAction.REPORT)
        return run

    @staticmethod
    def _sorted_items(run: PayrollRun) -> list[PayrollItem]:
        items = [item for item in run.items if item.employee is not None]
        return sorted(items, key=lambda item: item.employee.employee_code)

    async def pf_ecr_rows(self, payroll_run_id: UUID) -> list[PfEcrRow]:
        """ECR lines for PF members with a UAN."""
        run = await self._finalized_run(payroll_run_id)
        return [
            pf_ecr_row(item)
            for item in self._sorted_items(run)
            if item.employee.is_pf_applicable and (item.employee.uan or "").strip()
        ]

    async def esi_rows(self, payroll_run_id: UUID) -> list[EsiRow]:
        """ESI lines for insured persons with an IP number."""
        run = await self._finalized_run(payroll_run_id)
        return [
            esi_row(item)
            for item in self._sorted_items(run)
            if item.employee.is_esi_applicable and (item.employee.esic_ip_number or "").strip()
        ]

    async def pf_ecr_csv(self, payroll_run_id: UUID) -> str:
        return render_pf_ecr_csv(await self.pf_ecr_rows(payroll_run_id))

    async def esi_csv(self, payroll_run_id: UUID) -> str:
        return render_esi_csv(await self.esi_rows(payroll_run_id))
