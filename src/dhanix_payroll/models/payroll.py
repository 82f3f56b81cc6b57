"""Payroll run, payroll item and payslip models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dhanix_payroll.calculators.types import ItemCalculation, ItemInputs, SalaryStructure
from dhanix_payroll.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from dhanix_payroll.models.employee import Employee
    from dhanix_payroll.models.organization import Company


ZERO = Decimal("0")


def _money() -> Any:
    return mapped_column(Numeric(12, 2), nullable=False, default=ZERO)


def _days(default: Decimal = ZERO) -> Any:
    return mapped_column(Numeric(6, 2), nullable=False, default=default)


class PayrollRun(Base, TimestampMixin):
    """Payroll for one company and one calendar month."""

    __tablename__ = "payroll_run"

    payroll_run_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="RESTRICT"),
        nullable=False,
    )
    month: Mapped[str] = mapped_column(String(7), nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="DRAFT")
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    locked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("company_id", "month", name="payroll_run_company_month_unique"),
        CheckConstraint(
            "status IN ('DRAFT', 'PROCESSING', 'COMPLETED', 'LOCKED')",
            name="payroll_run_status_check",
        ),
    )

    # Relationships
    company: Mapped[Company] = relationship(back_populates="payroll_runs")
    items: Mapped[list[PayrollItem]] = relationship(
        back_populates="run",
        cascade="all, delete-orphan",
    )


class PayrollItem(Base):
    """One employee's line in a payroll run; the unit of calculation.

    Salary fields are a snapshot taken when the run was created, so later
    edits to the employee do not touch historical runs.
    """

    __tablename__ = "payroll_item"

    payroll_item_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    payroll_run_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_run.payroll_run_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="RESTRICT"),
        nullable=False,
    )

    # Attendance
    days_worked: Mapped[Decimal] = _days(Decimal("30"))
    total_days: Mapped[Decimal] = _days(Decimal("30"))
    lop_days: Mapped[Decimal] = _days()

    # Salary snapshot
    basic_salary: Mapped[Decimal] = _money()
    hra: Mapped[Decimal] = _money()
    special_allowance: Mapped[Decimal] = _money()

    # Calculated
    earned_basic: Mapped[Decimal] = _money()
    earned_hra: Mapped[Decimal] = _money()
    earned_special_allowance: Mapped[Decimal] = _money()
    gross_salary: Mapped[Decimal] = _money()
    net_salary: Mapped[Decimal] = _money()
    pf_employee: Mapped[Decimal] = _money()
    pf_employer: Mapped[Decimal] = _money()
    esi_employee: Mapped[Decimal] = _money()
    esi_employer: Mapped[Decimal] = _money()

    # Manual
    other_deductions: Mapped[Decimal] = _money()

    calculated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("payroll_run_id", "employee_id", name="payroll_item_run_employee_unique"),
    )

    # Relationships
    run: Mapped[PayrollRun] = relationship(back_populates="items")
    employee: Mapped[Employee | None] = relationship(back_populates="payroll_items")
    payslip: Mapped[Payslip | None] = relationship(back_populates="payroll_item")

    @property
    def salary_snapshot(self) -> SalaryStructure:
        return SalaryStructure(
            basic=self.basic_salary,
            hra=self.hra,
            special_allowance=self.special_allowance,
        )

    def snapshot_from(self, employee: Employee) -> None:
        """Copy the employee's current salary structure onto this item."""
        self.basic_salary = employee.fixed_basic_salary
        self.hra = employee.fixed_hra
        self.special_allowance = employee.fixed_special_allowance

    def calculation_inputs(self, employee: Employee) -> ItemInputs:
        """Collect calculator inputs: snapshot, attendance and employee flags."""
        return ItemInputs(
            salary=self.salary_snapshot,
            total_days=self.total_days,
            paid_days=self.days_worked,
            is_pf_applicable=employee.is_pf_applicable,
            is_esi_applicable=employee.is_esi_applicable,
            other_deductions=self.other_deductions,
        )

    def apply_calculation(self, result: ItemCalculation, calculated_at: datetime) -> None:
        """Write calculator outputs onto the item."""
        self.earned_basic = result.earned_basic
        self.earned_hra = result.earned_hra
        self.earned_special_allowance = result.earned_special_allowance
        self.gross_salary = result.gross
        self.pf_employee = result.pf_employee
        self.pf_employer = result.pf_employer
        self.esi_employee = result.esi_employee
        self.esi_employer = result.esi_employer
        self.net_salary = result.net
        self.calculated_at = calculated_at


class Payslip(Base, TimestampMixin):
    """Issued payslip holding a JSON snapshot of the finalized item."""

    __tablename__ = "payslip"

    payslip_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    payroll_item_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_item.payroll_item_id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    snapshot: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    # Relationships
    payroll_item: Mapped[PayrollItem] = relationship(back_populates="payslip")
