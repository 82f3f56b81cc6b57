"""Payroll run service - lifecycle orchestrator for runs and their items."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from dhanix_payroll.calculators import calculate_item, round_to_paise, to_decimal
from dhanix_payroll.config import Settings, get_settings
from dhanix_payroll.errors import NotFoundError, PayrollValidationError, StateConflictError
from dhanix_payroll.models import Company, Employee, PayrollItem, PayrollRun
from dhanix_payroll.services.state_machine import (
    PayrollRunStateMachine,
    PayrollRunStatus,
    RunAction,
)
from dhanix_payroll.services.views import PayrollRunView, assemble_run_view

logger = logging.getLogger(__name__)

MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

# Largest values the Numeric(6, 2) and Numeric(12, 2) item columns hold.
MAX_DAYS = Decimal("9999.99")
MAX_AMOUNT = Decimal("9999999999.99")
ITEM_INPUT_LIMITS = {
    "days_worked": MAX_DAYS,
    "lop_days": MAX_DAYS,
    "other_deductions": MAX_AMOUNT,
}


@dataclass
class SkippedItem:
    """An item left uncalculated in a batch."""

    payroll_item_id: UUID
    employee_id: UUID
    reason: str


@dataclass
class CalculationSummary:
    """Outcome of recalculating every item in a run."""

    payroll_run_id: UUID
    calculated: int = 0
    skipped: list[SkippedItem] = field(default_factory=list)


def validate_month(month: str) -> str:
    """Return the month if it is a valid ``YYYY-MM`` string."""
    if not isinstance(month, str) or not MONTH_PATTERN.match(month):
        raise PayrollValidationError("month must be in YYYY-MM format", field="month")
    return month


def parse_non_negative(value: Any, field_name: str) -> Decimal:
    """Parse a numeric input and reject negatives."""
    amount = to_decimal(value, field_name)
    if amount < 0:
        raise PayrollValidationError(f"{field_name} must not be negative", field=field_name)
    return amount


def check_column_limit(amount: Decimal, field_name: str) -> Decimal:
    """Reject values too large for the two-decimal item column."""
    limit = ITEM_INPUT_LIMITS[field_name]
    if amount > limit:
        raise PayrollValidationError(f"{field_name} must not exceed {limit}", field=field_name)
    return amount


def parse_item_input(value: Any, field_name: str) -> Decimal:
    """Parse an item edit exactly as it will be stored: 0 <= value, 2 decimals."""
    amount = check_column_limit(parse_non_negative(value, field_name), field_name)
    if amount != round_to_paise(amount):
        raise PayrollValidationError(
            f"{field_name} must have at most 2 decimal places", field=field_name
        )
    return amount


class PayrollRunService:
    """Service for managing the payroll run lifecycle.

    Operations:
    - create_run: create a DRAFT run and snapshot every active employee
    - update_item: edit attendance/deductions of one item and recalculate it
    - calculate_run: recalculate every item, status unchanged
    - process_run: recalculate every item and mark the run COMPLETED
    - lock_run: freeze a COMPLETED run

    Run-wide operations lock the run row before touching items, and item
    edits take the same run lock first, so a COMPLETED snapshot never mixes
    old and new item figures.
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def get_run_model(
        self,
        payroll_run_id: UUID,
        for_update: bool = False,
        load_items: bool = False,
    ) -> PayrollRun:
        """Load a run or raise NotFoundError."""
        query = select(PayrollRun).where(PayrollRun.payroll_run_id == payroll_run_id)
        if load_items:
            query = query.options(
                selectinload(PayrollRun.items).selectinload(PayrollItem.employee),
                selectinload(PayrollRun.company),
            )
        if for_update:
            query = query.with_for_update()
        if for_update or load_items:
            # Re-read the row even if it is already in the identity map
            query = query.execution_options(populate_existing=True)
        result = await self.session.execute(query)
        run = result.scalar_one_or_none()
        if run is None:
            raise NotFoundError("Payroll run", payroll_run_id)
        return run

    async def lock_run_row(self, payroll_run_id: UUID) -> PayrollRun:
        """Take the run-level row lock for the rest of the transaction."""
        return await self.get_run_model(payroll_run_id, for_update=True)

    async def load_items_for_update(self, payroll_run_id: UUID) -> list[PayrollItem]:
        result = await self.session.execute(
            select(PayrollItem)
            .where(PayrollItem.payroll_run_id == payroll_run_id)
            .options(selectinload(PayrollItem.employee))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_run(self, payroll_run_id: UUID) -> PayrollRunView:
        """Get a run with items joined to employee summaries."""
        run = await self.get_run_model(payroll_run_id, load_items=True)
        return assemble_run_view(run)

    async def list_runs(self, company_id: UUID) -> list[PayrollRun]:
        """List a company's runs, newest month first."""
        result = await self.session.execute(
            select(PayrollRun)
            .where(PayrollRun.company_id == company_id)
            .order_by(PayrollRun.month.desc(), PayrollRun.created_at.desc())
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def create_run(self, company_id: UUID, month: str) -> PayrollRun:
        """Create a DRAFT run and populate one item per active employee."""
        validate_month(month)

        company = await self.session.get(Company, company_id)
        if company is None:
            raise NotFoundError("Company", company_id)

        existing = await self.session.scalar(
            select(PayrollRun.payroll_run_id).where(
                PayrollRun.company_id == company_id,
                PayrollRun.month == month,
            )
        )
        if existing is not None:
            raise StateConflictError(
                f"A payroll run for {month} already exists for this company"
            )

        employees = (
            await self.session.execute(
                select(Employee)
                .where(Employee.company_id == company_id, Employee.is_active.is_(True))
                .order_by(Employee.employee_code)
            )
        ).scalars().all()

        total_days = Decimal(self.settings.default_total_days)
        run = PayrollRun(
            company=company,
            month=month,
            status=PayrollRunStatus.DRAFT.value,
        )
        for employee in employees:
            item = PayrollItem(
                employee=employee,
                days_worked=total_days,
                total_days=total_days,
                lop_days=Decimal("0"),
                other_deductions=Decimal("0"),
            )
            item.snapshot_from(employee)
            run.items.append(item)

        self.session.add(run)
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise StateConflictError(
                f"A payroll run for {month} already exists for this company"
            ) from e

        logger.info(
            "Created payroll run %s for company %s month %s with %d items",
            run.payroll_run_id,
            company_id,
            month,
            len(employees),
        )
        return run

    async def update_item(
        self,
        payroll_item_id: UUID,
        days_worked: Any = None,
        lop_days: Any = None,
        other_deductions: Any = None,
    ) -> PayrollItem:
        """Edit attendance/deductions on a DRAFT item and recalculate it."""
        changes: dict[str, Decimal] = {}
        for name, value in (
            ("days_worked", days_worked),
            ("lop_days", lop_days),
            ("other_deductions", other_deductions),
        ):
            if value is not None:
                changes[name] = parse_item_input(value, name)

        run_id = await self.session.scalar(
            select(PayrollItem.payroll_run_id).where(
                PayrollItem.payroll_item_id == payroll_item_id
            )
        )
        if run_id is None:
            raise NotFoundError("Payroll item", payroll_item_id)

        run = await self.lock_run_row(run_id)
        PayrollRunStateMachine.ensure_allowed(run.status, RunAction.UPDATE_ITEM)

        result = await self.session.execute(
            select(PayrollItem)
            .where(PayrollItem.payroll_item_id == payroll_item_id)
            .options(selectinload(PayrollItem.employee))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        item = result.scalar_one()

        for name, value in changes.items():
            setattr(item, name, value)

        self.recalculate_item(item, self._now())
        await self.session.flush()
        return item

    async def calculate_run(self, payroll_run_id: UUID) -> CalculationSummary:
        """Recalculate every item without changing run status."""
        run = await self.lock_run_row(payroll_run_id)
        PayrollRunStateMachine.ensure_allowed(run.status, RunAction.CALCULATE)

        summary = await self._recalculate_all(run)
        await self.session.flush()
        logger.info(
            "Calculated payroll run %s: %d calculated, %d skipped",
            payroll_run_id,
            summary.calculated,
            len(summary.skipped),
        )
        return summary

    async def process_run(self, payroll_run_id: UUID) -> PayrollRun:
        """Recalculate every item and mark the run COMPLETED.

        Idempotent: processing a COMPLETED run recomputes from stored inputs
        and leaves it COMPLETED.
        """
        run = await self.lock_run_row(payroll_run_id)
        to_status = PayrollRunStateMachine.next_status(run.status, RunAction.PROCESS)

        run.status = PayrollRunStatus.PROCESSING.value
        await self.session.flush()

        summary = await self._recalculate_all(run)

        run.status = to_status
        run.processed_at = self._now()
        await self.session.flush()

        logger.info(
            "Processed payroll run %s: %d calculated, %d skipped",
            payroll_run_id,
            summary.calculated,
            len(summary.skipped),
        )
        return run

    async def lock_run(self, payroll_run_id: UUID) -> PayrollRun:
        """Lock a COMPLETED run. Locking a LOCKED run is a no-op."""
        run = await self.lock_run_row(payroll_run_id)
        if run.status == PayrollRunStatus.LOCKED.value:
            logger.info("Payroll run %s already locked", payroll_run_id)
            return run

        run.status = PayrollRunStateMachine.next_status(run.status, RunAction.LOCK)
        run.locked_at = self._now()
        await self.session.flush()

        logger.info("Locked payroll run %s", payroll_run_id)
        return run

    # ------------------------------------------------------------------
    # Calculation
    # ------------------------------------------------------------------

    def recalculate_item(self, item: PayrollItem, now: datetime) -> bool:
        """Run the calculator for one item. Returns False if it was skipped."""
        employee = item.employee
        if employee is None:
            logger.warning(
                "Skipping payroll item %s: employee %s not found",
                item.payroll_item_id,
                item.employee_id,
            )
            return False

        result = calculate_item(item.calculation_inputs(employee))
        item.apply_calculation(result, now)
        return True

    async def _recalculate_all(self, run: PayrollRun) -> CalculationSummary:
        items = await self.load_items_for_update(run.payroll_run_id)
        now = self._now()
        summary = CalculationSummary(payroll_run_id=run.payroll_run_id)

        for item in items:
            if self.recalculate_item(item, now):
                summary.calculated += 1
            else:
                summary.skipped.append(
                    SkippedItem(
                        payroll_item_id=item.payroll_item_id,
                        employee_id=item.employee_id,
                        reason="employee not found",
                    )
                )
        return summary

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)
