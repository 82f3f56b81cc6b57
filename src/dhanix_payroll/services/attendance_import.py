"""Bulk attendance and deduction overrides for a DRAFT payroll run."""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from dhanix_payroll.calculators import round_to_paise, to_decimal
from dhanix_payroll.config import Settings
from dhanix_payroll.errors import PayrollValidationError
from dhanix_payroll.services.payroll_run_service import PayrollRunService, check_column_limit
from dhanix_payroll.services.state_machine import PayrollRunStateMachine, RunAction

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
MAX_PAID_DAYS = Decimal("31")

CODE_KEYS = ("employeeCode", "employee_code", "Employee Code", "code")
PAID_DAYS_KEYS = ("paidDays", "paid_days", "daysWorked", "days_worked", "Paid Days")
LOP_DAYS_KEYS = ("lopDays", "lop_days", "LOP Days")
OTHER_DEDUCTIONS_KEYS = ("otherDeductions", "other_deductions", "Other Deductions")


def parse_attendance_csv(text: str) -> list[dict[str, str]]:
    """Parse CSV text with a header row into one dict per data row."""
    if not text or not text.strip():
        raise PayrollValidationError("Attendance file is empty", field="file")
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    if not reader.fieldnames:
        raise PayrollValidationError("Attendance file has no header row", field="file")
    return [
        {(k or "").strip(): (v or "").strip() for k, v in row.items() if k is not None}
        for row in reader
    ]


def _pick(row: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = row.get(key)
        if value is not None and str(value).strip() != "":
            return value
    return None


def _clamp(value: Decimal, low: Decimal, high: Decimal | None = None) -> Decimal:
    if value < low:
        return low
    if high is not None and value > high:
        return high
    return value


@dataclass
class AttendanceRowError:
    row: dict[str, Any]
    error: str


@dataclass
class AttendanceImportResult:
    """Per-row outcome counts of an attendance import."""

    matched: int = 0
    skipped: int = 0
    error_rows: list[AttendanceRowError] = field(default_factory=list)

    @property
    def errors(self) -> int:
        return len(self.error_rows)


class AttendanceImportService:
    """Applies attendance rows to the items of a DRAFT run.

    Each row is matched to an item by employee code. Unmatched codes are
    skipped and malformed rows are reported; neither aborts the import.
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.runs = PayrollRunService(session, settings)

    async def import_attendance(
        self, payroll_run_id: UUID, rows: list[dict[str, Any]]
    ) -> AttendanceImportResult:
        run = await self.runs.lock_run_row(payroll_run_id)
        PayrollRunStateMachine.ensure_allowed(run.status, RunAction.IMPORT_ATTENDANCE)

        items = await self.runs.load_items_for_update(payroll_run_id)
        by_code = {
            item.employee.employee_code: item
            for item in items
            if item.employee is not None
        }

        result = AttendanceImportResult()
        now = datetime.now(timezone.utc)

        for row in rows:
            code = _pick(row, CODE_KEYS)
            if code is None:
                result.error_rows.append(
                    AttendanceRowError(row=row, error="employee code is required")
                )
                continue

            try:
                paid_days = self._parse(row, PAID_DAYS_KEYS, "paid_days", MAX_PAID_DAYS)
                lop_days = self._parse(row, LOP_DAYS_KEYS, "lop_days")
                other = self._parse(row, OTHER_DEDUCTIONS_KEYS, "other_deductions")
            except PayrollValidationError as e:
                result.error_rows.append(AttendanceRowError(row=row, error=e.message))
                continue

            item = by_code.get(str(code).strip())
            if item is None:
                result.skipped += 1
                continue

            if paid_days is not None:
                item.days_worked = paid_days
            if lop_days is not None:
                item.lop_days = lop_days
            if other is not None:
                item.other_deductions = other

            self.runs.recalculate_item(item, now)
            result.matched += 1

        await self.session.flush()

        if result.error_rows:
            logger.warning(
                "Attendance import for run %s rejected %d row(s)",
                payroll_run_id,
                result.errors,
            )
        logger.info(
            "Attendance import for run %s: %d matched, %d skipped",
            payroll_run_id,
            result.matched,
            result.skipped,
        )
        return result

    @staticmethod
    def _parse(
        row: dict[str, Any],
        keys: tuple[str, ...],
        name: str,
        high: Decimal | None = None,
    ) -> Decimal | None:
        """Clamp to the allowed range and round to the stored 2 decimals."""
        value = _pick(row, keys)
        if value is None:
            return None
        amount = _clamp(to_decimal(value, name), ZERO, high)
        if high is None:
            check_column_limit(amount, name)
        return round_to_paise(amount)
