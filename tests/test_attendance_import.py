"""Tests for bulk attendance import."""

from decimal import Decimal

import pytest

from dhanix_payroll.errors import PayrollValidationError
from dhanix_payroll.services.attendance_import import (
    AttendanceImportService,
    parse_attendance_csv,
)
from dhanix_payroll.services.payroll_run_service import PayrollRunService
from dhanix_payroll.services.state_machine import InvalidTransitionError


@pytest.fixture
def runs(session, settings) -> PayrollRunService:
    return PayrollRunService(session, settings)


@pytest.fixture
def importer(session, settings) -> AttendanceImportService:
    return AttendanceImportService(session, settings)


@pytest.fixture
async def draft_run(runs, test_company, test_employees):
    return await runs.create_run(test_company.company_id, "2024-04")


async def item_for(runs, run_id, code):
    view = await runs.get_run(run_id)
    return next(i for i in view.items if i.employee.employee_code == code)


class TestParseAttendanceCsv:
    def test_parses_rows(self):
        rows = parse_attendance_csv("employeeCode,paidDays\nE001,20\nE002,\n")
        assert rows == [
            {"employeeCode": "E001", "paidDays": "20"},
            {"employeeCode": "E002", "paidDays": ""},
        ]

    def test_strips_bom_and_whitespace(self):
        rows = parse_attendance_csv("\ufeffEmployee Code , Paid Days\n E001 , 20 \n")
        assert rows == [{"Employee Code": "E001", "Paid Days": "20"}]

    def test_empty_file_rejected(self):
        with pytest.raises(PayrollValidationError):
            parse_attendance_csv("   ")


class TestImportAttendance:
    async def test_matched_skipped_and_error_rows(self, runs, importer, draft_run):
        rows = [
            {"employeeCode": "E001", "paidDays": "20"},
            {"employeeCode": "NOPE", "paidDays": "10"},
            {"employeeCode": "E002", "paidDays": "abc"},
        ]

        result = await importer.import_attendance(draft_run.payroll_run_id, rows)

        assert result.matched == 1
        assert result.skipped == 1
        assert result.errors == 1
        assert result.error_rows[0].row == rows[2]
        assert "paid_days" in result.error_rows[0].error

        item = await item_for(runs, draft_run.payroll_run_id, "E001")
        assert item.days_worked == Decimal("20")
        # 30000 * 20 / 30
        assert item.gross_salary == Decimal("20000.00")
        assert item.calculated_at is not None

        untouched = await item_for(runs, draft_run.payroll_run_id, "E002")
        assert untouched.days_worked == Decimal("30")

    async def test_missing_code_is_an_error(self, importer, draft_run):
        result = await importer.import_attendance(
            draft_run.payroll_run_id, [{"paidDays": "20"}, {"employeeCode": "  ", "paidDays": "1"}]
        )
        assert result.errors == 2
        assert result.matched == 0

    async def test_values_are_clamped(self, runs, importer, draft_run):
        rows = [
            {"employee_code": "E001", "paid_days": "45", "other_deductions": "-100"},
            {"code": "E002", "days_worked": "-3", "lop_days": "-2"},
        ]

        result = await importer.import_attendance(draft_run.payroll_run_id, rows)

        assert result.matched == 2
        first = await item_for(runs, draft_run.payroll_run_id, "E001")
        assert first.days_worked == Decimal("31")
        assert first.other_deductions == Decimal("0")
        second = await item_for(runs, draft_run.payroll_run_id, "E002")
        assert second.days_worked == Decimal("0")
        assert second.lop_days == Decimal("0")
        assert second.gross_salary == Decimal("0")

    async def test_blank_cells_keep_current_values(self, runs, importer, draft_run):
        await importer.import_attendance(
            draft_run.payroll_run_id,
            [{"Employee Code": "E001", "Paid Days": "25", "Other Deductions": "300"}],
        )
        await importer.import_attendance(
            draft_run.payroll_run_id,
            [{"Employee Code": "E001", "Paid Days": "", "LOP Days": "5", "Other Deductions": ""}],
        )

        item = await item_for(runs, draft_run.payroll_run_id, "E001")
        assert item.days_worked == Decimal("25")
        assert item.lop_days == Decimal("5")
        assert item.other_deductions == Decimal("300")

    async def test_csv_round_trip_through_parser(self, runs, importer, draft_run):
        rows = parse_attendance_csv("Employee Code,Paid Days,LOP Days\nE002,15,15\n")

        result = await importer.import_attendance(draft_run.payroll_run_id, rows)

        assert result.matched == 1
        item = await item_for(runs, draft_run.payroll_run_id, "E002")
        assert item.gross_salary == Decimal("10000.00")
        assert item.lop_days == Decimal("15")

    async def test_requires_draft(self, runs, importer, draft_run):
        await runs.process_run(draft_run.payroll_run_id)

        with pytest.raises(InvalidTransitionError):
            await importer.import_attendance(
                draft_run.payroll_run_id, [{"employeeCode": "E001", "paidDays": "10"}]
            )

    async def test_values_rounded_to_stored_precision(self, runs, importer, draft_run):
        rows = [{"employeeCode": "E001", "paidDays": "10.555", "otherDeductions": "99.999"}]

        result = await importer.import_attendance(draft_run.payroll_run_id, rows)

        assert result.matched == 1
        item = await item_for(runs, draft_run.payroll_run_id, "E001")
        assert item.days_worked == Decimal("10.56")
        assert item.other_deductions == Decimal("100.00")
        # 30000 * 10.56 / 30
        assert item.gross_salary == Decimal("10560.00")

        await runs.calculate_run(draft_run.payroll_run_id)
        again = await item_for(runs, draft_run.payroll_run_id, "E001")
        assert again.gross_salary == item.gross_salary
        assert again.net_salary == item.net_salary

    async def test_values_too_large_to_store_are_errors(self, importer, draft_run):
        rows = [
            {"employeeCode": "E001", "lopDays": "10000"},
            {"employeeCode": "E002", "otherDeductions": "1e12"},
        ]

        result = await importer.import_attendance(draft_run.payroll_run_id, rows)

        assert result.matched == 0
        assert result.errors == 2
        assert "lop_days" in result.error_rows[0].error
        assert "other_deductions" in result.error_rows[1].error
