"""Tests for the payroll run lifecycle service."""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import delete

from dhanix_payroll.errors import NotFoundError, PayrollValidationError, StateConflictError
from dhanix_payroll.models import Employee
from dhanix_payroll.services.attendance_import import AttendanceImportService
from dhanix_payroll.services.employee_service import EmployeeService
from dhanix_payroll.services.payroll_run_service import PayrollRunService, validate_month
from dhanix_payroll.services.state_machine import InvalidTransitionError


@pytest.fixture
def service(session, settings) -> PayrollRunService:
    return PayrollRunService(session, settings)


def items_by_code(view) -> dict:
    return {item.employee.employee_code: item for item in view.items}


class TestValidateMonth:
    @pytest.mark.parametrize("month", ["2024-01", "2024-12", "1999-09"])
    def test_valid(self, month):
        assert validate_month(month) == month

    @pytest.mark.parametrize("month", ["2024-13", "2024-00", "2024-1", "24-01", "", "2024/01"])
    def test_invalid(self, month):
        with pytest.raises(PayrollValidationError) as exc_info:
            validate_month(month)
        assert exc_info.value.field == "month"


class TestCreateRun:
    async def test_creates_draft_with_active_employees(self, service, test_company, test_employees):
        run = await service.create_run(test_company.company_id, "2024-04")

        assert run.status == "DRAFT"
        view = await service.get_run(run.payroll_run_id)
        items = items_by_code(view)
        assert sorted(items) == ["E001", "E002"]
        assert items["E001"].basic_salary == Decimal("15000")
        assert items["E001"].days_worked == Decimal("30")
        assert items["E001"].total_days == Decimal("30")
        assert items["E001"].gross_salary == Decimal("0")
        assert view.allowed_actions == ["update_item", "import_attendance", "calculate", "process"]

    async def test_duplicate_month_conflicts(self, service, test_company, test_employees):
        await service.create_run(test_company.company_id, "2024-04")

        with pytest.raises(StateConflictError):
            await service.create_run(test_company.company_id, "2024-04")

    async def test_other_month_is_independent(self, service, test_company, test_employees):
        await service.create_run(test_company.company_id, "2024-04")
        await service.create_run(test_company.company_id, "2024-05")

        runs = await service.list_runs(test_company.company_id)
        assert [r.month for r in runs] == ["2024-05", "2024-04"]

    async def test_unknown_company(self, service):
        with pytest.raises(NotFoundError):
            await service.create_run(uuid4(), "2024-04")

    async def test_invalid_month(self, service, test_company):
        with pytest.raises(PayrollValidationError):
            await service.create_run(test_company.company_id, "April")

    async def test_company_without_employees(self, service, test_company):
        run = await service.create_run(test_company.company_id, "2024-04")
        view = await service.get_run(run.payroll_run_id)
        assert view.items == []


class TestUpdateItem:
    async def test_recalculates_item(self, service, test_company, test_employees):
        run = await service.create_run(test_company.company_id, "2024-04")
        item_id = items_by_code(await service.get_run(run.payroll_run_id))["E001"].payroll_item_id

        item = await service.update_item(item_id, days_worked="15", other_deductions=250)

        assert item.days_worked == Decimal("15")
        assert item.gross_salary == Decimal("15000.00")
        assert item.pf_employee == Decimal("900.00")
        assert item.net_salary == Decimal("13850.00")
        assert item.calculated_at is not None

    async def test_rejects_negative_values(self, service, test_company, test_employees):
        run = await service.create_run(test_company.company_id, "2024-04")
        item_id = items_by_code(await service.get_run(run.payroll_run_id))["E001"].payroll_item_id

        with pytest.raises(PayrollValidationError) as exc_info:
            await service.update_item(item_id, lop_days="-1")
        assert exc_info.value.field == "lop_days"

    async def test_rejects_non_numeric(self, service, test_company, test_employees):
        run = await service.create_run(test_company.company_id, "2024-04")
        item_id = items_by_code(await service.get_run(run.payroll_run_id))["E001"].payroll_item_id

        with pytest.raises(PayrollValidationError):
            await service.update_item(item_id, days_worked="abc")

    async def test_rejects_more_than_two_decimals(self, service, test_company, test_employees):
        run = await service.create_run(test_company.company_id, "2024-04")
        item_id = items_by_code(await service.get_run(run.payroll_run_id))["E001"].payroll_item_id

        with pytest.raises(PayrollValidationError) as exc_info:
            await service.update_item(item_id, days_worked="10.555")
        assert exc_info.value.field == "days_worked"

    @pytest.mark.parametrize(
        ("field_name", "value"),
        [("days_worked", "10000"), ("lop_days", "12345.5"), ("other_deductions", "1e11")],
    )
    async def test_rejects_values_too_large_to_store(
        self, service, test_company, test_employees, field_name, value
    ):
        run = await service.create_run(test_company.company_id, "2024-04")
        item_id = items_by_code(await service.get_run(run.payroll_run_id))["E001"].payroll_item_id

        with pytest.raises(PayrollValidationError) as exc_info:
            await service.update_item(item_id, **{field_name: value})
        assert exc_info.value.field == field_name

    async def test_stored_figures_stable_across_recalculation(
        self, service, session, test_company, test_employees
    ):
        run = await service.create_run(test_company.company_id, "2024-04")
        item_id = items_by_code(await service.get_run(run.payroll_run_id))["E001"].payroll_item_id

        edited = await service.update_item(item_id, days_worked="10.55")
        assert edited.days_worked == Decimal("10.55")
        assert edited.gross_salary == Decimal("10550.00")
        await session.commit()

        await service.calculate_run(run.payroll_run_id)
        stored = items_by_code(await service.get_run(run.payroll_run_id))["E001"]

        assert stored.days_worked == Decimal("10.55")
        assert stored.gross_salary == edited.gross_salary
        assert stored.net_salary == edited.net_salary

    async def test_unknown_item(self, service):
        with pytest.raises(NotFoundError):
            await service.update_item(uuid4(), days_worked=10)

    async def test_rejected_after_processing(self, service, test_company, test_employees):
        run = await service.create_run(test_company.company_id, "2024-04")
        item_id = items_by_code(await service.get_run(run.payroll_run_id))["E001"].payroll_item_id
        await service.process_run(run.payroll_run_id)

        with pytest.raises(InvalidTransitionError):
            await service.update_item(item_id, days_worked=10)


class TestProcessRun:
    async def test_process_computes_every_item(self, service, test_company, test_employees):
        run = await service.create_run(test_company.company_id, "2024-04")

        processed = await service.process_run(run.payroll_run_id)

        assert processed.status == "COMPLETED"
        assert processed.processed_at is not None
        view = await service.get_run(run.payroll_run_id)
        items = items_by_code(view)

        assert items["E001"].gross_salary == Decimal("30000.00")
        assert items["E001"].pf_employee == Decimal("1800.00")
        assert items["E001"].esi_employee == Decimal("0")
        assert items["E001"].net_salary == Decimal("28200.00")

        assert items["E002"].gross_salary == Decimal("20000.00")
        assert items["E002"].pf_employee == Decimal("1200.00")
        assert items["E002"].esi_employee == Decimal("150.00")
        assert items["E002"].esi_employer == Decimal("650.00")
        assert items["E002"].net_salary == Decimal("18650.00")

        assert view.total_gross == Decimal("50000.00")
        assert view.total_net == Decimal("46850.00")

    async def test_process_is_idempotent(self, service, test_company, test_employees):
        run = await service.create_run(test_company.company_id, "2024-04")

        await service.process_run(run.payroll_run_id)
        first = [(i.gross_salary, i.net_salary) for i in (await service.get_run(run.payroll_run_id)).items]
        await service.process_run(run.payroll_run_id)
        view = await service.get_run(run.payroll_run_id)
        second = [(i.gross_salary, i.net_salary) for i in view.items]

        assert view.status == "COMPLETED"
        assert first == second

    async def test_snapshot_isolated_from_employee_edits(
        self, service, session, test_company, test_employees
    ):
        """Salary changes after run creation do not reach the run."""
        run = await service.create_run(test_company.company_id, "2024-04")
        await EmployeeService(session).update_employee(
            test_employees[0].employee_id, {"fixed_basic_salary": "50000"}
        )

        await service.process_run(run.payroll_run_id)

        item = items_by_code(await service.get_run(run.payroll_run_id))["E001"]
        assert item.basic_salary == Decimal("15000")
        assert item.gross_salary == Decimal("30000.00")

    async def test_calculate_keeps_draft(self, service, test_company, test_employees):
        run = await service.create_run(test_company.company_id, "2024-04")

        summary = await service.calculate_run(run.payroll_run_id)

        assert summary.calculated == 2
        assert summary.skipped == []
        view = await service.get_run(run.payroll_run_id)
        assert view.status == "DRAFT"
        assert items_by_code(view)["E001"].net_salary == Decimal("28200.00")

    async def test_missing_employee_is_skipped(self, service, session, test_company, test_employees):
        run = await service.create_run(test_company.company_id, "2024-04")
        run_id = run.payroll_run_id
        missing_id = test_employees[1].employee_id

        await session.execute(delete(Employee).where(Employee.employee_id == missing_id))
        session.expunge_all()

        summary = await service.calculate_run(run_id)

        assert summary.calculated == 1
        assert len(summary.skipped) == 1
        assert summary.skipped[0].employee_id == missing_id
        assert summary.skipped[0].reason == "employee not found"

    async def test_unknown_run(self, service):
        with pytest.raises(NotFoundError):
            await service.process_run(uuid4())


class TestLockRun:
    async def test_cannot_lock_draft(self, service, test_company, test_employees):
        run = await service.create_run(test_company.company_id, "2024-04")

        with pytest.raises(InvalidTransitionError):
            await service.lock_run(run.payroll_run_id)

    async def test_lock_is_terminal(self, service, session, settings, test_company, test_employees):
        run = await service.create_run(test_company.company_id, "2024-04")
        await service.process_run(run.payroll_run_id)

        locked = await service.lock_run(run.payroll_run_id)
        assert locked.status == "LOCKED"
        assert locked.locked_at is not None

        # Locking again is a no-op
        again = await service.lock_run(run.payroll_run_id)
        assert again.status == "LOCKED"
        assert again.locked_at is not None

        with pytest.raises(InvalidTransitionError):
            await service.process_run(run.payroll_run_id)
        with pytest.raises(InvalidTransitionError):
            await service.calculate_run(run.payroll_run_id)

        view = await service.get_run(run.payroll_run_id)
        assert view.allowed_actions == ["lock", "issue_payslips", "report"]

        item_id = view.items[0].payroll_item_id
        with pytest.raises(InvalidTransitionError):
            await service.update_item(item_id, days_worked=10)
        with pytest.raises(InvalidTransitionError):
            await AttendanceImportService(session, settings).import_attendance(
                run.payroll_run_id, [{"employeeCode": "E001", "paidDays": "10"}]
            )
