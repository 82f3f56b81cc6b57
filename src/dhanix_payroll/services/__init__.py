"""Payroll services."""

from dhanix_payroll.services.state_machine import PayrollRunStateMachine, PayrollRunStatus, InvalidTransitionError
from dhanix_payroll.services.payroll_run_service import PayrollRunService, CalculationSummary
from dhanix_payroll.services.attendance_import import AttendanceImportService, AttendanceImportResult
from dhanix_payroll.services.directory_service import DirectoryService
from dhanix_payroll.services.employee_service import EmployeeService
from dhanix_payroll.services.payslip_service import PayslipService
from dhanix_payroll.services.report_service import StatutoryReportService

__all__ = [
    "PayrollRunStateMachine",
    "PayrollRunStatus",
    "InvalidTransitionError",
    "PayrollRunService",
    "CalculationSummary",
    "AttendanceImportService",
    "AttendanceImportResult",
    "DirectoryService",
    "EmployeeService",
    "PayslipService",
    "StatutoryReportService",
]
