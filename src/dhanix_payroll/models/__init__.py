"""ORM models."""

from dhanix_payroll.models.base import Base, TimestampMixin
from dhanix_payroll.models.employee import Employee
from dhanix_payroll.models.organization import (
    MEMBER_ROLES,
    Company,
    Organization,
    OrganizationMember,
)
from dhanix_payroll.models.payroll import PayrollItem, PayrollRun, Payslip

__all__ = [
    "Base",
    "TimestampMixin",
    "Company",
    "Employee",
    "MEMBER_ROLES",
    "Organization",
    "OrganizationMember",
    "PayrollItem",
    "PayrollRun",
    "Payslip",
]
