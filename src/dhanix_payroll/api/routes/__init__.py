"""API routes."""

from dhanix_payroll.api.routes.health import router as health_router
from dhanix_payroll.api.routes.organizations import router as organizations_router
from dhanix_payroll.api.routes.employees import router as employees_router
from dhanix_payroll.api.routes.payroll_runs import router as payroll_runs_router
from dhanix_payroll.api.routes.payroll_items import router as payroll_items_router

__all__ = [
    "health_router",
    "organizations_router",
    "employees_router",
    "payroll_runs_router",
    "payroll_items_router",
]
