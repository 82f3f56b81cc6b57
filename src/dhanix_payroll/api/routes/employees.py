"""Employee endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, Response, status

from dhanix_payroll.api.dependencies import DbSession
from dhanix_payroll.api.schemas import (
    EmployeeCreate,
    EmployeeImportRequest,
    EmployeeImportResponse,
    EmployeeResponse,
    EmployeeUpdate,
    ErrorResponse,
)
from dhanix_payroll.services.employee_service import EMPLOYEE_IMPORT_TEMPLATE, EmployeeService

router = APIRouter(tags=["employees"])


@router.get(
    "/companies/{company_id}/employees",
    response_model=list[EmployeeResponse],
)
async def list_employees(
    db: DbSession,
    company_id: Annotated[UUID, Path()],
    search: str | None = None,
    active_only: Annotated[bool, Query()] = False,
) -> list[EmployeeResponse]:
    """List a company's employees, optionally filtered by name or code."""
    employees = await EmployeeService(db).list_employees(
        company_id, search=search, active_only=active_only
    )
    return [EmployeeResponse.model_validate(e) for e in employees]


@router.post(
    "/companies/{company_id}/employees",
    response_model=EmployeeResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_employee(
    db: DbSession,
    company_id: Annotated[UUID, Path()],
    payload: EmployeeCreate,
) -> EmployeeResponse:
    employee = await EmployeeService(db).create_employee(company_id, payload.model_dump())
    await db.commit()
    return EmployeeResponse.model_validate(employee)


@router.get("/companies/{company_id}/employees/import-template")
async def employee_import_template(company_id: Annotated[UUID, Path()]) -> Response:
    """CSV header row for the bulk import."""
    return Response(
        content=EMPLOYEE_IMPORT_TEMPLATE + "\n",
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="employee-import-template.csv"'},
    )


@router.post(
    "/companies/{company_id}/employees/import",
    response_model=EmployeeImportResponse,
    responses={404: {"model": ErrorResponse}},
)
async def import_employees(
    db: DbSession,
    company_id: Annotated[UUID, Path()],
    payload: EmployeeImportRequest,
) -> EmployeeImportResponse:
    """Upsert employees by code; invalid rows come back in failed_rows."""
    result = await EmployeeService(db).import_employees(company_id, payload.rows)
    await db.commit()
    return EmployeeImportResponse.model_validate(result)


@router.get(
    "/employees/{employee_id}",
    response_model=EmployeeResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_employee(
    db: DbSession,
    employee_id: Annotated[UUID, Path()],
) -> EmployeeResponse:
    employee = await EmployeeService(db).get_employee(employee_id)
    return EmployeeResponse.model_validate(employee)


@router.patch(
    "/employees/{employee_id}",
    response_model=EmployeeResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_employee(
    db: DbSession,
    employee_id: Annotated[UUID, Path()],
    payload: EmployeeUpdate,
) -> EmployeeResponse:
    employee = await EmployeeService(db).update_employee(
        employee_id, payload.model_dump(exclude_unset=True, exclude_none=True)
    )
    await db.commit()
    return EmployeeResponse.model_validate(employee)


@router.post(
    "/employees/{employee_id}/deactivate",
    response_model=EmployeeResponse,
    responses={404: {"model": ErrorResponse}},
)
async def deactivate_employee(
    db: DbSession,
    employee_id: Annotated[UUID, Path()],
) -> EmployeeResponse:
    employee = await EmployeeService(db).deactivate_employee(employee_id)
    await db.commit()
    return EmployeeResponse.model_validate(employee)
