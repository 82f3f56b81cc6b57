"""Payroll run endpoints: lifecycle, attendance, payslips and statutory reports."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from dhanix_payroll.api.dependencies import DbSession
from dhanix_payroll.api.schemas import (
    AttendanceImportRequest,
    AttendanceImportResponse,
    CalculationResponse,
    ErrorResponse,
    PayrollRunCreate,
    PayrollRunDetailResponse,
    PayrollRunResponse,
    PayslipIssueResponse,
)
from dhanix_payroll.services.attendance_import import (
    AttendanceImportService,
    parse_attendance_csv,
)
from dhanix_payroll.services.payroll_run_service import PayrollRunService
from dhanix_payroll.services.payslip_service import PayslipService
from dhanix_payroll.services.report_service import StatutoryReportService

router = APIRouter(tags=["payroll-runs"])


async def _run_detail(db: AsyncSession, payroll_run_id: UUID) -> PayrollRunDetailResponse:
    view = await PayrollRunService(db).get_run(payroll_run_id)
    return PayrollRunDetailResponse.model_validate(view)


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ============================================================================
# Payroll Run CRUD
# ============================================================================


@router.get(
    "/companies/{company_id}/payroll-runs",
    response_model=list[PayrollRunResponse],
)
async def list_payroll_runs(
    db: DbSession,
    company_id: Annotated[UUID, Path()],
) -> list[PayrollRunResponse]:
    """List a company's payroll runs, newest month first."""
    runs = await PayrollRunService(db).list_runs(company_id)
    return [PayrollRunResponse.model_validate(r) for r in runs]


@router.post(
    "/companies/{company_id}/payroll-runs",
    response_model=PayrollRunDetailResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def create_payroll_run(
    db: DbSession,
    company_id: Annotated[UUID, Path()],
    payload: PayrollRunCreate,
) -> PayrollRunDetailResponse:
    """Create a DRAFT run with one item per active employee."""
    run = await PayrollRunService(db).create_run(company_id, payload.month)
    await db.commit()
    return await _run_detail(db, run.payroll_run_id)


@router.get(
    "/payroll-runs/{payroll_run_id}",
    response_model=PayrollRunDetailResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_payroll_run(
    db: DbSession,
    payroll_run_id: Annotated[UUID, Path()],
) -> PayrollRunDetailResponse:
    return await _run_detail(db, payroll_run_id)


# ============================================================================
# Payroll Run State Transitions
# ============================================================================


@router.post(
    "/payroll-runs/{payroll_run_id}/calculate",
    response_model=CalculationResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def calculate_payroll_run(
    db: DbSession,
    payroll_run_id: Annotated[UUID, Path()],
) -> CalculationResponse:
    """Recalculate every item without changing the run status."""
    summary = await PayrollRunService(db).calculate_run(payroll_run_id)
    await db.commit()
    return CalculationResponse.model_validate(summary)


@router.post(
    "/payroll-runs/{payroll_run_id}/process",
    response_model=PayrollRunDetailResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def process_payroll_run(
    db: DbSession,
    payroll_run_id: Annotated[UUID, Path()],
) -> PayrollRunDetailResponse:
    """Recalculate every item and mark the run COMPLETED."""
    await PayrollRunService(db).process_run(payroll_run_id)
    await db.commit()
    return await _run_detail(db, payroll_run_id)


@router.post(
    "/payroll-runs/{payroll_run_id}/lock",
    response_model=PayrollRunDetailResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def lock_payroll_run(
    db: DbSession,
    payroll_run_id: Annotated[UUID, Path()],
) -> PayrollRunDetailResponse:
    """Freeze a COMPLETED run."""
    await PayrollRunService(db).lock_run(payroll_run_id)
    await db.commit()
    return await _run_detail(db, payroll_run_id)


# ============================================================================
# Attendance, Payslips, Reports
# ============================================================================


@router.post(
    "/payroll-runs/{payroll_run_id}/attendance",
    response_model=AttendanceImportResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def import_attendance(
    db: DbSession,
    payroll_run_id: Annotated[UUID, Path()],
    payload: AttendanceImportRequest,
) -> AttendanceImportResponse:
    rows = payload.rows if payload.rows is not None else parse_attendance_csv(payload.csv)
    result = await AttendanceImportService(db).import_attendance(payroll_run_id, rows)
    await db.commit()
    return AttendanceImportResponse.model_validate(result)


@router.post(
    "/payroll-runs/{payroll_run_id}/payslips",
    response_model=PayslipIssueResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def issue_payslips(
    db: DbSession,
    payroll_run_id: Annotated[UUID, Path()],
) -> PayslipIssueResponse:
    issued = await PayslipService(db).issue_payslips(payroll_run_id)
    await db.commit()
    return PayslipIssueResponse(payroll_run_id=payroll_run_id, issued=issued)


@router.get(
    "/payroll-runs/{payroll_run_id}/reports/pf-ecr.csv",
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def pf_ecr_report(
    db: DbSession,
    payroll_run_id: Annotated[UUID, Path()],
) -> Response:
    content = await StatutoryReportService(db).pf_ecr_csv(payroll_run_id)
    return _csv_response(content, f"pf-ecr-{payroll_run_id}.csv")


@router.get(
    "/payroll-runs/{payroll_run_id}/reports/esi.csv",
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def esi_report(
    db: DbSession,
    payroll_run_id: Annotated[UUID, Path()],
) -> Response:
    content = await StatutoryReportService(db).esi_csv(payroll_run_id)
    return _csv_response(content, f"esi-{payroll_run_id}.csv")
