"""Payroll item endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path

from dhanix_payroll.api.dependencies import DbSession
from dhanix_payroll.api.schemas import (
    ErrorResponse,
    PayrollItemResponse,
    PayrollItemUpdate,
    PayslipResponse,
)
from dhanix_payroll.services.payroll_run_service import PayrollRunService
from dhanix_payroll.services.payslip_service import PayslipService
from dhanix_payroll.services.views import assemble_item_view

router = APIRouter(prefix="/payroll-items", tags=["payroll-items"])


@router.patch(
    "/{payroll_item_id}",
    response_model=PayrollItemResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def update_payroll_item(
    db: DbSession,
    payroll_item_id: Annotated[UUID, Path()],
    payload: PayrollItemUpdate,
) -> PayrollItemResponse:
    """Edit attendance or deductions on a DRAFT item; the item is recalculated."""
    item = await PayrollRunService(db).update_item(
        payroll_item_id,
        days_worked=payload.days_worked,
        lop_days=payload.lop_days,
        other_deductions=payload.other_deductions,
    )
    await db.commit()
    return PayrollItemResponse.model_validate(assemble_item_view(item))


@router.get(
    "/{payroll_item_id}/payslip",
    response_model=PayslipResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_payslip(
    db: DbSession,
    payroll_item_id: Annotated[UUID, Path()],
) -> PayslipResponse:
    payslip = await PayslipService(db).build_payslip(payroll_item_id)
    return PayslipResponse.model_validate(payslip)
