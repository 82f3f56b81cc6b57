"""Payroll item calculator: gross, PF, ESI and net for one employee-month.

Pipeline (stable order):
1) Payout ratio = paid days / total days (0 when total days is not positive)
2) Prorate basic, HRA and special allowance by the ratio
3) Gross = sum of earned components
4) PF on min(earned basic, ceiling x ratio), same amount for employer
5) ESI on gross, only while gross stays under the threshold
6) Net = gross - PF(ee) - ESI(ee) - other deductions

Rounding:
- Every figure is computed at full Decimal precision
- Outputs are rounded to paise (2 places, half up) only when returned,
  so a persisted total may differ from the sum of its rounded parts by 0.01
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal

from dhanix_payroll.calculators.types import ZERO, ItemCalculation, ItemInputs

PF_WAGE_CEILING = Decimal("15000")
PF_RATE = Decimal("0.12")
ESI_WAGE_THRESHOLD = Decimal("21000")
ESI_EMPLOYEE_RATE = Decimal("0.0075")
ESI_EMPLOYER_RATE = Decimal("0.0325")

OUTPUT_PRECISION = Decimal("0.01")
RUPEE = Decimal("1")
HALF_RUPEE = Decimal("0.5")


def round_to_paise(amount: Decimal) -> Decimal:
    """Round amount to 2 decimal places."""
    return amount.quantize(OUTPUT_PRECISION, rounding=ROUND_HALF_UP)


def round_to_rupee(amount: Decimal) -> Decimal:
    """Round amount to whole rupees, halves toward +infinity (-174.5 -> -174)."""
    return (amount + HALF_RUPEE).quantize(RUPEE, rounding=ROUND_FLOOR)


def payout_ratio(paid_days: Decimal, total_days: Decimal) -> Decimal:
    if total_days > 0:
        return paid_days / total_days
    return ZERO


def calculate_item(inputs: ItemInputs) -> ItemCalculation:
    """Calculate one payroll item. Pure; never raises for odd inputs."""
    ratio = payout_ratio(inputs.paid_days, inputs.total_days)
    salary = inputs.salary

    earned_basic = salary.basic * ratio
    earned_hra = salary.hra * ratio
    earned_special = salary.special_allowance * ratio
    gross = earned_basic + earned_hra + earned_special

    # The statutory ceiling is prorated with attendance.
    pf_wages = ZERO
    pf_contribution = ZERO
    if inputs.is_pf_applicable:
        pf_wages = min(earned_basic, PF_WAGE_CEILING * ratio)
        pf_contribution = pf_wages * PF_RATE

    # Threshold applies to the prorated gross, not a full-month equivalent.
    esi_employee = esi_employer = ZERO
    if inputs.is_esi_applicable and gross < ESI_WAGE_THRESHOLD:
        esi_employee = gross * ESI_EMPLOYEE_RATE
        esi_employer = gross * ESI_EMPLOYER_RATE

    total_deductions = pf_contribution + esi_employee + inputs.other_deductions

    return ItemCalculation(
        payout_ratio=ratio,
        earned_basic=round_to_paise(earned_basic),
        earned_hra=round_to_paise(earned_hra),
        earned_special_allowance=round_to_paise(earned_special),
        gross=round_to_paise(gross),
        pf_wages=round_to_paise(pf_wages),
        pf_employee=round_to_paise(pf_contribution),
        pf_employer=round_to_paise(pf_contribution),
        esi_employee=round_to_paise(esi_employee),
        esi_employer=round_to_paise(esi_employer),
        other_deductions=round_to_paise(inputs.other_deductions),
        total_deductions=round_to_paise(total_deductions),
        net=round_to_paise(gross - total_deductions),
    )
