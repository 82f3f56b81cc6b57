"""Payroll calculation."""

from dhanix_payroll.calculators.item_calculator import (
    ESI_EMPLOYEE_RATE,
    ESI_EMPLOYER_RATE,
    ESI_WAGE_THRESHOLD,
    PF_RATE,
    PF_WAGE_CEILING,
    calculate_item,
    payout_ratio,
    round_to_paise,
    round_to_rupee,
)
from dhanix_payroll.calculators.types import (
    ItemCalculation,
    ItemInputs,
    SalaryStructure,
    to_decimal,
)

__all__ = [
    "ESI_EMPLOYEE_RATE",
    "ESI_EMPLOYER_RATE",
    "ESI_WAGE_THRESHOLD",
    "PF_RATE",
    "PF_WAGE_CEILING",
    "ItemCalculation",
    "ItemInputs",
    "SalaryStructure",
    "calculate_item",
    "payout_ratio",
    "round_to_paise",
    "round_to_rupee",
    "to_decimal",
]
