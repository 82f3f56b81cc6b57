"""Type definitions for the payroll item calculation."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from dhanix_payroll.errors import PayrollValidationError

ZERO = Decimal("0")


def to_decimal(value: Any, field: str = "value") -> Decimal:
    """Coerce a numeric input (int, str, float, Decimal, None) to Decimal.

    Floats go through ``str`` so 0.1 becomes Decimal("0.1"), not its binary
    expansion. ``None`` and blank strings are zero.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise PayrollValidationError(f"{field} must be a number", field=field)
    if isinstance(value, float):
        value = repr(value)
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return ZERO
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise PayrollValidationError(f"{field} must be a number", field=field) from None
    if not result.is_finite():
        raise PayrollValidationError(f"{field} must be a finite number", field=field)
    return result


@dataclass(frozen=True)
class SalaryStructure:
    """Fixed monthly salary components for a 100%-attendance month."""

    basic: Decimal = ZERO
    hra: Decimal = ZERO
    special_allowance: Decimal = ZERO

    @classmethod
    def of(cls, basic: Any = 0, hra: Any = 0, special_allowance: Any = 0) -> SalaryStructure:
        return cls(
            basic=to_decimal(basic, "fixed_basic_salary"),
            hra=to_decimal(hra, "fixed_hra"),
            special_allowance=to_decimal(special_allowance, "fixed_special_allowance"),
        )

    @property
    def monthly_gross(self) -> Decimal:
        return self.basic + self.hra + self.special_allowance

    def validate(self) -> None:
        """Raise PayrollValidationError if any component is negative."""
        for field, value in (
            ("fixed_basic_salary", self.basic),
            ("fixed_hra", self.hra),
            ("fixed_special_allowance", self.special_allowance),
        ):
            if value < 0:
                raise PayrollValidationError(f"{field} must not be negative", field=field)


@dataclass(frozen=True)
class ItemInputs:
    """Everything the calculator needs for one payroll item."""

    salary: SalaryStructure
    total_days: Decimal
    paid_days: Decimal
    is_pf_applicable: bool
    is_esi_applicable: bool
    other_deductions: Decimal = ZERO


@dataclass(frozen=True)
class ItemCalculation:
    """Calculator output. Monetary fields are already rounded to 2 places."""

    payout_ratio: Decimal
    earned_basic: Decimal
    earned_hra: Decimal
    earned_special_allowance: Decimal
    gross: Decimal
    pf_wages: Decimal
    pf_employee: Decimal
    pf_employer: Decimal
    esi_employee: Decimal
    esi_employer: Decimal
    other_deductions: Decimal
    total_deductions: Decimal
    net: Decimal
