"""Employee model with statutory flags and fixed salary structure."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dhanix_payroll.calculators.types import SalaryStructure
from dhanix_payroll.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from dhanix_payroll.models.organization import Company
    from dhanix_payroll.models.payroll import PayrollItem


class Employee(Base, TimestampMixin):
    """Employee record. Never hard-deleted; see ``is_active``."""

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="RESTRICT"),
        nullable=False,
    )
    employee_code: Mapped[str] = mapped_column(String, nullable=False)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    designation: Mapped[str | None] = mapped_column(String, nullable=True)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    phone: Mapped[str | None] = mapped_column(String, nullable=True)
    date_of_joining: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    # Bank details
    bank_account_number: Mapped[str | None] = mapped_column(String, nullable=True)
    ifsc_code: Mapped[str | None] = mapped_column(String, nullable=True)

    # Statutory
    uan: Mapped[str | None] = mapped_column(String, nullable=True)
    esic_ip_number: Mapped[str | None] = mapped_column(String, nullable=True)
    is_pf_applicable: Mapped[bool] = mapped_column(default=False, nullable=False)
    is_esi_applicable: Mapped[bool] = mapped_column(default=False, nullable=False)

    # Monthly fixed components
    fixed_basic_salary: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    fixed_hra: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    fixed_special_allowance: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )

    __table_args__ = (
        UniqueConstraint("company_id", "employee_code", name="employee_company_code_unique"),
        CheckConstraint(
            "fixed_basic_salary >= 0 AND fixed_hra >= 0 AND fixed_special_allowance >= 0",
            name="employee_salary_non_negative",
        ),
    )

    # Relationships
    company: Mapped[Company] = relationship(back_populates="employees")
    payroll_items: Mapped[list[PayrollItem]] = relationship(back_populates="employee")

    @property
    def full_name(self) -> str:
        """Get full name."""
        return f"{self.first_name} {self.last_name}"

    @property
    def salary_structure(self) -> SalaryStructure:
        """Current fixed monthly salary structure."""
        return SalaryStructure(
            basic=self.fixed_basic_salary,
            hra=self.fixed_hra,
            special_allowance=self.fixed_special_allowance,
        )
