"""Employee directory: CRUD, soft deactivation and bulk CSV import."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from dhanix_payroll.calculators import SalaryStructure, to_decimal
from dhanix_payroll.errors import NotFoundError, PayrollValidationError
from dhanix_payroll.models import Company, Employee

logger = logging.getLogger(__name__)

EMPLOYEE_IMPORT_TEMPLATE = ",".join([
    "employeeCode",
    "firstName",
    "lastName",
    "email",
    "phone",
    "dateOfJoining",
    "designation",
    "bankAccountNumber",
    "ifscCode",
    "uan",
    "esicIpNumber",
    "isPfApplicable",
    "isEsiApplicable",
    "fixedBasic",
    "fixedHra",
    "fixedSpecialAllowance",
])

EDITABLE_FIELDS = (
    "employee_code",
    "first_name",
    "last_name",
    "designation",
    "email",
    "phone",
    "date_of_joining",
    "is_active",
    "bank_account_number",
    "ifsc_code",
    "uan",
    "esic_ip_number",
    "is_pf_applicable",
    "is_esi_applicable",
    "fixed_basic_salary",
    "fixed_hra",
    "fixed_special_allowance",
)

REQUIRED_FIELDS = ("employee_code", "first_name", "last_name")


def _alias(*names: str) -> Any:
    return AliasChoices(*names)


class EmployeeImportRow(BaseModel):
    """One row of the employee import template."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    employee_code: str = Field(min_length=1, validation_alias=_alias("employeeCode", "employee_code"))
    first_name: str = Field(min_length=1, validation_alias=_alias("firstName", "first_name"))
    last_name: str = Field(min_length=1, validation_alias=_alias("lastName", "last_name"))
    email: str | None = None
    phone: str | None = None
    date_of_joining: date | None = Field(
        default=None, validation_alias=_alias("dateOfJoining", "date_of_joining")
    )
    designation: str | None = None
    bank_account_number: str | None = Field(
        default=None, validation_alias=_alias("bankAccountNumber", "bank_account_number")
    )
    ifsc_code: str | None = Field(default=None, validation_alias=_alias("ifscCode", "ifsc_code"))
    uan: str | None = None
    esic_ip_number: str | None = Field(
        default=None, validation_alias=_alias("esicIpNumber", "esic_ip_number")
    )
    is_pf_applicable: bool = Field(
        default=False, validation_alias=_alias("isPfApplicable", "is_pf_applicable")
    )
    is_esi_applicable: bool = Field(
        default=False, validation_alias=_alias("isEsiApplicable", "is_esi_applicable")
    )
    fixed_basic_salary: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        validation_alias=_alias("fixedBasic", "fixedBasicSalary", "fixed_basic_salary"),
    )
    fixed_hra: Decimal = Field(
        default=Decimal("0"), ge=0, validation_alias=_alias("fixedHra", "fixed_hra")
    )
    fixed_special_allowance: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        validation_alias=_alias("fixedSpecialAllowance", "fixed_special_allowance"),
    )

    @field_validator("*", mode="before")
    @classmethod
    def blank_is_missing(cls, value: Any, info: Any) -> Any:
        # CSV cells arrive as strings; an empty cell means "not given"
        if isinstance(value, str) and not value.strip():
            field_info = cls.model_fields[info.field_name]
            return None if field_info.is_required() else field_info.get_default()
        return value

    def to_fields(self) -> dict[str, Any]:
        return self.model_dump()


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        loc = ".".join(str(p) for p in error.get("loc", ()))
        parts.append(f"{loc}: {error.get('msg')}" if loc else str(error.get("msg")))
    return "; ".join(parts)


@dataclass
class FailedRow:
    row: dict[str, Any]
    error: str


@dataclass
class EmployeeImportResult:
    """Outcome of a bulk employee import."""

    created: int = 0
    updated: int = 0
    failed_rows: list[FailedRow] = field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return len(self.failed_rows)


class EmployeeService:
    """Employee CRUD scoped to a company."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get_company(self, company_id: UUID) -> Company:
        company = await self.session.get(Company, company_id)
        if company is None:
            raise NotFoundError("Company", company_id)
        return company

    async def get_employee(self, employee_id: UUID) -> Employee:
        employee = await self.session.get(Employee, employee_id)
        if employee is None:
            raise NotFoundError("Employee", employee_id)
        return employee

    async def find_by_code(self, company_id: UUID, employee_code: str) -> Employee | None:
        return await self.session.scalar(
            select(Employee).where(
                Employee.company_id == company_id,
                Employee.employee_code == employee_code,
            )
        )

    async def list_employees(
        self,
        company_id: UUID,
        search: str | None = None,
        active_only: bool = False,
    ) -> list[Employee]:
        """List employees; ``search`` matches name or code, case-insensitive."""
        query = select(Employee).where(Employee.company_id == company_id)
        if active_only:
            query = query.where(Employee.is_active.is_(True))
        if search:
            pattern = f"%{search.lower()}%"
            query = query.where(
                or_(
                    func.lower(Employee.first_name).like(pattern),
                    func.lower(Employee.last_name).like(pattern),
                    func.lower(Employee.employee_code).like(pattern),
                )
            )
        result = await self.session.execute(query.order_by(Employee.employee_code))
        return list(result.scalars().all())

    async def create_employee(self, company_id: UUID, data: dict[str, Any]) -> Employee:
        await self._get_company(company_id)
        fields = self._clean(data)
        for name in REQUIRED_FIELDS:
            if not fields.get(name):
                raise PayrollValidationError(f"{name} is required", field=name)
        await self._ensure_code_free(company_id, fields["employee_code"])

        employee = Employee(company_id=company_id, **fields)
        self._validate_salary(employee)
        self.session.add(employee)
        await self.session.flush()
        return employee

    async def update_employee(self, employee_id: UUID, data: dict[str, Any]) -> Employee:
        """Apply a partial update. Existing payroll items keep their snapshot."""
        employee = await self.get_employee(employee_id)
        fields = self._clean(data)
        for name in REQUIRED_FIELDS:
            if name in fields and not fields[name]:
                raise PayrollValidationError(f"{name} is required", field=name)
        if "employee_code" in fields and fields["employee_code"] != employee.employee_code:
            await self._ensure_code_free(employee.company_id, fields["employee_code"])

        candidate = SalaryStructure.of(
            fields.get("fixed_basic_salary", employee.fixed_basic_salary),
            fields.get("fixed_hra", employee.fixed_hra),
            fields.get("fixed_special_allowance", employee.fixed_special_allowance),
        )
        candidate.validate()

        for name, value in fields.items():
            setattr(employee, name, value)
        await self.session.flush()
        return employee

    async def deactivate_employee(self, employee_id: UUID) -> Employee:
        """Soft-delete: inactive employees are left out of new runs."""
        employee = await self.get_employee(employee_id)
        employee.is_active = False
        await self.session.flush()
        logger.info("Deactivated employee %s", employee_id)
        return employee

    async def import_employees(
        self, company_id: UUID, rows: list[dict[str, Any]]
    ) -> EmployeeImportResult:
        """Upsert employees by code. Bad rows are reported, never fatal."""
        await self._get_company(company_id)
        result = EmployeeImportResult()

        existing = {
            e.employee_code: e
            for e in (
                await self.session.execute(
                    select(Employee).where(Employee.company_id == company_id)
                )
            ).scalars()
        }

        for raw in rows:
            try:
                parsed = EmployeeImportRow.model_validate(raw)
            except ValidationError as e:
                result.failed_rows.append(FailedRow(row=raw, error=_format_validation_error(e)))
                continue

            fields = parsed.to_fields()
            employee = existing.get(parsed.employee_code)
            if employee is None:
                employee = Employee(company_id=company_id, **fields)
                self.session.add(employee)
                existing[parsed.employee_code] = employee
                result.created += 1
            else:
                for name, value in fields.items():
                    setattr(employee, name, value)
                result.updated += 1

        await self.session.flush()

        if result.failed_rows:
            logger.warning(
                "Employee import for company %s rejected %d row(s)",
                company_id,
                result.failed_count,
            )
        logger.info(
            "Employee import for company %s: %d created, %d updated",
            company_id,
            result.created,
            result.updated,
        )
        return result

    async def _ensure_code_free(self, company_id: UUID, employee_code: str) -> None:
        if await self.find_by_code(company_id, employee_code) is not None:
            raise PayrollValidationError(
                f"employee_code {employee_code!r} is already in use",
                field="employee_code",
            )

    @staticmethod
    def _clean(data: dict[str, Any]) -> dict[str, Any]:
        unknown = set(data) - set(EDITABLE_FIELDS)
        if unknown:
            name = sorted(unknown)[0]
            raise PayrollValidationError(f"Unknown field {name}", field=name)
        fields = dict(data)
        for name in ("fixed_basic_salary", "fixed_hra", "fixed_special_allowance"):
            if name in fields:
                if fields[name] is None:
                    raise PayrollValidationError(f"{name} is required", field=name)
                fields[name] = to_decimal(fields[name], name)
        return fields

    @staticmethod
    def _validate_salary(employee: Employee) -> None:
        SalaryStructure.of(
            employee.fixed_basic_salary,
            employee.fixed_hra,
            employee.fixed_special_allowance,
        ).validate()
