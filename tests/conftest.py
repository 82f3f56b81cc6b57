"""Pytest fixtures for payroll tests."""

from __future__ import annotations

from decimal import Decimal
from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from dhanix_payroll.config import Settings
from dhanix_payroll.database import make_session_factory
from dhanix_payroll.models import Base, Company, Employee, Organization

# Use in-memory SQLite for tests (with async support).
# StaticPool keeps every session on the one connection that holds the data.
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def settings() -> Settings:
    """Settings for tests; no environment lookups."""
    return Settings(
        database_url=TEST_DATABASE_URL,
        engine_version="test",
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="DEBUG",
        default_total_days=30,
        create_schema=False,
    )


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh test database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine):
    return make_session_factory(engine)


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


async def add_employee(
    session: AsyncSession,
    company: Company,
    code: str,
    name: str,
    basic: str,
    hra: str,
    special: str,
    pf: bool = False,
    esi: bool = False,
    uan: str | None = None,
    ip_number: str | None = None,
    active: bool = True,
) -> Employee:
    first_name, last_name = name.split()
    employee = Employee(
        company_id=company.company_id,
        employee_code=code,
        first_name=first_name,
        last_name=last_name,
        designation="Engineer",
        is_active=active,
        is_pf_applicable=pf,
        is_esi_applicable=esi,
        uan=uan,
        esic_ip_number=ip_number,
        fixed_basic_salary=Decimal(basic),
        fixed_hra=Decimal(hra),
        fixed_special_allowance=Decimal(special),
    )
    session.add(employee)
    await session.flush()
    return employee


@pytest.fixture
async def test_organization(session: AsyncSession) -> Organization:
    """Create a test organization."""
    organization = Organization(name="Test Group")
    session.add(organization)
    await session.flush()
    return organization


@pytest.fixture
async def test_company(session: AsyncSession, test_organization: Organization) -> Company:
    """Create a test company."""
    company = Company(
        organization_id=test_organization.organization_id,
        name="Test Industries Pvt Ltd",
        code="TIPL",
    )
    session.add(company)
    await session.flush()
    return company


@pytest.fixture
async def test_employees(session: AsyncSession, test_company: Company) -> list[Employee]:
    """Two active employees and one inactive.

    E001 earns 30000 a month (PF only), E002 earns 20000 (PF and ESI).
    """
    return [
        await add_employee(
            session, test_company, "E001", "Asha Rao", "15000", "7500", "7500",
            pf=True, uan="100200300400",
        ),
        await add_employee(
            session, test_company, "E002", "Vikram Das", "10000", "5000", "5000",
            pf=True, esi=True, uan="100200300401", ip_number="3100123456",
        ),
        await add_employee(
            session, test_company, "E003", "Old Timer", "9000", "0", "0", active=False,
        ),
    ]


@pytest.fixture
def make_employee(session: AsyncSession, test_company: Company):
    """Factory for extra employees in the test company."""

    async def _make(code: str, name: str, basic: str, **kwargs) -> Employee:
        return await add_employee(
            session, test_company, code, name, basic,
            kwargs.pop("hra", "0"), kwargs.pop("special", "0"), **kwargs,
        )

    return _make
