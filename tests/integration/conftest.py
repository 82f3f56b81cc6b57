"""Integration test fixtures: the API on a fresh in-memory database."""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from dhanix_payroll.api.app import create_app
from dhanix_payroll.api.dependencies import get_db_session


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests use the per-test database."""
    app = create_app()

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_db_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def company_id(client: AsyncClient) -> str:
    """An organization and company created through the API."""
    response = await client.post("/api/v1/organizations", json={"name": "Test Group"})
    assert response.status_code == 201
    organization_id = response.json()["organization_id"]

    response = await client.post(
        f"/api/v1/organizations/{organization_id}/companies",
        json={"name": "Test Industries Pvt Ltd", "code": "TIPL"},
    )
    assert response.status_code == 201
    return response.json()["company_id"]


@pytest.fixture
async def staffed_company_id(client: AsyncClient, company_id: str) -> str:
    """Company with E001 (30000, PF) and E002 (20000, PF and ESI)."""
    response = await client.post(
        f"/api/v1/companies/{company_id}/employees/import",
        json={
            "rows": [
                {
                    "employeeCode": "E001",
                    "firstName": "Asha",
                    "lastName": "Rao",
                    "uan": "100200300400",
                    "isPfApplicable": "true",
                    "fixedBasic": "15000",
                    "fixedHra": "7500",
                    "fixedSpecialAllowance": "7500",
                },
                {
                    "employeeCode": "E002",
                    "firstName": "Vikram",
                    "lastName": "Das",
                    "uan": "100200300401",
                    "esicIpNumber": "3100123456",
                    "isPfApplicable": "true",
                    "isEsiApplicable": "true",
                    "fixedBasic": "10000",
                    "fixedHra": "5000",
                    "fixedSpecialAllowance": "5000",
                },
            ]
        },
    )
    assert response.status_code == 200
    assert response.json()["created"] == 2
    return company_id
