"""Organization and company management."""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dhanix_payroll.errors import NotFoundError, PayrollValidationError
from dhanix_payroll.models import Company, Organization, OrganizationMember

logger = logging.getLogger(__name__)


def _require_name(name: str | None, field: str = "name") -> str:
    if name is None or not str(name).strip():
        raise PayrollValidationError(f"{field} is required", field=field)
    return str(name).strip()


class DirectoryService:
    """Tenancy containers: organizations, members and companies."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_organization(
        self, name: str, owner_user_id: UUID | None = None
    ) -> Organization:
        """Create an organization, adding the creator as OWNER when given."""
        organization = Organization(name=_require_name(name))
        self.session.add(organization)
        await self.session.flush()

        if owner_user_id is not None:
            self.session.add(
                OrganizationMember(
                    organization_id=organization.organization_id,
                    user_id=owner_user_id,
                    role="OWNER",
                )
            )
            await self.session.flush()

        logger.info("Created organization %s", organization.organization_id)
        return organization

    async def get_organization(self, organization_id: UUID) -> Organization:
        organization = await self.session.get(Organization, organization_id)
        if organization is None:
            raise NotFoundError("Organization", organization_id)
        return organization

    async def list_organizations_for_user(self, user_id: UUID) -> list[tuple[Organization, str]]:
        """Organizations a user belongs to, with the user's role."""
        result = await self.session.execute(
            select(Organization, OrganizationMember.role)
            .join(
                OrganizationMember,
                OrganizationMember.organization_id == Organization.organization_id,
            )
            .where(OrganizationMember.user_id == user_id)
            .order_by(Organization.name)
        )
        return [(org, role) for org, role in result.all()]

    async def create_company(
        self, organization_id: UUID, name: str, code: str | None = None
    ) -> Company:
        await self.get_organization(organization_id)
        company = Company(
            organization_id=organization_id,
            name=_require_name(name),
            code=code,
        )
        self.session.add(company)
        await self.session.flush()
        logger.info("Created company %s in organization %s", company.company_id, organization_id)
        return company

    async def list_companies(self, organization_id: UUID) -> list[Company]:
        result = await self.session.execute(
            select(Company)
            .where(Company.organization_id == organization_id)
            .order_by(Company.name)
        )
        return list(result.scalars().all())

    async def get_company(self, company_id: UUID) -> Company:
        company = await self.session.get(Company, company_id)
        if company is None:
            raise NotFoundError("Company", company_id)
        return company

    async def update_company(self, company_id: UUID, changes: dict[str, Any]) -> Company:
        company = await self.get_company(company_id)
        if "name" in changes:
            company.name = _require_name(changes["name"])
        if "code" in changes:
            company.code = changes["code"]
        await self.session.flush()
        return company
