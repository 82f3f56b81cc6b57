"""Organization and company endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from dhanix_payroll.api.dependencies import DbSession
from dhanix_payroll.api.schemas import (
    CompanyCreate,
    CompanyResponse,
    CompanyUpdate,
    ErrorResponse,
    OrganizationCreate,
    OrganizationMembershipResponse,
    OrganizationResponse,
)
from dhanix_payroll.services.directory_service import DirectoryService

router = APIRouter(tags=["organizations"])


@router.post(
    "/organizations",
    response_model=OrganizationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_organization(db: DbSession, payload: OrganizationCreate) -> OrganizationResponse:
    organization = await DirectoryService(db).create_organization(
        payload.name, owner_user_id=payload.owner_user_id
    )
    await db.commit()
    return OrganizationResponse.model_validate(organization)


@router.get(
    "/organizations",
    response_model=list[OrganizationMembershipResponse],
)
async def list_organizations(
    db: DbSession,
    user_id: Annotated[UUID, Query()],
) -> list[OrganizationMembershipResponse]:
    """Organizations the user is a member of, with the user's role."""
    memberships = await DirectoryService(db).list_organizations_for_user(user_id)
    return [
        OrganizationMembershipResponse(
            organization_id=organization.organization_id,
            name=organization.name,
            created_at=organization.created_at,
            role=role,
        )
        for organization, role in memberships
    ]


@router.get(
    "/organizations/{organization_id}",
    response_model=OrganizationResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_organization(
    db: DbSession,
    organization_id: Annotated[UUID, Path()],
) -> OrganizationResponse:
    organization = await DirectoryService(db).get_organization(organization_id)
    return OrganizationResponse.model_validate(organization)


@router.post(
    "/organizations/{organization_id}/companies",
    response_model=CompanyResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_company(
    db: DbSession,
    organization_id: Annotated[UUID, Path()],
    payload: CompanyCreate,
) -> CompanyResponse:
    company = await DirectoryService(db).create_company(
        organization_id, payload.name, code=payload.code
    )
    await db.commit()
    return CompanyResponse.model_validate(company)


@router.get(
    "/organizations/{organization_id}/companies",
    response_model=list[CompanyResponse],
    responses={404: {"model": ErrorResponse}},
)
async def list_companies(
    db: DbSession,
    organization_id: Annotated[UUID, Path()],
) -> list[CompanyResponse]:
    service = DirectoryService(db)
    await service.get_organization(organization_id)
    companies = await service.list_companies(organization_id)
    return [CompanyResponse.model_validate(c) for c in companies]


@router.get(
    "/companies/{company_id}",
    response_model=CompanyResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_company(
    db: DbSession,
    company_id: Annotated[UUID, Path()],
) -> CompanyResponse:
    company = await DirectoryService(db).get_company(company_id)
    return CompanyResponse.model_validate(company)


@router.patch(
    "/companies/{company_id}",
    response_model=CompanyResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_company(
    db: DbSession,
    company_id: Annotated[UUID, Path()],
    payload: CompanyUpdate,
) -> CompanyResponse:
    company = await DirectoryService(db).update_company(
        company_id, payload.model_dump(exclude_unset=True)
    )
    await db.commit()
    return CompanyResponse.model_validate(company)
