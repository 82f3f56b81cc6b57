"""Organization, membership and company models."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dhanix_payroll.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from dhanix_payroll.models.employee import Employee
    from dhanix_payroll.models.payroll import PayrollRun


MEMBER_ROLES = ("OWNER", "ADMIN", "STAFF")


class Organization(Base, TimestampMixin):
    """Multi-tenant container."""

    __tablename__ = "organization"

    organization_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)

    # Relationships
    members: Mapped[list[OrganizationMember]] = relationship(back_populates="organization")
    companies: Mapped[list[Company]] = relationship(back_populates="organization")


class OrganizationMember(Base):
    """A user's role inside an organization."""

    __tablename__ = "organization_member"

    organization_member_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organization.organization_id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[UUID] = mapped_column(nullable=False)
    role: Mapped[str] = mapped_column(String, nullable=False, default="STAFF")

    __table_args__ = (
        UniqueConstraint("user_id", "organization_id", name="org_member_user_org_unique"),
        CheckConstraint("role IN ('OWNER', 'ADMIN', 'STAFF')", name="org_member_role_check"),
    )

    # Relationships
    organization: Mapped[Organization] = relationship(back_populates="members")


class Company(Base, TimestampMixin):
    """Employer company within an organization."""

    __tablename__ = "company"

    company_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    organization_id: Mapped[UUID] = mapped_column(
        ForeignKey("organization.organization_id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    code: Mapped[str | None] = mapped_column(String, nullable=True)

    # Relationships
    organization: Mapped[Organization] = relationship(back_populates="companies")
    employees: Mapped[list[Employee]] = relationship(back_populates="company")
    payroll_runs: Mapped[list[PayrollRun]] = relationship(back_populates="company")
