from fastapi import HTTPException, status
from sqlalchemy.orm import Session, joinedload
from uuid import UUID
from datetime import date
from typing import Optional
import logging

from app.common.exceptions import OrgNotFound
from app.modules.auth.models import User, UserOrganization
from app.modules.organizations.models import Organization, OrganizationSettings
from app.modules.organizations.schemas import (
    OrganizationCreate, OrganizationUpdate, OrganizationSettingsUpdate,
    OrganizationWithRole, FinancialYear, MemberAdd, MemberOut, default_financial_year
)

logger = logging.getLogger(__name__)


def create_organization(db: Session, org_data: OrganizationCreate, current_user: User,
                        today: Optional[date] = None) -> Organization:
    """
    Create a new organization, its default settings and the owner membership.

    Args:
        org_data (OrganizationCreate): The organization data to create.
        current_user (User): The user creating the organization; becomes its owner.
        today (date): Reference date for the default financial year.

    Returns:
        Organization: The created organization with its settings loaded.
    """
    org_dict = org_data.model_dump()
    if org_dict.get("bank") is None:
        org_dict.pop("bank", None)

    organization = Organization(**org_dict)
    db.add(organization)
    db.flush()

    financial_year = default_financial_year(today)
    db.add(OrganizationSettings(
        org_id=organization.id,
        financial_year_start=financial_year.start,
        financial_year_end=financial_year.end,
    ))
    db.add(UserOrganization(user_id=current_user.id, org_id=organization.id, role="owner", is_active=True))

    db.commit()
    db.refresh(organization)

    logger.info(f"Organization created {organization.id} by user {current_user.id}")
    return organization


def get_organization(db: Session, org_id: UUID) -> Organization:
    """Get an organization by id or raise OrgNotFound."""
    organization = db.query(Organization).options(
        joinedload(Organization.settings)
    ).filter(Organization.id == org_id, Organization.is_active.is_(True)).first()
    if not organization:
        raise OrgNotFound()
    return organization


def get_organizations_for_user(db: Session, user_id: UUID) -> list[OrganizationWithRole]:
    """
    Get all organizations the user is an active member of, with the user's role.
    """
    memberships = db.query(UserOrganization).options(
        joinedload(UserOrganization.organization)
    ).filter(
        UserOrganization.user_id == user_id,
        UserOrganization.is_active.is_(True)
    ).all()

    result = []
    for membership in memberships:
        organization = membership.organization
        if organization is None or not organization.is_active:
            continue
        result.append(OrganizationWithRole.model_validate({
            **{c.name: getattr(organization, c.name) for c in Organization.__table__.columns},
            "role": membership.role,
        }))
    return result


def update_organization(db: Session, org_id: UUID, org_update: OrganizationUpdate) -> Organization:
    organization = get_organization(db, org_id)
    for field, value in org_update.model_dump(exclude_unset=True).items():
        setattr(organization, field, value)
    db.commit()
    db.refresh(organization)
    return organization


def get_settings(db: Session, org_id: UUID) -> OrganizationSettings:
    """Get the settings row of an organization; an org without settings is treated as missing."""
    org_settings = db.query(OrganizationSettings).filter(
        OrganizationSettings.org_id == org_id
    ).first()
    if not org_settings:
        raise OrgNotFound()
    return org_settings


def get_financial_year(db: Session, org_id: UUID) -> FinancialYear:
    """Current financial year configured for the organization."""
    org_settings = get_settings(db, org_id)
    return FinancialYear(
        start=org_settings.financial_year_start,
        end=org_settings.financial_year_end
    )


def update_settings(db: Session, org_id: UUID, settings_update: OrganizationSettingsUpdate) -> OrganizationSettings:
    org_settings = get_settings(db, org_id)
    changes = settings_update.model_dump(exclude_unset=True)

    start = changes.get("financial_year_start", org_settings.financial_year_start)
    end = changes.get("financial_year_end", org_settings.financial_year_end)
    if end <= start:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="El fin del año fiscal debe ser posterior al inicio"
        )

    for field, value in changes.items():
        setattr(org_settings, field, value)

    db.commit()
    db.refresh(org_settings)
    logger.info(f"Settings updated for organization {org_id}: {sorted(changes)}")
    return org_settings


def get_membership(db: Session, org_id: UUID, user_id: UUID) -> Optional[UserOrganization]:
    return db.query(UserOrganization).filter(
        UserOrganization.org_id == org_id,
        UserOrganization.user_id == user_id,
        UserOrganization.is_active.is_(True)
    ).first()


def list_members(db: Session, org_id: UUID) -> list[MemberOut]:
    memberships = db.query(UserOrganization).options(
        joinedload(UserOrganization.user)
    ).filter(
        UserOrganization.org_id == org_id,
        UserOrganization.is_active.is_(True)
    ).order_by(UserOrganization.joined_at).all()

    return [
        MemberOut(
            user_id=m.user_id,
            name=m.user.name,
            email=m.user.email,
            role=m.role,
            joined_at=m.joined_at
        )
        for m in memberships
    ]


def add_member(db: Session, org_id: UUID, member: MemberAdd) -> MemberOut:
    """
    Add an existing user to the organization with a specific role.

    Raises:
        HTTPException: If the user does not exist or already belongs to the organization.
    """
    get_organization(db, org_id)

    user = db.query(User).filter(User.email == member.email.lower()).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Usuario no encontrado")

    existing = db.query(UserOrganization).filter_by(user_id=user.id, org_id=org_id).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="El usuario ya pertenece a esta organización")

    relation = UserOrganization(user_id=user.id, org_id=org_id, role=member.role, is_active=True)
    db.add(relation)
    db.commit()
    db.refresh(relation)

    logger.info(f"User {user.id} added to organization {org_id} as {member.role}")
    return MemberOut(
        user_id=user.id,
        name=user.name,
        email=user.email,
        role=relation.role,
        joined_at=relation.joined_at
    )
