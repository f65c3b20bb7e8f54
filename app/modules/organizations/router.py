from fastapi import APIRouter, HTTPException, status, Depends
from uuid import UUID

from app.dependencies.dbDependencies import db_dependency
from app.modules.auth.dependencies import get_current_user
from app.modules.auth.models import User
from app.modules.organizations import service
from app.modules.organizations.schemas import (
    OrganizationCreate, OrganizationUpdate, OrganizationOut, OrganizationWithRole,
    OrganizationCreateResponse, OrganizationSettingsOut, OrganizationSettingsUpdate,
    MemberAdd, MemberOut
)

organizations_router = APIRouter()


def _require_member(db, org_id: UUID, user: User, roles: list[str] | None = None):
    membership = service.get_membership(db, org_id, user.id)
    if membership is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No tienes acceso a esta organización")
    if roles is not None and membership.role not in roles:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Se requiere uno de estos roles: {', '.join(roles)}"
        )
    return membership


@organizations_router.post("/", response_model=OrganizationCreateResponse, status_code=status.HTTP_201_CREATED)
def create_organization(org: OrganizationCreate, db: db_dependency, current_user: User = Depends(get_current_user)):
    """
    Create an organization. The creator becomes its owner.
    """
    return service.create_organization(db, org, current_user)


@organizations_router.get("/mine", response_model=list[OrganizationWithRole])
def get_my_organizations(db: db_dependency, current_user: User = Depends(get_current_user)):
    """
    Get all organizations for the current user.
    """
    return service.get_organizations_for_user(db, current_user.id)


@organizations_router.get("/{org_id}", response_model=OrganizationOut)
def get_organization(org_id: UUID, db: db_dependency, current_user: User = Depends(get_current_user)):
    _require_member(db, org_id, current_user)
    return service.get_organization(db, org_id)


@organizations_router.patch("/{org_id}", response_model=OrganizationOut)
def update_organization(org_id: UUID, org_update: OrganizationUpdate, db: db_dependency,
                        current_user: User = Depends(get_current_user)):
    _require_member(db, org_id, current_user, ["owner", "admin"])
    return service.update_organization(db, org_id, org_update)


@organizations_router.get("/{org_id}/settings", response_model=OrganizationSettingsOut)
def get_settings(org_id: UUID, db: db_dependency, current_user: User = Depends(get_current_user)):
    _require_member(db, org_id, current_user)
    return service.get_settings(db, org_id)


@organizations_router.patch("/{org_id}/settings", response_model=OrganizationSettingsOut)
def update_settings(org_id: UUID, settings_update: OrganizationSettingsUpdate, db: db_dependency,
                    current_user: User = Depends(get_current_user)):
    """
    Update financial year, numbering prefixes, currency and print options.
    Changing the financial year restarts document numbering.
    """
    _require_member(db, org_id, current_user, ["owner", "admin"])
    return service.update_settings(db, org_id, settings_update)


@organizations_router.get("/{org_id}/members", response_model=list[MemberOut])
def list_members(org_id: UUID, db: db_dependency, current_user: User = Depends(get_current_user)):
    _require_member(db, org_id, current_user)
    return service.list_members(db, org_id)


@organizations_router.post("/{org_id}/members", response_model=MemberOut, status_code=status.HTTP_201_CREATED)
def add_member(org_id: UUID, member: MemberAdd, db: db_dependency, current_user: User = Depends(get_current_user)):
    _require_member(db, org_id, current_user, ["owner", "admin"])
    return service.add_member(db, org_id, member)
