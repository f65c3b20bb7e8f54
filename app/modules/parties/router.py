from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.schemas import AuthContext, ALL_ROLES, WRITE_ROLES
from app.modules.parties.service import PartyService
from app.modules.parties.schemas import PartyCreate, PartyUpdate, PartyOut, PartyList, PartyType

parties_router = APIRouter(prefix="/parties", tags=["Parties"])


@parties_router.post("/", response_model=PartyOut, status_code=status.HTTP_201_CREATED)
def create_party(
    party_data: PartyCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(WRITE_ROLES))
):
    """
    Crear un cliente o proveedor

    - **type**: customer o vendor
    - **gst_no**: GSTIN de 15 caracteres, se valida el dígito de control
    """
    return PartyService(db).create_party(party_data, auth_context.org_id, auth_context.user_id)


@parties_router.get("/", response_model=PartyList)
def list_parties(
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    search: Optional[str] = Query(None, description="Buscar por nombre, email o GSTIN"),
    type: Optional[PartyType] = Query(None, description="customer o vendor"),
    is_active: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(ALL_ROLES))
):
    return PartyService(db).list_parties(auth_context.org_id, limit, offset, search, type, is_active)


@parties_router.get("/{party_id}", response_model=PartyOut)
def get_party(
    party_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(ALL_ROLES))
):
    return PartyService(db).get_party(party_id, auth_context.org_id)


@parties_router.patch("/{party_id}", response_model=PartyOut)
def update_party(
    party_id: UUID,
    party_update: PartyUpdate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(WRITE_ROLES))
):
    return PartyService(db).update_party(party_id, party_update, auth_context.org_id, auth_context.user_id)


@parties_router.delete("/{party_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_party(
    party_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(["owner", "admin"]))
):
    """
    Eliminar un cliente o proveedor

    Falla con 409 si tiene facturas, compras u otros documentos asociados.
    """
    PartyService(db).delete_party(party_id, auth_context.org_id)
