"""
Servicios de negocio para clientes y proveedores

Todas las consultas están filtradas por org_id.
"""

from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy import or_
from typing import Optional
from uuid import UUID
import logging

from app.common.exceptions import PartyNotFound, PartyInUse
from app.modules.parties.models import Party
from app.modules.parties.schemas import PartyCreate, PartyUpdate, PartyList, PartyType

logger = logging.getLogger(__name__)


class PartyService:
    """Servicio para gestión de clientes y proveedores"""

    def __init__(self, db: Session):
        self.db = db

    def create_party(self, party_data: PartyCreate, org_id: UUID, user_id: UUID) -> Party:
        """Crear un nuevo cliente o proveedor"""
        party = Party(
            **party_data.model_dump(exclude={"type"}),
            type=party_data.type.value,
            org_id=org_id,
            created_by=user_id,
            updated_by=user_id
        )
        try:
            self.db.add(party)
            self.db.commit()
            self.db.refresh(party)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creating party for org {org_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error creando cliente/proveedor: {str(e)}"
            )

        logger.info(f"Party created {party.id} ({party.type}) in org {org_id}")
        return party

    def list_parties(
        self,
        org_id: UUID,
        limit: int = 100,
        offset: int = 0,
        search: Optional[str] = None,
        party_type: Optional[PartyType] = None,
        is_active: Optional[bool] = None
    ) -> PartyList:
        """Listar parties con búsqueda por nombre, email o GSTIN"""
        query = self.db.query(Party).filter(Party.org_id == org_id)

        if search:
            search_term = f"%{search}%"
            query = query.filter(
                or_(
                    Party.name.ilike(search_term),
                    Party.email.ilike(search_term),
                    Party.gst_no.ilike(search_term)
                )
            )
        if party_type:
            query = query.filter(Party.type == party_type.value)
        if is_active is not None:
            query = query.filter(Party.is_active == is_active)

        total = query.count()
        parties = query.order_by(Party.name).offset(offset).limit(limit).all()

        return PartyList(items=parties, total=total, limit=limit, offset=offset)

    def get_party(self, party_id: UUID, org_id: UUID) -> Party:
        party = self.db.query(Party).filter(
            Party.id == party_id,
            Party.org_id == org_id
        ).first()
        if not party:
            raise PartyNotFound()
        return party

    def update_party(self, party_id: UUID, party_update: PartyUpdate, org_id: UUID, user_id: UUID) -> Party:
        """Actualizar cliente o proveedor"""
        party = self.get_party(party_id, org_id)

        update_data = party_update.model_dump(exclude_unset=True)
        if update_data.get("type") is not None:
            update_data["type"] = party_update.type.value
        for field, value in update_data.items():
            setattr(party, field, value)
        party.updated_by = user_id

        self.db.commit()
        self.db.refresh(party)

        logger.info(f"Party updated {party.id} in org {org_id}")
        return party

    def delete_party(self, party_id: UUID, org_id: UUID) -> None:
        """
        Eliminar cliente o proveedor.

        No se permite si tiene documentos de facturación asociados.
        """
        from app.modules.billing.models import BillingDocument

        party = self.get_party(party_id, org_id)

        in_use = self.db.query(BillingDocument.id).filter(
            BillingDocument.org_id == org_id,
            BillingDocument.party_id == party.id
        ).first()
        if in_use:
            raise PartyInUse()

        self.db.delete(party)
        self.db.commit()
        logger.info(f"Party deleted {party_id} in org {org_id}")
