from app.database.database import Base
from sqlalchemy import Column, String, Date, ForeignKey, Numeric
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
from uuid import uuid4
from app.common.mixins import OrgMixin, TimestampMixin


class Transaction(Base, OrgMixin, TimestampMixin):
    """
    Registro contable derivado de un documento de facturación.

    Existe exactamente una fila por documento y se escribe en la misma
    transacción de base de datos que su documento de origen.
    """
    __tablename__ = "transactions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    doc_model = Column(String(20), nullable=False, index=True)  # invoice, purchase, purchase_order, quote
    doc_id = Column(UUID(as_uuid=True), ForeignKey("billing_documents.id"), nullable=False, unique=True)
    party_id = Column(UUID(as_uuid=True), ForeignKey("parties.id"), nullable=False, index=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)

    fy_start = Column(Date, nullable=False)
    fy_end = Column(Date, nullable=False)
    num = Column(String(50), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)

    total = Column(Numeric(15, 2), nullable=False, default=0)  # Subtotal antes de impuestos
    total_tax = Column(Numeric(15, 2), nullable=False, default=0)

    party = relationship("Party")
    document = relationship("BillingDocument")
