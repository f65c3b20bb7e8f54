from app.database.database import Base
from sqlalchemy import Column, String, Boolean, Text
from sqlalchemy.dialects.postgresql import UUID
from uuid import uuid4
from app.common.mixins import OrgMixin, TimestampMixin, AuditMixin
import enum


class PartyType(enum.Enum):
    CUSTOMER = "customer"  # Cliente (facturas de venta, cotizaciones)
    VENDOR = "vendor"      # Proveedor (compras, órdenes de compra)


class Party(Base, OrgMixin, TimestampMixin, AuditMixin):
    __tablename__ = "parties"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(200), nullable=False, index=True)
    type = Column(String(20), nullable=False, default=PartyType.CUSTOMER.value, index=True)
    email = Column(String(100), nullable=True, index=True)
    phone = Column(String(20), nullable=True)

    # Identificación fiscal
    gst_no = Column(String(15), nullable=True, index=True)
    pan_no = Column(String(10), nullable=True)
    state = Column(String(100), nullable=True)

    billing_address = Column(Text, nullable=True)
    shipping_address = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
