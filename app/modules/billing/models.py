from app.database.database import Base
from sqlalchemy import (
    Column, Integer, String, Boolean, Date, ForeignKey, Numeric, Text, JSON,
    UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
from datetime import date
from uuid import uuid4
from app.common.mixins import OrgMixin, TimestampMixin, AuditMixin
import enum


class DocumentKind(str, enum.Enum):
    INVOICE = "invoice"
    PURCHASE = "purchase"
    PURCHASE_ORDER = "purchase_order"
    QUOTE = "quote"


DOCUMENT_STATUSES = {
    DocumentKind.INVOICE: ["draft", "sent", "paid", "unpaid"],
    DocumentKind.PURCHASE: ["paid", "unpaid"],
    DocumentKind.PURCHASE_ORDER: ["draft", "sent", "approved", "closed"],
    DocumentKind.QUOTE: ["draft", "sent", "accepted", "declined"],
}

DEFAULT_STATUS = {
    DocumentKind.INVOICE: "draft",
    DocumentKind.PURCHASE: "unpaid",
    DocumentKind.PURCHASE_ORDER: "draft",
    DocumentKind.QUOTE: "draft",
}

# Campo de OrganizationSettings con el prefijo de numeración de cada tipo
PREFIX_FIELDS = {
    DocumentKind.INVOICE: "invoice_prefix",
    DocumentKind.PURCHASE: "purchase_prefix",
    DocumentKind.PURCHASE_ORDER: "purchase_order_prefix",
    DocumentKind.QUOTE: "quote_prefix",
}

DOCUMENT_TITLES = {
    DocumentKind.INVOICE: "Invoice",
    DocumentKind.PURCHASE: "Purchase",
    DocumentKind.PURCHASE_ORDER: "Purchase Order",
    DocumentKind.QUOTE: "Quotation",
}

PAYABLE_KINDS = {DocumentKind.INVOICE, DocumentKind.PURCHASE}
SENDABLE_KINDS = {DocumentKind.INVOICE, DocumentKind.PURCHASE_ORDER, DocumentKind.QUOTE}


class BillingDocument(Base, OrgMixin, TimestampMixin, AuditMixin):
    __tablename__ = "billing_documents"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    kind = Column(String(20), nullable=False, index=True)

    # Numeración: única por organización, tipo y año fiscal
    sequence = Column(Integer, nullable=False)
    fy_start = Column(Date, nullable=False)
    fy_end = Column(Date, nullable=False)
    prefix = Column(String(20), nullable=False, default="")
    num = Column(String(50), nullable=False, index=True)  # prefix + sequence

    party_id = Column(UUID(as_uuid=True), ForeignKey("parties.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, default=date.today)
    due_date = Column(Date, nullable=True)
    status = Column(String(20), nullable=False)
    interstate = Column(Boolean, nullable=False, default=False)
    description = Column(Text, nullable=True)

    # Totales calculados
    subtotal = Column(Numeric(15, 2), nullable=False, default=0)
    total_tax = Column(Numeric(15, 2), nullable=False, default=0)
    cgst = Column(Numeric(15, 2), nullable=False, default=0)
    sgst = Column(Numeric(15, 2), nullable=False, default=0)
    igst = Column(Numeric(15, 2), nullable=False, default=0)
    grand_total = Column(Numeric(15, 2), nullable=False, default=0)

    # Facturas y compras: {amount, mode, description, date}
    payment = Column(JSON, nullable=True)

    # Cotizaciones: factura generada a partir de la cotización
    converted_id = Column(UUID(as_uuid=True), ForeignKey("billing_documents.id"), nullable=True)

    # Compras: orden de compra del proveedor
    po_no = Column(String(50), nullable=True)
    po_date = Column(Date, nullable=True)

    party = relationship("Party")
    items = relationship(
        "DocumentLineItem",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="DocumentLineItem.position"
    )

    __table_args__ = (
        UniqueConstraint("org_id", "kind", "fy_start", "fy_end", "sequence", name="uq_billing_document_sequence"),
        CheckConstraint("sequence >= 1", name="ck_billing_document_sequence_positive"),
    )


class DocumentLineItem(Base):
    __tablename__ = "document_line_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    document_id = Column(UUID(as_uuid=True), ForeignKey("billing_documents.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)

    name = Column(String(200), nullable=False)
    code = Column(String(50), nullable=True)  # SKU o HSN
    price = Column(Numeric(15, 2), nullable=False)
    quantity = Column(Numeric(15, 3), nullable=False)
    tax_code = Column(String(20), nullable=False, default="none")
    unit = Column(String(10), nullable=False, default="none")

    line_subtotal = Column(Numeric(15, 2), nullable=False)
    line_tax = Column(Numeric(15, 2), nullable=False)
    line_total = Column(Numeric(15, 2), nullable=False)

    document = relationship("BillingDocument", back_populates="items")
