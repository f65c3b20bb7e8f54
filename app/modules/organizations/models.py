from app.database.database import Base
from sqlalchemy import Column, String, Boolean, Date, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
from app.common.mixins import TimestampMixin
import uuid


class Organization(Base, TimestampMixin):
    __tablename__ = "organizations"

    id = Column(UUID(as_uuid=True), primary_key=True, index=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False, index=True)
    address = Column(String, nullable=True)
    state = Column(String(100), nullable=True)
    phone_number = Column(String(20), nullable=True)
    email = Column(String(100), nullable=True)
    gst_no = Column(String(15), nullable=True)
    pan_no = Column(String(10), nullable=True)
    bank = Column(JSON, nullable=True)  # {name, account_no, ifsc, branch, upi}
    is_active = Column(Boolean, default=True)

    members = relationship("UserOrganization", back_populates="organization")
    settings = relationship("OrganizationSettings", back_populates="organization", uselist=False, cascade="all, delete-orphan")


class OrganizationSettings(Base, TimestampMixin):
    __tablename__ = "organization_settings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, unique=True)

    # La numeración de documentos se reinicia en cada año fiscal
    financial_year_start = Column(Date, nullable=False)
    financial_year_end = Column(Date, nullable=False)

    invoice_prefix = Column(String(20), nullable=False, default="INV-")
    purchase_prefix = Column(String(20), nullable=False, default="PUR-")
    purchase_order_prefix = Column(String(20), nullable=False, default="PO-")
    quote_prefix = Column(String(20), nullable=False, default="QT-")

    currency = Column(String(3), nullable=False, default="INR")
    print_bank_details = Column(Boolean, default=True)
    print_upi_qr = Column(Boolean, default=False)

    organization = relationship("Organization", back_populates="settings")
