from pydantic import BaseModel, Field, EmailStr, field_validator, model_validator
from decimal import Decimal
from typing import Optional, List, Dict, Any
from uuid import UUID
import datetime as dt
from enum import Enum

from app.modules.taxes.schemas import LineItemIn, TaxBreakdown
from app.modules.parties.schemas import PartySummary


class PaymentMode(str, Enum):
    CASH = "cash"
    BANK = "bank"
    UPI = "upi"
    CARD = "card"
    CHEQUE = "cheque"
    OTHER = "other"


class DocumentBase(BaseModel):
    party_id: UUID
    date: dt.date = Field(default_factory=dt.date.today)
    due_date: Optional[dt.date] = None
    interstate: bool = Field(False, description="Todo el impuesto va a IGST")
    description: Optional[str] = None
    po_no: Optional[str] = Field(None, max_length=50)
    po_date: Optional[dt.date] = None

    @model_validator(mode='after')
    def validate_due_date(self):
        if self.due_date and self.date and self.due_date < self.date:
            raise ValueError('La fecha de vencimiento no puede ser anterior a la fecha del documento')
        return self


class DocumentCreate(DocumentBase):
    sequence: Optional[int] = Field(None, ge=1, description="Si se omite se asigna el siguiente número")
    status: Optional[str] = None
    items: List[LineItemIn] = Field(..., min_length=1, description="Debe incluir al menos un ítem")


class DocumentUpdate(BaseModel):
    party_id: Optional[UUID] = None
    sequence: Optional[int] = Field(None, ge=1)
    date: Optional[dt.date] = None
    due_date: Optional[dt.date] = None
    status: Optional[str] = None
    interstate: Optional[bool] = None
    description: Optional[str] = None
    po_no: Optional[str] = Field(None, max_length=50)
    po_date: Optional[dt.date] = None
    items: Optional[List[LineItemIn]] = Field(None, min_length=1)


class LineItemOut(BaseModel):
    id: UUID
    position: int
    name: str
    code: Optional[str] = None
    price: Decimal
    quantity: Decimal
    tax_code: str
    unit: str
    line_subtotal: Decimal
    line_tax: Decimal
    line_total: Decimal

    class Config:
        from_attributes = True


class PaymentIn(BaseModel):
    amount: Decimal = Field(..., ge=0, decimal_places=2)
    mode: PaymentMode = PaymentMode.CASH
    description: Optional[str] = Field(None, max_length=500)
    date: dt.date = Field(default_factory=dt.date.today)


class PaymentOut(BaseModel):
    amount: Decimal
    mode: str
    description: Optional[str] = None
    date: dt.date


class DocumentOut(BaseModel):
    id: UUID
    kind: str
    sequence: int
    prefix: str
    num: str
    fy_start: dt.date
    fy_end: dt.date
    party_id: UUID
    party: Optional[PartySummary] = None
    date: dt.date
    due_date: Optional[dt.date] = None
    status: str
    interstate: bool
    description: Optional[str] = None
    subtotal: Decimal
    total_tax: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    grand_total: Decimal
    payment: Optional[PaymentOut] = None
    converted_id: Optional[UUID] = None
    po_no: Optional[str] = None
    po_date: Optional[dt.date] = None
    items: List[LineItemOut] = []
    created_by: Optional[UUID] = None
    updated_by: Optional[UUID] = None
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True


class DocumentList(BaseModel):
    items: List[DocumentOut]
    total: int
    limit: int
    offset: int


class DocumentFilters(BaseModel):
    search: Optional[str] = None
    status: Optional[str] = None
    party_id: Optional[UUID] = None
    date_from: Optional[dt.date] = None
    date_to: Optional[dt.date] = None


class NextNumberOut(BaseModel):
    sequence: int
    prefix: str
    num: str


class SendDocumentRequest(BaseModel):
    to_emails: List[EmailStr] = Field(..., min_length=1, max_length=5)
    cc_emails: Optional[List[EmailStr]] = Field(None, max_length=5)
    subject: Optional[str] = Field(None, max_length=200)
    message: Optional[str] = Field(None, max_length=2000)

    @field_validator('to_emails')
    @classmethod
    def unique_recipients(cls, v):
        seen = []
        for email in v:
            if email.lower() not in seen:
                seen.append(email.lower())
        return seen


class SendDocumentResponse(BaseModel):
    message: str
    num: str
    recipients: List[str]


# ===== Datos de impresión =====

class PrintLine(BaseModel):
    name: str
    code: Optional[str] = None
    quantity: Decimal
    unit: str
    unit_label: str
    price: Decimal
    tax_code: str
    tax_label: str
    line_total: Decimal


class PrintOrganization(BaseModel):
    name: str
    address: Optional[str] = None
    state: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    gst_no: Optional[str] = None
    pan_no: Optional[str] = None


class PrintParty(BaseModel):
    name: str
    email: Optional[str] = None
    gst_no: Optional[str] = None
    state: Optional[str] = None
    billing_address: Optional[str] = None
    shipping_address: Optional[str] = None


class PrintDocument(BaseModel):
    kind: str
    title: str
    num: str
    date: dt.date
    due_date: Optional[dt.date] = None
    status: str
    interstate: bool
    description: Optional[str] = None
    po_no: Optional[str] = None
    po_date: Optional[dt.date] = None


class PrintData(BaseModel):
    """Contexto para renderizar un documento (HTML, PDF o correo)"""
    document: PrintDocument
    organization: PrintOrganization
    party: PrintParty
    lines: List[PrintLine]
    totals: TaxBreakdown
    currency: str
    currency_symbol: str
    bank: Optional[Dict[str, Any]] = None
    upi_url: Optional[str] = None
