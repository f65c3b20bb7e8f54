from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime

from app.common.validators import validate_india_gstin, validate_india_pan, format_tax_id
from app.modules.organizations.constants import CURRENCIES


class FinancialYear(BaseModel):
    """Ventana {start, end} del año fiscal configurado por organización"""
    start: date
    end: date

    model_config = {"frozen": True}

    @model_validator(mode='after')
    def validate_window(self):
        if self.end <= self.start:
            raise ValueError('El fin del año fiscal debe ser posterior al inicio')
        return self


def default_financial_year(today: Optional[date] = None) -> FinancialYear:
    """Año fiscal indio (1 de abril a 31 de marzo) que contiene la fecha dada."""
    today = today or date.today()
    start_year = today.year if today.month >= 4 else today.year - 1
    return FinancialYear(start=date(start_year, 4, 1), end=date(start_year + 1, 3, 31))


class BankDetails(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    account_no: Optional[str] = Field(None, max_length=30)
    ifsc: Optional[str] = Field(None, max_length=11)
    branch: Optional[str] = Field(None, max_length=100)
    upi: Optional[str] = Field(None, max_length=100)


class OrganizationBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    address: Optional[str] = None
    state: Optional[str] = Field(None, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=20)
    email: Optional[str] = Field(None, max_length=100)
    gst_no: Optional[str] = Field(None, max_length=15)
    pan_no: Optional[str] = Field(None, max_length=10)
    bank: Optional[BankDetails] = None

    @field_validator('gst_no')
    @classmethod
    def validate_gst_no(cls, v):
        if v is None or v.strip() == "":
            return None
        if not validate_india_gstin(v):
            raise ValueError('GSTIN inválido')
        return format_tax_id(v)

    @field_validator('pan_no')
    @classmethod
    def validate_pan_no(cls, v):
        if v is None or v.strip() == "":
            return None
        if not validate_india_pan(v):
            raise ValueError('PAN inválido')
        return format_tax_id(v)


class OrganizationCreate(OrganizationBase):
    pass


class OrganizationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    address: Optional[str] = None
    state: Optional[str] = Field(None, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=20)
    email: Optional[str] = Field(None, max_length=100)
    bank: Optional[BankDetails] = None


class OrganizationOut(OrganizationBase):
    id: UUID
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class OrganizationWithRole(OrganizationOut):
    role: str


class OrganizationSettingsOut(BaseModel):
    financial_year_start: date
    financial_year_end: date
    invoice_prefix: str
    purchase_prefix: str
    purchase_order_prefix: str
    quote_prefix: str
    currency: str
    print_bank_details: bool
    print_upi_qr: bool

    class Config:
        from_attributes = True


class OrganizationSettingsUpdate(BaseModel):
    financial_year_start: Optional[date] = None
    financial_year_end: Optional[date] = None
    invoice_prefix: Optional[str] = Field(None, max_length=20)
    purchase_prefix: Optional[str] = Field(None, max_length=20)
    purchase_order_prefix: Optional[str] = Field(None, max_length=20)
    quote_prefix: Optional[str] = Field(None, max_length=20)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    print_bank_details: Optional[bool] = None
    print_upi_qr: Optional[bool] = None

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v):
        if v is not None and v.upper() not in CURRENCIES:
            raise ValueError(f"Moneda no soportada. Use una de: {', '.join(CURRENCIES)}")
        return v.upper() if v else v

    @model_validator(mode='after')
    def validate_financial_year(self):
        if self.financial_year_start and self.financial_year_end and self.financial_year_end <= self.financial_year_start:
            raise ValueError('El fin del año fiscal debe ser posterior al inicio')
        return self


class MemberAdd(BaseModel):
    email: str
    role: str = Field("viewer", pattern="^(admin|accountant|viewer)$")


class MemberOut(BaseModel):
    user_id: UUID
    name: str
    email: str
    role: str
    joined_at: datetime


class OrganizationCreateResponse(OrganizationOut):
    settings: OrganizationSettingsOut
