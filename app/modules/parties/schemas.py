from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime
from enum import Enum

from app.common.validators import (
    validate_india_gstin, validate_india_pan, validate_india_phone,
    format_india_phone, format_tax_id
)


class PartyType(str, Enum):
    CUSTOMER = "customer"
    VENDOR = "vendor"


class PartyBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    type: PartyType = PartyType.CUSTOMER
    email: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    gst_no: Optional[str] = Field(None, max_length=15, description="GSTIN de 15 caracteres")
    pan_no: Optional[str] = Field(None, max_length=10)
    state: Optional[str] = Field(None, max_length=100)
    billing_address: Optional[str] = None
    shipping_address: Optional[str] = None
    notes: Optional[str] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError('El nombre no puede estar vacío')
        return v.strip() if v else v

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

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        if v is None or v.strip() == "":
            return None
        if not validate_india_phone(v):
            raise ValueError('Número de teléfono inválido')
        return format_india_phone(v)


class PartyCreate(PartyBase):
    pass


class PartyUpdate(PartyBase):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    type: Optional[PartyType] = None
    is_active: Optional[bool] = None


class PartyOut(BaseModel):
    id: UUID
    name: str
    type: str
    email: Optional[str] = None
    phone: Optional[str] = None
    gst_no: Optional[str] = None
    pan_no: Optional[str] = None
    state: Optional[str] = None
    billing_address: Optional[str] = None
    shipping_address: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PartyList(BaseModel):
    items: List[PartyOut]
    total: int
    limit: int
    offset: int


class PartySummary(BaseModel):
    """Datos mínimos de la party embebidos en documentos"""
    id: UUID
    name: str
    type: str
    gst_no: Optional[str] = None
    state: Optional[str] = None

    class Config:
        from_attributes = True
