from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import datetime
from enum import Enum

from app.modules.taxes.constants import TAX_RATES, UNITS_OF_MEASURE, NO_TAX, NO_UNIT


class ProductType(str, Enum):
    GOODS = "goods"
    SERVICE = "service"


def _check_tax_code(v):
    if v is not None and v not in TAX_RATES:
        raise ValueError(f'Código de impuesto desconocido: {v}')
    return v


def _check_unit(v):
    if v is not None and v not in UNITS_OF_MEASURE:
        raise ValueError(f'Unidad de medida desconocida: {v}')
    return v


# ===== Categorías =====

class ProductCategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class ProductCategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None


class ProductCategoryOut(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ProductCategoryList(BaseModel):
    items: List[ProductCategoryOut]
    total: int
    limit: int
    offset: int


# ===== Productos =====

class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    code: Optional[str] = Field(None, max_length=50, description="SKU o código HSN/SAC")
    type: ProductType = ProductType.GOODS
    description: Optional[str] = None
    unit: str = NO_UNIT
    tax_code: str = NO_TAX
    cost_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    selling_price: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    category_id: Optional[UUID] = None

    @field_validator('tax_code')
    @classmethod
    def validate_tax_code(cls, v):
        return _check_tax_code(v)

    @field_validator('unit')
    @classmethod
    def validate_unit(cls, v):
        return _check_unit(v)


class ProductCreate(ProductBase):
    pass


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    code: Optional[str] = Field(None, max_length=50)
    type: Optional[ProductType] = None
    description: Optional[str] = None
    unit: Optional[str] = None
    tax_code: Optional[str] = None
    cost_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    selling_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    category_id: Optional[UUID] = None

    @field_validator('tax_code')
    @classmethod
    def validate_tax_code(cls, v):
        return _check_tax_code(v)

    @field_validator('unit')
    @classmethod
    def validate_unit(cls, v):
        return _check_unit(v)


class ProductOut(BaseModel):
    id: UUID
    name: str
    code: Optional[str] = None
    type: str
    description: Optional[str] = None
    unit: str
    tax_code: str
    cost_price: Optional[Decimal] = None
    selling_price: Decimal
    category_id: Optional[UUID] = None
    category: Optional[ProductCategoryOut] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProductList(BaseModel):
    items: List[ProductOut]
    total: int
    limit: int
    offset: int


class ProductBulkCreate(BaseModel):
    products: List[ProductCreate] = Field(..., min_length=1, max_length=500)


class ProductBulkResult(BaseModel):
    message: str
    products_created: int
