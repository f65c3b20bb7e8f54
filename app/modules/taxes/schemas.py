from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from typing import Optional, List

from app.modules.taxes.constants import UNITS_OF_MEASURE, NO_TAX, NO_UNIT


class TaxRateOut(BaseModel):
    code: str
    label: str
    rate_percent: Decimal


class UnitOfMeasureOut(BaseModel):
    code: str
    label: str


class LineItemIn(BaseModel):
    """Ítem de un documento tal como llega del cliente"""
    name: str = Field(..., min_length=1, max_length=200)
    price: Decimal = Field(..., ge=0, decimal_places=2, description="Precio unitario sin impuestos")
    quantity: Decimal = Field(..., ge=0, decimal_places=3, description="Cantidad")
    tax_code: str = Field(NO_TAX, description="Código de impuesto, ej. 'gst:18'")
    unit: str = Field(NO_UNIT, description="Código de unidad de medida")
    code: Optional[str] = Field(None, max_length=50, description="SKU o código HSN")

    @field_validator('unit')
    @classmethod
    def validate_unit(cls, v):
        if v not in UNITS_OF_MEASURE:
            raise ValueError(f'Unidad de medida desconocida: {v}')
        return v


class TaxBreakdown(BaseModel):
    """
    Totales de un documento, redondeados a 2 decimales.

    cgst/sgst son los dos componentes locales; igst el componente interestatal.
    """
    subtotal: Decimal
    total_tax: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    grand_total: Decimal

    model_config = {"frozen": True}


class CalculationRequest(BaseModel):
    items: List[LineItemIn] = Field(default_factory=list)
    interstate: bool = False


class LineCalculation(BaseModel):
    name: str
    tax_code: str
    line_subtotal: Decimal
    line_tax: Decimal
    line_total: Decimal


class CalculationResponse(BaseModel):
    lines: List[LineCalculation]
    totals: TaxBreakdown
