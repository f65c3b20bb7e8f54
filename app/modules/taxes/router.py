from fastapi import APIRouter
from typing import List

from app.modules.taxes.calculator import compute_line, compute_totals, round_money
from app.modules.taxes.constants import TAX_RATES, UNITS_OF_MEASURE
from app.modules.taxes.schemas import (
    TaxRateOut, UnitOfMeasureOut, CalculationRequest, CalculationResponse, LineCalculation
)

taxes_router = APIRouter(prefix="/taxes", tags=["Taxes"])


@taxes_router.get("/rates", response_model=List[TaxRateOut])
def list_tax_rates():
    """
    Listar las tasas de GST disponibles para los ítems.

    El código (ej. 'gst:18') es el que se envía en ``tax_code`` de cada línea.
    """
    return [
        TaxRateOut(code=code, label=entry["label"], rate_percent=entry["rate_percent"])
        for code, entry in TAX_RATES.items()
    ]


@taxes_router.get("/units", response_model=List[UnitOfMeasureOut])
def list_units():
    """Listar unidades de medida"""
    return [UnitOfMeasureOut(code=code, label=label) for code, label in UNITS_OF_MEASURE.items()]


@taxes_router.post("/calculate", response_model=CalculationResponse)
def calculate(request: CalculationRequest):
    """
    Previsualizar los totales de un documento sin guardarlo.

    Usa el mismo cálculo que la creación de facturas, compras,
    órdenes de compra y cotizaciones.
    """
    lines = []
    for item in request.items:
        amounts = compute_line(item)
        lines.append(LineCalculation(
            name=item.name,
            tax_code=item.tax_code,
            line_subtotal=round_money(amounts.base),
            line_tax=round_money(amounts.tax),
            line_total=round_money(amounts.total),
        ))

    return CalculationResponse(
        lines=lines,
        totals=compute_totals(request.items, interstate=request.interstate),
    )
