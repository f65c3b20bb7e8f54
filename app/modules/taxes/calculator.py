"""
Cálculo de totales e impuestos (GST) de documentos de facturación.

El cálculo es puro: no consulta la base de datos ni guarda estado.
Se acumula con precisión completa en Decimal y solo se redondea
(ROUND_HALF_UP a 2 decimales) al presentar los totales del documento.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, List

from app.common.exceptions import InvalidLineItem, InvalidTaxCode
from app.modules.taxes.constants import TAX_RATES, NO_TAX
from app.modules.taxes.schemas import TaxBreakdown

ZERO = Decimal("0")
TWO_PLACES = Decimal("0.01")
HUNDRED = Decimal("100")


def to_decimal(value: Any) -> Decimal:
    """Convertir a Decimal sin pasar por la representación binaria de float"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_money(value: Decimal) -> Decimal:
    """Redondeo comercial a 2 decimales"""
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def resolve_tax_rate(tax_code: str) -> Decimal:
    """
    Porcentaje de un código de impuesto.

    Raises:
        InvalidTaxCode: si el código no está en la tabla o su sufijo no es
            un número no negativo.
    """
    if tax_code == NO_TAX:
        return ZERO
    if tax_code not in TAX_RATES:
        raise InvalidTaxCode(tax_code)

    _, separator, suffix = tax_code.partition(":")
    if not separator:
        raise InvalidTaxCode(tax_code)
    try:
        rate = Decimal(suffix)
    except InvalidOperation:
        raise InvalidTaxCode(tax_code)
    if not rate.is_finite() or rate < 0:
        raise InvalidTaxCode(tax_code)
    return rate


@dataclass(frozen=True)
class LineAmounts:
    """Importes de una línea sin redondear"""
    base: Decimal
    tax: Decimal
    rate: Decimal

    @property
    def total(self) -> Decimal:
        return self.base + self.tax


def _field(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item[name]
    return getattr(item, name)


def compute_line(item: Any) -> LineAmounts:
    """
    Calcular base e impuesto de una línea.

    La línea puede ser un dict o cualquier objeto con atributos
    ``price``, ``quantity`` y ``tax_code``.
    """
    price = to_decimal(_field(item, "price"))
    quantity = to_decimal(_field(item, "quantity"))
    if price < 0 or quantity < 0:
        raise InvalidLineItem(f"Precio y cantidad no pueden ser negativos (precio={price}, cantidad={quantity})")

    rate = resolve_tax_rate(_field(item, "tax_code"))
    base = price * quantity
    return LineAmounts(base=base, tax=base * rate / HUNDRED, rate=rate)


def compute_totals(items: Iterable[Any], interstate: bool = False) -> TaxBreakdown:
    """
    Calcular subtotal, impuestos y total de un documento.

    Con ``interstate`` todo el impuesto va a IGST; si no, se reparte en
    partes iguales entre CGST y SGST. El impuesto total es el mismo en
    ambos casos; con un centavo impar, SGST se queda con la diferencia.

    Una lista vacía produce todos los totales en cero.
    """
    subtotal = ZERO
    tax = ZERO
    for item in items:
        line = compute_line(item)
        subtotal += line.base
        tax += line.tax

    if interstate:
        igst = round_money(tax)
        cgst = sgst = round_money(ZERO)
        total_tax = igst
    else:
        igst = round_money(ZERO)
        total_tax = round_money(tax)
        cgst = round_money(tax / 2)
        sgst = total_tax - cgst

    subtotal = round_money(subtotal)
    return TaxBreakdown(
        subtotal=subtotal,
        total_tax=total_tax,
        cgst=cgst,
        sgst=sgst,
        igst=igst,
        grand_total=subtotal + total_tax,
    )


def compute_lines(items: Iterable[Any]) -> List[LineAmounts]:
    """Importes por línea, en el mismo orden de entrada"""
    return [compute_line(item) for item in items]
