"""
Tests del cálculo de impuestos (GST)

Cubren:
- Totales con impuesto local (CGST + SGST) e interestatal (IGST)
- Redondeo a 2 decimales y consistencia entre componentes
- Errores por código de impuesto o ítems inválidos
- Endpoints públicos de tasas, unidades y previsualización
"""

import pytest
from decimal import Decimal
from types import SimpleNamespace

from app.common.exceptions import InvalidLineItem, InvalidTaxCode
from app.modules.taxes.calculator import compute_totals, compute_line, resolve_tax_rate


def item(price, quantity, tax_code="none"):
    return {"price": price, "quantity": quantity, "tax_code": tax_code}


class TestResolveTaxRate:
    """Resolución del porcentaje a partir del código"""

    def test_none_is_zero(self):
        assert resolve_tax_rate("none") == Decimal("0")

    def test_known_codes(self):
        assert resolve_tax_rate("gst:18") == Decimal("18")
        assert resolve_tax_rate("gst:0.25") == Decimal("0.25")
        assert resolve_tax_rate("gst:0") == Decimal("0")

    @pytest.mark.parametrize("code", ["gst:19", "vat:18", "gst", "gst:-5", "gst:abc", ""])
    def test_unknown_codes(self, code):
        with pytest.raises(InvalidTaxCode):
            resolve_tax_rate(code)


class TestComputeTotals:
    """Totales de documento"""

    def test_single_local_item(self):
        totals = compute_totals([item(100, 2, "gst:18")])
        assert totals.subtotal == Decimal("200.00")
        assert totals.total_tax == Decimal("36.00")
        assert totals.cgst == Decimal("18.00")
        assert totals.sgst == Decimal("18.00")
        assert totals.igst == Decimal("0.00")
        assert totals.grand_total == Decimal("236.00")

    def test_mixed_items(self):
        totals = compute_totals([item(50, 1, "none"), item(25, 4, "gst:5")])
        assert totals.subtotal == Decimal("150.00")
        assert totals.total_tax == Decimal("5.00")
        assert totals.grand_total == Decimal("155.00")

    def test_only_untaxed_items(self):
        totals = compute_totals([item(10, 3), item("2.5", 2)])
        assert totals.subtotal == Decimal("35.00")
        assert totals.total_tax == Decimal("0.00")
        assert totals.cgst == totals.sgst == totals.igst == Decimal("0.00")
        assert totals.grand_total == Decimal("35.00")

    def test_interstate_goes_to_igst(self):
        totals = compute_totals([item(100, 2, "gst:18")], interstate=True)
        assert totals.igst == Decimal("36.00")
        assert totals.cgst == Decimal("0.00")
        assert totals.sgst == Decimal("0.00")
        assert totals.total_tax == Decimal("36.00")
        assert totals.grand_total == Decimal("236.00")

    def test_empty_list(self):
        totals = compute_totals([])
        for value in (totals.subtotal, totals.total_tax, totals.cgst,
                      totals.sgst, totals.igst, totals.grand_total):
            assert value == Decimal("0")

    def test_local_components_always_add_up(self):
        # 3 x 0.33 al 5% = 0.0495 de impuesto
        items = [item("0.33", 3, "gst:5"), item("19.99", 7, "gst:12"), item("1.01", 1, "gst:0.25")]
        totals = compute_totals(items)
        assert totals.cgst + totals.sgst == totals.total_tax
        assert abs(totals.cgst - totals.sgst) <= Decimal("0.01")
        assert totals.subtotal + totals.total_tax == totals.grand_total

    def test_odd_cent_split(self):
        # 1 x 1.00 al 3% = 0.03 de impuesto
        totals = compute_totals([item("1.00", 1, "gst:3")])
        assert totals.total_tax == Decimal("0.03")
        assert totals.cgst == Decimal("0.02")
        assert totals.sgst == Decimal("0.01")
        assert totals.grand_total == Decimal("1.03")

    @pytest.mark.parametrize("items", [
        [item("1.00", 1, "gst:3")],
        [item("0.33", 3, "gst:5")],
        [item("19.99", 7, "gst:12"), item("1.01", 1, "gst:0.25")],
        [item("12.34", 5, "gst:18"), item("7.77", 3, "gst:12"), item("0.5", 1, "gst:1.5")],
    ])
    def test_tax_does_not_depend_on_jurisdiction(self, items):
        local = compute_totals(items)
        interstate = compute_totals(items, interstate=True)
        assert local.total_tax == interstate.total_tax
        assert local.grand_total == interstate.grand_total

    def test_rounding_half_up(self):
        # 1 x 0.5 al 1.5% = 0.0075 de impuesto, se reparte 0.00375 a cada lado
        totals = compute_totals([item("0.5", 1, "gst:1.5")], interstate=True)
        assert totals.igst == Decimal("0.01")

    def test_floats_are_read_as_decimals(self):
        totals = compute_totals([item(0.1, 3, "gst:18")], interstate=True)
        assert totals.subtotal == Decimal("0.30")
        assert totals.igst == Decimal("0.05")

    def test_accepts_objects(self):
        line = SimpleNamespace(price=Decimal("100"), quantity=Decimal("1"), tax_code="gst:28")
        totals = compute_totals([line])
        assert totals.grand_total == Decimal("128.00")

    def test_is_deterministic(self):
        items = [item("12.34", 5, "gst:18"), item("7.77", 3, "gst:12")]
        assert compute_totals(items) == compute_totals(items)

    def test_does_not_modify_input(self):
        items = [item("12.34", 5, "gst:18")]
        snapshot = [dict(i) for i in items]
        compute_totals(items)
        assert items == snapshot

    def test_unknown_tax_code_raises(self):
        with pytest.raises(InvalidTaxCode):
            compute_totals([item(100, 1, "gst:18"), item(10, 1, "gst:99")])

    def test_negative_price_raises(self):
        with pytest.raises(InvalidLineItem):
            compute_totals([item(-1, 1, "gst:18")])

    def test_negative_quantity_raises(self):
        with pytest.raises(InvalidLineItem):
            compute_line(item(10, -2, "none"))


class TestTaxEndpoints:
    """Endpoints públicos de /taxes"""

    def test_list_rates(self, client):
        response = client.get("/taxes/rates")
        assert response.status_code == 200
        codes = [rate["code"] for rate in response.json()]
        assert "none" in codes
        assert "gst:18" in codes

    def test_list_units(self, client):
        response = client.get("/taxes/units")
        assert response.status_code == 200
        assert {"code": "kg", "label": "Kilogram"} in response.json()

    def test_calculate_preview(self, client):
        payload = {
            "items": [
                {"name": "Servicio", "price": "50", "quantity": "1", "tax_code": "none"},
                {"name": "Repuesto", "price": "25", "quantity": "4", "tax_code": "gst:5"},
            ]
        }
        response = client.post("/taxes/calculate", json=payload)
        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["totals"]["grand_total"]) == Decimal("155.00")
        assert Decimal(data["lines"][1]["line_tax"]) == Decimal("5.00")

    def test_calculate_invalid_tax_code(self, client):
        payload = {"items": [{"name": "X", "price": "10", "quantity": "1", "tax_code": "gst:13"}]}
        response = client.post("/taxes/calculate", json=payload)
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_tax_code"
