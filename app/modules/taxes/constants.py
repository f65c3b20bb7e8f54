"""
Tablas estáticas de tasas de GST y unidades de medida.

Los códigos de impuesto tienen la forma ``"<etiqueta>:<porcentaje>"``;
``"none"`` es el centinela de 0%.
"""

NO_TAX = "none"

TAX_RATES = {
    NO_TAX: {"label": "None", "rate_percent": "0"},
    "gst:0": {"label": "GST 0%", "rate_percent": "0"},
    "gst:0.1": {"label": "GST 0.1%", "rate_percent": "0.1"},
    "gst:0.25": {"label": "GST 0.25%", "rate_percent": "0.25"},
    "gst:1.5": {"label": "GST 1.5%", "rate_percent": "1.5"},
    "gst:3": {"label": "GST 3%", "rate_percent": "3"},
    "gst:5": {"label": "GST 5%", "rate_percent": "5"},
    "gst:6": {"label": "GST 6%", "rate_percent": "6"},
    "gst:7.5": {"label": "GST 7.5%", "rate_percent": "7.5"},
    "gst:12": {"label": "GST 12%", "rate_percent": "12"},
    "gst:18": {"label": "GST 18%", "rate_percent": "18"},
    "gst:28": {"label": "GST 28%", "rate_percent": "28"},
}

NO_UNIT = "none"

UNITS_OF_MEASURE = {
    NO_UNIT: "None",
    "nos": "Numbers",
    "pcs": "Pieces",
    "box": "Box",
    "dzn": "Dozen",
    "kg": "Kilogram",
    "gm": "Gram",
    "ltr": "Litre",
    "ml": "Millilitre",
    "mtr": "Metre",
    "sqft": "Square Feet",
    "hrs": "Hours",
    "day": "Days",
    "mon": "Months",
}


def tax_label(tax_code: str) -> str:
    entry = TAX_RATES.get(tax_code)
    return entry["label"] if entry else tax_code


def unit_label(code: str) -> str:
    return UNITS_OF_MEASURE.get(code, code)
