"""Monedas soportadas para la impresión de documentos"""

CURRENCIES = {
    "INR": {"name": "Indian Rupee", "symbol": "₹"},
    "USD": {"name": "US Dollar", "symbol": "$"},
    "EUR": {"name": "Euro", "symbol": "€"},
    "GBP": {"name": "Pound Sterling", "symbol": "£"},
    "AED": {"name": "UAE Dirham", "symbol": "د.إ"},
}


def currency_symbol(code: str) -> str:
    return CURRENCIES.get(code, {}).get("symbol", code)
