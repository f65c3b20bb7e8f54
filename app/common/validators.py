"""
Validadores específicos para India (GSTIN, PAN, teléfonos)
"""
import re
from typing import Optional

GSTIN_CHARSET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def validate_india_pan(pan: str) -> bool:
    """
    Valida PAN indio.
    Formato: 5 letras, 4 dígitos, 1 letra (ej. ABCDE1234F)
    """
    cleaned = re.sub(r'\s', '', pan).upper()
    return re.match(r'^[A-Z]{5}[0-9]{4}[A-Z]$', cleaned) is not None


def gstin_check_digit(gstin_base: str) -> Optional[str]:
    """
    Calcular el dígito de control de un GSTIN a partir de sus primeros 14 caracteres.

    Retorna None si la base contiene caracteres fuera del alfabeto GSTIN.
    """
    if len(gstin_base) != 14:
        return None

    total = 0
    for i, char in enumerate(gstin_base.upper()):
        if char not in GSTIN_CHARSET:
            return None
        factor = 2 if i % 2 else 1
        product = GSTIN_CHARSET.index(char) * factor
        total += product // 36 + product % 36

    return GSTIN_CHARSET[(36 - total % 36) % 36]


def validate_india_gstin(gstin: str) -> bool:
    """
    Valida GSTIN indio.
    - 15 caracteres
    - 2 dígitos de código de estado + PAN + entidad + 'Z' + dígito de control
    """
    cleaned = re.sub(r'\s', '', gstin).upper()

    if not re.match(r'^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][1-9A-Z]Z[0-9A-Z]$', cleaned):
        return False

    return gstin_check_digit(cleaned[:14]) == cleaned[14]


def validate_india_phone(phone: str) -> bool:
    """
    Valida número de teléfono indio.
    Formatos válidos:
    - +91XXXXXXXXXX
    - 91XXXXXXXXXX
    - 0XXXXXXXXXX
    - XXXXXXXXXX (móvil, empieza por 6-9)
    """
    cleaned = re.sub(r'[\s\-\(\)]', '', phone)

    patterns = [
        r'^\+91[6-9][0-9]{9}$',
        r'^91[6-9][0-9]{9}$',
        r'^0[6-9][0-9]{9}$',
        r'^[6-9][0-9]{9}$',
    ]

    return any(re.match(pattern, cleaned) for pattern in patterns)


def format_india_phone(phone: str) -> str:
    """
    Formatea número de teléfono indio al formato estándar +91XXXXXXXXXX
    """
    if not validate_india_phone(phone):
        return phone

    cleaned = re.sub(r'[\s\-\(\)]', '', phone)
    return '+91' + cleaned[-10:]


def format_tax_id(value: str) -> str:
    """Normaliza GSTIN/PAN: sin espacios y en mayúsculas"""
    return re.sub(r'\s', '', value).upper()
