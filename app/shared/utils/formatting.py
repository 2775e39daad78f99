# app/shared/utils/formatting.py
import math
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

from app.config.settings import settings

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE
)


def is_uuid(value: Any) -> bool:
    return isinstance(value, str) and bool(UUID_PATTERN.match(value))


def to_decimal(value: Any) -> Decimal:
    """Parseo tolerante: cualquier valor no numérico, NaN o infinito vale 0"""
    if value is None or isinstance(value, bool):
        return Decimal("0")
    if isinstance(value, Decimal):
        return value if value.is_finite() else Decimal("0")
    if isinstance(value, float):
        return Decimal(str(value)) if math.isfinite(value) else Decimal("0")
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal("0")
    return number if number.is_finite() else Decimal("0")


def to_non_negative_decimal(value: Any) -> Decimal:
    number = to_decimal(value)
    return number if number > 0 else Decimal("0")


def to_non_negative_int(value: Any) -> int:
    number = to_decimal(value)
    return int(number) if number > 0 else 0


def format_number(value: Any, decimals: int = 0) -> str:
    """Número con separadores es-AR: punto de miles y coma decimal"""
    number = to_decimal(value)
    quantum = Decimal(1).scaleb(-decimals)
    number = number.quantize(quantum, rounding=ROUND_HALF_UP)
    sign = "-" if number < 0 else ""
    integer_part, _, fraction = f"{abs(number):.{decimals}f}".partition(".")
    grouped = f"{int(integer_part):,}".replace(",", ".")
    if decimals:
        return f"{sign}{grouped},{fraction}"
    return f"{sign}{grouped}"


def format_money(value: Any, decimals: int = 0, symbol: Optional[str] = None) -> str:
    """
    >>> format_money(1234567)
    '$ 1.234.567'
    >>> format_money("abc")
    '$ 0'
    """
    symbol = settings.currency_symbol if symbol is None else symbol
    return f"{symbol} {format_number(value, decimals)}"


def format_percent(value: Optional[float], decimals: int = 1) -> str:
    if value is None:
        return "—"
    return f"{format_number(value, decimals)}%"
