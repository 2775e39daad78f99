# app/shared/utils/categories.py
"""
Categorías de producto.

La categoría no es una columna: es la primera palabra del nombre del
producto ("BEBIDA Coca Cola 1.5L" → "BEBIDA") cuando está en la lista fija.
"""
from typing import Optional, Tuple

CATEGORIES = (
    "ALMACEN",
    "CIGARRILLOS",
    "GOLOSINAS",
    "BEBIDA",
    "CERVEZA",
    "FIAMBRES",
    "TABACO",
    "HUEVOS",
    "HIGIENE",
    "ALCOHOL",
    "PROMO",
    "SIN CATEGORIA",
    "BRECA",
)

OTHERS = "OTROS"
UNCATEGORIZED = "SIN CATEGORIA"
PROMO = "PROMO"
ALL_CATEGORIES = "TODAS"

CATEGORY_DISPLAY_ORDER = CATEGORIES + (OTHERS,)


def _first_token(name: Optional[str]) -> str:
    parts = str(name or "").split()
    return parts[0].upper() if parts else ""


def classify_category(name: Optional[str], fallback: str = OTHERS) -> str:
    """Categoría según la primera palabra del nombre, o ``fallback``"""
    token = _first_token(name)
    return token if token in CATEGORIES else fallback


def split_category(name: Optional[str]) -> Tuple[str, str]:
    """
    Separar la categoría del resto del nombre.

    >>> split_category("BEBIDA Coca Cola")
    ('BEBIDA', 'Coca Cola')
    >>> split_category("Coca Cola")
    ('SIN CATEGORIA', 'Coca Cola')
    """
    parts = str(name or "").split()
    if parts and parts[0].upper() in CATEGORIES:
        return parts[0].upper(), " ".join(parts[1:])
    return UNCATEGORIZED, " ".join(parts)


def category_sort_key(category: str) -> int:
    try:
        return CATEGORY_DISPLAY_ORDER.index(category)
    except ValueError:
        return len(CATEGORY_DISPLAY_ORDER)
