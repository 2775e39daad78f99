# app/shared/schemas/records.py
"""
Decodificación de filas crudas del store.

Las filas llegan como dicts sin tipar (joins con campos opcionales, números
que pueden venir como texto). Este es el único lugar donde se decide cómo
sanear esos valores: los numéricos inválidos valen 0 y los identificadores
inválidos levantan RecordDecodeError.
"""
from decimal import Decimal
from typing import Any, Mapping, Optional

from pydantic import BaseModel, field_validator

from app.shared.utils.formatting import (
    is_uuid, to_non_negative_decimal, to_non_negative_int
)


class RecordDecodeError(ValueError):
    """Fila que no se puede usar en una agregación"""

    def __init__(self, message: str, raw: Optional[Mapping[str, Any]] = None):
        super().__init__(message)
        self.raw = raw


class SaleItemRecord(BaseModel):
    product_id: str
    quantity: int = 0
    unit_cost: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    product_name: Optional[str] = None

    @field_validator("quantity", mode="before")
    @classmethod
    def parse_quantity(cls, v):
        return to_non_negative_int(v)

    @field_validator("unit_cost", "total", mode="before")
    @classmethod
    def parse_amount(cls, v):
        return to_non_negative_decimal(v)

    @field_validator("product_name", mode="before")
    @classmethod
    def parse_name(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None


class InventoryLevel(BaseModel):
    product_id: str
    business_id: Optional[str] = None
    stock: int = 0

    @field_validator("stock", mode="before")
    @classmethod
    def parse_stock(cls, v):
        return to_non_negative_int(v)


def _product_id(raw: Mapping[str, Any], *keys: str) -> str:
    for key in keys:
        value = raw.get(key)
        if value is not None:
            value = str(value)
            if is_uuid(value):
                return value
            raise RecordDecodeError(f"Identificador de producto inválido: {value!r}", raw)
    raise RecordDecodeError("Fila sin identificador de producto", raw)


def decode_sale_item(raw: Mapping[str, Any]) -> SaleItemRecord:
    """
    Acepta tanto filas planas (``product_name``/``unit_cost``) como filas con
    el maestro embebido en ``master`` (``name``/``default_purchase``).
    """
    master = raw.get("master") or {}
    return SaleItemRecord(
        product_id=_product_id(raw, "product_master_id", "product_id"),
        quantity=raw.get("quantity"),
        unit_cost=raw.get("unit_cost", master.get("default_purchase")),
        total=raw.get("total"),
        product_name=raw.get("product_name", master.get("name")),
    )


def decode_inventory_level(raw: Mapping[str, Any]) -> InventoryLevel:
    return InventoryLevel(
        product_id=_product_id(raw, "product_id"),
        business_id=raw.get("business_id"),
        stock=raw.get("stock"),
    )
