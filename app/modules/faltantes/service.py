# app/modules/faltantes/service.py
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from decimal import Decimal
from fastapi import HTTPException
from sqlalchemy.orm import Session
import logging

from app.config.settings import settings
from app.shared.database.pagination import CancellationToken, FetchResult
from app.shared.schemas.common import BusinessInfo, BusinessListResponse
from app.shared.schemas.records import (
    RecordDecodeError, decode_inventory_level, decode_sale_item
)
from app.shared.utils.categories import (
    ALL_CATEGORIES, CATEGORY_DISPLAY_ORDER, category_sort_key, classify_category
)
from app.shared.utils.dates import WINDOW_DAYS_OPTIONS, last_n_days, short_range_label
from app.shared.utils.formatting import to_decimal
from .repository import FaltantesRepository
from .schemas import CategoryGroup, ShortageReportResponse, ShortageRow, ShortageTotals

logger = logging.getLogger(__name__)

UNNAMED_PRODUCT = "(sin nombre)"
CASH_METHODS = ("cash", "efectivo")


def aggregate_shortages(
    sale_item_rows: Iterable[Mapping[str, Any]],
    inventory_rows: Iterable[Mapping[str, Any]]
) -> Tuple[List[ShortageRow], int]:
    """
    Cruzar unidades vendidas por producto contra el stock actual.

    Returns:
        (filas, cantidad de filas descartadas por identificador inválido)
    """
    sold: Dict[str, int] = {}
    samples: Dict[str, Tuple[Optional[str], Decimal]] = {}
    skipped = 0

    for raw in sale_item_rows:
        try:
            item = decode_sale_item(raw)
        except RecordDecodeError as e:
            skipped += 1
            logger.debug(f"Línea de venta descartada: {e}")
            continue

        if item.quantity <= 0:
            continue

        sold[item.product_id] = sold.get(item.product_id, 0) + item.quantity
        # La primera aparición define nombre y costo
        if item.product_id not in samples:
            samples[item.product_id] = (item.product_name, item.unit_cost)

    stock_by_product: Dict[str, int] = {}
    for raw in inventory_rows:
        try:
            level = decode_inventory_level(raw)
        except RecordDecodeError as e:
            logger.debug(f"Fila de inventario descartada: {e}")
            continue
        stock_by_product[level.product_id] = level.stock

    rows = []
    for product_id, units_sold in sold.items():
        if units_sold <= 0:
            continue

        name, unit_cost = samples[product_id]
        name = name or UNNAMED_PRODUCT
        current_stock = stock_by_product.get(product_id, 0)
        units_short = max(units_sold - current_stock, 0)

        rows.append(ShortageRow(
            product_id=product_id,
            name=name,
            category=classify_category(name),
            units_sold=units_sold,
            current_stock=current_stock,
            units_short=units_short,
            needs_inspection=current_stock == 0 and units_sold > 0,
            unit_cost=unit_cost,
            replenish_cost=unit_cost * units_sold,
            shortage_cost=unit_cost * units_short
        ))

    rows.sort(key=lambda r: (category_sort_key(r.category), -r.units_sold, r.name))
    return rows, skipped


def group_by_category(
    rows: List[ShortageRow],
    category_order: Iterable[str] = CATEGORY_DISPLAY_ORDER
) -> List[CategoryGroup]:
    """Agrupar en el orden de categorías dado, omitiendo las vacías"""
    by_category: Dict[str, List[ShortageRow]] = {}
    for row in rows:
        by_category.setdefault(row.category, []).append(row)

    order = list(category_order)
    # Categorías que no estén en el orden pedido van al final
    order += sorted(c for c in by_category if c not in order)

    groups = []
    for category in order:
        items = by_category.get(category)
        if not items:
            continue
        items = sorted(items, key=lambda r: (-r.units_sold, r.name))
        groups.append(CategoryGroup(
            category=category,
            rows=items,
            units_sold=sum(r.units_sold for r in items),
            units_short=sum(r.units_short for r in items),
            replenish_cost=sum((r.replenish_cost for r in items), Decimal("0"))
        ))
    return groups


def compute_totals(rows: List[ShortageRow]) -> ShortageTotals:
    return ShortageTotals(
        products=len(rows),
        units_sold=sum(r.units_sold for r in rows),
        units_short=sum(r.units_short for r in rows),
        needs_inspection=sum(1 for r in rows if r.needs_inspection),
        replenish_cost=sum((r.replenish_cost for r in rows), Decimal("0")),
        shortage_cost=sum((r.shortage_cost for r in rows), Decimal("0"))
    )


def cash_total(sale_rows: Iterable[Mapping[str, Any]]) -> Decimal:
    """Suma de tickets pagados en efectivo"""
    total = Decimal("0")
    for sale in sale_rows:
        method = str(sale.get("payment_method") or "").strip().lower()
        if method in CASH_METHODS:
            total += to_decimal(sale.get("total"))
    return total


class FaltantesService:
    def __init__(self, db: Session, page_size: Optional[int] = None):
        self.db = db
        self.repository = FaltantesRepository(db, page_size=page_size)

    def list_businesses(self) -> BusinessListResponse:
        businesses = self.repository.list_businesses()
        return BusinessListResponse(
            success=True,
            message=f"{len(businesses)} locales",
            businesses=[BusinessInfo(id=b.id, name=b.name) for b in businesses]
        )

    def get_shortage_report(
        self,
        business_id: str,
        days: int = None,
        category: str = ALL_CATEGORIES,
        cancel_token: Optional[CancellationToken] = None,
        today=None
    ) -> ShortageReportResponse:
        """
        Reporte de faltantes: lo vendido en los últimos ``days`` días contra
        el stock actual del local.

        Raises:
            HTTPException 404: local inexistente
            HTTPException 422: ventana o categoría inválida
            DataFetchError: la lectura de ventas o inventario falló
        """
        if days is None:
            days = settings.default_window_days
        if days not in WINDOW_DAYS_OPTIONS:
            raise HTTPException(
                status_code=422,
                detail=f"Ventana inválida: {days}. Opciones: {list(WINDOW_DAYS_OPTIONS)}"
            )

        category = (category or ALL_CATEGORIES).upper()
        if category != ALL_CATEGORIES and category not in CATEGORY_DISPLAY_ORDER:
            raise HTTPException(status_code=422, detail=f"Categoría inválida: {category}")

        business = self.repository.get_business(business_id)
        if not business:
            raise HTTPException(status_code=404, detail="Local no encontrado")

        start, end = last_n_days(days, today=today)
        logger.info(f"Faltantes {business.name}: {days} días ({start:%Y-%m-%d} a {end:%Y-%m-%d})")

        warnings: List[str] = []
        sale_items = self._rows_or_partial(
            self.repository.fetch_sale_items(business_id, start, end, cancel_token),
            "líneas de venta", warnings
        )
        # El inventario parcial no se acepta: sin su fila, un producto figura sin stock
        inventory = self.repository.fetch_inventory(business_id, cancel_token).raise_for_status()
        sales = self._rows_or_partial(
            self.repository.fetch_sales(business_id, start, end, cancel_token),
            "ventas", warnings
        )

        rows, skipped = aggregate_shortages(sale_items, inventory)
        if category != ALL_CATEGORIES:
            rows = [r for r in rows if r.category == category]

        if skipped:
            logger.warning(f"Faltantes {business.name}: {skipped} líneas con producto inválido")

        return ShortageReportResponse(
            success=True,
            message=f"Faltantes de los últimos {days} días",
            business_id=business.id,
            business_name=business.name,
            days=days,
            start=start,
            end=end,
            period_label=short_range_label(start, end),
            category_filter=category,
            rows=rows,
            groups=group_by_category(rows),
            totals=compute_totals(rows),
            cash_in_range=cash_total(sales),
            skipped_rows=skipped,
            is_partial=bool(warnings),
            warnings=warnings
        )

    def _rows_or_partial(self, result: FetchResult, what: str, warnings: List[str]) -> List[Dict[str, Any]]:
        rows = result.raise_for_status(allow_partial=True)
        if result.status == "partial":
            warnings.append(f"Datos incompletos de {what}: se leyeron {len(rows)} filas antes del error")
        return rows
