# app/modules/reports/service.py
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from datetime import date, datetime
from decimal import Decimal
from dataclasses import dataclass
from fastapi import HTTPException
from sqlalchemy.orm import Session
import logging

from app.shared.database.pagination import CancellationToken, FetchResult
from app.shared.utils.categories import PROMO, classify_category, split_category
from app.shared.utils.dates import day_bounds, last_n_days, month_range, short_range_label
from app.shared.utils.formatting import to_decimal
from .repository import ReportsRepository
from .schemas import (
    BusinessCashFlow, CashFlowResponse, CategoryProduct, CategoryProductsResponse,
    CategoryRevenue, CategoryRevenueResponse, CategoryRevenueTotals, PaymentMethodTotals
)

logger = logging.getLogger(__name__)

# Costos de compra menores a este valor se consideran mal cargados
MIN_VALID_COST = Decimal("10")

RANGE_MODES = {"month": None, "last3": 3, "last7": 7, "last14": 14}

PAYMENT_ALIASES = {
    "efectivo": "cash",
    "tarjeta": "card",
    "debito": "card",
    "credito": "card",
    "transferencia": "transfer",
}

ZERO = Decimal("0")


def normalize_payment_method(method: Any) -> str:
    pm = str(method or "").strip().lower()
    return PAYMENT_ALIASES.get(pm, pm)


@dataclass
class ResolvedLine:
    qty: Decimal
    unit_price: Decimal
    unit_cost: Optional[Decimal]
    has_valid_cost: bool
    revenue: Decimal


def resolve_line(item: Mapping[str, Any]) -> ResolvedLine:
    """
    Métricas de una línea de venta con lo que ya trae la fila.

    - precio unitario: el de la línea, si no el precio de venta del maestro
    - cantidad: la de la línea; si falta se infiere de total / precio; mínimo 1
    - costo: ``default_purchase`` del maestro (None si no está cargado)
    """
    revenue = to_decimal(item.get("total"))

    price = item.get("price")
    if price is None:
        price = item.get("default_selling")
    unit_price = to_decimal(price)

    if item.get("quantity") is not None:
        qty = to_decimal(item.get("quantity"))
    elif unit_price > 0:
        qty = revenue / unit_price
    else:
        qty = Decimal("1")
    if qty <= 0:
        qty = Decimal("1")

    raw_cost = item.get("default_purchase")
    unit_cost = to_decimal(raw_cost) if raw_cost is not None else None
    has_valid_cost = unit_cost is not None and unit_cost >= MIN_VALID_COST

    return ResolvedLine(qty, unit_price, unit_cost, has_valid_cost, revenue)


def line_category(item: Mapping[str, Any]) -> str:
    if item.get("promotion_id"):
        return PROMO
    return classify_category(item.get("product_name"))


def _margin(revenue: Decimal, cost: Decimal) -> Optional[float]:
    if revenue <= 0:
        return None
    return float((revenue - cost) / revenue * 100)


def revenue_by_category(
    sales: Iterable[Mapping[str, Any]],
    items: Iterable[Mapping[str, Any]]
) -> Tuple[List[CategoryRevenue], CategoryRevenueTotals]:
    """
    Facturación por categoría abierta por medio de pago.

    El margen se calcula solo sobre líneas de producto (no promo) con costo
    válido y precio de venta positivo; el costo de esas líneas es el costo
    de reposición.
    """
    sale_by_id = {str(s["id"]): s for s in sales}
    summary: Dict[str, Dict[str, Decimal]] = {}
    total_revenue = ZERO

    for item in items:
        sale = sale_by_id.get(str(item.get("sale_id")))
        if not sale:
            continue

        method = normalize_payment_method(sale.get("payment_method"))
        if method == "mercadopago":
            method = "transfer"

        acc = summary.setdefault(line_category(item), {
            "revenue": ZERO, "cash": ZERO, "transfer": ZERO, "card": ZERO,
            "rev_for_margin": ZERO, "cost_for_margin": ZERO
        })

        line = resolve_line(item)
        acc["revenue"] += line.revenue
        total_revenue += line.revenue
        if method in ("cash", "transfer", "card"):
            acc[method] += line.revenue

        if not item.get("promotion_id") and line.has_valid_cost and line.unit_price > 0:
            acc["rev_for_margin"] += line.revenue
            acc["cost_for_margin"] += line.unit_cost * line.qty

    summary.setdefault(PROMO, {
        "revenue": ZERO, "cash": ZERO, "transfer": ZERO, "card": ZERO,
        "rev_for_margin": ZERO, "cost_for_margin": ZERO
    })

    rows = sorted(
        (
            CategoryRevenue(
                category=category,
                revenue=acc["revenue"],
                cash=acc["cash"],
                transfer=acc["transfer"],
                card=acc["card"],
                percent=float(acc["revenue"] / total_revenue * 100) if total_revenue else 0.0,
                margin_pct=_margin(acc["rev_for_margin"], acc["cost_for_margin"]),
                replenishment_cost=acc["cost_for_margin"]
            )
            for category, acc in summary.items()
        ),
        key=lambda r: r.revenue,
        reverse=True
    )

    totals = CategoryRevenueTotals(
        revenue=sum((r.revenue for r in rows), ZERO),
        cash=sum((r.cash for r in rows), ZERO),
        transfer=sum((r.transfer for r in rows), ZERO),
        card=sum((r.card for r in rows), ZERO),
        margin_pct=_margin(
            sum((a["rev_for_margin"] for a in summary.values()), ZERO),
            sum((a["cost_for_margin"] for a in summary.values()), ZERO)
        ),
        replenishment_cost=sum((r.replenishment_cost for r in rows), ZERO)
    )
    return rows, totals


def products_in_category(
    sales: Iterable[Mapping[str, Any]],
    items: Iterable[Mapping[str, Any]],
    category: str
) -> List[CategoryProduct]:
    """Detalle por producto de una categoría, ordenado por facturación"""
    sale_ids = {str(s["id"]) for s in sales}
    agg: Dict[str, Dict[str, Any]] = {}

    for item in items:
        if str(item.get("sale_id")) not in sale_ids:
            continue
        if line_category(item) != category:
            continue

        if item.get("promotion_id"):
            name = item.get("promo_name") or "[PROMO]"
        else:
            name = item.get("product_name") or "—"

        qty = to_decimal(item.get("quantity")) if item.get("quantity") is not None else Decimal("1")
        revenue = to_decimal(item.get("total"))
        if item.get("price") is not None:
            unit_price = to_decimal(item.get("price"))
        elif qty:
            unit_price = revenue / qty
        else:
            unit_price = to_decimal(item.get("default_selling"))

        a = agg.setdefault(name, {
            "qty": ZERO, "revenue": ZERO, "cost_sum": ZERO,
            "unit_price_sum": ZERO, "has_cost": False
        })
        a["qty"] += qty
        a["revenue"] += revenue
        a["unit_price_sum"] += unit_price * qty

        # Un costo cargado en 0 también cuenta como costo conocido
        if item.get("default_purchase") is not None:
            a["cost_sum"] += to_decimal(item.get("default_purchase")) * qty
            a["has_cost"] = True

    products = []
    for name, a in agg.items():
        unit_price_avg = a["unit_price_sum"] / a["qty"] if a["qty"] else ZERO
        purchase_unit_avg = a["cost_sum"] / (a["qty"] or 1) if a["has_cost"] else None
        profit = a["revenue"] - a["cost_sum"] if a["has_cost"] else None
        margin_pct = None
        if a["has_cost"] and unit_price_avg > 0:
            margin_pct = float((unit_price_avg - purchase_unit_avg) / unit_price_avg * 100)

        products.append(CategoryProduct(
            name=name,
            short_name=split_category(name)[1] or name,
            qty=a["qty"],
            unit_price_avg=unit_price_avg,
            purchase_unit_avg=purchase_unit_avg,
            total_value=a["revenue"],
            profit=profit,
            margin_pct=margin_pct
        ))

    return sorted(products, key=lambda p: p.total_value, reverse=True)


def cash_flow_by_business(
    businesses: Iterable[Tuple[str, str]],
    sales: Iterable[Mapping[str, Any]],
    expenses: Iterable[Mapping[str, Any]]
) -> List[BusinessCashFlow]:
    """Ventas, gastos y neto por local; ``businesses`` son pares (id, nombre)"""
    flows = {
        business_id: BusinessCashFlow(business_id=business_id, business_name=name)
        for business_id, name in businesses
    }

    for sale in sales:
        flow = flows.get(str(sale.get("business_id")))
        if not flow:
            continue
        total = to_decimal(sale.get("total"))
        flow.sales += total
        flow.sales_count += 1
        method = normalize_payment_method(sale.get("payment_method"))
        if method in PaymentMethodTotals.model_fields:
            setattr(flow.payment_methods, method, getattr(flow.payment_methods, method) + total)

    for expense in expenses:
        flow = flows.get(str(expense.get("business_id")))
        if not flow:
            continue
        flow.expenses += to_decimal(expense.get("amount"))
        flow.expenses_count += 1

    for flow in flows.values():
        flow.net_total = flow.sales - flow.expenses

    return list(flows.values())


class ReportsService:
    def __init__(self, db: Session, page_size: Optional[int] = None):
        self.db = db
        self.repository = ReportsRepository(db, page_size=page_size)

    def _resolve_range(self, range_mode: str, month_offset: int, today: Optional[date]) -> Tuple[datetime, datetime]:
        if range_mode not in RANGE_MODES:
            raise HTTPException(
                status_code=422,
                detail=f"Rango inválido: {range_mode}. Opciones: {list(RANGE_MODES)}"
            )
        if range_mode == "month":
            return month_range(month_offset, today=today)
        return last_n_days(RANGE_MODES[range_mode], today=today)

    def _get_business(self, business_id: str):
        business = self.repository.get_business(business_id)
        if not business:
            raise HTTPException(status_code=404, detail="Local no encontrado")
        return business

    @staticmethod
    def _rows(result: FetchResult, what: str, warnings: List[str]) -> List[Dict[str, Any]]:
        rows = result.raise_for_status(allow_partial=True)
        if result.status == "partial":
            warnings.append(f"Datos incompletos de {what}: se leyeron {len(rows)} filas antes del error")
        return rows

    def get_category_revenue(
        self,
        business_id: str,
        range_mode: str = "month",
        month_offset: int = 0,
        today: Optional[date] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> CategoryRevenueResponse:
        """Facturación por categoría del mes (o de los últimos días)"""
        business = self._get_business(business_id)
        start, end = self._resolve_range(range_mode, month_offset, today)

        warnings: List[str] = []
        sales = self._rows(self.repository.fetch_sales(start, end, business_id, cancel_token), "ventas", warnings)
        items = self._rows(
            self.repository.fetch_sale_items(business_id, start, end, cancel_token), "líneas de venta", warnings
        )

        rows, totals = revenue_by_category(sales, items)
        logger.info(f"Facturación {business.name}: {len(sales)} ventas, {len(items)} líneas")

        return CategoryRevenueResponse(
            success=True,
            message=f"Facturación por categoría de {business.name}",
            business_id=business.id,
            business_name=business.name,
            range_mode=range_mode,
            start=start,
            end=end,
            period_label=short_range_label(start, end),
            rows=rows,
            totals=totals,
            is_partial=bool(warnings),
            warnings=warnings
        )

    def get_category_products(
        self,
        business_id: str,
        category: str,
        range_mode: str = "month",
        month_offset: int = 0,
        today: Optional[date] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> CategoryProductsResponse:
        business = self._get_business(business_id)
        start, end = self._resolve_range(range_mode, month_offset, today)

        sales = self.repository.fetch_sales(start, end, business_id, cancel_token).raise_for_status()
        items = self.repository.fetch_sale_items(business_id, start, end, cancel_token).raise_for_status()

        category = category.upper()
        return CategoryProductsResponse(
            success=True,
            message=f"Productos de {category}",
            business_id=business.id,
            category=category,
            start=start,
            end=end,
            products=products_in_category(sales, items, category)
        )

    def get_cash_flow(
        self,
        date_from: date,
        date_to: date,
        business_id: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> CashFlowResponse:
        """Flujo de caja por local (o de todos) en un rango de días"""
        if date_from > date_to:
            raise HTTPException(status_code=422, detail="La fecha 'desde' es posterior a 'hasta'")

        if business_id:
            business = self._get_business(business_id)
            businesses = [(business.id, business.name)]
        else:
            businesses = [(b.id, b.name) for b in self.repository.list_businesses()]

        start, end = day_bounds(date_from, date_to)
        warnings: List[str] = []
        sales = self._rows(self.repository.fetch_sales(start, end, business_id, cancel_token), "ventas", warnings)
        expenses = self._rows(
            self.repository.fetch_expenses(start, end, business_id, cancel_token), "gastos", warnings
        )

        flows = cash_flow_by_business(businesses, sales, expenses)

        payment_methods = PaymentMethodTotals()
        for field in PaymentMethodTotals.model_fields:
            setattr(payment_methods, field, sum((getattr(f.payment_methods, field) for f in flows), ZERO))

        total_sales = sum((f.sales for f in flows), ZERO)
        total_expenses = sum((f.expenses for f in flows), ZERO)

        return CashFlowResponse(
            success=True,
            message=f"Caja del {date_from} al {date_to}",
            start=start,
            end=end,
            businesses=flows,
            total_sales=total_sales,
            total_expenses=total_expenses,
            total_net=total_sales - total_expenses,
            payment_methods=payment_methods,
            is_partial=bool(warnings),
            warnings=warnings
        )
