# app/modules/losses/service.py
from typing import Any, Dict, List, Mapping, Optional
from datetime import date, timedelta
from decimal import Decimal
from dateutil.relativedelta import relativedelta
from fastapi import HTTPException
from sqlalchemy.orm import Session
import csv
import io
import logging

from app.shared.database.pagination import CancellationToken
from app.shared.utils.categories import CATEGORY_DISPLAY_ORDER, classify_category
from app.shared.utils.dates import day_bounds, last_n_weeks, months_of_year, week_start
from app.shared.utils.formatting import format_money, format_percent, to_decimal
from .repository import LossesRepository
from .schemas import (
    CategoryLoss, LossRecord, LossesReportResponse, MonthlyLoss,
    PeriodChange, ProductLoss, WeeklyLoss
)

logger = logging.getLogger(__name__)

DEFAULT_MOTIVOS = ["Perdida", "Vencimiento"]
TOP_LIMIT = 5
CSV_HEADER = ["Fecha", "Negocio", "Producto", "Detalle", "Motivo", "Pérdida $", "ProductoID"]


def _day(record: LossRecord) -> date:
    return record.created_at.date()


def _sum_loss(records: List[LossRecord]) -> Decimal:
    return sum((r.lost_cash for r in records), Decimal("0"))


def decode_loss(raw: Mapping[str, Any]) -> LossRecord:
    return LossRecord(
        id=str(raw["id"]),
        created_at=raw["created_at"],
        business_id=str(raw["business_id"]),
        business_name=raw.get("business_name"),
        product_id=raw.get("product_id"),
        product_name=raw.get("product_name"),
        details=raw.get("details"),
        motivo=raw.get("motivo"),
        lost_cash=to_decimal(raw.get("lost_cash"))
    )


def matches_search(record: LossRecord, search: Optional[str]) -> bool:
    q = (search or "").strip().lower()
    if not q:
        return True
    haystack = (
        record.product_name or "",
        record.details or "",
        record.product_id or "",
        record.motivo or ""
    )
    return any(q in value.lower() for value in haystack)


def weekly_losses(records: List[LossRecord], reference: Optional[date] = None, weeks: int = 4) -> List[WeeklyLoss]:
    result = []
    for label, start, end in last_n_weeks(weeks, reference):
        loss = _sum_loss([r for r in records if start <= _day(r) <= end])
        result.append(WeeklyLoss(week=label, start=start, end=end, loss=loss))
    return result


def monthly_losses(records: List[LossRecord], reference: Optional[date] = None) -> List[MonthlyLoss]:
    year = (reference or date.today()).year
    totals: Dict[str, Decimal] = {}
    for r in records:
        month = f"{r.created_at:%Y-%m}"
        totals[month] = totals.get(month, Decimal("0")) + r.lost_cash
    return [MonthlyLoss(month=m, loss=totals.get(m, Decimal("0"))) for m in months_of_year(year)]


def top_products(records: List[LossRecord], limit: int = TOP_LIMIT) -> List[ProductLoss]:
    totals: Dict[str, Decimal] = {}
    for r in records:
        name = r.product_name or r.product_id or "—"
        totals[name] = totals.get(name, Decimal("0")) + r.lost_cash
    ranked = sorted(totals.items(), key=lambda x: x[1], reverse=True)[:limit]
    return [ProductLoss(name=name, loss=loss) for name, loss in ranked]


def category_metrics(records: List[LossRecord]) -> List[CategoryLoss]:
    groups: Dict[str, List[LossRecord]] = {}
    for r in records:
        groups.setdefault(classify_category(r.product_name), []).append(r)

    metrics = []
    for category in CATEGORY_DISPLAY_ORDER:
        items = groups.get(category, [])
        loss = _sum_loss(items)
        if items or loss > 0:
            metrics.append(CategoryLoss(category=category, count=len(items), loss=loss))
    return metrics


def period_change(
    records: List[LossRecord],
    current: tuple,
    previous: tuple
) -> PeriodChange:
    """Comparar dos rangos de fechas inclusivos ``(desde, hasta)``"""
    cur = _sum_loss([r for r in records if current[0] <= _day(r) <= current[1]])
    prev = _sum_loss([r for r in records if previous[0] <= _day(r) <= previous[1]])
    diff = cur - prev
    pct = None if prev == 0 else float(diff / prev * 100)
    return PeriodChange(current=cur, previous=prev, diff=diff, pct=pct)


def week_over_week(records: List[LossRecord], reference: Optional[date] = None) -> PeriodChange:
    """Última semana completa contra la anterior"""
    this_monday = week_start(reference or date.today())
    start = this_monday - timedelta(weeks=1)
    prev_start = start - timedelta(weeks=1)
    return period_change(
        records,
        (start, this_monday - timedelta(days=1)),
        (prev_start, start - timedelta(days=1))
    )


def month_over_month(records: List[LossRecord], reference: Optional[date] = None) -> PeriodChange:
    """Último mes completo contra el anterior"""
    first_of_month = (reference or date.today()).replace(day=1)
    start = first_of_month - relativedelta(months=1)
    prev_start = start - relativedelta(months=1)
    return period_change(
        records,
        (start, first_of_month - timedelta(days=1)),
        (prev_start, start - timedelta(days=1))
    )


def losses_to_csv(records: List[LossRecord]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for r in records:
        writer.writerow([
            f"{r.created_at:%d/%m/%Y}",
            r.business_name or r.business_id or "",
            r.product_name or r.product_id or "",
            (r.details or "").replace("\n", " "),
            r.motivo or "",
            str(r.lost_cash).replace(".", ","),
            r.product_id or ""
        ])
    return buffer.getvalue()


def format_losses_summary(report: LossesReportResponse) -> str:
    top = "\n".join(
        f"{i}. {p.name}: {format_money(p.loss)}"
        for i, p in enumerate(report.top_products, start=1)
    )
    categories = sorted(report.categories, key=lambda c: c.loss, reverse=True)[:TOP_LIMIT]
    cats = "\n".join(
        f"{i}. {c.category}: {format_money(c.loss)} ({c.count} regs)"
        for i, c in enumerate(categories, start=1)
    )
    period_from = report.date_from.isoformat() if report.date_from else "(sin inicio)"
    period_to = report.date_to.isoformat() if report.date_to else "(hoy)"
    return (
        f"📍 Reporte de pérdidas — {report.business_name}\n"
        f"Periodo: {period_from} al {period_to}\n"
        f"Total: {format_money(report.total_lost)}\n"
        f"Vs semana anterior: {format_percent(report.week_change.pct)}\n"
        f"Vs mes anterior: {format_percent(report.month_change.pct)}\n\n"
        f"TOP productos:\n{top or '—'}\n\n"
        f"TOP categorías:\n{cats or '—'}"
    )


class LossesService:
    def __init__(self, db: Session, page_size: Optional[int] = None):
        self.db = db
        self.repository = LossesRepository(db, page_size=page_size)

    def get_losses_report(
        self,
        business_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        motivos: Optional[List[str]] = None,
        search: Optional[str] = None,
        today: Optional[date] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> LossesReportResponse:
        """
        Pérdidas y vencimientos de un local

        Raises:
            HTTPException 404: local inexistente
            HTTPException 422: rango de fechas invertido
            DataFetchError: error leyendo actividades
        """
        if date_from and date_to and date_from > date_to:
            raise HTTPException(status_code=422, detail="La fecha 'desde' es posterior a 'hasta'")

        business = self.repository.get_business(business_id)
        if not business:
            raise HTTPException(status_code=404, detail="Local no encontrado")

        motivos = motivos or DEFAULT_MOTIVOS
        start, end = day_bounds(date_from, date_to)
        result = self.repository.fetch_losses(business_id, motivos, start, end, cancel_token)
        rows = result.raise_for_status(allow_partial=True)

        warnings = []
        if result.status == "partial":
            warnings.append(f"Datos incompletos: se leyeron {len(rows)} registros antes del error")

        records = [r for r in (decode_loss(row) for row in rows) if matches_search(r, search)]
        reference = date_to or today or date.today()

        logger.info(f"Pérdidas {business.name}: {len(records)} registros ({', '.join(motivos)})")

        return LossesReportResponse(
            success=True,
            message=f"Pérdidas de {business.name}",
            business_id=business.id,
            business_name=business.name,
            date_from=date_from,
            date_to=date_to,
            motivos=motivos,
            search=search,
            total_lost=_sum_loss(records),
            count=len(records),
            records=records,
            weekly=weekly_losses(records, reference),
            monthly=monthly_losses(records, reference),
            top_products=top_products(records),
            categories=category_metrics(records),
            week_change=week_over_week(records, reference),
            month_change=month_over_month(records, reference),
            is_partial=bool(warnings),
            warnings=warnings
        )

    def export_filename(self, report: LossesReportResponse) -> str:
        name = report.business_name.replace(" ", "_")
        period_from = report.date_from.isoformat() if report.date_from else "ini"
        period_to = report.date_to.isoformat() if report.date_to else "hoy"
        return f"perdidas_{name}_{period_from}_{period_to}.csv"
