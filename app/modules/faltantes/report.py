# app/modules/faltantes/report.py
"""Texto del reporte de faltantes para copiar y pegar en mensajería"""
from decimal import Decimal
from typing import Iterable, List

from app.shared.utils.categories import CATEGORY_DISPLAY_ORDER
from app.shared.utils.formatting import format_money
from .schemas import ShortageReportResponse
from .service import group_by_category

INSPECTION_MARK = "⚠"


def format_shortage_report(
    report: ShortageReportResponse,
    category_order: Iterable[str] = CATEGORY_DISPLAY_ORDER
) -> str:
    lines: List[str] = [
        f"📦 Faltantes — {report.business_name}",
        f"Últimos {report.days} días" + (f" ({report.period_label})" if report.period_label else ""),
    ]

    groups = group_by_category(report.rows, category_order)
    grand_total = Decimal("0")

    if not groups:
        lines += ["", "Sin ventas en el período"]

    for group in groups:
        lines += ["", f"*{group.category}*"]
        for row in group.rows:
            mark = f" {INSPECTION_MARK}" if row.needs_inspection else ""
            lines.append(f"- {row.name} × {row.units_sold} — {format_money(row.replenish_cost)}{mark}")
        lines.append(f"Subtotal {group.category}: {format_money(group.replenish_cost)}")
        grand_total += group.replenish_cost

    inspection = sum(1 for r in report.rows if r.needs_inspection)
    if inspection:
        lines += ["", f"{INSPECTION_MARK} {inspection} productos sin stock con ventas: revisar"]

    lines += ["", f"TOTAL REPOSICIÓN: {format_money(grand_total)}"]
    return "\n".join(lines)
