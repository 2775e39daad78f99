import csv
import io
from datetime import date, datetime
from decimal import Decimal

import pytest
from fastapi import HTTPException

from app.modules.losses.service import (
    LossesService, format_losses_summary, losses_to_csv, month_over_month, week_over_week
)
from app.modules.losses.schemas import LossRecord
from app.shared.database.pagination import CancellationToken, DataFetchError

# Miércoles 2025-03-12; semana del lunes 10/03
REFERENCE = date(2025, 3, 12)


def record(day: date, loss, name="BEBIDA Coca"):
    return LossRecord(
        id=str(day), created_at=datetime.combine(day, datetime.min.time()),
        business_id="b", product_name=name, lost_cash=Decimal(str(loss))
    )


@pytest.fixture
def seeded(store):
    business = store.business("Kiosco Oeste")
    coca = store.product("BEBIDA Coca")
    jamon = store.product("FIAMBRES Jamón")
    store.loss(business, coca, 100, datetime(2025, 3, 11, 10), details="rota")
    store.loss(business, coca, 50, datetime(2025, 3, 4, 9), motivo="Vencimiento")
    store.loss(business, jamon, 300, datetime(2025, 2, 20, 18), motivo="Vencimiento", details="vencido\nheladera")
    store.loss(business, jamon, 999, datetime(2025, 3, 1, 12), motivo="Robo")
    store.loss(business, None, 20, datetime(2025, 1, 5, 8))
    return business


def test_losses_report(db, seeded):
    report = LossesService(db).get_losses_report(seeded.id, date_to=REFERENCE)

    assert report.count == 4
    assert report.total_lost == Decimal("470")
    assert report.motivos == ["Perdida", "Vencimiento"]

    assert [w.week for w in report.weekly] == ["17/02–23/02", "24/02–02/03", "03/03–09/03", "10/03–16/03"]
    assert [w.loss for w in report.weekly] == [Decimal("300"), Decimal("0"), Decimal("50"), Decimal("100")]

    assert len(report.monthly) == 12
    assert report.monthly[0].loss == Decimal("20")
    assert report.monthly[1].loss == Decimal("300")
    assert report.monthly[2].loss == Decimal("150")

    assert report.top_products[0].name == "FIAMBRES Jamón"
    assert report.top_products[0].loss == Decimal("300")

    assert [(c.category, c.count) for c in report.categories] == [("BEBIDA", 2), ("FIAMBRES", 1), ("OTROS", 1)]


def test_losses_date_range_and_search(db, seeded):
    service = LossesService(db)

    ranged = service.get_losses_report(seeded.id, date_from=date(2025, 3, 1), date_to=date(2025, 3, 11))
    assert ranged.total_lost == Decimal("150")

    searched = service.get_losses_report(seeded.id, search="HELADERA")
    assert searched.count == 1
    assert searched.records[0].product_name == "FIAMBRES Jamón"


def test_losses_custom_motivos(db, seeded):
    report = LossesService(db).get_losses_report(seeded.id, motivos=["Robo"])
    assert report.total_lost == Decimal("999")


def test_losses_rejects_inverted_range(db, seeded):
    with pytest.raises(HTTPException) as exc_info:
        LossesService(db).get_losses_report(seeded.id, date_from=date(2025, 3, 2), date_to=date(2025, 3, 1))
    assert exc_info.value.status_code == 422


def test_week_over_week():
    records = [
        record(date(2025, 3, 3), 40),   # semana pasada
        record(date(2025, 3, 9), 60),   # domingo de la semana pasada
        record(date(2025, 2, 26), 50),  # semana anterior
        record(date(2025, 3, 10), 999),  # semana actual, no cuenta
    ]
    change = week_over_week(records, REFERENCE)
    assert change.current == Decimal("100")
    assert change.previous == Decimal("50")
    assert change.diff == Decimal("50")
    assert change.pct == pytest.approx(100.0)


def test_month_over_month_without_previous():
    change = month_over_month([record(date(2025, 2, 28), 80)], REFERENCE)
    assert change.current == Decimal("80")
    assert change.previous == Decimal("0")
    assert change.pct is None


def test_csv_export(db, seeded):
    report = LossesService(db).get_losses_report(seeded.id, date_from=date(2025, 2, 1), date_to=date(2025, 2, 28))
    text = losses_to_csv(report.records)
    rows = list(csv.reader(io.StringIO(text)))

    assert rows[0] == ["Fecha", "Negocio", "Producto", "Detalle", "Motivo", "Pérdida $", "ProductoID"]
    assert rows[1][:5] == ["20/02/2025", "Kiosco Oeste", "FIAMBRES Jamón", "vencido heladera", "Vencimiento"]
    assert rows[1][5] == "300,00"
    assert text.startswith('"Fecha"')


def test_summary_text(db, seeded):
    report = LossesService(db).get_losses_report(seeded.id, date_to=REFERENCE)
    text = format_losses_summary(report)

    assert text.startswith("📍 Reporte de pérdidas — Kiosco Oeste")
    assert "Periodo: (sin inicio) al 2025-03-12" in text
    assert "Total: $ 470" in text
    assert "Vs semana anterior: —" in text
    assert "Vs mes anterior: 1.400,0%" in text
    assert "1. FIAMBRES Jamón: $ 300" in text
    assert "1. FIAMBRES: $ 300 (1 regs)" in text


def test_losses_honors_cancellation(db, seeded):
    token = CancellationToken()
    token.cancel()

    with pytest.raises(DataFetchError):
        LossesService(db).get_losses_report(seeded.id, cancel_token=token)
