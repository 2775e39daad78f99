import uuid
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError

from app.modules.faltantes.report import format_shortage_report
from app.modules.faltantes.service import (
    FaltantesService, aggregate_shortages, cash_total, compute_totals, group_by_category
)
from app.shared.database.pagination import CancellationToken, DataFetchError, FetchResult


def pid():
    return str(uuid.uuid4())


def item(product_id, quantity, cost=100, name="ALMACEN Yerba"):
    return {
        "product_master_id": product_id,
        "quantity": quantity,
        "unit_cost": cost,
        "product_name": name,
    }


# ==================== AGREGACIÓN ====================

def test_end_to_end_scenario():
    a, b = pid(), pid()
    rows, skipped = aggregate_shortages(
        [item(a, 5, cost=200, name="BEBIDA Coca"), item(b, 2, cost=50, name="GOLOSINAS Chicle")],
        [{"product_id": a, "stock": 0}, {"product_id": b, "stock": 10}],
    )
    by_id = {r.product_id: r for r in rows}

    assert skipped == 0
    assert by_id[a].units_sold == 5
    assert by_id[a].units_short == 5
    assert by_id[a].needs_inspection is True
    assert by_id[b].units_sold == 2
    assert by_id[b].units_short == 0
    assert by_id[b].needs_inspection is False

    totals = compute_totals(rows)
    assert totals.replenish_cost == Decimal("200") * 5 + Decimal("50") * 2
    assert totals.shortage_cost == Decimal("200") * 5
    assert totals.needs_inspection == 1


def test_accumulates_and_first_occurrence_wins():
    a = pid()
    rows, _ = aggregate_shortages(
        [
            item(a, 2, cost=100, name="ALMACEN Yerba 1kg"),
            item(a, 3, cost=999, name="Otro nombre"),
        ],
        [{"product_id": a, "stock": 4}],
    )
    assert len(rows) == 1
    row = rows[0]
    assert row.units_sold == 5
    assert row.name == "ALMACEN Yerba 1kg"
    assert row.category == "ALMACEN"
    assert row.unit_cost == Decimal("100")
    assert row.units_short == 1
    assert row.replenish_cost == Decimal("500")


def test_malformed_cost_counts_units_but_not_cost():
    a = pid()
    rows, _ = aggregate_shortages([item(a, 4, cost="abc")], [])
    assert rows[0].units_sold == 4
    assert rows[0].replenish_cost == Decimal("0")


def test_invalid_ids_and_zero_quantities_are_dropped():
    a = pid()
    rows, skipped = aggregate_shortages(
        [
            item("123", 5),
            item(None, 5),
            item(a, 0),
            item(a, "x"),
            item(a, -3),
        ],
        [],
    )
    assert rows == []
    assert skipped == 2


def test_missing_inventory_means_zero_stock():
    a = pid()
    rows, _ = aggregate_shortages([item(a, 1)], [{"product_id": pid(), "stock": 50}])
    assert rows[0].current_stock == 0
    assert rows[0].needs_inspection is True


def test_missing_name_falls_back():
    a = pid()
    rows, _ = aggregate_shortages([item(a, 1, name=None)], [])
    assert rows[0].name == "(sin nombre)"
    assert rows[0].category == "OTROS"


def test_invariants_hold_for_mixed_input():
    products = [pid() for _ in range(12)]
    sale_items = []
    for i, product in enumerate(products):
        for j in range(i % 4 + 1):
            sale_items.append(item(product, (i + j) % 5, cost=i * 10, name=f"{['BEBIDA', 'TABACO', 'x'][i % 3]} p{i}"))
    sale_items.append(item("bad", 10))
    inventory = [{"product_id": p, "stock": i % 3} for i, p in enumerate(products)]

    rows, skipped = aggregate_shortages(sale_items, inventory)

    valid_quantity = sum(
        r["quantity"] for r in sale_items
        if r["product_master_id"] != "bad" and r["quantity"] > 0
    )
    assert sum(r.units_sold for r in rows) == valid_quantity
    assert skipped == 1
    for r in rows:
        assert r.units_sold > 0
        assert r.units_short == max(r.units_sold - r.current_stock, 0)
        assert r.units_short >= 0
        assert r.needs_inspection == (r.current_stock == 0 and r.units_sold > 0)
        assert r.replenish_cost >= 0


def test_group_by_category_follows_display_order():
    rows, _ = aggregate_shortages(
        [
            item(pid(), 1, name="zzz sin cat"),
            item(pid(), 2, name="CERVEZA Quilmes"),
            item(pid(), 3, name="ALMACEN Arroz"),
            item(pid(), 7, name="ALMACEN Fideos"),
        ],
        [],
    )
    groups = group_by_category(rows)

    assert [g.category for g in groups] == ["ALMACEN", "CERVEZA", "OTROS"]
    assert [r.name for r in groups[0].rows] == ["ALMACEN Fideos", "ALMACEN Arroz"]
    assert groups[0].units_sold == 10
    assert groups[0].replenish_cost == Decimal("1000")


def test_cash_total_only_counts_cash():
    assert cash_total([
        {"payment_method": "cash", "total": "100"},
        {"payment_method": "Efectivo", "total": 50},
        {"payment_method": "card", "total": 999},
        {"payment_method": None, "total": 1},
    ]) == Decimal("150")


# ==================== SERVICIO ====================

def test_service_report_from_database(db, store):
    business = store.business("Kiosco Norte")
    coca = store.product("BEBIDA Coca", cost=1000)
    alfajor = store.product("GOLOSINAS Alfajor", cost=300)
    store.stock(business, coca, 0)
    store.stock(business, alfajor, 10)

    today = date.today()
    yesterday = datetime.now() - timedelta(days=1)
    store.sale(business, [(coca, 3, 6000), (alfajor, 2, 1200)], payment_method="cash", timestamp=yesterday)
    store.sale(business, [(coca, 2, 4000)], payment_method="card", timestamp=yesterday)
    # fuera de la ventana
    store.sale(business, [(coca, 50, 100000)], timestamp=datetime.now() - timedelta(days=40))
    # otro local
    other = store.business("Otro")
    store.sale(other, [(coca, 9, 1)], timestamp=yesterday)

    report = FaltantesService(db, page_size=1).get_shortage_report(business.id, days=7, today=today)

    by_name = {r.name: r for r in report.rows}
    assert by_name["BEBIDA Coca"].units_sold == 5
    assert by_name["BEBIDA Coca"].needs_inspection
    assert by_name["GOLOSINAS Alfajor"].units_short == 0
    assert report.totals.replenish_cost == Decimal("5600")
    assert report.cash_in_range == Decimal("7200")
    assert report.is_partial is False
    assert [g.category for g in report.groups] == ["GOLOSINAS", "BEBIDA"]


def test_service_category_filter(db, store):
    business = store.business()
    coca = store.product("BEBIDA Coca", cost=10)
    yerba = store.product("ALMACEN Yerba", cost=10)
    store.sale(business, [(coca, 1, 10), (yerba, 1, 10)], timestamp=datetime.now() - timedelta(days=1))

    report = FaltantesService(db).get_shortage_report(business.id, days=3, category="almacen")

    assert report.category_filter == "ALMACEN"
    assert [r.name for r in report.rows] == ["ALMACEN Yerba"]


@pytest.mark.parametrize("days", [0, 2, 5, 31])
def test_service_rejects_window_outside_menu(db, store, days):
    business = store.business()
    with pytest.raises(HTTPException) as exc_info:
        FaltantesService(db).get_shortage_report(business.id, days=days)
    assert exc_info.value.status_code == 422


def test_service_unknown_business(db):
    with pytest.raises(HTTPException) as exc_info:
        FaltantesService(db).get_shortage_report(str(uuid.uuid4()), days=7)
    assert exc_info.value.status_code == 404


def test_service_flags_partial_data(db, store, monkeypatch):
    business = store.business()
    a = pid()
    service = FaltantesService(db)
    monkeypatch.setattr(
        service.repository, "fetch_sale_items",
        lambda *args, **kwargs: FetchResult(rows=[item(a, 2)], error=SQLAlchemyError("timeout"), requests=2)
    )

    report = service.get_shortage_report(business.id, days=7)

    assert report.is_partial is True
    assert report.warnings
    assert report.rows[0].units_sold == 2


def test_service_raises_when_first_page_fails(db, store, monkeypatch):
    business = store.business()
    service = FaltantesService(db)
    monkeypatch.setattr(
        service.repository, "fetch_inventory",
        lambda *args, **kwargs: FetchResult(error=SQLAlchemyError("down"), requests=1)
    )

    with pytest.raises(DataFetchError):
        service.get_shortage_report(business.id, days=7)


# ==================== TEXTO ====================

def test_clipboard_text(db, store):
    business = store.business("Kiosco Sur")
    coca = store.product("BEBIDA Coca", cost=1500)
    chicle = store.product("GOLOSINAS Chicle", cost=100)
    store.stock(business, chicle, 5)
    store.sale(business, [(coca, 2, 4000), (chicle, 10, 2000)], timestamp=datetime.now() - timedelta(days=1))

    report = FaltantesService(db).get_shortage_report(business.id, days=7)
    text = format_shortage_report(report)
    lines = text.split("\n")

    assert lines[0] == "📦 Faltantes — Kiosco Sur"
    assert lines[1].startswith("Últimos 7 días")
    assert text.index("*GOLOSINAS*") < text.index("*BEBIDA*")
    assert "- BEBIDA Coca × 2 — $ 3.000 ⚠" in lines
    assert "- GOLOSINAS Chicle × 10 — $ 1.000" in lines
    assert "Subtotal BEBIDA: $ 3.000" in lines
    assert lines[-1] == "TOTAL REPOSICIÓN: $ 4.000"


def test_clipboard_text_empty_report(db, store):
    business = store.business("Vacío")
    report = FaltantesService(db).get_shortage_report(business.id, days=1)
    text = format_shortage_report(report)

    assert "Sin ventas en el período" in text
    assert text.endswith("TOTAL REPOSICIÓN: $ 0")


def test_service_rejects_partial_inventory(db, store, monkeypatch):
    business = store.business()
    coca = store.product("BEBIDA Coca", cost=100)
    agua = store.product("BEBIDA Agua", cost=100)
    store.stock(business, coca, 10)
    store.stock(business, agua, 10)
    store.sale(business, [(coca, 1, 100), (agua, 1, 100)], timestamp=datetime.now() - timedelta(days=1))

    service = FaltantesService(db, page_size=1)
    fetch_inventory = service.repository.fetch_inventory

    def inventory_fails_on_second_page(business_id, cancel_token=None):
        result = fetch_inventory(business_id, cancel_token)
        return FetchResult(rows=result.rows[:1], error=SQLAlchemyError("timeout"), requests=2)

    monkeypatch.setattr(service.repository, "fetch_inventory", inventory_fails_on_second_page)

    with pytest.raises(DataFetchError) as exc_info:
        service.get_shortage_report(business.id, days=7)
    assert exc_info.value.rows_fetched == 1


def test_service_honors_cancellation(db, store):
    business = store.business()
    token = CancellationToken()
    token.cancel()

    with pytest.raises(DataFetchError):
        FaltantesService(db).get_shortage_report(business.id, days=7, cancel_token=token)
