# app/modules/reports/router.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional
import logging

from app.config.database import get_db
from .service import ReportsService
from .schemas import CashFlowResponse, CategoryProductsResponse, CategoryRevenueResponse

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/categories/{business_id}", response_model=CategoryRevenueResponse)
def get_category_revenue(
    business_id: str,
    range_mode: str = Query("month", description="month, last3, last7 o last14"),
    month_offset: int = Query(0, le=0, description="0 = mes actual, -1 = anterior"),
    db: Session = Depends(get_db)
):
    """
    Facturación por categoría

    **Incluye:**
    - Ingresos por categoría (efectivo, transferencia, tarjeta)
    - Participación sobre el total
    - Margen ponderado sobre líneas con costo válido
    - Costo de reposición
    """
    return ReportsService(db).get_category_revenue(business_id, range_mode, month_offset)

@router.get("/categories/{business_id}/{category}", response_model=CategoryProductsResponse)
def get_category_products(
    business_id: str,
    category: str,
    range_mode: str = Query("month"),
    month_offset: int = Query(0, le=0),
    db: Session = Depends(get_db)
):
    """Productos de una categoría ordenados por facturación"""
    return ReportsService(db).get_category_products(business_id, category, range_mode, month_offset)

@router.get("/cash-flow", response_model=CashFlowResponse)
def get_cash_flow(
    date_from: date = Query(..., description="Desde (inclusive)"),
    date_to: date = Query(..., description="Hasta (inclusive)"),
    business_id: Optional[str] = Query(None, description="Local; vacío = todos"),
    db: Session = Depends(get_db)
):
    """Ventas, gastos y neto por local"""
    return ReportsService(db).get_cash_flow(date_from, date_to, business_id)
