# app/modules/faltantes/router.py
from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session
from typing import Optional
import logging

from app.config.database import get_db
from app.shared.schemas.common import BusinessListResponse
from app.shared.utils.categories import ALL_CATEGORIES
from .service import FaltantesService
from .schemas import ShortageReportResponse
from .report import format_shortage_report

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/businesses", response_model=BusinessListResponse)
async def list_businesses(db: Session = Depends(get_db)):
    """Locales disponibles para el selector"""
    return FaltantesService(db).list_businesses()

@router.get("/{business_id}", response_model=ShortageReportResponse)
def get_shortage_report(
    business_id: str,
    days: Optional[int] = Query(None, description="Ventana en días: 1, 3, 7, 14 o 30"),
    category: str = Query(ALL_CATEGORIES, description="Categoría o TODAS"),
    db: Session = Depends(get_db)
):
    """
    Reposición por ventas

    **Incluye:**
    - Unidades vendidas por producto vs stock actual
    - Productos sin stock con ventas (a inspeccionar)
    - Costo de reposición por categoría y total
    - Efectivo ingresado en el período
    """
    return FaltantesService(db).get_shortage_report(business_id, days=days, category=category)

@router.get("/{business_id}/clipboard", response_class=PlainTextResponse)
def get_shortage_clipboard(
    business_id: str,
    days: Optional[int] = Query(None),
    category: str = Query(ALL_CATEGORIES),
    db: Session = Depends(get_db)
):
    """Reporte de faltantes como texto para copiar al portapapeles"""
    report = FaltantesService(db).get_shortage_report(business_id, days=days, category=category)
    return PlainTextResponse(format_shortage_report(report))
