# app/modules/losses/router.py
from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse, Response
from sqlalchemy.orm import Session
from datetime import date
from typing import List, Optional
from urllib.parse import quote
import logging
import re
import unicodedata

from app.config.database import get_db
from .service import (
    DEFAULT_MOTIVOS, LossesService, format_losses_summary, losses_to_csv
)
from .schemas import LossesReportResponse

logger = logging.getLogger(__name__)

router = APIRouter()

def attachment_disposition(filename: str) -> str:
    """
    Content-Disposition para descargas: ``filename`` en ASCII para clientes
    viejos y ``filename*`` con el nombre completo en UTF-8.
    """
    ascii_name = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    ascii_name = re.sub(r"[^A-Za-z0-9._-]", "", ascii_name) or "export.csv"
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename, safe='')}"

@router.get("/{business_id}", response_model=LossesReportResponse)
def get_losses_report(
    business_id: str,
    date_from: Optional[date] = Query(None, description="Desde (inclusive)"),
    date_to: Optional[date] = Query(None, description="Hasta (inclusive)"),
    motivo: List[str] = Query(DEFAULT_MOTIVOS, description="Motivos a incluir"),
    search: Optional[str] = Query(None, description="Buscar en producto, detalle, ID o motivo"),
    db: Session = Depends(get_db)
):
    """
    Pérdidas por local

    **Incluye:**
    - Total perdido y registros
    - Tendencia de las últimas 4 semanas y del año
    - Top productos y categorías
    - Variación contra la semana y el mes anteriores
    """
    return LossesService(db).get_losses_report(
        business_id, date_from=date_from, date_to=date_to, motivos=motivo, search=search
    )

@router.get("/{business_id}/export")
def export_losses_csv(
    business_id: str,
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    motivo: List[str] = Query(DEFAULT_MOTIVOS),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db)
):
    """Exportar el detalle filtrado a CSV"""
    service = LossesService(db)
    report = service.get_losses_report(
        business_id, date_from=date_from, date_to=date_to, motivos=motivo, search=search
    )
    return Response(
        content=losses_to_csv(report.records),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": attachment_disposition(service.export_filename(report))}
    )

@router.get("/{business_id}/clipboard", response_class=PlainTextResponse)
def get_losses_clipboard(
    business_id: str,
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    motivo: List[str] = Query(DEFAULT_MOTIVOS),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db)
):
    """Resumen ejecutivo para copiar al portapapeles"""
    report = LossesService(db).get_losses_report(
        business_id, date_from=date_from, date_to=date_to, motivos=motivo, search=search
    )
    return PlainTextResponse(format_losses_summary(report))
