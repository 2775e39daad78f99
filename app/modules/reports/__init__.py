# app/modules/reports/__init__.py
"""
Módulo de Reportes - Facturación y caja

- Facturación por categoría y medio de pago
- Margen y costo de reposición
- Flujo de caja por local (ventas, gastos, neto)
"""

from .router import router
from .service import ReportsService
from .repository import ReportsRepository

__all__ = [
    "router",
    "ReportsService",
    "ReportsRepository"
]
