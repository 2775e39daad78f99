# app/modules/losses/__init__.py
"""
Módulo de Pérdidas - Mercadería perdida y vencida

- Total perdido por local y rango de fechas
- Tendencias semanales y mensuales
- Top productos y categorías
- Exportación CSV y resumen para compartir
"""

from .router import router
from .service import LossesService
from .repository import LossesRepository

__all__ = [
    "router",
    "LossesService",
    "LossesRepository"
]
