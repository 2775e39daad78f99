# app/modules/faltantes/__init__.py
"""
Módulo de Faltantes - Reposición por ventas

Cruza lo vendido en los últimos días contra el stock actual de cada local:
- Unidades vendidas y faltantes por producto
- Productos sin stock con ventas (a inspeccionar)
- Costo de reposición por categoría
- Texto para copiar y compartir

Arquitectura:
- router.py: Endpoints de faltantes
- service.py: Agregación y totales
- repository.py: Lectura paginada de ventas e inventario
- report.py: Texto para el portapapeles
- schemas.py: Modelos de response
"""

from .router import router
from .service import FaltantesService
from .repository import FaltantesRepository

__all__ = [
    "router",
    "FaltantesService",
    "FaltantesRepository"
]
