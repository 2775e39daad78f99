# app/api/v1/router.py
from fastapi import APIRouter
from app.modules.faltantes.router import router as faltantes_router
from app.modules.losses.router import router as losses_router
from app.modules.reports.router import router as reports_router


# Crear router principal de la API v1
api_router = APIRouter()

api_router.include_router(
    faltantes_router,
    prefix="/faltantes",
    tags=["Faltantes - Reposición"]
)

api_router.include_router(
    losses_router,
    prefix="/losses",
    tags=["Pérdidas"]
)

api_router.include_router(
    reports_router,
    prefix="/reports",
    tags=["Reportes"]
)

@api_router.get("/")
async def api_info():
    """Información de la API v1"""
    return {
        "message": "Backoffice API v1",
        "modules": {
            "faltantes": "/api/v1/faltantes",
            "losses": "/api/v1/losses",
            "reports": "/api/v1/reports"
        }
    }
