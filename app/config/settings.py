# app/config/settings.py
from pydantic_settings import BaseSettings
from typing import Optional
import os

class Settings(BaseSettings):
    # App Info
    app_name: str = "Kiosco Backoffice API"
    version: str = "1.0.0"
    debug: bool = False

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./backoffice.db")

    # Lectura paginada del store (máximo 1000 filas por request)
    fetch_page_size: int = 500
    default_window_days: int = 7

    # Reportes
    currency_symbol: str = "$"

    # Logging
    log_level: str = "INFO"
    log_dir: Optional[str] = None

    # Server
    host: str = "0.0.0.0"
    port: int = int(os.getenv("PORT", 10000))

    # SSL para PostgreSQL en producción
    @property
    def database_url_with_ssl(self) -> str:
        """Agregar SSL para conexiones de producción"""
        if self.database_url and "render" in self.database_url:
            if "?sslmode=" not in self.database_url:
                return f"{self.database_url}?sslmode=require"
        return self.database_url

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = 'ignore'

settings = Settings()
