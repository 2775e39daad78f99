from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import time
import logging

from app.shared.database.pagination import DataFetchError
from app.shared.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)

def setup_middleware(app: FastAPI):
    """Configure all middleware for the application"""

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure properly for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()

        response = await call_next(request)

        process_time = time.time() - start_time
        logger.info(
            f"{request.method} {request.url.path} - "
            f"Status: {response.status_code} - "
            f"Time: {process_time:.4f}s"
        )

        return response

    @app.exception_handler(DataFetchError)
    async def data_fetch_error_handler(request: Request, exc: DataFetchError):
        logger.error(f"{request.method} {request.url.path} - error de datos: {exc}")
        error = ErrorResponse(
            message=f"Error consultando datos: {exc}",
            error_code="DATA_FETCH_ERROR",
            details={"rows_fetched": exc.rows_fetched}
        )
        return JSONResponse(status_code=502, content=error.model_dump(mode="json"))
