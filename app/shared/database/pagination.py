# app/shared/database/pagination.py
"""
Lectura paginada de tablas completas.

El store entrega como máximo ``MAX_PAGE_SIZE`` filas por request, así que
los reportes piden páginas consecutivas hasta recibir una página incompleta.
El resultado distingue datos completos, parciales, fallidos y cancelados
para que cada caller decida qué hacer con datos incompletos.
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 1000

PageQuery = Callable[[int, int], List[Any]]


class DataFetchError(Exception):
    """Error leyendo datos del store"""

    def __init__(self, message: str, rows_fetched: int = 0, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.rows_fetched = rows_fetched
        self.cause = cause


class CancellationToken:
    """Bandera compartida para abandonar una lectura que quedó obsoleta"""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class FetchResult:
    rows: List[Any] = field(default_factory=list)
    error: Optional[BaseException] = None
    cancelled: bool = False
    requests: int = 0

    @property
    def status(self) -> str:
        if self.cancelled:
            return "cancelled"
        if self.error is None:
            return "ok"
        return "partial" if self.rows else "error"

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    def raise_for_status(self, allow_partial: bool = False) -> List[Any]:
        """Devolver las filas o levantar DataFetchError según el estado"""
        status = self.status
        if status == "ok":
            return self.rows
        if status == "partial" and allow_partial:
            return self.rows
        if status == "cancelled":
            raise DataFetchError("Lectura cancelada", rows_fetched=len(self.rows))
        raise DataFetchError(
            f"Error leyendo datos ({status}): {self.error}",
            rows_fetched=len(self.rows),
            cause=self.error
        )


def fetch_all(
    query: PageQuery,
    page_size: int = 500,
    cancel_token: Optional[CancellationToken] = None,
    label: str = "query"
) -> FetchResult:
    """
    Pedir páginas ``[offset, offset + page_size)`` hasta recibir una página
    más corta que ``page_size``.

    Args:
        query: función ``(offset, limit) -> filas``; puede levantar SQLAlchemyError
        page_size: filas por página (1..MAX_PAGE_SIZE)
        cancel_token: se revisa antes de cada página
        label: nombre para los logs

    Returns:
        FetchResult con todas las filas leídas. Los errores no se reintentan:
        cortan la lectura y quedan en ``result.error``.
    """
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise ValueError(f"page_size debe estar entre 1 y {MAX_PAGE_SIZE}, recibido {page_size}")

    result = FetchResult()
    offset = 0

    while True:
        if cancel_token is not None and cancel_token.cancelled:
            logger.info(f"[{label}] lectura cancelada tras {len(result.rows)} filas")
            result.cancelled = True
            break

        result.requests += 1
        try:
            page = query(offset, page_size)
        except SQLAlchemyError as e:
            logger.error(
                f"[{label}] error en página {result.requests} (offset {offset}): {e}"
            )
            result.error = e
            break

        page = list(page or [])
        result.rows.extend(page)

        if len(page) < page_size:
            break
        offset += page_size

    logger.debug(
        f"[{label}] {len(result.rows)} filas en {result.requests} requests ({result.status})"
    )
    return result


def query_page(query, offset: int, limit: int) -> List[Any]:
    """Aplicar offset/limit a un query SQLAlchemy y devolver las filas como dicts"""
    return [dict(row._mapping) for row in query.offset(offset).limit(limit).all()]
