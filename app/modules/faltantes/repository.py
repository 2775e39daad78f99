# app/modules/faltantes/repository.py
from sqlalchemy.orm import Session
from datetime import datetime
from typing import List, Optional
import logging

from app.config.settings import settings
from app.shared.database.models import (
    Business, BusinessInventory, ProductMaster, Sale, SaleItem
)
from app.shared.database.pagination import (
    CancellationToken, FetchResult, fetch_all, query_page
)

logger = logging.getLogger(__name__)

class FaltantesRepository:
    def __init__(self, db: Session, page_size: Optional[int] = None):
        self.db = db
        self.page_size = page_size or settings.fetch_page_size

    def get_business(self, business_id: str) -> Optional[Business]:
        return self.db.query(Business).filter(Business.id == business_id).first()

    def list_businesses(self) -> List[Business]:
        return self.db.query(Business).order_by(Business.name).all()

    def fetch_sale_items(
        self,
        business_id: str,
        start: datetime,
        end: datetime,
        cancel_token: Optional[CancellationToken] = None
    ) -> FetchResult:
        """Líneas de venta del local en el rango, con nombre y costo del maestro"""
        query = self.db.query(
            SaleItem.id.label("id"),
            SaleItem.quantity.label("quantity"),
            SaleItem.total.label("total"),
            SaleItem.product_master_id.label("product_master_id"),
            ProductMaster.name.label("product_name"),
            ProductMaster.default_purchase.label("unit_cost")
        ).join(
            Sale, Sale.id == SaleItem.sale_id
        ).outerjoin(
            ProductMaster, ProductMaster.id == SaleItem.product_master_id
        ).filter(
            Sale.business_id == business_id,
            Sale.timestamp >= start,
            Sale.timestamp < end
        ).order_by(SaleItem.id.asc())

        return fetch_all(
            lambda offset, limit: query_page(query, offset, limit),
            page_size=self.page_size,
            cancel_token=cancel_token,
            label="sale_items"
        )

    def fetch_inventory(
        self,
        business_id: str,
        cancel_token: Optional[CancellationToken] = None
    ) -> FetchResult:
        query = self.db.query(
            BusinessInventory.product_id.label("product_id"),
            BusinessInventory.business_id.label("business_id"),
            BusinessInventory.stock.label("stock")
        ).filter(
            BusinessInventory.business_id == business_id
        ).order_by(BusinessInventory.id.asc())

        return fetch_all(
            lambda offset, limit: query_page(query, offset, limit),
            page_size=self.page_size,
            cancel_token=cancel_token,
            label="business_inventory"
        )

    def fetch_sales(
        self,
        business_id: str,
        start: datetime,
        end: datetime,
        cancel_token: Optional[CancellationToken] = None
    ) -> FetchResult:
        """Tickets del rango (para el efectivo ingresado)"""
        query = self.db.query(
            Sale.total.label("total"),
            Sale.payment_method.label("payment_method"),
            Sale.timestamp.label("timestamp")
        ).filter(
            Sale.business_id == business_id,
            Sale.timestamp >= start,
            Sale.timestamp < end
        ).order_by(Sale.timestamp.asc(), Sale.id.asc())

        return fetch_all(
            lambda offset, limit: query_page(query, offset, limit),
            page_size=self.page_size,
            cancel_token=cancel_token,
            label="sales"
        )
