# app/modules/reports/repository.py
from sqlalchemy.orm import Session
from datetime import datetime
from typing import List, Optional
import logging

from app.config.settings import settings
from app.shared.database.models import (
    Business, Expense, ProductMaster, Promo, Sale, SaleItem
)
from app.shared.database.pagination import (
    CancellationToken, FetchResult, fetch_all, query_page
)

logger = logging.getLogger(__name__)

class ReportsRepository:
    def __init__(self, db: Session, page_size: Optional[int] = None):
        self.db = db
        self.page_size = page_size or settings.fetch_page_size

    def get_business(self, business_id: str) -> Optional[Business]:
        return self.db.query(Business).filter(Business.id == business_id).first()

    def list_businesses(self) -> List[Business]:
        return self.db.query(Business).order_by(Business.name).all()

    def _fetch(self, query, label: str, cancel_token: Optional[CancellationToken] = None) -> FetchResult:
        return fetch_all(
            lambda offset, limit: query_page(query, offset, limit),
            page_size=self.page_size,
            cancel_token=cancel_token,
            label=label
        )

    def fetch_sales(
        self,
        start: datetime,
        end: datetime,
        business_id: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> FetchResult:
        query = self.db.query(
            Sale.id.label("id"),
            Sale.business_id.label("business_id"),
            Sale.total.label("total"),
            Sale.payment_method.label("payment_method"),
            Sale.timestamp.label("timestamp")
        ).filter(
            Sale.timestamp >= start,
            Sale.timestamp < end
        )
        if business_id:
            query = query.filter(Sale.business_id == business_id)

        return self._fetch(query.order_by(Sale.timestamp.desc(), Sale.id.asc()), "sales", cancel_token)

    def fetch_sale_items(
        self,
        business_id: str,
        start: datetime,
        end: datetime,
        cancel_token: Optional[CancellationToken] = None
    ) -> FetchResult:
        """Líneas con datos del maestro y de la promo para resolver categoría, precio y costo"""
        query = self.db.query(
            SaleItem.id.label("id"),
            SaleItem.sale_id.label("sale_id"),
            SaleItem.quantity.label("quantity"),
            SaleItem.price.label("price"),
            SaleItem.total.label("total"),
            SaleItem.product_master_id.label("product_master_id"),
            SaleItem.promotion_id.label("promotion_id"),
            ProductMaster.name.label("product_name"),
            ProductMaster.default_purchase.label("default_purchase"),
            ProductMaster.default_selling.label("default_selling"),
            Promo.name.label("promo_name")
        ).join(
            Sale, Sale.id == SaleItem.sale_id
        ).outerjoin(
            ProductMaster, ProductMaster.id == SaleItem.product_master_id
        ).outerjoin(
            Promo, Promo.id == SaleItem.promotion_id
        ).filter(
            Sale.business_id == business_id,
            Sale.timestamp >= start,
            Sale.timestamp < end
        ).order_by(SaleItem.id.desc())

        return self._fetch(query, "sale_items", cancel_token)

    def fetch_expenses(
        self,
        start: datetime,
        end: datetime,
        business_id: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> FetchResult:
        query = self.db.query(
            Expense.id.label("id"),
            Expense.business_id.label("business_id"),
            Expense.category.label("category"),
            Expense.amount.label("amount"),
            Expense.date.label("date")
        ).filter(
            Expense.date >= start,
            Expense.date < end
        )
        if business_id:
            query = query.filter(Expense.business_id == business_id)

        return self._fetch(query.order_by(Expense.date.desc(), Expense.id.asc()), "expenses", cancel_token)
