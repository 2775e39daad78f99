# app/modules/losses/repository.py
from sqlalchemy.orm import Session
from datetime import datetime
from typing import List, Optional
import logging

from app.config.settings import settings
from app.shared.database.models import Activity, Business, ProductMaster
from app.shared.database.pagination import (
    CancellationToken, FetchResult, fetch_all, query_page
)

logger = logging.getLogger(__name__)

class LossesRepository:
    def __init__(self, db: Session, page_size: Optional[int] = None):
        self.db = db
        self.page_size = page_size or settings.fetch_page_size

    def get_business(self, business_id: str) -> Optional[Business]:
        return self.db.query(Business).filter(Business.id == business_id).first()

    def fetch_losses(
        self,
        business_id: str,
        motivos: List[str],
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> FetchResult:
        """Actividades de pérdida del local (fin exclusivo)"""
        query = self.db.query(
            Activity.id.label("id"),
            Activity.business_id.label("business_id"),
            Business.name.label("business_name"),
            Activity.product_id.label("product_id"),
            ProductMaster.name.label("product_name"),
            Activity.details.label("details"),
            Activity.motivo.label("motivo"),
            Activity.lost_cash.label("lost_cash"),
            Activity.created_at.label("created_at")
        ).join(
            Business, Business.id == Activity.business_id
        ).outerjoin(
            ProductMaster, ProductMaster.id == Activity.product_id
        ).filter(
            Activity.business_id == business_id,
            Activity.motivo.in_(motivos)
        )

        if start:
            query = query.filter(Activity.created_at >= start)
        if end:
            query = query.filter(Activity.created_at < end)

        query = query.order_by(Activity.created_at.asc(), Activity.id.asc())

        return fetch_all(
            lambda offset, limit: query_page(query, offset, limit),
            page_size=self.page_size,
            cancel_token=cancel_token,
            label="activities"
        )
