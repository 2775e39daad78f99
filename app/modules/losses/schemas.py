from pydantic import BaseModel
from typing import List, Optional
from decimal import Decimal
from datetime import date, datetime
from app.shared.schemas.common import BaseResponse

class LossRecord(BaseModel):
    id: str
    created_at: datetime
    business_id: str
    business_name: Optional[str] = None
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    details: Optional[str] = None
    motivo: Optional[str] = None
    lost_cash: Decimal = Decimal("0")

class WeeklyLoss(BaseModel):
    week: str
    start: date
    end: date
    loss: Decimal

class MonthlyLoss(BaseModel):
    month: str
    loss: Decimal

class ProductLoss(BaseModel):
    name: str
    loss: Decimal

class CategoryLoss(BaseModel):
    category: str
    count: int
    loss: Decimal

class PeriodChange(BaseModel):
    current: Decimal
    previous: Decimal
    diff: Decimal
    pct: Optional[float] = None

class LossesReportResponse(BaseResponse):
    business_id: str
    business_name: str
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    motivos: List[str]
    search: Optional[str] = None
    total_lost: Decimal
    count: int
    records: List[LossRecord]
    weekly: List[WeeklyLoss]
    monthly: List[MonthlyLoss]
    top_products: List[ProductLoss]
    categories: List[CategoryLoss]
    week_change: PeriodChange
    month_change: PeriodChange
    is_partial: bool = False
    warnings: List[str] = []
