from pydantic import BaseModel
from typing import List, Optional
from decimal import Decimal
from datetime import datetime
from app.shared.schemas.common import BaseResponse

class ShortageRow(BaseModel):
    product_id: str
    name: str
    category: str
    units_sold: int
    current_stock: int
    units_short: int
    needs_inspection: bool
    unit_cost: Decimal
    replenish_cost: Decimal
    shortage_cost: Decimal

class CategoryGroup(BaseModel):
    category: str
    rows: List[ShortageRow]
    units_sold: int
    units_short: int
    replenish_cost: Decimal

class ShortageTotals(BaseModel):
    products: int = 0
    units_sold: int = 0
    units_short: int = 0
    needs_inspection: int = 0
    replenish_cost: Decimal = Decimal("0")
    shortage_cost: Decimal = Decimal("0")

class ShortageReportResponse(BaseResponse):
    business_id: str
    business_name: str
    days: int
    start: datetime
    end: datetime
    category_filter: str
    rows: List[ShortageRow]
    groups: List[CategoryGroup]
    totals: ShortageTotals
    cash_in_range: Decimal
    skipped_rows: int = 0
    is_partial: bool = False
    warnings: List[str] = []
    period_label: Optional[str] = None
