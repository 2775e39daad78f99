from pydantic import BaseModel, Field
from typing import List, Optional
from decimal import Decimal
from datetime import datetime
from app.shared.schemas.common import BaseResponse

# ==================== FACTURACIÓN POR CATEGORÍA ====================

class CategoryRevenue(BaseModel):
    category: str
    revenue: Decimal
    cash: Decimal
    transfer: Decimal
    card: Decimal
    percent: float
    margin_pct: Optional[float] = None
    replenishment_cost: Decimal

class CategoryRevenueTotals(BaseModel):
    revenue: Decimal
    cash: Decimal
    transfer: Decimal
    card: Decimal
    margin_pct: Optional[float] = None
    replenishment_cost: Decimal

class CategoryRevenueResponse(BaseResponse):
    business_id: str
    business_name: str
    range_mode: str
    start: datetime
    end: datetime
    period_label: str
    rows: List[CategoryRevenue]
    totals: CategoryRevenueTotals
    is_partial: bool = False
    warnings: List[str] = []

class CategoryProduct(BaseModel):
    name: str
    short_name: str
    qty: Decimal
    unit_price_avg: Decimal
    purchase_unit_avg: Optional[Decimal] = None
    total_value: Decimal
    profit: Optional[Decimal] = None
    margin_pct: Optional[float] = None

class CategoryProductsResponse(BaseResponse):
    business_id: str
    category: str
    start: datetime
    end: datetime
    products: List[CategoryProduct]

# ==================== CAJA ====================

class PaymentMethodTotals(BaseModel):
    cash: Decimal = Decimal("0")
    card: Decimal = Decimal("0")
    transfer: Decimal = Decimal("0")
    mercadopago: Decimal = Decimal("0")
    rappi: Decimal = Decimal("0")

class BusinessCashFlow(BaseModel):
    business_id: str
    business_name: str
    sales: Decimal = Decimal("0")
    sales_count: int = 0
    expenses: Decimal = Decimal("0")
    expenses_count: int = 0
    net_total: Decimal = Decimal("0")
    payment_methods: PaymentMethodTotals = Field(default_factory=PaymentMethodTotals)

class CashFlowResponse(BaseResponse):
    start: datetime
    end: datetime
    businesses: List[BusinessCashFlow]
    total_sales: Decimal
    total_expenses: Decimal
    total_net: Decimal
    payment_methods: PaymentMethodTotals
    is_partial: bool = False
    warnings: List[str] = []
