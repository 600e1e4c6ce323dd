from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional

from bakery_pos.services.aggregation import ReportPeriod


class TopProduct(BaseModel):
    """Units and revenue for one product in the period."""
    product_id: int
    product_name: str
    category: str
    total_quantity: int
    total_revenue: float

    model_config = ConfigDict(from_attributes=True)


class CategoryTotal(BaseModel):
    """Units and revenue for one category, with its chart colour."""
    category: str
    color: str
    total_quantity: int
    total_revenue: float

    model_config = ConfigDict(from_attributes=True)


class HourlySales(BaseModel):
    hour: int
    sales: float
    orders: int

    model_config = ConfigDict(from_attributes=True)


class DashboardResponse(BaseModel):
    """
    Schema for the sales dashboard.

    hourly_sales holds 24 entries for the 'today' period and is empty
    otherwise; peak_hour is omitted when nothing sold.
    """
    period: ReportPeriod
    start_date: datetime
    end_date: datetime
    total_orders: int = Field(validation_alias="order_count")
    total_revenue: float
    average_order_value: float
    total_items_sold: int
    top_products: list[TopProduct]
    category_breakdown: list[CategoryTotal]
    hourly_sales: list[HourlySales]
    peak_hour: Optional[HourlySales] = None

    model_config = ConfigDict(from_attributes=True)
