"""
Sales aggregation for the dashboard.

Everything here is a pure function of a materialized order list: the same
orders always produce the same summary. Orders are expected to carry their
items, and items their current product (for name/category display only).
Revenue always comes from ``price_at_purchase``.
"""
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Sequence
import enum

from bakery_pos.models.product import as_utc

CENTS = Decimal("0.01")
ZERO = Decimal("0")

CATEGORY_PALETTE = ("#7F55B1", "#F49BAB", "#FFE1E0", "#B8A9FF", "#FFB3C6", "#FFF0EF")
UNKNOWN_CATEGORY = "Other"


class ReportPeriod(str, enum.Enum):
    """Named reporting ranges."""
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


@dataclass
class ProductSales:
    product_id: int
    product_name: str
    category: str
    total_quantity: int = 0
    total_revenue: Decimal = ZERO


@dataclass
class CategorySales:
    category: str
    color: str
    total_quantity: int = 0
    total_revenue: Decimal = ZERO


@dataclass
class HourlyBucket:
    hour: int
    sales: Decimal = ZERO
    orders: int = 0


@dataclass
class DashboardSummary:
    period: ReportPeriod
    order_count: int
    total_revenue: Decimal
    average_order_value: Decimal
    total_items_sold: int
    top_products: List[ProductSales] = field(default_factory=list)
    category_breakdown: List[CategorySales] = field(default_factory=list)
    hourly_sales: List[HourlyBucket] = field(default_factory=list)
    peak_hour: Optional[HourlyBucket] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


def _money(value) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def _category_name(category) -> str:
    if category is None:
        return UNKNOWN_CATEGORY
    return getattr(category, "value", category)


def rank_products(orders: Iterable) -> List[ProductSales]:
    """
    Group every sold item by product and rank by units sold.

    Ordering is total_quantity descending, then product_id ascending.
    """
    groups: dict[int, ProductSales] = {}
    for order in orders:
        for item in order.items:
            stats = groups.get(item.product_id)
            if stats is None:
                product = item.product
                stats = ProductSales(
                    product_id=item.product_id,
                    product_name=product.name if product is not None else f"Product #{item.product_id}",
                    category=_category_name(product.category if product is not None else None),
                )
                groups[item.product_id] = stats
            stats.total_quantity += item.quantity
            stats.total_revenue += Decimal(item.price_at_purchase) * item.quantity

    ranked = sorted(groups.values(), key=lambda s: (-s.total_quantity, s.product_id))
    for stats in ranked:
        stats.total_revenue = _money(stats.total_revenue)
    return ranked


def category_breakdown(ranked: Sequence[ProductSales]) -> List[CategorySales]:
    """
    Sum quantity and revenue per category over a product ranking.

    Colours cycle through the palette in the order categories first appear
    in the ranking. Output is ordered by revenue descending, then name.
    """
    groups: dict[str, CategorySales] = {}
    for stats in ranked:
        entry = groups.get(stats.category)
        if entry is None:
            entry = CategorySales(
                category=stats.category,
                color=CATEGORY_PALETTE[len(groups) % len(CATEGORY_PALETTE)],
            )
            groups[stats.category] = entry
        entry.total_quantity += stats.total_quantity
        entry.total_revenue += stats.total_revenue

    return sorted(groups.values(), key=lambda c: (-c.total_revenue, c.category))


def hourly_histogram(orders: Iterable, tz: Optional[tzinfo] = None) -> List[HourlyBucket]:
    """
    Bucket orders by hour of day in ``tz`` (server local zone when None).

    All 24 buckets are returned, zero-filled.
    """
    buckets = [HourlyBucket(hour=hour) for hour in range(24)]
    for order in orders:
        hour = as_utc(order.created_at).astimezone(tz).hour
        bucket = buckets[hour]
        bucket.sales += Decimal(order.total_amount)
        bucket.orders += 1
    for bucket in buckets:
        bucket.sales = _money(bucket.sales)
    return buckets


def peak_hour(buckets: Sequence[HourlyBucket]) -> Optional[HourlyBucket]:
    """Hour with the highest sales, earliest on ties; None when nothing sold."""
    peak = None
    for bucket in buckets:
        if bucket.sales > ZERO and (peak is None or bucket.sales > peak.sales):
            peak = bucket
    return peak


class AggregationEngine:
    """
    Produces dashboard summaries from a list of orders.

    Args:
        top_n: Number of products kept in the ranking
        tz: Zone used for hour-of-day bucketing (None = server local)
    """

    def __init__(self, top_n: int = 5, tz: Optional[tzinfo] = None):
        self.top_n = top_n
        self.tz = tz

    def summarize(
        self,
        orders: Sequence,
        period: ReportPeriod = ReportPeriod.TODAY,
        start_date: datetime = None,
        end_date: datetime = None,
    ) -> DashboardSummary:
        period = ReportPeriod(period)
        order_count = len(orders)
        total_revenue = _money(sum((Decimal(o.total_amount) for o in orders), ZERO))
        average = _money(total_revenue / order_count) if order_count else _money(ZERO)
        items_sold = sum(item.quantity for order in orders for item in order.items)

        ranked = rank_products(orders)

        hourly: List[HourlyBucket] = []
        peak = None
        if period is ReportPeriod.TODAY:
            hourly = hourly_histogram(orders, self.tz)
            peak = peak_hour(hourly)

        return DashboardSummary(
            period=period,
            order_count=order_count,
            total_revenue=total_revenue,
            average_order_value=average,
            total_items_sold=items_sold,
            top_products=ranked[:self.top_n],
            category_breakdown=category_breakdown(ranked),
            hourly_sales=hourly,
            peak_hour=peak,
            start_date=start_date,
            end_date=end_date,
        )
