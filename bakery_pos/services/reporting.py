from sqlalchemy.orm import Session
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo
import logging

from bakery_pos.config import get_settings
from bakery_pos.models.order import OrderStatus
from bakery_pos.services.aggregation import AggregationEngine, DashboardSummary, ReportPeriod
from bakery_pos.services.order_service import OrderService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DateRange:
    """Half-open ``[start, end)`` range of aware datetimes."""
    start: datetime
    end: datetime


def report_timezone(name: Optional[str] = None) -> tzinfo:
    """Zone for day boundaries and hour buckets; server local when unset."""
    if name:
        return ZoneInfo(name)
    return datetime.now().astimezone().tzinfo


def resolve_period(period: ReportPeriod, now: datetime) -> DateRange:
    """
    Turn a named period into a date range relative to ``now``.

    ``now`` must be aware and expressed in the report zone.

    - today: local midnight to now
    - week: seven days ago to now
    - month: first day of this calendar month to the first of the next
    - year: one year ago to now
    """
    period = ReportPeriod(period)
    if period is ReportPeriod.TODAY:
        start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return DateRange(start, now)
    if period is ReportPeriod.WEEK:
        return DateRange(now - timedelta(days=7), now)
    if period is ReportPeriod.MONTH:
        start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        if start.month == 12:
            end = start.replace(year=start.year + 1, month=1)
        else:
            end = start.replace(month=start.month + 1)
        return DateRange(start, end)
    try:
        start = now.replace(year=now.year - 1)
    except ValueError:
        # Feb 29 has no counterpart last year
        start = now.replace(year=now.year - 1, day=28)
    return DateRange(start, now)


class ReportingService:
    """
    Dashboard facade: resolves the period, queries completed orders and
    hands them to the aggregation engine.
    """

    def __init__(self, db: Session, tz: Optional[tzinfo] = None, top_n: Optional[int] = None):
        settings = get_settings()
        self.orders = OrderService(db)
        self.tz = tz or report_timezone(settings.REPORT_TIMEZONE)
        self.engine = AggregationEngine(
            top_n=top_n or settings.TOP_PRODUCTS_LIMIT,
            tz=self.tz,
        )

    def dashboard(self, period: ReportPeriod = ReportPeriod.TODAY, now: datetime = None) -> DashboardSummary:
        """
        Build the dashboard summary for a period.

        Args:
            period: today, week, month or year
            now: Reference time (defaults to the current time)

        Returns:
            DashboardSummary for COMPLETED orders in the period
        """
        now = (now or datetime.now(timezone.utc)).astimezone(self.tz)
        date_range = resolve_period(period, now)

        orders = self.orders.query_orders(
            start_date=date_range.start.astimezone(timezone.utc),
            end_date=date_range.end.astimezone(timezone.utc),
            status=OrderStatus.COMPLETED,
        )
        logger.debug(f"Dashboard {ReportPeriod(period).value}: {len(orders)} orders")

        return self.engine.summarize(
            orders,
            period,
            start_date=date_range.start,
            end_date=date_range.end,
        )
