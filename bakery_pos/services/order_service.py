from sqlalchemy.orm import Session, selectinload
from datetime import datetime
from typing import Optional, List, Tuple
import math
import logging

from bakery_pos.models.order import Order, OrderItem, OrderStatus
from bakery_pos.models.product import as_utc

logger = logging.getLogger(__name__)


class OrderService:
    """
    Order store: persistence and queries for orders and their items.

    Orders are written by the checkout engine through ``add_order`` inside
    its own transaction. After creation only the status may change.
    """

    def __init__(self, db: Session):
        self.db = db

    def add_order(self, order: Order) -> Order:
        """
        Stage an order and its items in the current transaction.

        The caller owns the transaction; this method flushes so the order
        gets its id but never commits.
        """
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: int) -> Optional[Order]:
        """Get an order by ID."""
        return self.db.query(Order).filter(Order.id == order_id).first()

    def _filtered(
        self,
        status: Optional[OrderStatus] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ):
        query = self.db.query(Order)
        if status:
            query = query.filter(Order.status == status)
        # created_at is stored in UTC
        if start_date is not None:
            query = query.filter(Order.created_at >= as_utc(start_date))
        if end_date is not None:
            query = query.filter(Order.created_at < as_utc(end_date))
        return query

    def get_orders(
        self,
        page: int = 1,
        page_size: int = 20,
        status: OrderStatus = None,
        start_date: datetime = None,
        end_date: datetime = None,
    ) -> Tuple[List[Order], int, int]:
        """
        Get paginated list of orders, newest first.

        Args:
            page: Page number
            page_size: Items per page
            status: Filter by order status
            start_date: Inclusive lower bound on created_at
            end_date: Exclusive upper bound on created_at

        Returns:
            Tuple of (orders list, total count, total pages)
        """
        query = self._filtered(status, start_date, end_date)

        total = query.count()
        total_pages = math.ceil(total / page_size) if total > 0 else 1

        offset = (page - 1) * page_size
        orders = (
            query.order_by(Order.created_at.desc(), Order.id.desc())
            .offset(offset)
            .limit(page_size)
            .all()
        )

        return orders, total, total_pages

    def query_orders(
        self,
        start_date: datetime = None,
        end_date: datetime = None,
        status: OrderStatus = None,
    ) -> List[Order]:
        """
        Materialize every order in ``[start_date, end_date)`` with items and
        their products loaded, oldest first.
        """
        return (
            self._filtered(status, start_date, end_date)
            .options(selectinload(Order.items).joinedload(OrderItem.product))
            .order_by(Order.created_at, Order.id)
            .all()
        )

    def update_status(self, order_id: int, status: OrderStatus) -> Optional[Order]:
        """
        Update order status.

        Status changes are independent of stock: cancelling an order does
        not return units to the catalog.
        """
        order = self.get_order(order_id)

        if not order:
            return None

        previous = order.status
        order.status = status
        self.db.commit()
        self.db.refresh(order)

        logger.info(f"Order #{order_id} status {previous.value} -> {status.value}")
        return order
