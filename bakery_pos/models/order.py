from sqlalchemy import CheckConstraint, Column, Integer, Numeric, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
import enum

from bakery_pos.database import Base
from bakery_pos.models.product import utcnow


class OrderStatus(str, enum.Enum):
    """Enum for order status."""
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Order(Base):
    """
    Order model representing a completed checkout.

    Attributes:
        id: Unique identifier for the order
        total_amount: Sum of price_at_purchase * quantity over the items,
            fixed when the order is created
        status: Current status of the order
        created_at: Timestamp when order was created (UTC)
        updated_at: Timestamp when order was last updated
        items: Line items, created together with the order
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    total_amount = Column(Numeric(10, 2), nullable=False)
    status = Column(Enum(OrderStatus), default=OrderStatus.PENDING, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Order(id={self.id}, total_amount={self.total_amount}, status='{self.status}')>"


class OrderItem(Base):
    """
    A single cart line captured at checkout.

    The product is a reference for display only; price_at_purchase keeps the
    historical price regardless of later catalog changes.
    """
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    price_at_purchase = Column(Numeric(10, 2), nullable=False)

    order = relationship("Order", back_populates="items")
    product = relationship("Product", lazy="joined")

    __table_args__ = (
        CheckConstraint('quantity > 0', name='check_quantity_positive'),
    )

    @property
    def line_total(self):
        return self.price_at_purchase * self.quantity

    def __repr__(self):
        return (
            f"<OrderItem(order_id={self.order_id}, product_id={self.product_id}, "
            f"quantity={self.quantity})>"
        )
