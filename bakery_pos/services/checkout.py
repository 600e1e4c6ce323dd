from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from decimal import Decimal
from typing import Any, Iterable, Optional
import logging

from bakery_pos.models.order import Order, OrderItem, OrderStatus
from bakery_pos.schemas.order import CartLine
from bakery_pos.services.order_service import OrderService
from bakery_pos.services.product_service import ProductService

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


class CheckoutError(Exception):
    """
    Base class for checkout failures.

    Every failure carries a ``kind``, the HTTP status it maps to and the
    context a cashier needs to fix the cart.
    """
    kind = "CheckoutError"
    status_code = 400

    def __init__(self, message: str, product_id: Optional[int] = None, **context: Any):
        super().__init__(message)
        self.message = message
        self.product_id = product_id
        self.context = context

    def to_detail(self) -> dict:
        detail = {"kind": self.kind, "message": self.message}
        if self.product_id is not None:
            detail["product_id"] = self.product_id
        detail.update(self.context)
        return detail


class EmptyCartError(CheckoutError):
    """Raised when a checkout is attempted with no cart lines."""
    kind = "InvalidCart"

    def __init__(self):
        super().__init__("Order items are required")


class InvalidQuantityError(CheckoutError):
    """Raised when a cart line quantity is not a positive integer."""
    kind = "InvalidQuantity"

    def __init__(self, product_id: int, quantity: Any):
        super().__init__(
            f"Quantity for product {product_id} must be a positive integer, got {quantity}",
            product_id=product_id,
            requested=quantity,
        )


class ProductNotFoundError(CheckoutError):
    """Raised when the requested product doesn't exist."""
    kind = "ProductNotFound"
    status_code = 404

    def __init__(self, product_id: int):
        super().__init__(f"Product with ID {product_id} not found", product_id=product_id)


class ProductInactiveError(CheckoutError):
    """Raised when the requested product has been deactivated."""
    kind = "ProductInactive"

    def __init__(self, product_id: int, name: str):
        super().__init__(f'Product "{name}" is not available', product_id=product_id)


class InsufficientStockError(CheckoutError):
    """Raised when there's not enough stock to fulfill a cart line."""
    kind = "InsufficientStock"

    def __init__(self, product_id: int, name: str, available: int, requested: int):
        super().__init__(
            f'Insufficient stock for "{name}". Available: {available}, Requested: {requested}',
            product_id=product_id,
            available=available,
            requested=requested,
        )
        self.available = available
        self.requested = requested


class PersistenceError(CheckoutError):
    """Raised when the checkout transaction could not be committed."""
    kind = "PersistenceFailure"
    status_code = 500

    def __init__(self):
        super().__init__("Failed to process order, please retry")


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class CheckoutEngine:
    """
    Turns a cart into a COMPLETED order in one transaction.

    STOCK CONSISTENCY:
    ==================
    Two mechanisms keep concurrent checkouts from overselling:

    1. Products in the cart are read with SELECT ... FOR UPDATE, in
       ascending id order, so the stock check sees the current committed
       value and competing checkouts on the same product queue up.
    2. Each decrement is a conditional UPDATE (stock_qty >= amount). If it
       matches no row, stock moved under us and the whole checkout is
       rolled back with InsufficientStockError.

    On SQLite, which has no row locks, the conditional update alone holds
    the invariant because writers are serialized by the database lock.

    Any failure rolls back the session: no order, no items and no stock
    change survive a failed checkout.
    """

    def __init__(self, db: Session):
        self.db = db
        self.catalog = ProductService(db)
        self.orders = OrderService(db)

    def checkout(self, lines: Iterable[CartLine]) -> Order:
        """
        Validate the cart, snapshot prices, decrement stock and persist the
        order atomically.

        Lines repeating a product become separate order items; stock is
        checked and decremented against their combined quantity.

        Args:
            lines: Requested cart lines (product_id, quantity)

        Returns:
            The committed order with its items

        Raises:
            EmptyCartError: If no lines were given
            InvalidQuantityError: If a quantity is not a positive integer
            ProductNotFoundError: If a product doesn't exist
            ProductInactiveError: If a product is deactivated
            InsufficientStockError: If a product lacks the requested units
            PersistenceError: If the transaction could not be committed
        """
        lines = list(lines)
        if not lines:
            raise EmptyCartError()

        for line in lines:
            if not _is_positive_int(line.quantity):
                raise InvalidQuantityError(line.product_id, line.quantity)

        # Combined quantity per product, in cart order
        requested: dict[int, int] = {}
        for line in lines:
            requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity

        try:
            products = self.catalog.lock_for_checkout(requested)

            for product_id in requested:
                product = products.get(product_id)
                if product is None:
                    raise ProductNotFoundError(product_id)
                if not product.is_active:
                    raise ProductInactiveError(product_id, product.name)

            for product_id, quantity in requested.items():
                product = products[product_id]
                if product.stock_qty < quantity:
                    raise InsufficientStockError(
                        product_id, product.name, product.stock_qty, quantity
                    )

            items = [
                OrderItem(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    price_at_purchase=Decimal(products[line.product_id].price),
                )
                for line in lines
            ]
            total_amount = sum(
                (item.price_at_purchase * item.quantity for item in items),
                Decimal("0"),
            ).quantize(CENTS)

            for product_id in sorted(requested):
                quantity = requested[product_id]
                if not self.catalog.decrement_stock(product_id, quantity):
                    available = self.catalog.current_stock(product_id) or 0
                    raise InsufficientStockError(
                        product_id, products[product_id].name, available, quantity
                    )

            order = self.orders.add_order(
                Order(total_amount=total_amount, status=OrderStatus.COMPLETED, items=items)
            )
            self.db.commit()

        except CheckoutError as e:
            self.db.rollback()
            logger.info(f"Checkout rejected ({e.kind}): {e.message}")
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Checkout transaction failed: {e}")
            raise PersistenceError() from e

        self.db.refresh(order)
        self.catalog.invalidate(requested)

        logger.info(
            f"Order #{order.id} completed: {len(order.items)} items, total {order.total_amount}"
        )
        return order
