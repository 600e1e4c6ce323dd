from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from celery.exceptions import OperationalError
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Optional
import logging

from bakery_pos.database import get_db
from bakery_pos.services.checkout import CheckoutEngine, CheckoutError
from bakery_pos.services.order_service import OrderService
from bakery_pos.schemas.order import (
    OrderCreate,
    OrderResponse,
    OrderListResponse,
    OrderStatusUpdate,
)
from bakery_pos.models.order import OrderStatus
from bakery_pos.tasks.stock_tasks import flag_low_stock

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post(
    "/",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Check out a cart",
    description="""
    Turn a cart into a completed order.

    **Stock Handling:**
    Prices are captured at checkout and stock is decremented in the same
    transaction as the order insert. When two registers sell the last unit
    at the same time only one checkout succeeds; the other receives a 400
    error of kind `InsufficientStock`.

    Errors are returned as `{"detail": {"kind", "message", ...}}`.
    """
)
def create_order(
    order_data: OrderCreate,
    db: Session = Depends(get_db)
):
    """
    Create an order from cart lines.

    - **items**: list of `{product_id, quantity}` (at least one)

    Failure kinds:
    - InvalidCart / InvalidQuantity / ProductInactive / InsufficientStock: 400
    - ProductNotFound: 404
    - PersistenceFailure: 500
    """
    engine = CheckoutEngine(db)

    try:
        order = engine.checkout(order_data.items)
    except CheckoutError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

    product_ids = sorted({item.product_id for item in order.items})
    try:
        flag_low_stock.delay(product_ids)
    except OperationalError as e:
        logger.warning(f"Could not queue low-stock check for Order #{order.id}: {e}")

    return order


@router.get(
    "/",
    response_model=OrderListResponse,
    summary="List orders",
    description="Get a paginated list of orders with optional status and date filters."
)
def list_orders(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
    status: Optional[OrderStatus] = Query(None, description="Filter by order status"),
    start_date: Optional[datetime] = Query(None, description="Created at or after"),
    end_date: Optional[datetime] = Query(None, description="Created before"),
    db: Session = Depends(get_db)
):
    """Get paginated list of orders, newest first."""
    service = OrderService(db)
    orders, total, total_pages = service.get_orders(page, page_size, status, start_date, end_date)

    return OrderListResponse(
        items=[OrderResponse.model_validate(o) for o in orders],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages
    )


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get order by ID",
    description="Get an order with its items and product snapshots."
)
def get_order(
    order_id: int,
    db: Session = Depends(get_db)
):
    """Get an order by ID."""
    service = OrderService(db)
    order = service.get_order(order_id)

    if not order:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Order with ID {order_id} not found"
        )

    return order


@router.patch(
    "/{order_id}/status",
    response_model=OrderResponse,
    summary="Update order status",
    description="Move an order to PENDING, COMPLETED or CANCELLED. Stock is not adjusted."
)
def update_order_status(
    order_id: int,
    status_data: OrderStatusUpdate,
    db: Session = Depends(get_db)
):
    """Change the status of an order."""
    service = OrderService(db)
    order = service.update_status(order_id, status_data.status)

    if not order:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Order with ID {order_id} not found"
        )

    return order


async def cart_validation_handler(request: Request, exc: RequestValidationError):
    """
    Report a malformed checkout body as an InvalidCart error (400).

    Other routes keep FastAPI's default 422 response.
    """
    if request.scope.get("endpoint") is not create_order:
        return await request_validation_exception_handler(request, exc)

    logger.info(f"Checkout rejected (InvalidCart): {len(exc.errors())} invalid field(s)")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": {
                "kind": "InvalidCart",
                "message": "Order must be {items: [{product_id, quantity}]} with integer fields",
                "errors": jsonable_encoder(exc.errors()),
            }
        },
    )
