from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Optional

from bakery_pos.models.order import OrderStatus
from bakery_pos.models.product import ProductCategory


class CartLine(BaseModel):
    """
    One requested cart line.

    Quantity is range-checked by the checkout engine so that a
    non-positive quantity is reported as a domain error, not a shape error.
    """
    product_id: int = Field(..., description="ID of the product to sell")
    quantity: int = Field(..., description="Units requested")


class OrderCreate(BaseModel):
    """Schema for creating a new order (checkout)."""
    items: list[CartLine] = Field(..., description="Cart lines to check out")


class OrderStatusUpdate(BaseModel):
    """Schema for an explicit order status transition."""
    status: OrderStatus


class ProductSnapshot(BaseModel):
    """Current catalog view of the product referenced by an order item."""
    id: int
    product_code: str
    name: str
    category: ProductCategory
    image_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class OrderItemResponse(BaseModel):
    """Schema for an order line item."""
    id: int
    product_id: int
    quantity: int
    price_at_purchase: float
    line_total: float
    product: Optional[ProductSnapshot] = None

    model_config = ConfigDict(from_attributes=True)


class OrderResponse(BaseModel):
    """Schema for order response."""
    id: int
    total_amount: float
    status: OrderStatus
    created_at: datetime
    updated_at: datetime
    items: list[OrderItemResponse]

    model_config = ConfigDict(from_attributes=True)


class OrderListResponse(BaseModel):
    """Schema for paginated order list response."""
    items: list[OrderResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
