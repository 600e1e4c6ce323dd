from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from bakery_pos.models.product import ProductCategory


class ProductBase(BaseModel):
    """Base schema for Product with common attributes."""
    name: str = Field(..., min_length=1, max_length=255, description="Product name")
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2, description="Unit price (must be positive)")
    category: ProductCategory = Field(..., description="Product category")
    stock_qty: int = Field(..., ge=0, description="Units in stock (must be non-negative)")
    image_url: Optional[str] = Field(None, max_length=1024, description="Image URL")
    is_active: bool = Field(default=True, description="Whether the product can be sold")


class ProductCreate(ProductBase):
    """Schema for creating a new product."""
    pass


class ProductUpdate(BaseModel):
    """Schema for updating an existing product. All fields are optional."""
    name: Optional[str] = Field(None, min_length=1, max_length=255, description="Product name")
    price: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2, description="Unit price")
    category: Optional[ProductCategory] = Field(None, description="Product category")
    stock_qty: Optional[int] = Field(None, ge=0, description="Units in stock")
    image_url: Optional[str] = Field(None, max_length=1024, description="Image URL")
    is_active: Optional[bool] = Field(None, description="Whether the product can be sold")


class StockAdjustment(BaseModel):
    """Schema for a manual stock correction."""
    quantity: int = Field(..., ge=0, description="Quantity to set, add or subtract")
    operation: Literal["set", "add", "subtract"] = Field(default="set", description="Adjustment mode")


class ProductResponse(BaseModel):
    """Schema for product response including all fields."""
    id: int
    product_code: str
    name: str
    price: float
    category: ProductCategory
    stock_qty: int
    image_url: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProductListResponse(BaseModel):
    """Schema for paginated product list response."""
    items: list[ProductResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
