from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Integer,
    Numeric,
    String,
)
from datetime import datetime, timezone
import enum

from bakery_pos.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """Express a timestamp in UTC; naive values are taken to be UTC already."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class ProductCategory(str, enum.Enum):
    """Fixed set of catalog categories."""
    BREADS = "Breads"
    PASTRIES = "Pastries"
    CAKES = "Cakes"
    COOKIES = "Cookies"
    BEVERAGES = "Beverages"
    SANDWICHES = "Sandwiches"
    SEASONAL = "Seasonal"
    OTHER = "Other"

    @property
    def code_prefix(self) -> str:
        """Single-letter prefix used for product codes (D for drinks)."""
        return CATEGORY_CODE_PREFIXES[self]


CATEGORY_CODE_PREFIXES = {
    ProductCategory.BREADS: "B",
    ProductCategory.PASTRIES: "P",
    ProductCategory.CAKES: "C",
    ProductCategory.COOKIES: "K",
    ProductCategory.BEVERAGES: "D",
    ProductCategory.SANDWICHES: "S",
    ProductCategory.SEASONAL: "Z",
    ProductCategory.OTHER: "O",
}


class Product(Base):
    """
    Product model representing items on sale at the counter.

    Attributes:
        id: Unique identifier for the product
        product_code: Human-readable SKU, category prefix plus sequence (e.g. B01)
        name: Product name
        price: Current unit price (must be positive)
        category: One of the fixed product categories
        stock_qty: Units on hand (must be non-negative)
        image_url: Optional image shown by the POS
        is_active: False once the product is soft-deleted
        created_at: Timestamp when product was created
        updated_at: Timestamp when product was last updated
    """
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    product_code = Column(String(16), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    price = Column(Numeric(10, 2), nullable=False)
    category = Column(Enum(ProductCategory), nullable=False, index=True)
    stock_qty = Column(Integer, nullable=False, default=0)
    image_url = Column(String(1024), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    # Database-level constraints to ensure data integrity
    __table_args__ = (
        CheckConstraint('price > 0', name='check_price_positive'),
        CheckConstraint('stock_qty >= 0', name='check_stock_non_negative'),
    )

    def __repr__(self):
        return f"<Product(id={self.id}, code='{self.product_code}', stock_qty={self.stock_qty})>"
