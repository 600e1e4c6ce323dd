from sqlalchemy.orm import Session
from sqlalchemy import exists, update
from typing import Iterable, Optional, List
import math
import logging

from bakery_pos.models.order import OrderItem
from bakery_pos.models.product import Product, ProductCategory
from bakery_pos.schemas.product import ProductCreate, ProductUpdate
from bakery_pos.utils.cache import cache_service

logger = logging.getLogger(__name__)


class ProductInUseError(Exception):
    """Raised when a hard delete targets a product referenced by order items."""
    pass


class ProductService:
    """
    Service class for the product catalog.

    This service handles:
    - Creating products with generated product codes
    - Reading products (with caching)
    - Updating, deactivating and deleting products
    - Manual stock adjustments
    - The locked reads and conditional decrements used by checkout
    """

    CACHE_PREFIX = "product"

    def __init__(self, db: Session):
        self.db = db

    def create(self, product_data: ProductCreate) -> Product:
        """
        Create a new product and assign its product code.

        Args:
            product_data: Product creation data

        Returns:
            Created product instance
        """
        product = Product(
            product_code=self.next_product_code(product_data.category),
            name=product_data.name.strip(),
            price=product_data.price,
            category=product_data.category,
            stock_qty=product_data.stock_qty,
            image_url=_clean_url(product_data.image_url),
            is_active=product_data.is_active,
        )
        self.db.add(product)
        self.db.commit()
        self.db.refresh(product)

        logger.info(f"Product {product.product_code} '{product.name}' created")
        return product

    def next_product_code(self, category: ProductCategory) -> str:
        """
        Compute the next product code for a category.

        Codes are the category prefix followed by a sequence number padded
        to two digits. The sequence continues from the highest number
        already used by the prefix, compared numerically.
        """
        prefix = category.code_prefix
        codes = self.db.query(Product.product_code).filter(
            Product.product_code.startswith(prefix)
        )
        highest = 0
        for (code,) in codes:
            suffix = code[len(prefix):]
            if suffix.isdigit():
                highest = max(highest, int(suffix))
        return f"{prefix}{highest + 1:02d}"

    def get_by_id(self, product_id: int) -> Optional[Product]:
        """Get a product by ID from the database."""
        return self.db.query(Product).filter(Product.id == product_id).first()

    find_by_id = get_by_id

    def get_by_id_cached(self, product_id: int) -> Optional[dict]:
        """
        Get product details from cache or database.
        Returns a dictionary (suitable for API response).
        """
        cached = cache_service.get(self.CACHE_PREFIX, str(product_id))
        if cached:
            return cached

        product = self.get_by_id(product_id)
        if not product:
            return None

        product_dict = _to_cache_dict(product)
        cache_service.set(self.CACHE_PREFIX, str(product_id), product_dict)
        return product_dict

    def get_all(
        self,
        page: int = 1,
        page_size: int = 10,
        search: str = None,
        category: ProductCategory = None,
        is_active: bool = None,
    ) -> tuple[List[Product], int, int]:
        """
        Get paginated list of products ordered by category, then name.

        Args:
            page: Page number (1-indexed)
            page_size: Number of items per page
            search: Optional search term for product name
            category: Optional category filter
            is_active: Optional active/inactive filter

        Returns:
            Tuple of (products list, total count, total pages)
        """
        query = self.db.query(Product)

        if search:
            query = query.filter(Product.name.ilike(f"%{search}%"))
        if category is not None:
            query = query.filter(Product.category == category)
        if is_active is not None:
            query = query.filter(Product.is_active == is_active)

        total = query.count()
        total_pages = math.ceil(total / page_size) if total > 0 else 1

        offset = (page - 1) * page_size
        products = (
            query.order_by(Product.category, Product.name, Product.id)
            .offset(offset)
            .limit(page_size)
            .all()
        )

        return products, total, total_pages

    def update(self, product_id: int, product_data: ProductUpdate) -> Optional[Product]:
        """
        Update an existing product.

        Only fields present in the request are changed. Changing the price
        never touches existing order items.
        """
        product = self.get_by_id(product_id)

        if not product:
            return None

        update_data = product_data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            if value is None and field != "image_url":
                continue
            if field == "name":
                value = value.strip()
            elif field == "image_url":
                value = _clean_url(value)
            setattr(product, field, value)

        self.db.commit()
        self.db.refresh(product)

        self._invalidate_cache(product_id)

        return product

    def delete(self, product_id: int, hard: bool = False) -> Optional[Product]:
        """
        Deactivate a product, or remove it entirely when ``hard`` is set.

        Returns:
            The deactivated product, the removed product for a hard delete,
            or None if not found

        Raises:
            ProductInUseError: If a hard delete targets a product that
                appears in past orders
        """
        product = self.get_by_id(product_id)

        if not product:
            return None

        if hard:
            in_use = self.db.query(
                exists().where(OrderItem.product_id == product_id)
            ).scalar()
            if in_use:
                raise ProductInUseError(
                    f"Product with ID {product_id} is referenced by existing orders"
                )
            self.db.delete(product)
            logger.warning(f"Product #{product_id} permanently deleted")
        else:
            product.is_active = False
            logger.info(f"Product #{product_id} deactivated")

        self.db.commit()
        self._invalidate_cache(product_id)

        return product

    def adjust_stock(self, product_id: int, quantity: int, operation: str = "set") -> Optional[Product]:
        """
        Manually correct the stock counter of a product.

        The row is locked for the read-modify-write so a concurrent checkout
        cannot interleave with the correction.

        Args:
            product_id: Product to adjust
            quantity: Non-negative amount
            operation: 'set', 'add' or 'subtract' (subtract stops at zero)

        Returns:
            Updated product or None if not found
        """
        product = (
            self.db.query(Product)
            .filter(Product.id == product_id)
            .with_for_update()
            .first()
        )

        if not product:
            return None

        if operation == "add":
            product.stock_qty = product.stock_qty + quantity
        elif operation == "subtract":
            product.stock_qty = max(0, product.stock_qty - quantity)
        else:
            product.stock_qty = quantity

        self.db.commit()
        self.db.refresh(product)
        self._invalidate_cache(product_id)

        logger.info(f"Stock for product #{product_id} {operation} {quantity} -> {product.stock_qty}")
        return product

    def lock_for_checkout(self, product_ids: Iterable[int]) -> dict[int, Product]:
        """
        Load products with a row lock, in ascending id order.

        A fixed lock order keeps two checkouts touching the same products
        from deadlocking. Must be called inside the checkout transaction.
        """
        ids = sorted(set(product_ids))
        if not ids:
            return {}
        products = (
            self.db.query(Product)
            .filter(Product.id.in_(ids))
            .order_by(Product.id)
            .with_for_update()
            .populate_existing()
            .all()
        )
        return {product.id: product for product in products}

    def decrement_stock(self, product_id: int, amount: int) -> bool:
        """
        Decrement stock only if enough units remain.

        Runs in the caller's transaction and never commits.

        Returns:
            True if the row was updated, False if stock was insufficient
        """
        result = self.db.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock_qty >= amount)
            .values(stock_qty=Product.stock_qty - amount)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def current_stock(self, product_id: int) -> Optional[int]:
        """Read the committed stock counter, bypassing the identity map."""
        return self.db.query(Product.stock_qty).filter(Product.id == product_id).scalar()

    def invalidate(self, product_ids: Iterable[int]) -> None:
        """Drop cached entries for the given products."""
        cache_service.delete_many(self.CACHE_PREFIX, product_ids)

    def _invalidate_cache(self, product_id: int) -> None:
        """Invalidate cache for a product."""
        cache_service.delete(self.CACHE_PREFIX, str(product_id))


def _clean_url(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def _to_cache_dict(product: Product) -> dict:
    return {
        "id": product.id,
        "product_code": product.product_code,
        "name": product.name,
        "price": float(product.price),
        "category": product.category.value,
        "stock_qty": product.stock_qty,
        "image_url": product.image_url,
        "is_active": product.is_active,
        "created_at": str(product.created_at),
        "updated_at": str(product.updated_at),
    }
