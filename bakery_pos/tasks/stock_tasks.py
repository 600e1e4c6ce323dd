import logging

from bakery_pos.config import get_settings
from bakery_pos.database import SessionLocal
from bakery_pos.models.product import Product
from bakery_pos.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)
settings = get_settings()


@celery_app.task(bind=True, name="flag_low_stock")
def flag_low_stock(self, product_ids: list[int], threshold: int = None) -> dict:
    """
    Background check run after a checkout.

    Looks at the products that were just sold and logs a warning for every
    active one whose stock is at or below the low-stock threshold, so the
    bakers know what to restock before the counter runs out.

    Args:
        product_ids: Products touched by the checkout
        threshold: Override for LOW_STOCK_THRESHOLD

    Returns:
        Dictionary with the sold-out and low-stock product ids
    """
    threshold = settings.LOW_STOCK_THRESHOLD if threshold is None else threshold
    db = SessionLocal()

    try:
        products = (
            db.query(Product)
            .filter(
                Product.id.in_(product_ids),
                Product.is_active.is_(True),
                Product.stock_qty <= threshold,
            )
            .order_by(Product.id)
            .all()
        )

        sold_out = []
        low_stock = []
        for product in products:
            if product.stock_qty == 0:
                sold_out.append(product.id)
                logger.warning(f"{product.product_code} '{product.name}' is sold out")
            else:
                low_stock.append(product.id)
                logger.warning(
                    f"{product.product_code} '{product.name}' is low on stock: {product.stock_qty} left"
                )

        return {
            "status": "checked",
            "sold_out": sold_out,
            "low_stock": low_stock,
        }

    finally:
        db.close()
