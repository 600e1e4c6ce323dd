from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from bakery_pos.database import get_db
from bakery_pos.models.product import ProductCategory
from bakery_pos.services.product_service import ProductService, ProductInUseError
from bakery_pos.schemas.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
    ProductListResponse,
    StockAdjustment,
)

router = APIRouter(prefix="/products", tags=["Products"])


def _not_found(product_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Product with ID {product_id} not found"
    )


@router.post(
    "/",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new product",
    description="Create a product; its product code is generated from the category."
)
def create_product(
    product_data: ProductCreate,
    db: Session = Depends(get_db)
):
    """
    Create a new product.

    - **name**: Product name (required)
    - **price**: Unit price, must be positive (required)
    - **category**: One of the bakery categories (required)
    - **stock_qty**: Initial stock, must be non-negative (required)
    - **image_url**: Optional image
    - **is_active**: Defaults to true
    """
    service = ProductService(db)
    return service.create(product_data)


@router.get(
    "/",
    response_model=ProductListResponse,
    summary="List products",
    description="Get a paginated list of products ordered by category and name."
)
def list_products(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    search: Optional[str] = Query(None, description="Search by product name"),
    category: Optional[ProductCategory] = Query(None, description="Filter by category"),
    is_active: Optional[bool] = Query(None, description="Filter by active flag"),
    db: Session = Depends(get_db)
):
    """Get paginated list of products."""
    service = ProductService(db)
    products, total, total_pages = service.get_all(page, page_size, search, category, is_active)

    return ProductListResponse(
        items=[ProductResponse.model_validate(p) for p in products],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages
    )


@router.get(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Get product by ID",
    description="Get the current catalog entry for a product."
)
def get_product(
    product_id: int,
    db: Session = Depends(get_db)
):
    """Get a product by ID."""
    service = ProductService(db)
    product = service.get_by_id(product_id)

    if not product:
        raise _not_found(product_id)

    return product


@router.get(
    "/{product_id}/cached",
    summary="Get product from cache",
    description="Get product details from Redis cache (or database if not cached)."
)
def get_product_cached(
    product_id: int,
    db: Session = Depends(get_db)
):
    """
    Get product from cache.

    Entries are dropped whenever the product or its stock changes.
    """
    service = ProductService(db)
    product_data = service.get_by_id_cached(product_id)

    if not product_data:
        raise _not_found(product_id)

    return product_data


@router.put(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Update a product",
    description="Update product details. Only provided fields will be updated."
)
def update_product(
    product_id: int,
    product_data: ProductUpdate,
    db: Session = Depends(get_db)
):
    """
    Update a product.

    Price changes apply to future checkouts only; past orders keep the
    price they were sold at.
    """
    service = ProductService(db)
    product = service.update(product_id, product_data)

    if not product:
        raise _not_found(product_id)

    return product


@router.patch(
    "/{product_id}/stock",
    response_model=ProductResponse,
    summary="Adjust product stock",
    description="Set, add to or subtract from the stock counter (subtract stops at zero)."
)
def adjust_stock(
    product_id: int,
    adjustment: StockAdjustment,
    db: Session = Depends(get_db)
):
    """Manual stock correction, e.g. after a bake or wastage count."""
    service = ProductService(db)
    product = service.adjust_stock(product_id, adjustment.quantity, adjustment.operation)

    if not product:
        raise _not_found(product_id)

    return product


@router.delete(
    "/{product_id}",
    summary="Delete a product",
    description="""
    Deactivate a product (soft delete). With `hard_delete=true` the row is
    removed, which is refused with 409 while past orders reference it.
    """
)
def delete_product(
    product_id: int,
    hard_delete: bool = Query(False, description="Permanently remove the product"),
    db: Session = Depends(get_db)
):
    """Deactivate or permanently delete a product."""
    service = ProductService(db)

    try:
        product = service.delete(product_id, hard=hard_delete)
    except ProductInUseError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e)
        )

    if not product:
        raise _not_found(product_id)

    if hard_delete:
        return {"message": "Product permanently deleted"}

    return {
        "message": "Product deactivated successfully",
        "product": ProductResponse.model_validate(product),
    }
