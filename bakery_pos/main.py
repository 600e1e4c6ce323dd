from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from bakery_pos.config import get_settings
from bakery_pos.database import engine, Base
from bakery_pos.api import products, orders, dashboard, health

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    """
    logger.info("Starting up bakery POS...")

    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created successfully")

    yield

    logger.info("Shutting down bakery POS...")


app = FastAPI(
    title=settings.APP_NAME,
    description="""
    Point-of-sale backend for a bakery counter:

    - **Catalog**: products with category-prefixed codes and stock counters
    - **Checkout**: carts become completed orders with captured prices
    - **Dashboard**: revenue, top products, category totals and hourly sales

    ## Stock consistency
    A checkout validates the cart, snapshots prices, decrements stock and
    writes the order in a single transaction. Product rows are locked with
    `SELECT FOR UPDATE` and each decrement is conditional, so two registers
    can never both sell the last croissant.

    ## Background processing
    After a checkout a Celery task flags products that are running low.

    ## Caching
    Product lookups are cached in Redis and dropped whenever stock changes.
    """,
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(health.router, prefix="/api/v1")
app.include_router(products.router, prefix="/api/v1")
app.include_router(orders.router, prefix="/api/v1")
app.include_router(dashboard.router, prefix="/api/v1")

app.add_exception_handler(RequestValidationError, orders.cart_validation_handler)


@app.get("/", tags=["Root"])
def root():
    """Root endpoint with API information."""
    return {
        "name": settings.APP_NAME,
        "version": "1.0.0",
        "docs": "/docs",
        "redoc": "/redoc",
        "health": "/api/v1/health"
    }
