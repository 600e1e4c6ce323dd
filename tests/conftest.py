import os

# Point the application engine at a throwaway database before it is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")

from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bakery_pos.main import app
from bakery_pos.database import Base, get_db
from bakery_pos.models.product import Product, ProductCategory
from bakery_pos.utils.cache import cache_service


# Create test database (SQLite in-memory for testing)
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    """Override database dependency for testing."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


# Override the dependency
app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def redis_stub(monkeypatch):
    """Replace the Redis client so cache calls never leave the process."""
    client = MagicMock()
    client.get.return_value = None
    monkeypatch.setattr(cache_service, "client", client)
    return client


@pytest.fixture(autouse=True)
def low_stock_task():
    """Keep checkouts from dispatching to a Celery broker."""
    with patch("bakery_pos.api.orders.flag_low_stock.delay") as delay:
        yield delay


@pytest.fixture(scope="function")
def client():
    """Create test client with fresh database for each test."""
    Base.metadata.create_all(bind=engine)

    with TestClient(app) as test_client:
        yield test_client

    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Create database session for direct database access in tests."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_product(db_session):
    """Insert a product directly, bypassing the API."""
    counter = {"n": 0}

    def _make(name="Artisan Sourdough Bread", price="6.50", stock_qty=12,
              category=ProductCategory.BREADS, is_active=True):
        counter["n"] += 1
        product = Product(
            product_code=f"{category.code_prefix}{counter['n']:02d}",
            name=name,
            price=Decimal(price),
            category=category,
            stock_qty=stock_qty,
            is_active=is_active,
        )
        db_session.add(product)
        db_session.commit()
        db_session.refresh(product)
        return product

    return _make
