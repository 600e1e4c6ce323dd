"""Tests for period resolution, the reporting facade and the dashboard endpoint."""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from bakery_pos.models.order import Order, OrderItem, OrderStatus
from bakery_pos.models.product import ProductCategory
from bakery_pos.services.aggregation import ReportPeriod
from bakery_pos.services.order_service import OrderService
from bakery_pos.services.reporting import ReportingService, resolve_period

NOW = datetime(2026, 10, 19, 14, 30, tzinfo=timezone.utc)


def test_resolve_today():
    window = resolve_period(ReportPeriod.TODAY, NOW)

    assert window.start == datetime(2026, 10, 19, tzinfo=timezone.utc)
    assert window.end == NOW


def test_resolve_week():
    window = resolve_period("week", NOW)

    assert window.start == NOW - timedelta(days=7)
    assert window.end == NOW


@pytest.mark.parametrize("now, start, end", [
    (NOW, datetime(2026, 10, 1), datetime(2026, 11, 1)),
    (datetime(2026, 12, 31, 23, 0, tzinfo=timezone.utc), datetime(2026, 12, 1), datetime(2027, 1, 1)),
])
def test_resolve_month_is_calendar_month(now, start, end):
    window = resolve_period(ReportPeriod.MONTH, now)

    assert window.start == start.replace(tzinfo=timezone.utc)
    assert window.end == end.replace(tzinfo=timezone.utc)


def test_resolve_year_on_leap_day():
    window = resolve_period(ReportPeriod.YEAR, datetime(2028, 2, 29, 12, 0, tzinfo=timezone.utc))

    assert window.start == datetime(2027, 2, 28, 12, 0, tzinfo=timezone.utc)


def test_resolve_unknown_period():
    with pytest.raises(ValueError):
        resolve_period("decade", NOW)


def add_order(db_session, product, created_at, quantity=1, status=OrderStatus.COMPLETED):
    order = Order(
        total_amount=product.price * quantity,
        status=status,
        created_at=created_at,
        items=[OrderItem(product_id=product.id, quantity=quantity, price_at_purchase=product.price)],
    )
    db_session.add(order)
    db_session.commit()
    return order


def test_query_orders_half_open_range(db_session, make_product):
    bread = make_product()
    start = datetime(2026, 10, 19, tzinfo=timezone.utc)
    end = start + timedelta(days=1)
    add_order(db_session, bread, start - timedelta(seconds=1))
    inside = add_order(db_session, bread, start)
    add_order(db_session, bread, end)

    orders = OrderService(db_session).query_orders(start, end)

    assert [o.id for o in orders] == [inside.id]
    assert orders[0].items[0].product.name == "Artisan Sourdough Bread"


def test_dashboard_today(db_session, make_product):
    bread = make_product(price="10.00")
    coffee = make_product(name="Cappuccino", price="5.00", category=ProductCategory.BEVERAGES)
    add_order(db_session, bread, NOW.replace(hour=9, minute=15), quantity=2)
    add_order(db_session, coffee, NOW.replace(hour=9, minute=45), quantity=3)
    add_order(db_session, bread, NOW.replace(hour=11), status=OrderStatus.CANCELLED)
    add_order(db_session, bread, NOW - timedelta(days=1))

    summary = ReportingService(db_session, tz=timezone.utc).dashboard(ReportPeriod.TODAY, now=NOW)

    assert summary.order_count == 2
    assert summary.total_revenue == Decimal("35.00")
    assert summary.average_order_value == Decimal("17.50")
    assert summary.total_items_sold == 5
    assert [p.product_name for p in summary.top_products] == ["Cappuccino", "Artisan Sourdough Bread"]
    assert summary.hourly_sales[9].sales == Decimal("35.00")
    assert summary.hourly_sales[9].orders == 2
    assert summary.hourly_sales[11].orders == 0
    assert summary.peak_hour.hour == 9
    assert summary.start_date == datetime(2026, 10, 19, tzinfo=timezone.utc)


def test_dashboard_week_includes_older_orders(db_session, make_product):
    bread = make_product(price="10.00")
    add_order(db_session, bread, NOW - timedelta(days=3))
    add_order(db_session, bread, NOW - timedelta(days=8))

    summary = ReportingService(db_session, tz=timezone.utc).dashboard(ReportPeriod.WEEK, now=NOW)

    assert summary.order_count == 1
    assert summary.hourly_sales == []


def test_dashboard_endpoint_today(client):
    product_id = client.post(
        "/api/v1/products/",
        json={"name": "Artisan Sourdough Bread", "price": 6.50, "category": "Breads", "stock_qty": 12}
    ).json()["id"]
    client.post("/api/v1/orders/", json={"items": [{"product_id": product_id, "quantity": 2}]})
    client.post("/api/v1/orders/", json={"items": [{"product_id": product_id, "quantity": 1}]})

    response = client.get("/api/v1/dashboard/?period=today")

    assert response.status_code == 200
    data = response.json()
    assert data["period"] == "today"
    assert data["total_orders"] == 2
    assert data["total_revenue"] == 19.50
    assert data["average_order_value"] == 9.75
    assert data["total_items_sold"] == 3
    assert data["top_products"][0]["product_id"] == product_id
    assert data["category_breakdown"][0]["category"] == "Breads"
    assert len(data["hourly_sales"]) == 24
    assert sum(h["orders"] for h in data["hourly_sales"]) == 2
    assert data["peak_hour"] is not None


def test_dashboard_endpoint_empty_month(client):
    response = client.get("/api/v1/dashboard/?period=month")

    assert response.status_code == 200
    data = response.json()
    assert data["total_orders"] == 0
    assert data["total_revenue"] == 0
    assert data["average_order_value"] == 0
    assert data["top_products"] == []
    assert data["hourly_sales"] == []
    assert data["peak_hour"] is None


def test_dashboard_endpoint_rejects_unknown_period(client):
    response = client.get("/api/v1/dashboard/?period=decade")

    assert response.status_code == 422
