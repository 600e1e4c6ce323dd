"""Tests for Order API endpoints."""
import logging
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from celery.exceptions import OperationalError

from bakery_pos.models.order import Order, OrderItem, OrderStatus


def create_product(client, name="Artisan Sourdough Bread", price=6.50, stock_qty=12, category="Breads"):
    response = client.post(
        "/api/v1/products/",
        json={"name": name, "price": price, "category": category, "stock_qty": stock_qty}
    )
    return response.json()["id"]


def checkout(client, *lines):
    return client.post(
        "/api/v1/orders/",
        json={"items": [{"product_id": pid, "quantity": qty} for pid, qty in lines]}
    )


def test_create_order_success(client, low_stock_task):
    """Two sourdough loaves at 6.50 come to 13.00 and leave 10 on the shelf."""
    product_id = create_product(client, price=6.50, stock_qty=12)

    response = checkout(client, (product_id, 2))

    assert response.status_code == 201
    data = response.json()
    assert data["total_amount"] == 13.00
    assert data["status"] == "COMPLETED"
    assert len(data["items"]) == 1
    item = data["items"][0]
    assert item["product_id"] == product_id
    assert item["quantity"] == 2
    assert item["price_at_purchase"] == 6.50
    assert item["line_total"] == 13.00
    assert item["product"]["name"] == "Artisan Sourdough Bread"

    product = client.get(f"/api/v1/products/{product_id}").json()
    assert product["stock_qty"] == 10
    low_stock_task.assert_called_once_with([product_id])


def test_create_order_multiple_products(client):
    bread = create_product(client, price=6.50)
    coffee = create_product(client, name="Cappuccino", price=4.50, category="Beverages")

    response = checkout(client, (bread, 1), (coffee, 3))

    assert response.status_code == 201
    data = response.json()
    assert data["total_amount"] == 20.00
    assert [i["product_id"] for i in data["items"]] == [bread, coffee]


def test_create_order_insufficient_stock(client):
    """Five units of a product with three left is rejected and stock is kept."""
    product_id = create_product(client, stock_qty=3)

    response = checkout(client, (product_id, 5))

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["kind"] == "InsufficientStock"
    assert detail["product_id"] == product_id
    assert detail["available"] == 3
    assert detail["requested"] == 5
    assert "Available: 3, Requested: 5" in detail["message"]
    assert client.get(f"/api/v1/products/{product_id}").json()["stock_qty"] == 3


def test_create_order_product_not_found(client):
    """Test order fails when product doesn't exist."""
    response = checkout(client, (9999, 1))

    assert response.status_code == 404
    assert response.json()["detail"]["kind"] == "ProductNotFound"


def test_create_order_inactive_product(client):
    product_id = create_product(client)
    client.delete(f"/api/v1/products/{product_id}")

    response = checkout(client, (product_id, 1))

    assert response.status_code == 400
    assert response.json()["detail"]["kind"] == "ProductInactive"


def test_create_order_empty_cart(client):
    response = client.post("/api/v1/orders/", json={"items": []})

    assert response.status_code == 400
    assert response.json()["detail"]["kind"] == "InvalidCart"


def test_create_order_non_positive_quantity(client):
    product_id = create_product(client)

    response = checkout(client, (product_id, 0))

    assert response.status_code == 400
    assert response.json()["detail"]["kind"] == "InvalidQuantity"


@pytest.mark.parametrize("body", [
    {},
    {"items": [{"product_id": "abc", "quantity": 1}]},
    {"items": [{"product_id": 1, "quantity": "abc"}]},
    {"items": [{"product_id": 1}]},
])
def test_create_order_malformed_body(client, low_stock_task, body):
    """Shape errors in a cart are reported like any other invalid cart."""
    response = client.post("/api/v1/orders/", json=body)

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["kind"] == "InvalidCart"
    assert detail["errors"]
    assert client.get("/api/v1/orders/").json()["total"] == 0
    low_stock_task.assert_not_called()


def test_other_routes_keep_422_for_shape_errors(client):
    response = client.post("/api/v1/products/", json={"name": "Sourdough"})

    assert response.status_code == 422


def test_failed_line_leaves_everything_untouched(client):
    """The second of three lines is short, so nothing is sold."""
    bread = create_product(client, stock_qty=10)
    cake = create_product(client, name="Red Velvet Cake Slice", price=5.50, stock_qty=1, category="Cakes")
    cookie = create_product(client, name="Oatmeal Raisin Cookies", price=2.75, stock_qty=25, category="Cookies")

    response = checkout(client, (bread, 2), (cake, 2), (cookie, 1))

    assert response.status_code == 400
    stock = {pid: client.get(f"/api/v1/products/{pid}").json()["stock_qty"] for pid in (bread, cake, cookie)}
    assert stock == {bread: 10, cake: 1, cookie: 25}
    assert client.get("/api/v1/orders/").json()["total"] == 0


def test_multiple_orders_deplete_stock(client):
    """Test multiple orders correctly deplete stock."""
    product_id = create_product(client, stock_qty=5)

    assert checkout(client, (product_id, 3)).status_code == 201
    assert checkout(client, (product_id, 2)).status_code == 201

    response = checkout(client, (product_id, 1))
    assert response.status_code == 400
    assert response.json()["detail"]["available"] == 0


def test_price_change_does_not_touch_past_orders(client):
    product_id = create_product(client, price=6.50)
    order_id = checkout(client, (product_id, 1)).json()["id"]

    client.put(f"/api/v1/products/{product_id}", json={"price": 8.00})

    order = client.get(f"/api/v1/orders/{order_id}").json()
    assert order["total_amount"] == 6.50
    assert order["items"][0]["price_at_purchase"] == 6.50


def test_get_order(client):
    """Test getting an order by ID."""
    product_id = create_product(client)
    order_id = checkout(client, (product_id, 1)).json()["id"]

    response = client.get(f"/api/v1/orders/{order_id}")

    assert response.status_code == 200
    assert response.json()["id"] == order_id


def test_get_order_not_found(client):
    response = client.get("/api/v1/orders/9999")

    assert response.status_code == 404


def test_list_orders(client):
    """Test listing orders with pagination, newest first."""
    product_id = create_product(client, stock_qty=100)
    ids = [checkout(client, (product_id, 1)).json()["id"] for _ in range(15)]

    response = client.get("/api/v1/orders/?page=1&page_size=10")

    assert response.status_code == 200
    data = response.json()
    assert len(data["items"]) == 10
    assert data["total"] == 15
    assert data["total_pages"] == 2
    assert data["items"][0]["id"] == ids[-1]


def test_list_orders_date_filter_honours_offsets(client, db_session, make_product):
    """Bounds with an offset are compared against the UTC creation time."""
    bread = make_product()
    db_session.add(Order(
        total_amount=Decimal("6.50"),
        status=OrderStatus.COMPLETED,
        created_at=datetime(2026, 10, 19, 10, 0, tzinfo=timezone.utc),
        items=[OrderItem(product_id=bread.id, quantity=1, price_at_purchase=Decimal("6.50"))],
    ))
    db_session.commit()

    def total(**params):
        return client.get("/api/v1/orders/", params=params).json()["total"]

    # 11:00+02:00 is 09:00Z
    assert total(start_date="2026-10-19T11:00:00+02:00") == 1
    assert total(start_date="2026-10-19T12:30:00+02:00") == 0
    # end_date is exclusive: 12:00+02:00 is exactly 10:00Z
    assert total(end_date="2026-10-19T12:00:00+02:00") == 0
    assert total(end_date="2026-10-19T05:30:00-05:00") == 1
    assert total(start_date="2026-10-19T10:00:00") == 1


def test_checkout_succeeds_when_broker_is_down(client, low_stock_task, caplog):
    """A failed low-stock dispatch is logged; the sale still stands."""
    product_id = create_product(client, stock_qty=3)
    low_stock_task.side_effect = OperationalError("broker unreachable")

    with caplog.at_level(logging.WARNING, logger="bakery_pos.api.orders"):
        response = checkout(client, (product_id, 1))

    assert response.status_code == 201
    assert client.get(f"/api/v1/products/{product_id}").json()["stock_qty"] == 2
    assert "Could not queue low-stock check" in caplog.text


def test_update_order_status(client):
    """Cancelling an order changes only its status."""
    product_id = create_product(client, stock_qty=5)
    order_id = checkout(client, (product_id, 2)).json()["id"]

    response = client.patch(f"/api/v1/orders/{order_id}/status", json={"status": "CANCELLED"})

    assert response.status_code == 200
    assert response.json()["status"] == "CANCELLED"
    assert client.get(f"/api/v1/products/{product_id}").json()["stock_qty"] == 3

    cancelled = client.get("/api/v1/orders/?status=CANCELLED").json()
    completed = client.get("/api/v1/orders/?status=COMPLETED").json()
    assert cancelled["total"] == 1
    assert completed["total"] == 0


def test_update_order_status_invalid(client):
    product_id = create_product(client)
    order_id = checkout(client, (product_id, 1)).json()["id"]

    response = client.patch(f"/api/v1/orders/{order_id}/status", json={"status": "SHIPPED"})

    assert response.status_code == 422


def test_update_order_status_not_found(client):
    response = client.patch("/api/v1/orders/9999/status", json={"status": "CANCELLED"})

    assert response.status_code == 404
