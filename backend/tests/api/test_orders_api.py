"""Tests for production order endpoints."""

import pytest

BASE = "/api/orders"


@pytest.fixture
async def products(make_product):
    return await make_product(name="Pashmina"), await make_product(name="Bergo")


def create_order(client, products, **fields):
    first, second = products
    body = {
        "products": [{"productId": first.id, "quantity": 10}, {"productId": second.id, "quantity": 5}],
        **fields,
    }
    return client.post(BASE, json=body)


def test_create_order(client, products):
    response = create_order(client, products, notes="Eid batch")
    assert response.status_code == 201
    order = response.json()["order"]
    assert order["orderNumber"].startswith("ORD-")
    assert order["status"] == "CREATED"
    assert order["targetPcs"] == 15
    assert [line["product"]["name"] for line in order["orderProducts"]] == ["Pashmina", "Bergo"]


def test_create_requires_lines_and_known_products(client):
    assert client.post(BASE, json={"products": []}).status_code == 400
    assert client.post(BASE, json={"products": [{"productId": 999, "quantity": 1}]}).status_code == 404


def test_progress_and_status_update(client, products):
    order = create_order(client, products).json()["order"]
    first_line, second_line = order["orderProducts"]

    response = client.put(
        f"{BASE}/{order['id']}",
        json={
            "status": "processing",
            "products": [{"id": first_line["id"], "completedQty": 10}, {"id": second_line["id"], "completedQty": 2}],
        },
    )
    assert response.status_code == 200
    updated = response.json()["order"]
    assert updated["status"] == "PROCESSING"
    assert updated["completedPcs"] == 12

    over = client.put(f"{BASE}/{order['id']}", json={"products": [{"id": second_line["id"], "completedQty": 6}]})
    assert over.status_code == 400
    assert client.put(f"{BASE}/{order['id']}", json={"status": "LOST"}).status_code == 400


def test_completed_order_flows_into_product_stock(client, products, admin_user):
    order = create_order(client, products).json()["order"]
    lines = [{"id": line["id"], "completedQty": line["quantity"]} for line in order["orderProducts"]]
    client.put(f"{BASE}/{order['id']}", json={"status": "COMPLETED", "products": lines})

    received = client.post(
        "/api/products/stock/complete-order", json={"orderId": order["id"], "userId": admin_user.id}
    )
    assert received.status_code == 200
    assert client.get(f"{BASE}/{order['id']}").json()["stockReceived"] is True

    frozen = client.put(f"{BASE}/{order['id']}", json={"products": [{"id": lines[0]["id"], "completedQty": 1}]})
    assert frozen.status_code == 400


def test_list_search_and_soft_delete(client, products):
    first = create_order(client, products, notes="Eid batch").json()["order"]
    create_order(client, products, notes="School uniform")

    found = client.get(BASE, params={"search": "eid"}).json()
    assert [o["id"] for o in found["orders"]] == [first["id"]]

    assert client.delete(f"{BASE}/{first['id']}").status_code == 200
    assert client.get(f"{BASE}/{first['id']}").status_code == 404
    assert client.get(BASE).json()["pagination"]["total"] == 1
