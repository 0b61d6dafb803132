"""Tests for the materials management endpoints and the material ledger routes."""

import pytest

BASE = "/api/materials-management"


@pytest.fixture
async def material(make_material):
    return await make_material(qty_on_hand=100, min_stock=10, reorder_point=20, price_per_unit=2)


def test_create_and_get(client):
    response = client.post(
        BASE,
        json={"name": "Voal Cream", "qtyOnHand": 12, "unit": "meter", "pricePerUnit": 3, "supplier": "Kain Jaya"},
    )
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["totalValue"] == 36
    assert "-KAINJA-" in data["code"]

    detail = client.get(f"{BASE}/{data['id']}").json()["data"]
    assert detail["recentMovements"] == []
    assert detail["restockRecommendation"]["action"] == "adequate_stock"


def test_create_rejects_negative_opening_balance(client):
    response = client.post(BASE, json={"name": "Bad", "qtyOnHand": -1})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_list_carries_delete_flags(client, material):
    body = client.get(BASE).json()
    assert body["success"] is True
    row = body["data"]["materials"][0]
    assert row["canDelete"] is True
    assert row["hasMovements"] is False
    assert row["totalValue"] == 200
    assert body["data"]["pagination"]["total"] == 1


def test_list_unknown_sort_field(client, material):
    response = client.get(BASE, params={"sortBy": "secret"})
    assert response.status_code == 400


def test_adjust_out_and_history(client, material, admin_user):
    response = client.post(
        f"{BASE}/{material.id}/adjust",
        json={"type": "OUT", "quantity": 30, "reason": "sold", "userId": admin_user.id},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["previousQuantity"] == 100
    assert data["newQuantity"] == 70
    assert data["material"]["qtyOnHand"] == 70
    assert data["adjustment"] == {"type": "OUT", "quantity": 30}

    history = client.get(f"{BASE}/{material.id}/movements").json()
    assert history["pagination"]["total"] == 1
    movement = history["movements"][0]
    assert movement["movementType"] == "OUT"
    assert movement["qtyAfter"] == 70
    assert movement["user"]["email"] == admin_user.email


def test_adjust_insufficient_stock(client, material, admin_user):
    response = client.post(
        f"{BASE}/{material.id}/adjust",
        json={"type": "OUT", "quantity": 101, "reason": "sold", "userId": admin_user.id},
    )
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Insufficient stock for this adjustment"}
    assert client.get(f"{BASE}/{material.id}").json()["data"]["qtyOnHand"] == 100


@pytest.mark.parametrize(
    "body",
    [
        {"type": "SIDEWAYS", "quantity": 1, "reason": "x"},
        {"type": "IN", "quantity": 0, "reason": "x"},
        {"type": "IN", "quantity": 1, "reason": ""},
        {"type": "IN", "quantity": 1},
    ],
)
def test_adjust_rejects_malformed_body(client, material, admin_user, body):
    response = client.post(f"{BASE}/{material.id}/adjust", json={**body, "userId": admin_user.id})
    assert response.status_code == 400


def test_adjust_unknown_material(client, admin_user):
    response = client.post(
        f"{BASE}/999/adjust", json={"type": "IN", "quantity": 1, "reason": "x", "userId": admin_user.id}
    )
    assert response.status_code == 404
    assert response.json()["message"] == "Material not found"


def test_set_stock_and_noop(client, material, admin_user):
    body = {"quantity": 50, "reason": "stocktake", "userId": admin_user.id}
    first = client.put(f"{BASE}/{material.id}/stock", json=body).json()
    assert first["quantityDifference"] == -50
    assert first["message"] == "Stock level updated successfully"

    second = client.put(f"{BASE}/{material.id}/stock", json=body).json()
    assert second["quantityDifference"] == 0
    assert second["message"] == "Stock level unchanged"
    assert client.get(f"{BASE}/{material.id}/movements").json()["pagination"]["total"] == 1


def test_field_update_ignores_quantity(client, material):
    response = client.put(f"{BASE}/{material.id}", json={"name": "Renamed", "qtyOnHand": 0})
    assert response.status_code == 200
    assert response.json()["data"]["name"] == "Renamed"
    assert response.json()["data"]["qtyOnHand"] == 100


def test_detail_cache_is_invalidated_by_adjust(client, material, admin_user, cache):
    client.get(f"{BASE}/{material.id}")
    assert f"materials:detail:{material.id}" in cache

    client.post(
        f"{BASE}/{material.id}/adjust",
        json={"type": "IN", "quantity": 5, "reason": "delivery", "userId": admin_user.id},
    )
    assert f"materials:detail:{material.id}" not in cache
    assert client.get(f"{BASE}/{material.id}").json()["data"]["qtyOnHand"] == 105


def test_delete_guarded_by_movements(client, material, admin_user):
    client.post(
        f"{BASE}/{material.id}/adjust",
        json={"type": "IN", "quantity": 1, "reason": "delivery", "userId": admin_user.id},
    )
    response = client.delete(f"{BASE}/{material.id}")
    assert response.status_code == 400
    assert "existing movements" in response.json()["message"]


def test_delete_unused_material(client):
    response = client.post(BASE, json={"name": "Spare"})
    material_id = response.json()["data"]["id"]
    assert client.delete(f"{BASE}/{material_id}").json()["message"] == "Material deleted successfully"
    assert client.get(f"{BASE}/{material_id}").status_code == 404


async def test_critical_stock_lists_low_materials(client, make_material):
    low = await make_material(qty_on_hand=1, min_stock=5)
    await make_material(qty_on_hand=50, min_stock=5)
    body = client.get(f"{BASE}/critical-stock").json()
    assert [m["id"] for m in body["data"]] == [low.id]


async def test_category_bulk_import_export(client, make_material):
    fabric = await make_material(attribute_type="Fabric", name="Voal")
    await make_material(attribute_type="Thread", name="Polyester")

    by_category = client.get(f"{BASE}/category/fabric").json()
    assert [m["name"] for m in by_category["data"]] == ["Voal"]

    bulk = client.put(
        f"{BASE}/bulk/update", json={"materials": [{"id": fabric.id, "minStock": 7}, {"id": 999, "minStock": 1}]}
    ).json()
    assert bulk["message"] == "Bulk update completed. 1 successful, 1 failed."

    imported = client.post(f"{BASE}/import", json={"materials": [{"name": "Satin"}, {"unit": "meter"}]}).json()
    assert len(imported["results"]) == 1
    assert len(imported["errors"]) == 1

    export = client.get(f"{BASE}/export")
    assert export.headers["content-type"].startswith("text/csv")
    assert export.text.splitlines()[0].startswith("ID,Name,")
    assert len(export.text.strip().splitlines()) == 4


async def test_analytics_and_products_using(client, make_material, make_product, test_session):
    from warehouse.models import ProductMaterial

    cloth = await make_material(qty_on_hand=9, price_per_unit=1, attribute_type="Fabric")
    product = await make_product(name="Square")
    test_session.add(ProductMaterial(product_id=product.id, material_id=cloth.id, quantity=2))
    await test_session.commit()

    analytics = client.get(f"{BASE}/analytics/inventory").json()
    assert analytics["overview"]["totalMaterials"] == 1
    assert analytics["materialsByAttribute"] == [{"name": "Fabric", "count": 1}]

    using = client.get(f"{BASE}/{cloth.id}/products").json()
    assert using["products"][0]["productName"] == "Square"
    assert using["products"][0]["maxProducible"] == 4


@pytest.mark.parametrize("quantity", ["Infinity", "inf", "-inf", "NaN"])
def test_non_finite_quantities_are_rejected(client, material, admin_user, quantity):
    adjust = client.post(
        f"{BASE}/{material.id}/adjust",
        json={"type": "IN", "quantity": quantity, "reason": "delivery", "userId": admin_user.id},
    )
    assert adjust.status_code == 400
    assert adjust.json()["success"] is False

    stock = client.put(
        f"{BASE}/{material.id}/stock", json={"quantity": quantity, "reason": "stocktake", "userId": admin_user.id}
    )
    assert stock.status_code == 400

    assert client.get(f"{BASE}/{material.id}").json()["data"]["qtyOnHand"] == 100
    assert client.get(f"{BASE}/{material.id}/movements").json()["pagination"]["total"] == 0


def test_non_finite_thresholds_are_rejected(client):
    response = client.post(BASE, json={"name": "Lace", "minStock": "Infinity"})
    assert response.status_code == 400
