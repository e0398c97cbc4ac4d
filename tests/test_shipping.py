"""
API tests for shipping methods, quotes, shipments and tracking.
"""
import pytest
from bson import ObjectId

from conftest import auth, place_order
from marketplace.models import ShippingMethodDocument

pytestmark = pytest.mark.api


async def add_method(db, **overrides) -> str:
    fields = {
        "name": "Ground",
        "type": "standard",
        "provider": "UPS",
        "price_base": 5.0,
        "price_per_kg": 1.25,
        "estimated_days_min": 3,
        "estimated_days_max": 5,
        "max_weight_kg": 20,
    }
    fields.update(overrides)
    result = await db.shipping_methods.insert_one(ShippingMethodDocument(**fields).to_mongo())
    return str(result.inserted_id)


@pytest.fixture
async def ground(db) -> str:
    return await add_method(db)


async def test_admin_creates_methods(client, admin, seller):
    payload = {
        "name": "Overseas", "type": "international", "provider": "DHL", "price_base": 20,
        "estimated_days_min": 5, "estimated_days_max": 10, "is_international": True,
        "regions_available": ["ca", " mx "],
    }
    assert (await client.post("/shipping/methods", json=payload, headers=auth(seller))).status_code == 403

    created = await client.post("/shipping/methods", json=payload, headers=auth(admin))
    assert created.status_code == 201
    assert created.json()["regions_available"] == ["CA", "MX"]

    backwards = await client.post(
        "/shipping/methods", json={**payload, "estimated_days_min": 9, "estimated_days_max": 2}, headers=auth(admin)
    )
    assert backwards.status_code == 422


async def test_list_methods_by_scope(client, db, ground):
    await add_method(db, name="Express", type="express", price_base=2.0)
    await add_method(db, name="Retired", price_base=1.0, is_active=False)
    await add_method(db, name="Overseas", type="international", is_international=True)

    domestic = (await client.get("/shipping/methods")).json()
    assert [m["name"] for m in domestic] == ["Express", "Ground"]

    international = (await client.get("/shipping/methods", params={"is_international": "true"})).json()
    assert [m["name"] for m in international] == ["Overseas"]


async def test_calculate_shipping(client, db, ground):
    quote = await client.post(
        "/shipping/calculate", json={"shipping_method_id": ground, "weight_kg": 2, "destination_country": "us"}
    )
    assert quote.status_code == 200
    assert quote.json()["cost"] == 7.5
    assert quote.json()["estimated_days_max"] == 5

    heavy = await client.post(
        "/shipping/calculate", json={"shipping_method_id": ground, "weight_kg": 25, "destination_country": "US"}
    )
    assert heavy.status_code == 400

    overseas = await add_method(db, name="Overseas", is_international=True, regions_available=["CA"])
    unserved = await client.post(
        "/shipping/calculate", json={"shipping_method_id": overseas, "weight_kg": 1, "destination_country": "fr"}
    )
    assert unserved.status_code == 400
    assert unserved.json()["detail"] == "Shipping method does not deliver to FR"

    unknown = await client.post(
        "/shipping/calculate",
        json={"shipping_method_id": str(ObjectId()), "weight_kg": 1, "destination_country": "US"},
    )
    assert unknown.status_code == 404


async def test_shipment_lifecycle(client, db, buyer, seller, product, address, ground):
    order = await place_order(client, buyer, product, address, quantity=2)

    by_buyer = await client.post(
        "/shipping/shipments", json={"order_id": order["_id"], "shipping_method_id": ground}, headers=auth(buyer)
    )
    assert by_buyer.status_code == 403

    created = await client.post(
        "/shipping/shipments",
        json={"order_id": order["_id"], "shipping_method_id": ground, "tracking_number": "1Z999"},
        headers=auth(seller),
    )
    assert created.status_code == 201
    shipment = created.json()
    assert shipment["carrier"] == "UPS"
    assert shipment["status"] == "pending"
    assert shipment["shipping_cost"] == 5.0
    assert shipment["tracking_history"][0]["description"] == "Shipment created"

    duplicate = await client.post(
        "/shipping/shipments", json={"order_id": order["_id"], "shipping_method_id": ground}, headers=auth(seller)
    )
    assert duplicate.status_code == 409

    shipped = await client.put(
        f"/shipping/shipments/{shipment['_id']}", json={"status": "shipped", "location": "Chicago"},
        headers=auth(seller),
    )
    assert shipped.status_code == 200
    assert shipped.json()["shipped_at"] is not None
    assert shipped.json()["tracking_history"][-1]["description"] == "Status updated to shipped"

    stored_order = await db.orders.find_one({"_id": ObjectId(order["_id"])})
    assert stored_order["status"] == "shipped"
    assert stored_order["tracking_number"] == "1Z999"
    assert stored_order["shipping_provider"] == "UPS"

    delivered = await client.put(
        f"/shipping/shipments/{shipment['_id']}", json={"status": "delivered"}, headers=auth(seller)
    )
    assert delivered.json()["actual_delivery_date"] is not None

    stored_order = await db.orders.find_one({"_id": ObjectId(order["_id"])})
    assert stored_order["status"] == "delivered"
    store = await db.stores.find_one({"seller_id": ObjectId(seller)})
    assert store["total_sales"] == 2

    tracking = (await client.get("/shipping/track/1Z999")).json()
    assert tracking["status"] == "delivered"
    assert [event["status"] for event in tracking["events"]] == ["pending", "shipped", "delivered"]

    for_order = await client.get(f"/shipping/orders/{order['_id']}", headers=auth(buyer))
    assert for_order.status_code == 200
    assert for_order.json()["_id"] == shipment["_id"]


async def test_tracking_and_order_lookup_misses(client, buyer, product, address):
    assert (await client.get("/shipping/track/NOPE")).status_code == 404

    order = await place_order(client, buyer, product, address)
    assert (await client.get(f"/shipping/orders/{order['_id']}", headers=auth(buyer))).status_code == 404


async def test_generate_label(client, buyer, seller, product, address, ground):
    order = await place_order(client, buyer, product, address)
    shipment = (await client.post(
        "/shipping/shipments", json={"order_id": order["_id"], "shipping_method_id": ground}, headers=auth(seller)
    )).json()

    response = await client.post(f"/shipping/shipments/{shipment['_id']}/label", headers=auth(seller))
    assert response.status_code == 200
    label = response.json()
    assert label["label_url"].endswith(f"/{shipment['_id']}.pdf")
    assert label["ship_to"]["city"] == "Springfield"

    refreshed = (await client.get(f"/shipping/shipments/{shipment['_id']}", headers=auth(buyer))).json()
    assert refreshed["shipping_label_url"] == label["label_url"]


async def test_shipments_follow_the_order_status(client, db, buyer, seller, product, address, ground):
    cancelled = await place_order(client, buyer, product, address)
    await client.post(f"/orders/{cancelled['_id']}/cancel", json={}, headers=auth(buyer))
    refused = await client.post(
        "/shipping/shipments", json={"order_id": cancelled["_id"], "shipping_method_id": ground}, headers=auth(seller)
    )
    assert refused.status_code == 400
    assert refused.json()["detail"] == "Cannot ship an order with status cancelled"

    unpaid = await place_order(client, buyer, product, address, payment_method="paypal")
    refused = await client.post(
        "/shipping/shipments", json={"order_id": unpaid["_id"], "shipping_method_id": ground}, headers=auth(seller)
    )
    assert refused.status_code == 400

    order = await place_order(client, buyer, product, address)
    shipment = (await client.post(
        "/shipping/shipments", json={"order_id": order["_id"], "shipping_method_id": ground}, headers=auth(seller)
    )).json()

    # Cancelled after the shipment was opened
    await db.orders.update_one({"_id": ObjectId(order["_id"])}, {"$set": {"status": "cancelled"}})
    shipped = await client.put(
        f"/shipping/shipments/{shipment['_id']}", json={"status": "shipped"}, headers=auth(seller)
    )
    assert shipped.status_code == 400

    stored_order = await db.orders.find_one({"_id": ObjectId(order["_id"])})
    assert stored_order["status"] == "cancelled"
    stored_shipment = await db.shipments.find_one({"_id": ObjectId(shipment["_id"])})
    assert stored_shipment["status"] == "pending"

    # Statuses that do not touch the order are still recorded
    in_transit = await client.put(
        f"/shipping/shipments/{shipment['_id']}", json={"status": "in_transit"}, headers=auth(seller)
    )
    assert in_transit.status_code == 200
