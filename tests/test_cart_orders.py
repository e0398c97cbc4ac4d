"""
API tests for the cart and the checkout flow.
"""
import pytest
from bson import ObjectId

from conftest import auth, place_order

pytestmark = pytest.mark.api


async def test_cart_requires_identity(client):
    response = await client.get("/cart")
    assert response.status_code == 401


async def test_add_to_cart_merges_lines_and_prices_summary(client, buyer, product):
    for quantity in (1, 2):
        response = await client.post(
            "/cart", json={"product_id": product, "quantity": quantity}, headers=auth(buyer)
        )
        assert response.status_code == 200

    cart = response.json()
    assert len(cart["items"]) == 1
    line = cart["items"][0]
    assert line["quantity"] == 3
    assert line["product_name"] == "Vintage Camera"
    assert line["product_image"] == "https://img.example.com/camera.jpg"
    assert line["available"] is True
    assert line["in_stock"] is True

    summary = cart["summary"]
    assert summary["subtotal"] == 30.0
    assert summary["shipping"] == 5.0
    assert summary["tax"] == 3.0
    assert summary["total"] == 38.0
    assert summary["total_items"] == 3


async def test_add_more_than_stock_is_rejected(client, buyer, product):
    response = await client.post("/cart", json={"product_id": product, "quantity": 6}, headers=auth(buyer))
    assert response.status_code == 400
    assert "Insufficient stock" in response.json()["detail"]


async def test_variant_price_is_captured(client, seed, buyer, seller, category):
    variant_id = ObjectId()
    product_id = await seed.product(
        seller, category,
        variants=[{"_id": variant_id, "name": "Black", "price": 12.5, "stock": 2}],
    )

    response = await client.post(
        "/cart",
        json={"product_id": product_id, "quantity": 1, "variant_id": str(variant_id)},
        headers=auth(buyer),
    )
    assert response.status_code == 200
    line = response.json()["items"][0]
    assert line["price"] == 12.5
    assert line["variant_name"] == "Black"

    missing = await client.post(
        "/cart", json={"product_id": product_id, "variant_id": str(ObjectId())}, headers=auth(buyer)
    )
    assert missing.status_code == 404


async def test_variant_update_keeps_cart_lines_valid(client, seed, buyer, seller, category):
    variant_id = ObjectId()
    product_id = await seed.product(
        seller, category,
        variants=[{"_id": variant_id, "name": "Black", "price": 12.5, "stock": 2}],
    )
    await client.post(
        "/cart", json={"product_id": product_id, "quantity": 1, "variant_id": str(variant_id)}, headers=auth(buyer)
    )

    restocked = await client.put(
        f"/products/{product_id}",
        json={"variants": [
            {"_id": str(variant_id), "name": "Black", "price": 12.5, "stock": 8},
            {"name": "Silver", "price": 14.0, "stock": 1},
        ]},
        headers=auth(seller),
    )
    assert restocked.status_code == 200
    variants = restocked.json()["variants"]
    assert variants[0]["_id"] == str(variant_id)
    assert variants[0]["stock"] == 8
    assert variants[1]["_id"] != str(variant_id)

    # Resubmitting by name alone keeps the ID too
    renamed = await client.put(
        f"/products/{product_id}",
        json={"variants": [{"name": "Black", "price": 11.0, "stock": 8}]},
        headers=auth(seller),
    )
    assert renamed.json()["variants"][0]["_id"] == str(variant_id)

    cart = (await client.get("/cart", headers=auth(buyer))).json()
    assert cart["items"][0]["available"] is True
    assert cart["items"][0]["current_price"] == 11.0
    assert cart["summary"]["items_count"] == 1

    foreign = await client.put(
        f"/products/{product_id}",
        json={"variants": [{"_id": str(ObjectId()), "name": "Gold", "price": 20, "stock": 1}]},
        headers=auth(seller),
    )
    assert foreign.status_code == 400


async def test_unselected_lines_do_not_count(client, buyer, product):
    await client.post("/cart", json={"product_id": product, "quantity": 1}, headers=auth(buyer))

    response = await client.put(f"/cart/{product}", json={"selected": False}, headers=auth(buyer))
    assert response.status_code == 200
    assert response.json()["summary"]["subtotal"] == 0
    assert response.json()["summary"]["shipping"] == 0

    missing = await client.put(f"/cart/{ObjectId()}", json={"quantity": 1}, headers=auth(buyer))
    assert missing.status_code == 404


async def test_apply_coupon(client, seed, buyer, admin, product):
    await seed.coupon(admin, code="SAVE10", min_purchase=5)
    await client.post("/cart", json={"product_id": product, "quantity": 2}, headers=auth(buyer))

    response = await client.post("/cart/coupon", json={"coupon_code": "save10"}, headers=auth(buyer))
    assert response.status_code == 200
    cart = response.json()
    assert cart["coupon_code"] == "SAVE10"
    assert cart["summary"]["discount"] == 2.0
    assert cart["summary"]["total"] == 25.0

    unknown = await client.post("/cart/coupon", json={"coupon_code": "NOPE1"}, headers=auth(buyer))
    assert unknown.status_code == 404


async def test_coupon_minimum_purchase_is_enforced(client, seed, buyer, admin, product):
    await seed.coupon(admin, code="BIGSPEND", min_purchase=100)
    await client.post("/cart", json={"product_id": product, "quantity": 1}, headers=auth(buyer))

    response = await client.post("/cart/coupon", json={"coupon_code": "BIGSPEND"}, headers=auth(buyer))
    assert response.status_code == 400
    assert response.json()["detail"] == "Minimum purchase of 100.00 required"


async def test_coupon_on_empty_cart(client, seed, buyer, admin):
    await seed.coupon(admin, code="SAVE10")
    response = await client.post("/cart/coupon", json={"coupon_code": "SAVE10"}, headers=auth(buyer))
    assert response.status_code == 400


async def test_checkout_cod_order(client, db, seed, buyer, admin, product, address):
    coupon_id = await seed.coupon(admin, code="SAVE10")
    await client.post("/cart", json={"product_id": product, "quantity": 2}, headers=auth(buyer))
    await client.post("/cart/coupon", json={"coupon_code": "SAVE10"}, headers=auth(buyer))

    response = await client.post(
        "/orders",
        json={"shipping_address_id": address, "payment_method": "cod", "notes": "Leave at the door"},
        headers=auth(buyer),
    )
    assert response.status_code == 201
    order = response.json()
    assert order["order_number"].startswith("ORD-")
    assert order["status"] == "paid"
    assert order["payment_status"] is True
    assert order["subtotal"] == 20.0
    assert order["discount"] == 2.0
    assert order["total"] == 25.0
    assert order["coupon_code"] == "SAVE10"
    assert order["items"][0]["product_name"] == "Vintage Camera"

    stored = await db.products.find_one({"_id": ObjectId(product)})
    assert stored["quantity"] == 3

    coupon = await db.coupons.find_one({"_id": ObjectId(coupon_id)})
    assert coupon["usage_count"] == 1

    cart = (await client.get("/cart", headers=auth(buyer))).json()
    assert cart["items"] == []
    assert cart["coupon_code"] is None


async def test_paypal_order_starts_pending(client, buyer, product, address):
    order = await place_order(client, buyer, product, address, payment_method="paypal")
    assert order["status"] == "pending"
    assert order["payment_status"] is False


async def test_checkout_rules(client, seed, buyer, product, address):
    other_address = await seed.address(await seed.user(name="Someone Else"))

    empty = await client.post(
        "/orders", json={"shipping_address_id": address, "payment_method": "cod"}, headers=auth(buyer)
    )
    assert empty.status_code == 400

    await client.post("/cart", json={"product_id": product}, headers=auth(buyer))
    foreign = await client.post(
        "/orders", json={"shipping_address_id": other_address, "payment_method": "cod"}, headers=auth(buyer)
    )
    assert foreign.status_code == 404


async def test_last_unit_marks_product_sold_out(client, db, seed, buyer, seller, category, address):
    product_id = await seed.product(seller, category, quantity=1)
    await place_order(client, buyer, product_id, address)

    stored = await db.products.find_one({"_id": ObjectId(product_id)})
    assert stored["quantity"] == 0
    assert stored["status"] == "sold_out"


async def test_order_visibility(client, seed, buyer, seller, product, address):
    order = await place_order(client, buyer, product, address)
    stranger = await seed.user(name="Stranger")

    assert (await client.get(f"/orders/{order['_id']}", headers=auth(buyer))).status_code == 200
    assert (await client.get(f"/orders/{order['_id']}", headers=auth(seller))).status_code == 200
    assert (await client.get(f"/orders/{order['_id']}", headers=auth(stranger))).status_code == 403

    mine = (await client.get("/orders/buyer/me", headers=auth(buyer))).json()
    assert mine["total"] == 1
    sold = (await client.get("/orders/seller/me", headers=auth(seller))).json()
    assert sold["orders"][0]["_id"] == order["_id"]


async def test_cancel_restores_stock(client, db, buyer, product, address):
    order = await place_order(client, buyer, product, address, quantity=2)

    response = await client.post(f"/orders/{order['_id']}/cancel", json={"reason": "Changed plans"},
                                 headers=auth(buyer))
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert response.json()["cancelled_at"] is not None

    stored = await db.products.find_one({"_id": ObjectId(product)})
    assert stored["quantity"] == 5

    again = await client.post(f"/orders/{order['_id']}/cancel", json={}, headers=auth(buyer))
    assert again.status_code == 400


async def test_pay_ship_and_deliver(client, db, buyer, seller, product, address):
    order = await place_order(client, buyer, product, address, quantity=2, payment_method="paypal")
    order_id = order["_id"]

    no_token = await client.post(f"/orders/{order_id}/pay", json={"payment_method": "paypal"}, headers=auth(buyer))
    assert no_token.status_code == 400

    paid = await client.post(
        f"/orders/{order_id}/pay",
        json={"payment_method": "paypal", "payment_details": {"paypal_token": "EC-123"}},
        headers=auth(buyer),
    )
    assert paid.status_code == 200
    assert paid.json()["status"] == "paid"

    transactions = await db.transactions.find({"order_id": ObjectId(order_id)}).to_list(length=None)
    assert len(transactions) == 1
    assert transactions[0]["provider"] == "paypal"
    assert transactions[0]["status"] == "completed"

    buyer_ship = await client.post(f"/orders/{order_id}/ship", json={"tracking_number": "TRK1"}, headers=auth(buyer))
    assert buyer_ship.status_code == 403

    shipped = await client.post(
        f"/orders/{order_id}/ship",
        json={"tracking_number": "TRK1", "shipping_provider": "UPS"},
        headers=auth(seller),
    )
    assert shipped.status_code == 200
    assert shipped.json()["tracking_number"] == "TRK1"

    delivered = await client.post(f"/orders/{order_id}/deliver", json={}, headers=auth(buyer))
    assert delivered.status_code == 200
    assert delivered.json()["status"] == "delivered"

    store = await db.stores.find_one({"seller_id": ObjectId(seller)})
    assert store["total_sales"] == 2

    stats = (await client.get("/orders/seller/stats", headers=auth(seller))).json()
    assert stats["revenue"] == 20.0
    assert stats["items_sold"] == 2
    assert stats["orders"] == 1


async def test_only_paid_orders_ship(client, db, seller, buyer, product, address):
    order = await place_order(client, buyer, product, address, payment_method="paypal")
    pending = await client.post(f"/orders/{order['_id']}/ship", json={"tracking_number": "TRK2"}, headers=auth(seller))
    assert pending.status_code == 400

    await db.orders.update_one({"_id": ObjectId(order["_id"])}, {"$set": {"status": "processing"}})
    processing = await client.post(
        f"/orders/{order['_id']}/ship", json={"tracking_number": "TRK2"}, headers=auth(seller)
    )
    assert processing.status_code == 400


async def test_shipped_order_cannot_be_cancelled(client, db, buyer, seller, product, address):
    order = await place_order(client, buyer, product, address)
    await client.post(f"/orders/{order['_id']}/ship", json={"tracking_number": "TRK9"}, headers=auth(seller))

    response = await client.post(f"/orders/{order['_id']}/cancel", json={}, headers=auth(buyer))
    assert response.status_code == 400
