"""
API tests for product reviews and the ratings they drive.
"""
import pytest
from bson import ObjectId

from conftest import auth, place_order

pytestmark = pytest.mark.api


async def write_review(client, user_id, product_id, order_id, rating, comment="Great"):
    return await client.post(
        "/reviews",
        json={"product_id": product_id, "order_id": order_id, "rating": rating, "comment": comment},
        headers=auth(user_id),
    )


async def test_eligibility_reasons(client, seed, buyer, seller, category, product, address):
    order = await place_order(client, buyer, product, address)
    other_product = await seed.product(seller, category, name="Lens Cap")
    stranger = await seed.user(name="Stranger")

    def check(user_id, product_id, order_id=order["_id"]):
        return client.get(
            "/reviews/check-eligibility", params={"product_id": product_id, "order_id": order_id},
            headers=auth(user_id),
        )

    assert (await check(buyer, product)).json() == {"can_review": True, "reason": None, "existing_review": None}
    assert (await check(stranger, product)).json()["reason"] == "This order does not belong to you"
    assert (await check(buyer, other_product)).json()["reason"] == (
        "This order does not contain the specified product"
    )
    assert (await check(buyer, product, str(ObjectId()))).json()["reason"] == "Order not found"

    review = (await write_review(client, buyer, product, order["_id"], 5)).json()
    already = (await check(buyer, product)).json()
    assert already["can_review"] is False
    assert already["existing_review"] == review["_id"]


async def test_review_updates_product_and_store_ratings(client, db, seed, buyer, seller, product, address):
    first_order = await place_order(client, buyer, product, address)
    second_order = await place_order(client, buyer, product, address)

    created = await write_review(client, buyer, product, first_order["_id"], 5)
    assert created.status_code == 201
    assert created.json()["seller_id"] == seller
    assert created.json()["user"]["name"] == "Bea Buyer"

    await write_review(client, buyer, product, second_order["_id"], 2, comment="Shutter sticks")

    duplicate = await write_review(client, buyer, product, first_order["_id"], 4)
    assert duplicate.status_code == 400

    stored = await db.products.find_one({"_id": ObjectId(product)})
    assert stored["rating"] == 3.5
    assert stored["total_reviews"] == 2
    store = await db.stores.find_one({"seller_id": ObjectId(seller)})
    assert store["rating"] == 3.5

    listing = (await client.get(f"/reviews/product/{product}", params={"sort": "rating"})).json()
    assert listing["total"] == 2
    assert listing["average_rating"] == 3.5
    assert listing["rating_distribution"] == {"1": 0, "2": 1, "3": 0, "4": 0, "5": 1}
    assert [review["rating"] for review in listing["reviews"]] == [5, 2]

    by_seller = (await client.get(f"/reviews/seller/{seller}")).json()
    assert by_seller["total"] == 2
    mine = (await client.get("/reviews/me", headers=auth(buyer))).json()
    assert mine["total"] == 2


async def test_edit_and_delete_review(client, db, seed, buyer, admin, product, address):
    order = await place_order(client, buyer, product, address)
    review = (await write_review(client, buyer, product, order["_id"], 2)).json()
    stranger = await seed.user(name="Stranger")

    forbidden = await client.put(f"/reviews/{review['_id']}", json={"rating": 1}, headers=auth(stranger))
    assert forbidden.status_code == 403

    edited = await client.put(f"/reviews/{review['_id']}", json={"rating": 4}, headers=auth(buyer))
    assert edited.status_code == 200
    assert edited.json()["rating"] == 4
    stored = await db.products.find_one({"_id": ObjectId(product)})
    assert stored["rating"] == 4

    assert (await client.delete(f"/reviews/{review['_id']}", headers=auth(stranger))).status_code == 403
    assert (await client.delete(f"/reviews/{review['_id']}", headers=auth(admin))).status_code == 204
    assert (await client.get(f"/reviews/{review['_id']}")).status_code == 404

    stored = await db.products.find_one({"_id": ObjectId(product)})
    assert stored["rating"] == 0
    assert stored["total_reviews"] == 0
