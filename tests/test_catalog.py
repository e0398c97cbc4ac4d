"""
API tests for categories, products and stores.
"""
from datetime import datetime, timedelta

import pytest
from bson import ObjectId

from conftest import auth

pytestmark = pytest.mark.api


def product_payload(category_id, **overrides):
    payload = {
        "name": "Mechanical Keyboard",
        "description": "Tenkeyless board with brown switches",
        "price": 45.0,
        "quantity": 3,
        "category_id": category_id,
        "condition": "like_new",
        "tags": ["keyboard", "mechanical"],
        "variants": [{"name": "ISO layout", "price": 47.5, "stock": 1}],
    }
    payload.update(overrides)
    return payload


# Categories

async def test_category_tree_and_breadcrumbs(client, seed):
    root = await seed.category("Electronics")
    child = await seed.category("Cameras", parent_id=root)
    leaf = await seed.category("Film Cameras", parent_id=child)

    tree = (await client.get("/categories/tree")).json()
    assert len(tree) == 1
    assert tree[0]["children"][0]["children"][0]["_id"] == leaf

    detail = (await client.get(f"/categories/{leaf}")).json()
    assert [crumb["slug"] for crumb in detail["breadcrumbs"]] == ["electronics", "cameras", "film-cameras"]

    by_slug = await client.get("/categories/slug/cameras")
    assert by_slug.status_code == 200
    assert by_slug.json()["_id"] == child

    children = (await client.get(f"/categories/children/{root}")).json()
    assert [c["name"] for c in children] == ["Cameras"]

    roots = (await client.get("/categories/root")).json()
    assert [c["_id"] for c in roots] == [root]


async def test_admin_creates_categories(client, admin, buyer):
    payload = {"name": "Books", "slug": "books"}

    forbidden = await client.post("/categories", json=payload, headers=auth(buyer))
    assert forbidden.status_code == 403

    created = await client.post("/categories", json=payload, headers=auth(admin))
    assert created.status_code == 201
    assert created.json()["is_active"] is True

    duplicate = await client.post("/categories", json=payload, headers=auth(admin))
    assert duplicate.status_code == 409

    orphan = await client.post(
        "/categories", json={"name": "Comics", "slug": "comics", "parent_id": str(ObjectId())}, headers=auth(admin)
    )
    assert orphan.status_code == 404


async def test_category_parenting_rules(client, seed, admin):
    root = await seed.category("Home")
    child = await seed.category("Kitchen", parent_id=root)

    own_parent = await client.put(f"/categories/{root}", json={"parent_id": root}, headers=auth(admin))
    assert own_parent.status_code == 400

    cycle = await client.put(f"/categories/{root}", json={"parent_id": child}, headers=auth(admin))
    assert cycle.status_code == 400
    assert "Circular" in cycle.json()["detail"]


async def test_product_counts_per_category(client, seed, seller):
    phones = await seed.category("Phones")
    books = await seed.category("Books")
    await seed.product(seller, phones)
    await seed.product(seller, phones)
    await seed.product(seller, books)
    await seed.product(seller, books, status="draft")

    counts = (await client.get("/categories/product-counts")).json()
    assert counts[0] == {"category_id": phones, "name": "Phones", "count": 2}
    assert counts[1]["count"] == 1


# Products

async def test_seller_lists_product(client, db, seller, category):
    response = await client.post("/products", json=product_payload(category), headers=auth(seller))
    assert response.status_code == 201
    product = response.json()
    assert product["seller_id"] == seller
    assert product["status"] == "active"
    assert product["views"] == 0
    assert len(product["variants"]) == 1
    assert ObjectId.is_valid(product["variants"][0]["_id"])

    store = await db.stores.find_one({"seller_id": ObjectId(seller)})
    assert store["total_products"] == 1


async def test_buyers_cannot_list_products(client, buyer, category):
    response = await client.post("/products", json=product_payload(category), headers=auth(buyer))
    assert response.status_code == 403


async def test_product_requires_existing_category(client, seller):
    response = await client.post("/products", json=product_payload(str(ObjectId())), headers=auth(seller))
    assert response.status_code == 404


async def test_auction_needs_future_end_time(client, seller, category):
    past = (datetime.utcnow() - timedelta(hours=1)).isoformat()
    response = await client.post(
        "/products",
        json=product_payload(category, is_auction=True, auction_end_time=past),
        headers=auth(seller),
    )
    assert response.status_code == 422


async def test_product_views_and_visibility(client, seed, seller, buyer, category):
    product_id = await seed.product(seller, category)

    first = (await client.get(f"/products/{product_id}", headers=auth(buyer))).json()
    assert first["views"] == 1
    own = (await client.get(f"/products/{product_id}", headers=auth(seller))).json()
    assert own["views"] == 1

    hidden_id = await seed.product(seller, category, status="hidden")
    assert (await client.get(f"/products/{hidden_id}")).status_code == 404
    assert (await client.get(f"/products/{hidden_id}", headers=auth(seller))).status_code == 200


async def test_list_products_filters(client, seed, seller, buyer, category):
    await seed.product(seller, category, name="Red Bicycle", price=120.0, free_shipping=True)
    await seed.product(seller, category, name="Blue Scooter", price=60.0)
    await seed.product(seller, category, name="Green Bicycle", price=90.0, status="draft")

    public = (await client.get("/products", params={"search": "bicycle"})).json()
    assert [p["name"] for p in public["products"]] == ["Red Bicycle"]

    cheap = (await client.get("/products", params={"max_price": 100, "sort": "price", "order": "asc"})).json()
    assert [p["name"] for p in cheap["products"]] == ["Blue Scooter"]

    free = (await client.get("/products", params={"free_shipping": "true"})).json()
    assert free["total"] == 1

    # Only the owner may ask for other statuses
    drafts = (await client.get("/products", params={"status": "draft"}, headers=auth(buyer))).json()
    assert all(p["status"] == "active" for p in drafts["products"])
    own_drafts = (await client.get(
        "/products", params={"status": "draft", "seller_id": seller}, headers=auth(seller)
    )).json()
    assert [p["name"] for p in own_drafts["products"]] == ["Green Bicycle"]


async def test_update_and_soft_delete_product(client, db, seed, seller, buyer, category):
    product_id = (await client.post("/products", json=product_payload(category), headers=auth(seller))).json()["_id"]

    not_owner = await client.put(f"/products/{product_id}", json={"price": 1}, headers=auth(buyer))
    assert not_owner.status_code == 403

    updated = await client.put(f"/products/{product_id}", json={"price": 40.0}, headers=auth(seller))
    assert updated.status_code == 200
    assert updated.json()["price"] == 40.0

    deleted = await client.delete(f"/products/{product_id}", headers=auth(seller))
    assert deleted.status_code == 204
    assert (await client.get(f"/products/{product_id}")).status_code == 404

    stored = await db.products.find_one({"_id": ObjectId(product_id)})
    assert stored["status"] == "deleted"
    store = await db.stores.find_one({"seller_id": ObjectId(seller)})
    assert store["total_products"] == 0


async def test_related_products(client, seed, seller, category):
    other_category = await seed.category("Outdoors")
    product_id = await seed.product(seller, category, tags=["camping"])
    same_category = await seed.product(seller, category, name="Tripod", tags=[])
    shared_tag = await seed.product(seller, other_category, name="Tent", tags=["camping"])
    await seed.product(seller, other_category, name="Kayak", tags=["water"])

    related = (await client.get(f"/products/{product_id}/related")).json()
    assert [p["_id"] for p in related] == [same_category, shared_tag]


# Stores

async def test_open_store_promotes_to_seller(client, db, buyer):
    response = await client.post("/stores", json={"name": "Bea's Finds", "description": "Curated"}, headers=auth(buyer))
    assert response.status_code == 201
    store = response.json()

    user = await db.users.find_one({"_id": ObjectId(buyer)})
    assert user["role"] == "seller"
    assert str(user["store_id"]) == store["_id"]
    assert user["is_seller_verified"] is True

    second = await client.post("/stores", json={"name": "Another"}, headers=auth(buyer))
    assert second.status_code == 409

    mine = (await client.get("/stores/me", headers=auth(buyer))).json()
    assert mine["name"] == "Bea's Finds"


async def test_upgrade_to_seller(client, buyer, seller):
    assert (await client.post("/stores/upgrade", headers=auth(buyer))).status_code == 200
    assert (await client.post("/stores/upgrade", headers=auth(seller))).status_code == 400


async def test_store_page(client, db, seed, seller, category):
    await seed.product(seller, category)
    store = await db.stores.find_one({"seller_id": ObjectId(seller)})

    detail = (await client.get(f"/stores/{store['_id']}")).json()
    assert detail["seller"]["name"] == "Sam Seller"
    assert len(detail["recent_products"]) == 1

    by_seller = await client.get(f"/stores/seller/{seller}")
    assert by_seller.status_code == 200

    products = (await client.get(f"/stores/{store['_id']}/products")).json()
    assert products["total"] == 1


async def test_admin_changes_store_status(client, db, seller, admin):
    store = await db.stores.find_one({"seller_id": ObjectId(seller)})

    response = await client.patch(f"/stores/{store['_id']}/status", json={"status": "suspended"}, headers=auth(admin))
    assert response.status_code == 200
    assert response.json()["status"] == "suspended"

    listing = (await client.get("/stores")).json()
    assert listing["total"] == 0
