"""
Shared fixtures: an in-memory MongoDB, an ASGI client and seeding helpers.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import pytest
from bson import ObjectId
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from marketplace.config.database import get_database
from marketplace.main import app
from marketplace.models import (
    AddressDocument,
    CategoryDocument,
    CouponDocument,
    ProductDocument,
    StoreDocument,
    UserDocument,
)


def auth(user_id: str) -> Dict[str, str]:
    """Identity header forwarded by the gateway."""
    return {"X-User-Id": user_id}


class Seeder:
    """Inserts documents straight into the test database."""

    def __init__(self, db):
        self.db = db

    async def user(self, role: str = "buyer", name: str = "Test User", **extra: Any) -> str:
        document = UserDocument(name=name, username=name.lower().replace(" ", "_"), role=role, **extra)
        result = await self.db.users.insert_one(document.to_mongo())
        return str(result.inserted_id)

    async def store(self, seller_id: str, name: str = "Test Store") -> str:
        document = StoreDocument(seller_id=ObjectId(seller_id), name=name, description="A store")
        result = await self.db.stores.insert_one(document.to_mongo())
        return str(result.inserted_id)

    async def category(self, name: str = "Electronics", slug: Optional[str] = None,
                       parent_id: Optional[str] = None) -> str:
        document = CategoryDocument(
            name=name,
            slug=slug or name.lower().replace(" ", "-"),
            parent_id=ObjectId(parent_id) if parent_id else None,
        )
        result = await self.db.categories.insert_one(document.to_mongo())
        return str(result.inserted_id)

    async def product(self, seller_id: str, category_id: str, **overrides: Any) -> str:
        fields: Dict[str, Any] = {
            "name": "Vintage Camera",
            "description": "Film camera in working order",
            "price": 10.0,
            "quantity": 5,
            "condition": "good",
            "medias": [{"url": "https://img.example.com/camera.jpg", "type": "image", "is_primary": True}],
            "tags": ["camera", "film"],
        }
        fields.update(overrides)
        document = ProductDocument(seller_id=ObjectId(seller_id), category_id=ObjectId(category_id), **fields)
        result = await self.db.products.insert_one(document.to_mongo())
        return str(result.inserted_id)

    async def address(self, user_id: str, is_default: bool = True, city: str = "Springfield") -> str:
        document = AddressDocument(
            user_id=ObjectId(user_id),
            name="Jamie Doe",
            phone="555-0100",
            address_line1="1 Main Street",
            city=city,
            state="IL",
            postal_code="62701",
            country="US",
            is_default=is_default,
        )
        result = await self.db.addresses.insert_one(document.to_mongo())
        return str(result.inserted_id)

    async def coupon(self, created_by: str, code: str = "SAVE10", **overrides: Any) -> str:
        now = datetime.utcnow()
        fields: Dict[str, Any] = {
            "description": "Ten percent off",
            "type": "percentage",
            "value": 10,
            "starts_at": now - timedelta(days=1),
            "expires_at": now + timedelta(days=30),
        }
        fields.update(overrides)
        document = CouponDocument(code=code, created_by=ObjectId(created_by), **fields)
        result = await self.db.coupons.insert_one(document.to_mongo())
        return str(result.inserted_id)


@pytest.fixture
def db():
    return AsyncMongoMockClient()["marketplace_test"]


@pytest.fixture
def seed(db) -> Seeder:
    return Seeder(db)


@pytest.fixture
async def client(db):
    app.dependency_overrides[get_database] = lambda: db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def buyer(seed) -> str:
    return await seed.user(name="Bea Buyer")


@pytest.fixture
async def seller(seed) -> str:
    seller_id = await seed.user(role="seller", name="Sam Seller")
    await seed.store(seller_id)
    return seller_id


@pytest.fixture
async def admin(seed) -> str:
    return await seed.user(role="admin", name="Ada Admin")


@pytest.fixture
async def category(seed) -> str:
    return await seed.category()


@pytest.fixture
async def product(seed, seller, category) -> str:
    return await seed.product(seller, category)


@pytest.fixture
async def address(seed, buyer) -> str:
    return await seed.address(buyer)


async def place_order(client: AsyncClient, buyer_id: str, product_id: str, address_id: str,
                      quantity: int = 1, payment_method: str = "cod") -> Dict[str, Any]:
    """Add a product to the buyer's cart and check it out."""
    response = await client.post(
        "/cart", json={"product_id": product_id, "quantity": quantity}, headers=auth(buyer_id)
    )
    assert response.status_code == 200, response.text
    response = await client.post(
        "/orders",
        json={"shipping_address_id": address_id, "payment_method": payment_method},
        headers=auth(buyer_id),
    )
    assert response.status_code == 201, response.text
    return response.json()


async def deliver(db, order_id: str) -> None:
    await db.orders.update_one(
        {"_id": ObjectId(order_id)},
        {"$set": {"status": "delivered", "delivered_at": datetime.utcnow()}}
    )
