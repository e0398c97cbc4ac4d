"""
API tests for coupon management and validation.
"""
from datetime import datetime, timedelta

import pytest

from conftest import auth

pytestmark = pytest.mark.api


def coupon_payload(**overrides):
    now = datetime.utcnow()
    payload = {
        "code": "spring-25",
        "description": "Spring sale coupon",
        "type": "percentage",
        "value": 25,
        "max_discount": 10,
        "starts_at": (now - timedelta(days=1)).isoformat(),
        "expires_at": (now + timedelta(days=10)).isoformat(),
    }
    payload.update(overrides)
    return payload


async def test_admin_creates_coupon(client, admin):
    response = await client.post("/coupons", json=coupon_payload(), headers=auth(admin))
    assert response.status_code == 201
    coupon = response.json()
    assert coupon["code"] == "SPRING-25"
    assert coupon["usage_count"] == 0
    assert coupon["created_by"] == admin

    duplicate = await client.post("/coupons", json=coupon_payload(code="SPRING-25"), headers=auth(admin))
    assert duplicate.status_code == 409


async def test_only_admins_manage_coupons(client, buyer):
    response = await client.post("/coupons", json=coupon_payload(), headers=auth(buyer))
    assert response.status_code == 403

    listing = await client.get("/coupons", headers=auth(buyer))
    assert listing.status_code == 403


@pytest.mark.parametrize(
    "overrides",
    [
        {"value": 150},
        {"code": "no spaces"},
        {"expires_at": (datetime.utcnow() - timedelta(days=5)).isoformat()},
        {"applicability": "specific_products"},
    ],
)
async def test_invalid_coupons_are_rejected(client, admin, overrides):
    response = await client.post("/coupons", json=coupon_payload(**overrides), headers=auth(admin))
    assert response.status_code == 422


async def test_validate_coupon(client, seed, admin):
    await seed.coupon(admin, code="SAVE10", min_purchase=20)

    valid = await client.post("/coupons/validate", json={"code": "save10", "subtotal": 50})
    assert valid.status_code == 200
    assert valid.json() == {
        "valid": True,
        "message": "Coupon is valid",
        "discount_amount": 5.0,
        "subtotal_before_discount": 50.0,
        "subtotal_after_discount": 45.0,
    }

    too_small = (await client.post("/coupons/validate", json={"code": "SAVE10", "subtotal": 10})).json()
    assert too_small["valid"] is False
    assert too_small["message"] == "Minimum purchase of 20.00 required"

    unknown = (await client.post("/coupons/validate", json={"code": "MISSING", "subtotal": 10})).json()
    assert unknown["valid"] is False
    assert unknown["message"] == "Coupon not found"


async def test_active_coupons_exclude_expired_and_exhausted(client, seed, admin):
    now = datetime.utcnow()
    await seed.coupon(admin, code="LIVE")
    await seed.coupon(admin, code="OLD", starts_at=now - timedelta(days=10), expires_at=now - timedelta(days=1))
    await seed.coupon(admin, code="USEDUP", usage_limit=1, usage_count=1)
    await seed.coupon(admin, code="OFF", is_active=False)

    response = await client.get("/coupons/active")
    assert response.status_code == 200
    assert [c["code"] for c in response.json()] == ["LIVE"]


async def test_update_and_delete_coupon(client, seed, admin):
    coupon_id = await seed.coupon(admin, code="SAVE10")

    updated = await client.put(f"/coupons/{coupon_id}", json={"value": 15, "is_active": False}, headers=auth(admin))
    assert updated.status_code == 200
    assert updated.json()["value"] == 15
    assert updated.json()["is_active"] is False

    deleted = await client.delete(f"/coupons/{coupon_id}", headers=auth(admin))
    assert deleted.status_code == 204

    missing = await client.get(f"/coupons/{coupon_id}", headers=auth(admin))
    assert missing.status_code == 404
