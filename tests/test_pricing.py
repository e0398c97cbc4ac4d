"""
Unit tests for cart and checkout pricing.
"""
from datetime import datetime, timedelta

import pytest
from bson import ObjectId

from marketplace.services.pricing import (
    PricedLine,
    calculate_discount,
    coupon_rejection,
    coupon_window_error,
    discountable_subtotal,
    price_lines,
)

pytestmark = pytest.mark.unit

NOW = datetime(2026, 6, 1, 12, 0, 0)
CAMERA = ObjectId()
LENS = ObjectId()
PHOTO = ObjectId()
BOOKS = ObjectId()


def make_coupon(**overrides):
    coupon = {
        "code": "SAVE10",
        "type": "percentage",
        "value": 10,
        "applicability": "all_products",
        "product_ids": [],
        "category_ids": [],
        "is_active": True,
        "usage_count": 0,
        "usage_limit": None,
        "min_purchase": None,
        "max_discount": None,
        "starts_at": NOW - timedelta(days=1),
        "expires_at": NOW + timedelta(days=1),
    }
    coupon.update(overrides)
    return coupon


@pytest.fixture
def lines():
    return [
        PricedLine(product_id=CAMERA, category_id=PHOTO, price=10.0, quantity=2),
        PricedLine(product_id=LENS, category_id=BOOKS, price=5.0, quantity=1),
    ]


def test_totals_without_coupon(lines):
    summary = price_lines(lines, tax_rate=0.1, shipping_fee=5.0, now=NOW)

    assert summary.subtotal == 25.0
    assert summary.shipping == 5.0
    assert summary.tax == 2.5
    assert summary.discount == 0
    assert summary.total == 32.5
    assert summary.items_count == 2
    assert summary.total_items == 3
    assert summary.coupon_code is None


def test_empty_cart_costs_nothing():
    summary = price_lines([], tax_rate=0.1, shipping_fee=5.0, now=NOW)

    assert summary.shipping == 0
    assert summary.total == 0
    assert summary.items_count == 0


def test_shipping_is_free_only_when_every_line_ships_free(lines):
    free = [line.model_copy(update={"free_shipping": True}) for line in lines]
    assert price_lines(free, now=NOW).shipping == 0

    mixed = [free[0], lines[1]]
    assert price_lines(mixed, shipping_fee=7.5, now=NOW).shipping == 7.5


def test_percentage_coupon_is_capped_by_max_discount(lines):
    summary = price_lines(lines, make_coupon(max_discount=1.0), tax_rate=0.1, shipping_fee=5.0, now=NOW)

    assert summary.discount == 1.0
    assert summary.total == 31.5
    assert summary.coupon_code == "SAVE10"


def test_fixed_coupon_never_exceeds_its_base(lines):
    coupon = make_coupon(type="fixed", value=50, applicability="specific_products", product_ids=[CAMERA])

    assert discountable_subtotal(coupon, lines) == 20.0
    assert price_lines(lines, coupon, now=NOW).discount == 20.0


def test_category_coupon_uses_matching_lines_only(lines):
    coupon = make_coupon(value=50, applicability="specific_categories", category_ids=[BOOKS])

    assert discountable_subtotal(coupon, lines) == 5.0
    assert calculate_discount(coupon, 5.0) == 2.5


def test_zero_base_yields_no_discount():
    assert calculate_discount(make_coupon(type="fixed", value=5), 0) == 0


@pytest.mark.parametrize(
    "overrides, reason",
    [
        ({"is_active": False}, "Coupon is not active"),
        ({"starts_at": NOW + timedelta(hours=1)}, "Coupon is not yet valid"),
        ({"expires_at": NOW - timedelta(hours=1)}, "Coupon has expired"),
        ({"usage_limit": 3, "usage_count": 3}, "Coupon usage limit reached"),
    ],
)
def test_coupon_window(overrides, reason):
    assert coupon_window_error(make_coupon(**overrides), NOW) == reason


def test_coupon_rejections(lines):
    assert coupon_rejection(make_coupon(), [], NOW) == "Cart is empty"
    assert coupon_rejection(make_coupon(min_purchase=100), lines, NOW) == "Minimum purchase of 100.00 required"

    unrelated = make_coupon(applicability="specific_products", product_ids=[ObjectId()])
    assert coupon_rejection(unrelated, lines, NOW) == "Coupon is not applicable to items in cart"
    assert coupon_rejection(make_coupon(), lines, NOW) is None


def test_rejected_coupon_contributes_nothing(lines):
    summary = price_lines(lines, make_coupon(min_purchase=100), now=NOW)

    assert summary.discount == 0
    assert summary.coupon_code is None
