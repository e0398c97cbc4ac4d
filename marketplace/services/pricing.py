"""
Cart and order pricing.

Pure functions shared by the cart summary, coupon application and checkout.
A line is counted only when it is selected, its product is available and
stock covers the requested quantity; callers filter before pricing.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict

from ..models.enums import CouponApplicability, CouponType


class PricedLine(BaseModel):
    """A purchasable line reduced to what pricing needs."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    product_id: ObjectId
    category_id: Optional[ObjectId] = None
    price: float
    quantity: int
    free_shipping: bool = False

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


class PriceBreakdown(BaseModel):
    subtotal: float
    shipping: float
    tax: float
    discount: float
    total: float
    items_count: int
    total_items: int
    coupon_code: Optional[str] = None


def round_money(value: float) -> float:
    return round(value + 0.0, 2)


def coupon_window_error(coupon: Dict[str, Any], now: Optional[datetime] = None) -> Optional[str]:
    """Return why a coupon cannot be used right now, or None when it can."""
    now = now or datetime.utcnow()
    if not coupon.get("is_active", False):
        return "Coupon is not active"
    if coupon["starts_at"] > now:
        return "Coupon is not yet valid"
    if coupon["expires_at"] < now:
        return "Coupon has expired"
    usage_limit = coupon.get("usage_limit")
    if usage_limit is not None and coupon.get("usage_count", 0) >= usage_limit:
        return "Coupon usage limit reached"
    return None


def discountable_subtotal(coupon: Dict[str, Any], lines: Iterable[PricedLine]) -> float:
    """Subtotal of the lines the coupon applies to."""
    lines = list(lines)
    applicability = coupon.get("applicability", CouponApplicability.ALL_PRODUCTS.value)

    if applicability == CouponApplicability.SPECIFIC_PRODUCTS.value:
        allowed = {str(pid) for pid in coupon.get("product_ids", [])}
        return sum(line.line_total for line in lines if str(line.product_id) in allowed)

    if applicability == CouponApplicability.SPECIFIC_CATEGORIES.value:
        allowed = {str(cid) for cid in coupon.get("category_ids", [])}
        return sum(
            line.line_total for line in lines
            if line.category_id is not None and str(line.category_id) in allowed
        )

    return sum(line.line_total for line in lines)


def calculate_discount(coupon: Dict[str, Any], base: float) -> float:
    """
    Discount granted by a coupon on a discountable base

    Percentage coupons are capped by max_discount; fixed coupons never exceed
    the base they apply to.
    """
    if base <= 0:
        return 0.0

    if coupon["type"] == CouponType.PERCENTAGE.value:
        discount = base * coupon["value"] / 100
        max_discount = coupon.get("max_discount")
        if max_discount is not None:
            discount = min(discount, max_discount)
    else:
        discount = min(coupon["value"], base)

    return round_money(discount)


def coupon_rejection(
    coupon: Dict[str, Any], lines: List[PricedLine], now: Optional[datetime] = None
) -> Optional[str]:
    """Return why a coupon cannot be applied to these lines, or None."""
    error = coupon_window_error(coupon, now)
    if error:
        return error

    if not lines:
        return "Cart is empty"

    subtotal = sum(line.line_total for line in lines)
    min_purchase = coupon.get("min_purchase")
    if min_purchase is not None and subtotal < min_purchase:
        return f"Minimum purchase of {min_purchase:.2f} required"

    if discountable_subtotal(coupon, lines) <= 0:
        return "Coupon is not applicable to items in cart"

    return None


def price_lines(
    lines: List[PricedLine],
    coupon: Optional[Dict[str, Any]] = None,
    tax_rate: float = 0.1,
    shipping_fee: float = 5.0,
    now: Optional[datetime] = None,
) -> PriceBreakdown:
    """
    Price a set of lines

    Shipping is the flat fee unless there are no lines or every line ships
    free. An unusable coupon contributes no discount.
    """
    subtotal = sum(line.line_total for line in lines)

    if not lines or all(line.free_shipping for line in lines):
        shipping = 0.0
    else:
        shipping = shipping_fee

    tax = subtotal * tax_rate

    discount = 0.0
    applied_code = None
    if coupon is not None and coupon_rejection(coupon, lines, now) is None:
        discount = calculate_discount(coupon, discountable_subtotal(coupon, lines))
        applied_code = coupon["code"] if discount > 0 else None

    return PriceBreakdown(
        subtotal=round_money(subtotal),
        shipping=round_money(shipping),
        tax=round_money(tax),
        discount=round_money(discount),
        total=round_money(subtotal + shipping + tax - discount),
        items_count=len(lines),
        total_items=sum(line.quantity for line in lines),
        coupon_code=applied_code,
    )
