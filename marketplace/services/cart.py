"""
Cart loading and enrichment shared by the cart and checkout routes.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..config.settings import get_settings
from ..models import CartDocument
from .inventory import available_stock, find_variant, is_available, primary_image
from .pricing import PricedLine, PriceBreakdown, price_lines


async def get_or_create_cart(db: AsyncIOMotorDatabase, user_id: ObjectId) -> Dict[str, Any]:
    cart = await db.carts.find_one({"user_id": user_id})
    if cart is None:
        result = await db.carts.insert_one(CartDocument(user_id=user_id).to_mongo())
        cart = await db.carts.find_one({"_id": result.inserted_id})
    return cart


async def save_items(db: AsyncIOMotorDatabase, cart: Dict[str, Any], items: List[Dict[str, Any]],
                     **extra: Any) -> None:
    await db.carts.update_one(
        {"_id": cart["_id"]},
        {"$set": {"items": items, "updated_at": datetime.utcnow(), **extra}}
    )


async def load_products(db: AsyncIOMotorDatabase, items: List[Dict[str, Any]]) -> Dict[ObjectId, Dict[str, Any]]:
    product_ids = list({item["product_id"] for item in items})
    if not product_ids:
        return {}
    products = await db.products.find({"_id": {"$in": product_ids}}).to_list(length=None)
    return {product["_id"]: product for product in products}


def enrich_items(items: List[Dict[str, Any]], products: Dict[ObjectId, Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Attach live product data to each cart line

    Lines keep the price captured when they were added; current_price shows
    what the listing costs now.
    """
    enriched = []
    for item in items:
        product = products.get(item["product_id"])
        variant_id = item.get("variant_id")
        variant = find_variant(product, variant_id) if product else None

        available = is_available(product) and (variant_id is None or variant is not None)
        in_stock = available and available_stock(product, variant_id) >= item["quantity"]

        current_price = None
        if product is not None:
            current_price = variant["price"] if variant else product["price"]

        enriched.append({
            **item,
            "product_name": product["name"] if product else None,
            "product_image": primary_image(product) if product else None,
            "variant_name": variant["name"] if variant else None,
            "seller_id": product["seller_id"] if product else None,
            "category_id": product.get("category_id") if product else None,
            "free_shipping": product.get("free_shipping", False) if product else False,
            "available": available,
            "in_stock": in_stock,
            "current_price": current_price,
            "line_total": round(item["price"] * item["quantity"], 2),
        })
    return enriched


def purchasable(enriched: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Lines that count toward totals: selected, available and in stock."""
    return [item for item in enriched if item.get("selected", True) and item["available"] and item["in_stock"]]


def to_priced_lines(enriched: List[Dict[str, Any]]) -> List[PricedLine]:
    return [
        PricedLine(
            product_id=item["product_id"],
            category_id=item.get("category_id"),
            price=item["price"],
            quantity=item["quantity"],
            free_shipping=item.get("free_shipping", False),
        )
        for item in enriched
    ]


async def find_coupon(db: AsyncIOMotorDatabase, code: Optional[str]) -> Optional[Dict[str, Any]]:
    if not code:
        return None
    return await db.coupons.find_one({"code": code.upper()})


async def price_cart(db: AsyncIOMotorDatabase, cart: Dict[str, Any],
                     coupon_code: Optional[str] = None) -> Dict[str, Any]:
    """
    Enrich a cart and price its purchasable lines

    Returns:
        Dictionary with "items" (all enriched lines), "lines" (purchasable
        lines) and "summary" (PriceBreakdown)
    """
    settings = get_settings()
    products = await load_products(db, cart.get("items", []))
    enriched = enrich_items(cart.get("items", []), products)
    lines = purchasable(enriched)

    coupon = await find_coupon(db, coupon_code if coupon_code is not None else cart.get("coupon_code"))
    summary: PriceBreakdown = price_lines(
        to_priced_lines(lines),
        coupon,
        tax_rate=settings.tax_rate,
        shipping_fee=settings.flat_shipping_fee,
    )
    return {"items": enriched, "lines": lines, "summary": summary, "coupon": coupon}
