"""
Shopping cart routes.
"""
import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..config.database import get_database
from ..models import CartItem
from ..schemas.cart import AddToCartRequest, ApplyCouponRequest, CartResponse, UpdateCartItemRequest
from ..services.cart import find_coupon, get_or_create_cart, price_cart, save_items, to_priced_lines
from ..services.inventory import available_stock, find_variant, is_available
from ..services.pricing import coupon_rejection
from ..utils.dependencies import CurrentUser, get_current_user, validate_object_id, verify_product_exists
from ..utils.serializers import convert_object_ids, serialize_doc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cart", tags=["Cart"])


async def cart_view(db: AsyncIOMotorDatabase, cart: Dict[str, Any]) -> Dict[str, Any]:
    priced = await price_cart(db, cart)
    return {
        **serialize_doc({k: v for k, v in cart.items() if k != "items"}),
        "items": convert_object_ids(priced["items"]),
        "summary": priced["summary"].model_dump(),
    }


def find_line(items: List[Dict[str, Any]], product_id: ObjectId, variant_id: Optional[ObjectId]) -> int:
    for index, item in enumerate(items):
        if item["product_id"] == product_id and item.get("variant_id") == variant_id:
            return index
    return -1


def ensure_stock(product: Dict[str, Any], variant_id: Optional[ObjectId], quantity: int) -> None:
    stock = available_stock(product, variant_id)
    if stock < quantity:
        raise HTTPException(
            status_code=400,
            detail=f"Insufficient stock for product {product['_id']}. Available: {stock}, Requested: {quantity}"
        )


@router.get("", response_model=CartResponse)
async def get_cart(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Get the caller's cart with live product data and totals"""
    cart = await get_or_create_cart(db, user.id)
    return await cart_view(db, cart)


@router.post("", response_model=CartResponse)
async def add_to_cart(
    payload: AddToCartRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Add a product to the cart, merging with an existing line"""
    try:
        product = await verify_product_exists(payload.product_id, db)
        if not is_available(product):
            raise HTTPException(status_code=400, detail="Product is not available for purchase")

        variant_id = ObjectId(payload.variant_id) if payload.variant_id else None
        variant = find_variant(product, variant_id)
        if variant_id is not None and variant is None:
            raise HTTPException(status_code=404, detail=f"Variant {payload.variant_id} not found")

        cart = await get_or_create_cart(db, user.id)
        items = list(cart.get("items", []))
        index = find_line(items, product["_id"], variant_id)

        quantity = payload.quantity + (items[index]["quantity"] if index >= 0 else 0)
        ensure_stock(product, variant_id, quantity)

        if index >= 0:
            items[index] = {**items[index], "quantity": quantity, "selected": True}
        else:
            line = CartItem(
                product_id=product["_id"],
                quantity=quantity,
                price=variant["price"] if variant else product["price"],
                variant_id=variant_id,
            )
            items.append(line.model_dump())

        await save_items(db, cart, items)
        logger.info(f"Cart {cart['_id']}: added {payload.quantity} x {payload.product_id}")
        return await cart_view(db, await db.carts.find_one({"_id": cart["_id"]}))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to add to cart: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to add to cart: {str(e)}")


@router.post("/coupon", response_model=CartResponse)
async def apply_coupon(
    payload: ApplyCouponRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Apply a coupon to the cart"""
    coupon = await find_coupon(db, payload.coupon_code)
    if not coupon or not coupon.get("is_active", False):
        raise HTTPException(status_code=404, detail="Coupon not found or inactive")

    cart = await get_or_create_cart(db, user.id)
    priced = await price_cart(db, cart, coupon_code="")
    if not priced["lines"]:
        raise HTTPException(status_code=400, detail="Cart has no selected items")

    reason = coupon_rejection(coupon, to_priced_lines(priced["lines"]))
    if reason:
        raise HTTPException(status_code=400, detail=reason)

    await db.carts.update_one({"_id": cart["_id"]}, {"$set": {"coupon_code": coupon["code"]}})
    logger.info(f"Cart {cart['_id']}: coupon {coupon['code']} applied")
    return await cart_view(db, await db.carts.find_one({"_id": cart["_id"]}))


@router.delete("/coupon", response_model=CartResponse)
async def remove_coupon(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    cart = await get_or_create_cart(db, user.id)
    await db.carts.update_one({"_id": cart["_id"]}, {"$set": {"coupon_code": None}})
    return await cart_view(db, await db.carts.find_one({"_id": cart["_id"]}))


@router.put("/{product_id}", response_model=CartResponse)
async def update_cart_item(
    product_id: str,
    payload: UpdateCartItemRequest,
    variant_id: Optional[str] = Query(None, description="Variant of the line to update"),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Change quantity or selection of a cart line"""
    product_oid = validate_object_id(product_id, "product")
    variant_oid = validate_object_id(variant_id, "variant") if variant_id else None

    cart = await get_or_create_cart(db, user.id)
    items = list(cart.get("items", []))
    index = find_line(items, product_oid, variant_oid)
    if index < 0:
        raise HTTPException(status_code=404, detail=f"Product {product_id} is not in the cart")

    line = dict(items[index])
    if payload.quantity is not None:
        product = await verify_product_exists(product_id, db)
        ensure_stock(product, variant_oid, payload.quantity)
        line["quantity"] = payload.quantity
    if payload.selected is not None:
        line["selected"] = payload.selected
    items[index] = line

    await save_items(db, cart, items)
    return await cart_view(db, await db.carts.find_one({"_id": cart["_id"]}))


@router.delete("/{product_id}", response_model=CartResponse)
async def remove_cart_item(
    product_id: str,
    variant_id: Optional[str] = Query(None, description="Variant of the line to remove"),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Remove a line from the cart; any applied coupon is cleared"""
    product_oid = validate_object_id(product_id, "product")
    variant_oid = validate_object_id(variant_id, "variant") if variant_id else None

    cart = await get_or_create_cart(db, user.id)
    items = list(cart.get("items", []))
    index = find_line(items, product_oid, variant_oid)
    if index < 0:
        raise HTTPException(status_code=404, detail=f"Product {product_id} is not in the cart")

    del items[index]
    await save_items(db, cart, items, coupon_code=None)
    return await cart_view(db, await db.carts.find_one({"_id": cart["_id"]}))


@router.delete("", response_model=CartResponse)
async def clear_cart(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    cart = await get_or_create_cart(db, user.id)
    await save_items(db, cart, [], coupon_code=None)
    logger.info(f"Cart {cart['_id']} cleared")
    return await cart_view(db, await db.carts.find_one({"_id": cart["_id"]}))
