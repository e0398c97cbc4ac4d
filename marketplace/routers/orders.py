"""
Order routes: checkout and the order lifecycle
(pending -> paid -> shipped -> delivered, or cancelled).
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..config.database import get_database
from ..models import OrderDocument, OrderItem
from ..models.enums import OrderPaymentMethod, OrderStatus, PaymentProvider
from ..schemas.order import (
    CancelOrderRequest,
    CreateOrderRequest,
    DeliverOrderRequest,
    OrderResponse,
    OrdersListResponse,
    PayOrderRequest,
    SellerStatsResponse,
    ShipOrderRequest,
)
from ..services.cart import get_or_create_cart, price_cart, save_items, to_priced_lines
from ..services.inventory import decrement_stock, restore_stock
from ..services.orders import (
    FINAL_STATUSES,
    REVENUE_STATUSES,
    credit_store_sales,
    generate_order_number,
    mark_order_paid,
    record_payment,
    seller_items,
)
from ..services.pricing import coupon_rejection
from ..utils.dependencies import (
    CurrentUser,
    ensure_order_participant,
    fetch_page,
    get_current_user,
    require_admin,
    require_seller,
    validate_object_id,
    verify_order_exists,
)
from ..utils.serializers import page_payload, serialize_doc, to_naive_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])

SORT_FIELDS = {"created_at", "total", "status"}


def order_filters(
    status: Optional[OrderStatus], date_from: Optional[datetime], date_to: Optional[datetime]
) -> Dict[str, Any]:
    filter_query: Dict[str, Any] = {}
    if status is not None:
        filter_query["status"] = status.value
    if date_from or date_to:
        created = {}
        if date_from:
            created["$gte"] = to_naive_utc(date_from)
        if date_to:
            created["$lte"] = to_naive_utc(date_to)
        filter_query["created_at"] = created
    return filter_query


def order_sort(sort: str, order: str) -> List[tuple]:
    return [(sort if sort in SORT_FIELDS else "created_at", 1 if order == "asc" else -1)]


async def reload(db: AsyncIOMotorDatabase, order: Dict[str, Any]) -> Dict[str, Any]:
    return serialize_doc(await db.orders.find_one({"_id": order["_id"]}))


@router.post("", status_code=201, response_model=OrderResponse)
async def create_order(
    payload: CreateOrderRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Place an order from the selected cart items"""
    try:
        address = await db.addresses.find_one({
            "_id": ObjectId(payload.shipping_address_id),
            "user_id": user.id,
        })
        if not address:
            raise HTTPException(status_code=404, detail="Shipping address not found")

        cart = await get_or_create_cart(db, user.id)
        priced = await price_cart(db, cart, coupon_code=payload.coupon_code)
        lines = priced["lines"]
        if not lines:
            raise HTTPException(status_code=400, detail="No available items selected for checkout")

        # An explicitly requested coupon must apply; a stale cart coupon is ignored
        if payload.coupon_code:
            coupon = priced["coupon"]
            if coupon is None:
                raise HTTPException(status_code=404, detail="Coupon not found")
            reason = coupon_rejection(coupon, to_priced_lines(lines))
            if reason:
                raise HTTPException(status_code=400, detail=reason)

        taken = []
        try:
            for line in lines:
                await decrement_stock(db, line["product_id"], line["quantity"], line.get("variant_id"))
                taken.append(line)
        except HTTPException:
            for line in taken:
                await restore_stock(db, line["product_id"], line["quantity"], line.get("variant_id"))
            raise

        summary = priced["summary"]
        is_cod = payload.payment_method == OrderPaymentMethod.COD
        document = OrderDocument(
            order_number=generate_order_number(),
            buyer_id=user.id,
            items=[
                OrderItem(
                    product_id=line["product_id"],
                    product_name=line["product_name"],
                    product_image=line.get("product_image"),
                    quantity=line["quantity"],
                    price=line["price"],
                    variant=line.get("variant_name"),
                    variant_id=line.get("variant_id"),
                    seller_id=line["seller_id"],
                )
                for line in lines
            ],
            subtotal=summary.subtotal,
            shipping=summary.shipping,
            tax=summary.tax,
            discount=summary.discount,
            total=summary.total,
            coupon_code=summary.coupon_code,
            shipping_address_id=address["_id"],
            payment_method=payload.payment_method,
            payment_status=is_cod,
            status=OrderStatus.PAID if is_cod else OrderStatus.PENDING,
            notes=payload.notes,
        )
        result = await db.orders.insert_one(document.to_mongo())

        if summary.coupon_code:
            await db.coupons.update_one({"code": summary.coupon_code}, {"$inc": {"usage_count": 1}})

        ordered = {(line["product_id"], line.get("variant_id")) for line in lines}
        remaining = [
            item for item in cart.get("items", [])
            if (item["product_id"], item.get("variant_id")) not in ordered
        ]
        extra = {"coupon_code": None} if summary.coupon_code else {}
        await save_items(db, cart, remaining, **extra)

        created_order = await db.orders.find_one({"_id": result.inserted_id})
        logger.info(
            f"🛒 Order {created_order['order_number']} placed by {user.id}: "
            f"{len(lines)} lines, total {summary.total}"
        )
        return serialize_doc(created_order)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to create order: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to create order: {str(e)}")


@router.get("/buyer/me", response_model=OrdersListResponse)
async def get_my_orders(
    status: Optional[OrderStatus] = Query(None, description="Filter by order status"),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    sort: str = Query("created_at"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    limit: int = Query(10, ge=1, le=100, description="Number of orders to return"),
    offset: int = Query(0, ge=0, description="Number of orders to skip"),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Orders placed by the caller"""
    filter_query = {"buyer_id": user.id, **order_filters(status, date_from, date_to)}
    docs, total = await fetch_page(db.orders, filter_query, order_sort(sort, order), limit, offset)
    return page_payload("orders", docs, total, limit, offset)


@router.get("/seller/me", response_model=OrdersListResponse)
async def get_seller_orders(
    status: Optional[OrderStatus] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    sort: str = Query("created_at"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    seller: CurrentUser = Depends(require_seller),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Orders containing at least one of the caller's items"""
    filter_query = {"items.seller_id": seller.id, **order_filters(status, date_from, date_to)}
    docs, total = await fetch_page(db.orders, filter_query, order_sort(sort, order), limit, offset)
    return page_payload("orders", docs, total, limit, offset)


@router.get("/seller/stats", response_model=SellerStatsResponse)
async def get_seller_stats(
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    seller: CurrentUser = Depends(require_seller),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Revenue of the caller's items in paid, shipped or delivered orders"""
    filter_query = {
        "items.seller_id": seller.id,
        "status": {"$in": REVENUE_STATUSES},
        **order_filters(None, date_from, date_to),
    }
    orders = await db.orders.find(filter_query).to_list(length=None)

    revenue = 0.0
    items_sold = 0
    for entry in orders:
        for item in seller_items(entry, seller.id):
            revenue += item["price"] * item["quantity"]
            items_sold += item["quantity"]

    return {
        "revenue": round(revenue, 2),
        "orders": len(orders),
        "items_sold": items_sold,
        "date_from": to_naive_utc(date_from),
        "date_to": to_naive_utc(date_to),
    }


@router.get("/admin/all", response_model=OrdersListResponse)
async def get_all_orders(
    status: Optional[OrderStatus] = Query(None),
    buyer_id: Optional[str] = Query(None),
    seller_id: Optional[str] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    sort: str = Query("created_at"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    admin: CurrentUser = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    filter_query = order_filters(status, date_from, date_to)
    if buyer_id:
        filter_query["buyer_id"] = validate_object_id(buyer_id, "buyer")
    if seller_id:
        filter_query["items.seller_id"] = validate_object_id(seller_id, "seller")

    docs, total = await fetch_page(db.orders, filter_query, order_sort(sort, order), limit, offset)
    return page_payload("orders", docs, total, limit, offset)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Get a specific order by ID"""
    order = await verify_order_exists(order_id, db)
    ensure_order_participant(order, user)
    return serialize_doc(order)


@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: str,
    payload: CancelOrderRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Cancel an order that has not shipped; stock is returned"""
    try:
        order = await verify_order_exists(order_id, db)
        ensure_order_participant(order, user)

        if order["status"] in FINAL_STATUSES:
            raise HTTPException(status_code=400, detail=f"Cannot cancel an order that is {order['status']}")

        now = datetime.utcnow()
        await db.orders.update_one(
            {"_id": order["_id"]},
            {"$set": {
                "status": OrderStatus.CANCELLED.value,
                "cancelled_at": now,
                "notes": payload.reason or f"Cancelled by {user.role.value}",
                "updated_at": now,
            }}
        )

        for item in order["items"]:
            await restore_stock(db, item["product_id"], item["quantity"], item.get("variant_id"))

        logger.info(f"Order {order['order_number']} cancelled by {user.id}")
        return await reload(db, order)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to cancel order {order_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to cancel order: {str(e)}")


@router.post("/{order_id}/pay", response_model=OrderResponse)
async def pay_order(
    order_id: str,
    payload: PayOrderRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Record payment for a pending order"""
    try:
        order = await verify_order_exists(order_id, db)
        if order["buyer_id"] != user.id:
            raise HTTPException(status_code=403, detail="Only the buyer can pay for this order")
        if order["status"] != OrderStatus.PENDING.value:
            raise HTTPException(status_code=400, detail=f"Order is {order['status']}, not pending")

        provider = PaymentProvider.SYSTEM
        token = None
        if payload.payment_method == OrderPaymentMethod.PAYPAL:
            token = (payload.payment_details or {}).get("paypal_token")
            if not token:
                raise HTTPException(status_code=400, detail="Invalid PayPal payment details")
            provider = PaymentProvider.PAYPAL

        await mark_order_paid(db, order, payload.payment_method.value)
        await record_payment(db, order, provider, provider_transaction_id=token)

        return await reload(db, order)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to pay order {order_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to pay order: {str(e)}")


@router.post("/{order_id}/ship", response_model=OrderResponse)
async def ship_order(
    order_id: str,
    payload: ShipOrderRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Mark a paid order as shipped"""
    order = await verify_order_exists(order_id, db)
    ensure_order_participant(order, user, allow_buyer=False)

    if order["status"] != OrderStatus.PAID.value:
        raise HTTPException(status_code=400, detail="Only paid orders can be shipped")

    await db.orders.update_one(
        {"_id": order["_id"]},
        {"$set": {
            "status": OrderStatus.SHIPPED.value,
            "tracking_number": payload.tracking_number,
            "shipping_provider": payload.shipping_provider,
            "estimated_delivery_date": payload.estimated_delivery_date,
            "updated_at": datetime.utcnow(),
        }}
    )
    logger.info(f"📦 Order {order['order_number']} shipped ({payload.tracking_number})")
    return await reload(db, order)


@router.post("/{order_id}/deliver", response_model=OrderResponse)
async def deliver_order(
    order_id: str,
    payload: DeliverOrderRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Confirm delivery of a shipped order"""
    order = await verify_order_exists(order_id, db)
    ensure_order_participant(order, user)

    if order["status"] != OrderStatus.SHIPPED.value:
        raise HTTPException(status_code=400, detail="Only shipped orders can be marked delivered")

    now = datetime.utcnow()
    changes: Dict[str, Any] = {"status": OrderStatus.DELIVERED.value, "delivered_at": now, "updated_at": now}
    if payload.delivery_notes:
        changes["notes"] = payload.delivery_notes
    await db.orders.update_one({"_id": order["_id"]}, {"$set": changes})

    await credit_store_sales(db, order)

    logger.info(f"Order {order['order_number']} delivered")
    return await reload(db, order)
