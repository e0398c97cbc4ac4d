"""
Shipping routes: methods, quotes, shipments, tracking and labels.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..config.database import get_database
from ..config.settings import get_settings
from ..models import ShipmentDocument, ShippingMethodDocument, TrackingEvent
from ..models.enums import OrderStatus, ShipmentStatus
from ..schemas.shipping import (
    CalculateShippingRequest,
    CreateShipmentRequest,
    ShipmentResponse,
    ShippingLabelResponse,
    ShippingMethodCreateRequest,
    ShippingMethodResponse,
    ShippingQuoteResponse,
    TrackingResponse,
    UpdateShipmentRequest,
)
from ..services.orders import credit_store_sales
from ..services.pricing import round_money
from ..utils.dependencies import (
    CurrentUser,
    ensure_order_participant,
    get_current_user,
    require_admin,
    verify_document_exists,
    verify_order_exists,
)
from ..utils.serializers import serialize_doc, serialize_docs

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/shipping", tags=["Shipping"])

# Orders in these statuses can be shipped
SHIPPABLE_ORDER_STATUSES = {OrderStatus.PAID.value, OrderStatus.SHIPPED.value}


async def shipment_with_order(
    db: AsyncIOMotorDatabase, shipment_id: str, user: CurrentUser, allow_buyer: bool = True
):
    """Load a shipment and its order, checking the caller takes part in the order"""
    shipment = await verify_document_exists(db.shipments, shipment_id, "shipment")
    order = await db.orders.find_one({"_id": shipment["order_id"]})
    if order is None:
        raise HTTPException(status_code=404, detail=f"Order {shipment['order_id']} not found")
    ensure_order_participant(order, user, allow_buyer=allow_buyer)
    return shipment, order


@router.get("/methods", response_model=List[ShippingMethodResponse])
async def get_shipping_methods(
    is_international: bool = Query(False),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Active shipping methods, cheapest first"""
    cursor = db.shipping_methods.find({"is_active": True, "is_international": is_international}).sort("price_base", 1)
    return serialize_docs(await cursor.to_list(length=None))


@router.post("/methods", status_code=201, response_model=ShippingMethodResponse)
async def create_shipping_method(
    payload: ShippingMethodCreateRequest,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    try:
        document = ShippingMethodDocument(**payload.model_dump())
        result = await db.shipping_methods.insert_one(document.to_mongo())
        logger.info(f"🚚 Shipping method '{payload.name}' created by {admin.id}")
        return serialize_doc(await db.shipping_methods.find_one({"_id": result.inserted_id}))

    except Exception as e:
        logger.error(f"Failed to create shipping method: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to create shipping method: {str(e)}")


@router.post("/calculate", response_model=ShippingQuoteResponse)
async def calculate_shipping(
    payload: CalculateShippingRequest,
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """
    Quote the cost of a shipment

    Raises:
        HTTPException: 404 for unknown methods, 400 when the package is too
        heavy or the destination is not served
    """
    method = await verify_document_exists(db.shipping_methods, payload.shipping_method_id, "shipping method")

    max_weight = method.get("max_weight_kg")
    if max_weight is not None and payload.weight_kg > max_weight:
        raise HTTPException(status_code=400, detail=f"Package exceeds the maximum weight of {max_weight} kg")

    regions = method.get("regions_available") or []
    if method.get("is_international") and regions and payload.destination_country not in regions:
        raise HTTPException(
            status_code=400,
            detail=f"Shipping method does not deliver to {payload.destination_country}"
        )

    cost = method["price_base"] + (method.get("price_per_kg") or 0) * payload.weight_kg
    return {
        "shipping_method_id": str(method["_id"]),
        "method_name": method["name"],
        "provider": method["provider"],
        "cost": round_money(cost),
        "estimated_days_min": method["estimated_days_min"],
        "estimated_days_max": method["estimated_days_max"],
    }


@router.post("/shipments", status_code=201, response_model=ShipmentResponse)
async def create_shipment(
    payload: CreateShipmentRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Open the shipment of an order"""
    try:
        order = await verify_order_exists(payload.order_id, db)
        ensure_order_participant(order, user, allow_buyer=False)
        method = await verify_document_exists(db.shipping_methods, payload.shipping_method_id, "shipping method")

        if order["status"] not in SHIPPABLE_ORDER_STATUSES:
            raise HTTPException(status_code=400, detail=f"Cannot ship an order with status {order['status']}")
        if await db.shipments.find_one({"order_id": order["_id"]}):
            raise HTTPException(status_code=409, detail="A shipment already exists for this order")

        now = datetime.utcnow()
        document = ShipmentDocument(
            order_id=order["_id"],
            shipping_method_id=method["_id"],
            tracking_number=payload.tracking_number,
            carrier=payload.carrier or method["provider"],
            estimated_delivery_date=now + timedelta(days=method["estimated_days_max"]),
            weight_kg=payload.weight_kg,
            dimensions=payload.dimensions.model_dump() if payload.dimensions else None,
            tracking_history=[TrackingEvent(
                status=ShipmentStatus.PENDING, timestamp=now, description="Shipment created"
            )],
            shipping_cost=payload.shipping_cost if payload.shipping_cost is not None else method["price_base"],
        )
        result = await db.shipments.insert_one(document.to_mongo())

        logger.info(f"📦 Shipment {result.inserted_id} created for order {order['order_number']}")
        return serialize_doc(await db.shipments.find_one({"_id": result.inserted_id}))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to create shipment: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to create shipment: {str(e)}")


@router.put("/shipments/{shipment_id}", response_model=ShipmentResponse)
async def update_shipment(
    shipment_id: str,
    payload: UpdateShipmentRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Move a shipment to a new status and record it in the tracking history"""
    try:
        shipment, order = await shipment_with_order(db, shipment_id, user, allow_buyer=False)

        now = datetime.utcnow()
        status = payload.status.value
        propagates = status in (ShipmentStatus.SHIPPED.value, ShipmentStatus.DELIVERED.value)
        if propagates and order["status"] not in SHIPPABLE_ORDER_STATUSES | {OrderStatus.DELIVERED.value}:
            raise HTTPException(
                status_code=400, detail=f"Cannot mark the shipment {status} for an order with status {order['status']}"
            )
        if status == ShipmentStatus.SHIPPED.value and order["status"] == OrderStatus.DELIVERED.value:
            raise HTTPException(status_code=400, detail="Order has already been delivered")
        event = TrackingEvent(
            status=payload.status,
            location=payload.location,
            timestamp=now,
            description=payload.description or f"Status updated to {status}",
        )

        changes: Dict[str, Any] = {"status": status, "updated_at": now}
        if payload.tracking_number:
            changes["tracking_number"] = payload.tracking_number
        if status == ShipmentStatus.SHIPPED.value:
            changes["shipped_at"] = now
        elif status == ShipmentStatus.DELIVERED.value:
            changes["actual_delivery_date"] = now

        history = shipment.get("tracking_history", []) + [event.model_dump()]
        changes["tracking_history"] = history
        await db.shipments.update_one({"_id": shipment["_id"]}, {"$set": changes})

        tracking_number = payload.tracking_number or shipment.get("tracking_number")
        if status == ShipmentStatus.SHIPPED.value:
            order_changes: Dict[str, Any] = {"status": OrderStatus.SHIPPED.value, "updated_at": now}
            if tracking_number:
                order_changes["tracking_number"] = tracking_number
            if shipment.get("carrier"):
                order_changes["shipping_provider"] = shipment["carrier"]
            await db.orders.update_one({"_id": order["_id"]}, {"$set": order_changes})
        elif status == ShipmentStatus.DELIVERED.value and order["status"] != OrderStatus.DELIVERED.value:
            await db.orders.update_one(
                {"_id": order["_id"]},
                {"$set": {"status": OrderStatus.DELIVERED.value, "delivered_at": now, "updated_at": now}}
            )
            await credit_store_sales(db, order)

        logger.info(f"🚚 Shipment {shipment_id} is now {status}")
        return serialize_doc(await db.shipments.find_one({"_id": shipment["_id"]}))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to update shipment {shipment_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to update shipment: {str(e)}")


@router.get("/shipments/{shipment_id}", response_model=ShipmentResponse)
async def get_shipment(
    shipment_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    shipment, _ = await shipment_with_order(db, shipment_id, user)
    return serialize_doc(shipment)


@router.get("/orders/{order_id}", response_model=ShipmentResponse)
async def get_order_shipment(
    order_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    order = await verify_order_exists(order_id, db)
    ensure_order_participant(order, user)

    shipment = await db.shipments.find_one({"order_id": order["_id"]})
    if not shipment:
        raise HTTPException(status_code=404, detail=f"No shipment found for order {order_id}")
    return serialize_doc(shipment)


@router.get("/track/{tracking_number}", response_model=TrackingResponse)
async def track_shipment(
    tracking_number: str,
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Public tracking lookup"""
    shipment = await db.shipments.find_one({"tracking_number": tracking_number})
    if not shipment:
        raise HTTPException(status_code=404, detail=f"Tracking number {tracking_number} not found")

    return {
        "tracking_number": tracking_number,
        "carrier": shipment.get("carrier"),
        "status": shipment["status"],
        "estimated_delivery_date": shipment.get("estimated_delivery_date"),
        "actual_delivery_date": shipment.get("actual_delivery_date"),
        "events": shipment.get("tracking_history", []),
    }


@router.post("/shipments/{shipment_id}/label", response_model=ShippingLabelResponse)
async def generate_label(
    shipment_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Generate the shipping label of a shipment"""
    shipment, order = await shipment_with_order(db, shipment_id, user, allow_buyer=False)

    address = await db.addresses.find_one({"_id": order.get("shipping_address_id")})
    if not address:
        raise HTTPException(status_code=404, detail="Shipping address of the order not found")

    label_url = f"{get_settings().shipping_label_base_url.rstrip('/')}/{shipment['_id']}.pdf"
    now = datetime.utcnow()
    await db.shipments.update_one(
        {"_id": shipment["_id"]},
        {"$set": {"shipping_label_url": label_url, "updated_at": now}}
    )

    logger.info(f"🏷️  Label generated for shipment {shipment_id}")
    return {
        "shipment_id": str(shipment["_id"]),
        "label_url": label_url,
        "tracking_number": shipment.get("tracking_number"),
        "carrier": shipment.get("carrier"),
        "ship_to": {
            "name": address["name"],
            "phone": address["phone"],
            "address_line1": address["address_line1"],
            "address_line2": address.get("address_line2"),
            "city": address["city"],
            "state": address["state"],
            "postal_code": address["postal_code"],
            "country": address["country"],
        },
        "created_at": now,
    }
