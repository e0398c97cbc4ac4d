"""
Return request routes.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..config.database import get_database
from ..models import ReturnRequestDocument
from ..models.enums import OrderStatus, ReturnStatus
from ..schemas.returns import (
    ReturnCreateRequest,
    ReturnResponse,
    ReturnsListResponse,
    ReturnUpdateRequest,
)
from ..services.inventory import primary_image
from ..services.pricing import round_money
from ..utils.dependencies import (
    CurrentUser,
    fetch_page,
    get_current_user,
    verify_document_exists,
    verify_order_exists,
)
from ..utils.serializers import convert_object_ids

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/returns", tags=["Returns"])


def order_lines(order: Dict[str, Any], product_id: ObjectId) -> List[Dict[str, Any]]:
    return [item for item in order.get("items", []) if item["product_id"] == product_id]


def item_seller_ids(order: Optional[Dict[str, Any]], product_id: ObjectId) -> List[ObjectId]:
    return [item["seller_id"] for item in order_lines(order, product_id)] if order else []


async def with_summaries(db: AsyncIOMotorDatabase, requests: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Attach order and product summaries to return requests."""
    order_ids = list({r["order_id"] for r in requests})
    product_ids = list({r["product_id"] for r in requests})
    orders = {
        order["_id"]: {"order_number": order["order_number"], "status": order["status"]}
        for order in await db.orders.find({"_id": {"$in": order_ids}}).to_list(length=None)
    }
    products = {
        product["_id"]: {"name": product["name"], "image": primary_image(product)}
        for product in await db.products.find({"_id": {"$in": product_ids}}).to_list(length=None)
    }
    return [
        convert_object_ids({**r, "order": orders.get(r["order_id"]), "product": products.get(r["product_id"])})
        for r in requests
    ]


@router.post("", status_code=201, response_model=ReturnResponse)
async def create_return(
    payload: ReturnCreateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """
    Request the return of a delivered item

    Raises:
        HTTPException: 404 unknown order, 403 not the buyer, 400 order not
        delivered or product not in the order, 409 duplicate request
    """
    try:
        order = await verify_order_exists(payload.order_id, db)
        if order["buyer_id"] != user.id:
            raise HTTPException(status_code=403, detail="You are not authorized to create a return for this order")
        if order["status"] != OrderStatus.DELIVERED.value:
            raise HTTPException(status_code=400, detail="Only delivered orders can be returned")

        product_id = ObjectId(payload.product_id)
        if not order_lines(order, product_id):
            raise HTTPException(status_code=400, detail="Product not found in this order")

        if await db.return_requests.find_one({"order_id": order["_id"], "product_id": product_id}):
            raise HTTPException(status_code=409, detail="A return request already exists for this product")

        document = ReturnRequestDocument(
            order_id=order["_id"],
            user_id=user.id,
            product_id=product_id,
            reason=payload.reason,
            details=payload.details,
            images=payload.images,
        )
        result = await db.return_requests.insert_one(document.to_mongo())

        logger.info(f"↩️  Return {result.inserted_id} requested for order {order['order_number']}")
        created = await db.return_requests.find_one({"_id": result.inserted_id})
        return (await with_summaries(db, [created]))[0]

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to create return request: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to create return request: {str(e)}")


@router.get("/buyer/me", response_model=ReturnsListResponse)
async def get_my_returns(
    status: Optional[ReturnStatus] = Query(None),
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    filter_query: Dict[str, Any] = {"user_id": user.id}
    if status is not None:
        filter_query["status"] = status.value

    docs, total = await fetch_page(db.return_requests, filter_query, [("created_at", -1)], limit, offset)
    return {
        "returns": await with_summaries(db, docs),
        "total": total,
        "limit": limit,
        "offset": offset,
        "has_more": offset + limit < total,
    }


@router.get("/seller/me", response_model=ReturnsListResponse)
async def get_seller_returns(
    status: Optional[ReturnStatus] = Query(None),
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Return requests against the caller's products"""
    product_ids = await db.products.distinct("_id", {"seller_id": user.id})
    filter_query: Dict[str, Any] = {"product_id": {"$in": product_ids}}
    if status is not None:
        filter_query["status"] = status.value

    docs, total = await fetch_page(db.return_requests, filter_query, [("created_at", -1)], limit, offset)
    return {
        "returns": await with_summaries(db, docs),
        "total": total,
        "limit": limit,
        "offset": offset,
        "has_more": offset + limit < total,
    }


@router.get("/{return_id}", response_model=ReturnResponse)
async def get_return(
    return_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    request = await verify_document_exists(db.return_requests, return_id, "return request")
    order = await db.orders.find_one({"_id": request["order_id"]})

    if not (user.is_admin or request["user_id"] == user.id
            or user.id in item_seller_ids(order, request["product_id"])):
        raise HTTPException(status_code=403, detail="You are not allowed to view this return request")

    return (await with_summaries(db, [request]))[0]


@router.put("/{return_id}", response_model=ReturnResponse)
async def update_return(
    return_id: str,
    payload: ReturnUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Process a return request; the buyer may only cancel a pending one"""
    try:
        request = await verify_document_exists(db.return_requests, return_id, "return request")
        order = await db.orders.find_one({"_id": request["order_id"]})
        is_seller = user.id in item_seller_ids(order, request["product_id"])

        if not (user.is_admin or is_seller):
            if request["user_id"] != user.id:
                raise HTTPException(status_code=403, detail="You are not allowed to update this return request")
            if payload.status != ReturnStatus.CANCELLED:
                raise HTTPException(status_code=403, detail="Buyers can only cancel their return requests")
            if request["status"] != ReturnStatus.PENDING.value:
                raise HTTPException(status_code=400, detail="Only pending return requests can be cancelled")

        if payload.refund_amount is not None and order is not None:
            max_refund = round_money(sum(
                item["price"] * item["quantity"] for item in order_lines(order, request["product_id"])
            ))
            if payload.refund_amount > max_refund:
                raise HTTPException(
                    status_code=400,
                    detail=f"Refund amount cannot exceed the item total of {max_refund:.2f}"
                )

        now = datetime.utcnow()
        changes: Dict[str, Any] = {"status": payload.status.value, "updated_at": now}
        if payload.seller_response is not None:
            changes["seller_response"] = payload.seller_response
        if payload.refund_amount is not None:
            changes["refund_amount"] = payload.refund_amount
        if payload.status == ReturnStatus.COMPLETED:
            changes["completed_at"] = now

        await db.return_requests.update_one({"_id": request["_id"]}, {"$set": changes})

        logger.info(f"↩️  Return {return_id} is now {payload.status.value}")
        updated = await db.return_requests.find_one({"_id": request["_id"]})
        return (await with_summaries(db, [updated]))[0]

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to update return request {return_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to update return request: {str(e)}")
