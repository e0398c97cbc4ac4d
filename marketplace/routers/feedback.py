"""
Seller feedback routes.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..config.database import get_database
from ..models import FeedbackDocument
from ..models.enums import FeedbackType, OrderStatus
from ..schemas.feedback import (
    FeedbackCreateRequest,
    FeedbackListResponse,
    FeedbackReplyRequest,
    FeedbackResponse,
    FeedbackSummaryResponse,
)
from ..services.ratings import refresh_seller_feedback
from ..utils.dependencies import (
    CurrentUser,
    fetch_page,
    get_current_user,
    order_seller_ids,
    user_summaries,
    validate_object_id,
    verify_document_exists,
    verify_order_exists,
)
from ..utils.serializers import convert_object_ids, serialize_doc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/feedback", tags=["Feedback"])


async def with_buyers(db: AsyncIOMotorDatabase, entries: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    buyers = await user_summaries(db, [entry["buyer_id"] for entry in entries])
    return [convert_object_ids({**entry, "buyer": buyers.get(entry["buyer_id"])}) for entry in entries]


@router.post("", status_code=201, response_model=FeedbackResponse)
async def leave_feedback(
    payload: FeedbackCreateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Leave feedback about a seller of a delivered order"""
    try:
        order = await verify_order_exists(payload.order_id, db)
        if order["buyer_id"] != user.id:
            raise HTTPException(status_code=403, detail="You are not authorized to leave feedback for this order")
        if order["status"] != OrderStatus.DELIVERED.value:
            raise HTTPException(status_code=400, detail="You can only leave feedback for delivered orders")

        seller_id = ObjectId(payload.seller_id)
        if seller_id not in order_seller_ids(order):
            raise HTTPException(status_code=400, detail="This seller is not part of the order")

        if await db.feedback.find_one({"order_id": order["_id"], "seller_id": seller_id}):
            raise HTTPException(status_code=409, detail="You have already left feedback for this order")

        document = FeedbackDocument(
            seller_id=seller_id,
            buyer_id=user.id,
            order_id=order["_id"],
            rating=payload.rating,
            type=payload.type,
            comment=payload.comment,
            is_public=payload.is_public,
        )
        result = await db.feedback.insert_one(document.to_mongo())
        await refresh_seller_feedback(db, seller_id)

        logger.info(f"📝 Feedback {result.inserted_id} ({payload.type.value}) for seller {seller_id}")
        return serialize_doc(await db.feedback.find_one({"_id": result.inserted_id}))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to leave feedback: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to leave feedback: {str(e)}")


@router.post("/{feedback_id}/reply", response_model=FeedbackResponse)
async def reply_to_feedback(
    feedback_id: str,
    payload: FeedbackReplyRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    feedback = await verify_document_exists(db.feedback, feedback_id, "feedback")
    if feedback["seller_id"] != user.id:
        raise HTTPException(status_code=403, detail="Only the seller can reply to this feedback")
    if feedback.get("reply"):
        raise HTTPException(status_code=400, detail="Feedback already has a reply")

    now = datetime.utcnow()
    await db.feedback.update_one(
        {"_id": feedback["_id"]},
        {"$set": {"reply": payload.reply, "replied_at": now, "updated_at": now}}
    )
    return serialize_doc(await db.feedback.find_one({"_id": feedback["_id"]}))


@router.get("/me", response_model=FeedbackListResponse)
async def get_my_feedback(
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    docs, total = await fetch_page(db.feedback, {"buyer_id": user.id}, [("created_at", -1)], limit, offset)
    return {
        "feedback": await with_buyers(db, docs),
        "total": total,
        "limit": limit,
        "offset": offset,
        "has_more": offset + limit < total,
    }


@router.get("/seller/{seller_id}", response_model=FeedbackListResponse)
async def get_seller_feedback(
    seller_id: str,
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Public feedback of a seller"""
    filter_query = {"seller_id": validate_object_id(seller_id, "seller"), "is_public": True}
    docs, total = await fetch_page(db.feedback, filter_query, [("created_at", -1)], limit, offset)
    return {
        "feedback": await with_buyers(db, docs),
        "total": total,
        "limit": limit,
        "offset": offset,
        "has_more": offset + limit < total,
    }


@router.get("/seller/{seller_id}/summary", response_model=FeedbackSummaryResponse)
async def get_feedback_summary(
    seller_id: str,
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    seller_oid = validate_object_id(seller_id, "seller")
    entries = await db.feedback.find({"seller_id": seller_oid}, {"rating": 1, "type": 1}).to_list(length=None)

    counts = {feedback_type.value: 0 for feedback_type in FeedbackType}
    for entry in entries:
        counts[entry["type"]] += 1

    total = len(entries)
    return {
        "seller_id": seller_id,
        "total": total,
        **counts,
        "average_rating": round(sum(entry["rating"] for entry in entries) / total, 1) if total else 0,
        "positive_percentage": round(counts[FeedbackType.POSITIVE.value] * 100 / total, 1) if total else 0,
    }
