"""
Product review routes.

Every change to a review refreshes the product rating and the seller's
store rating.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..config.database import get_database
from ..models import ReviewDocument
from ..schemas.review import (
    ProductReviewsResponse,
    ReviewCreateRequest,
    ReviewEligibilityResponse,
    ReviewResponse,
    ReviewsListResponse,
    ReviewUpdateRequest,
)
from ..services.ratings import refresh_product_rating, refresh_store_rating
from ..utils.dependencies import (
    CurrentUser,
    fetch_page,
    get_current_user,
    user_summaries,
    validate_object_id,
    verify_document_exists,
    verify_product_exists,
)
from ..utils.serializers import convert_object_ids

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["Reviews"])


async def check_eligibility(
    db: AsyncIOMotorDatabase, user: CurrentUser, product_id: ObjectId, order_id: ObjectId
) -> Dict[str, Any]:
    """
    Decide whether the caller may review a product bought in an order

    Returns:
        Dict with can_review, and reason / existing_review when refused
    """
    order = await db.orders.find_one({"_id": order_id})
    if not order:
        return {"can_review": False, "reason": "Order not found"}
    if order["buyer_id"] != user.id:
        return {"can_review": False, "reason": "This order does not belong to you"}
    if not any(item["product_id"] == product_id for item in order["items"]):
        return {"can_review": False, "reason": "This order does not contain the specified product"}

    existing = await db.reviews.find_one({"product_id": product_id, "order_id": order_id, "user_id": user.id})
    if existing:
        return {
            "can_review": False,
            "reason": "You have already reviewed this product for this order",
            "existing_review": str(existing["_id"]),
        }
    return {"can_review": True}


async def refresh_ratings(db: AsyncIOMotorDatabase, review: Dict[str, Any]) -> None:
    await refresh_product_rating(db, review["product_id"])
    await refresh_store_rating(db, review["seller_id"])


async def with_reviewers(db: AsyncIOMotorDatabase, reviews: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    users = await user_summaries(db, [review["user_id"] for review in reviews])
    return [convert_object_ids({**review, "user": users.get(review["user_id"])}) for review in reviews]


def review_sort(sort: str, order: str) -> List[tuple]:
    return [(sort, 1 if order == "asc" else -1)]


@router.get("/check-eligibility", response_model=ReviewEligibilityResponse)
async def check_review_eligibility(
    product_id: str = Query(...),
    order_id: str = Query(...),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    return await check_eligibility(
        db, user, validate_object_id(product_id, "product"), validate_object_id(order_id, "order")
    )


@router.post("", status_code=201, response_model=ReviewResponse)
async def create_review(
    payload: ReviewCreateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Review a product from one of the caller's orders"""
    try:
        product = await verify_product_exists(payload.product_id, db)
        eligibility = await check_eligibility(db, user, product["_id"], ObjectId(payload.order_id))
        if not eligibility["can_review"]:
            raise HTTPException(status_code=400, detail=eligibility["reason"])

        document = ReviewDocument(
            product_id=product["_id"],
            order_id=ObjectId(payload.order_id),
            user_id=user.id,
            seller_id=product["seller_id"],
            rating=payload.rating,
            comment=payload.comment,
            images=payload.images,
        )
        result = await db.reviews.insert_one(document.to_mongo())
        review = await db.reviews.find_one({"_id": result.inserted_id})
        await refresh_ratings(db, review)

        logger.info(f"⭐ Review {result.inserted_id} ({payload.rating}/5) on {payload.product_id}")
        return (await with_reviewers(db, [review]))[0]

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to create review: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to create review: {str(e)}")


@router.get("/me", response_model=ReviewsListResponse)
async def get_my_reviews(
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    docs, total = await fetch_page(db.reviews, {"user_id": user.id}, [("created_at", -1)], limit, offset)
    return {
        "reviews": await with_reviewers(db, docs),
        "total": total,
        "limit": limit,
        "offset": offset,
        "has_more": offset + limit < total,
    }


@router.get("/product/{product_id}", response_model=ProductReviewsResponse)
async def get_product_reviews(
    product_id: str,
    sort: str = Query("created_at", pattern="^(created_at|rating)$"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Reviews of a product with its star distribution"""
    product = await verify_product_exists(product_id, db)

    docs, total = await fetch_page(
        db.reviews, {"product_id": product["_id"]}, review_sort(sort, order), limit, offset
    )

    ratings = [doc["rating"] for doc in await db.reviews.find(
        {"product_id": product["_id"]}, {"rating": 1}
    ).to_list(length=None)]
    distribution = {str(star): 0 for star in range(1, 6)}
    for rating in ratings:
        distribution[str(rating)] += 1

    return {
        "reviews": await with_reviewers(db, docs),
        "total": total,
        "limit": limit,
        "offset": offset,
        "has_more": offset + limit < total,
        "average_rating": round(sum(ratings) / len(ratings), 1) if ratings else 0,
        "rating_distribution": distribution,
    }


@router.get("/seller/{seller_id}", response_model=ReviewsListResponse)
async def get_seller_reviews(
    seller_id: str,
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    seller_oid = validate_object_id(seller_id, "seller")
    docs, total = await fetch_page(db.reviews, {"seller_id": seller_oid}, [("created_at", -1)], limit, offset)
    return {
        "reviews": await with_reviewers(db, docs),
        "total": total,
        "limit": limit,
        "offset": offset,
        "has_more": offset + limit < total,
    }


@router.get("/{review_id}", response_model=ReviewResponse)
async def get_review(
    review_id: str,
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    review = await verify_document_exists(db.reviews, review_id, "review")
    return (await with_reviewers(db, [review]))[0]


@router.put("/{review_id}", response_model=ReviewResponse)
async def update_review(
    review_id: str,
    payload: ReviewUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    review = await verify_document_exists(db.reviews, review_id, "review")
    if review["user_id"] != user.id:
        raise HTTPException(status_code=403, detail="Only the author can edit this review")

    update_data = payload.model_dump(exclude_unset=True, exclude_none=True)
    if update_data:
        update_data["updated_at"] = datetime.utcnow()
        await db.reviews.update_one({"_id": review["_id"]}, {"$set": update_data})
        await refresh_ratings(db, review)

    updated = await db.reviews.find_one({"_id": review["_id"]})
    return (await with_reviewers(db, [updated]))[0]


@router.delete("/{review_id}", status_code=204)
async def delete_review(
    review_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    review = await verify_document_exists(db.reviews, review_id, "review")
    if review["user_id"] != user.id and not user.is_admin:
        raise HTTPException(status_code=403, detail="Only the author or an admin can delete this review")

    await db.reviews.delete_one({"_id": review["_id"]})
    await refresh_ratings(db, review)
    logger.info(f"Review {review_id} deleted by {user.id}")
    return None
