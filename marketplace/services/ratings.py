"""
Rating aggregates kept on products, stores and seller profiles.
"""
import logging
from datetime import datetime

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..models.enums import FeedbackType

logger = logging.getLogger(__name__)


async def _ratings(collection, filter_query) -> list:
    cursor = collection.find(filter_query, {"rating": 1})
    return [doc["rating"] for doc in await cursor.to_list(length=None)]


async def refresh_product_rating(db: AsyncIOMotorDatabase, product_id: ObjectId) -> None:
    ratings = await _ratings(db.reviews, {"product_id": product_id})
    average = round(sum(ratings) / len(ratings), 1) if ratings else 0
    await db.products.update_one(
        {"_id": product_id},
        {"$set": {"rating": average, "total_reviews": len(ratings), "updated_at": datetime.utcnow()}}
    )


async def refresh_store_rating(db: AsyncIOMotorDatabase, seller_id: ObjectId) -> None:
    """Store rating is the average of every review on the seller's products."""
    ratings = await _ratings(db.reviews, {"seller_id": seller_id})
    average = round(sum(ratings) / len(ratings), 1) if ratings else 0
    await db.stores.update_one(
        {"seller_id": seller_id},
        {"$set": {"rating": average, "updated_at": datetime.utcnow()}}
    )


async def refresh_seller_feedback(db: AsyncIOMotorDatabase, seller_id: ObjectId) -> None:
    cursor = db.feedback.find({"seller_id": seller_id}, {"rating": 1, "type": 1})
    entries = await cursor.to_list(length=None)

    total = len(entries)
    if total:
        positive = sum(1 for entry in entries if entry["type"] == FeedbackType.POSITIVE.value)
        seller_rating = round(sum(entry["rating"] for entry in entries) / total, 1)
        positive_percentage = round(positive * 100 / total, 1)
    else:
        seller_rating = 0
        positive_percentage = 0

    await db.users.update_one(
        {"_id": seller_id},
        {"$set": {
            "seller_rating": seller_rating,
            "positive_feedback_percentage": positive_percentage,
            "total_feedback": total,
            "updated_at": datetime.utcnow(),
        }}
    )
    logger.info(f"Seller {seller_id} feedback refreshed: {total} entries, rating {seller_rating}")
