"""
Community data models: messages, reviews, return requests and seller feedback.
"""
from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from pydantic import Field

from .base import MongoDocument
from .enums import FeedbackType, ReturnReason, ReturnStatus


class MessageDocument(MongoDocument):
    sender_id: ObjectId
    receiver_id: ObjectId
    content: str = Field(..., min_length=1, max_length=2000)
    read: bool = False
    read_at: Optional[datetime] = None
    related_order_id: Optional[ObjectId] = None
    related_product_id: Optional[ObjectId] = None


class ReviewDocument(MongoDocument):
    """Product review left by a buyer for an item of one of their orders."""
    product_id: ObjectId
    order_id: ObjectId
    user_id: ObjectId
    seller_id: ObjectId
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""
    images: List[str] = Field(default_factory=list)


class ReturnRequestDocument(MongoDocument):
    order_id: ObjectId
    user_id: ObjectId
    product_id: ObjectId
    reason: ReturnReason
    details: str = ""
    status: ReturnStatus = ReturnStatus.PENDING
    seller_response: Optional[str] = None
    refund_amount: Optional[float] = None
    images: List[str] = Field(default_factory=list)
    completed_at: Optional[datetime] = None


class FeedbackDocument(MongoDocument):
    """Buyer feedback about a seller for a delivered order."""
    seller_id: ObjectId
    buyer_id: ObjectId
    order_id: ObjectId
    rating: int = Field(..., ge=1, le=5)
    type: FeedbackType
    comment: str = ""
    reply: Optional[str] = None
    is_public: bool = True
    replied_at: Optional[datetime] = None
