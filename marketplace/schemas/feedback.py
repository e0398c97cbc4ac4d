"""
Seller feedback API schemas for request/response validation.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..models.enums import FeedbackType
from .common import DocumentResponse, ObjectIdStr, PageMeta


class FeedbackCreateRequest(BaseModel):
    order_id: ObjectIdStr
    seller_id: ObjectIdStr
    rating: int = Field(..., ge=1, le=5)
    type: FeedbackType
    comment: str = Field("", max_length=1000)
    is_public: bool = True


class FeedbackReplyRequest(BaseModel):
    reply: str = Field(..., min_length=1, max_length=1000)


class FeedbackResponse(DocumentResponse):
    seller_id: str
    buyer_id: str
    order_id: str
    rating: int
    type: str
    comment: str = ""
    reply: Optional[str] = None
    is_public: bool = True
    replied_at: Optional[datetime] = None
    buyer: Optional[Dict[str, Any]] = None


class FeedbackListResponse(PageMeta):
    feedback: List[FeedbackResponse]


class FeedbackSummaryResponse(BaseModel):
    seller_id: str
    total: int
    positive: int
    neutral: int
    negative: int
    average_rating: float
    positive_percentage: float
