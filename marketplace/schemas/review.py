"""
Review API schemas for request/response validation.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .common import DocumentResponse, ObjectIdStr, PageMeta


class ReviewCreateRequest(BaseModel):
    product_id: ObjectIdStr
    order_id: ObjectIdStr
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field("", max_length=2000)
    images: List[str] = Field(default_factory=list, max_length=10)


class ReviewUpdateRequest(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)
    images: Optional[List[str]] = Field(None, max_length=10)


class ReviewEligibilityResponse(BaseModel):
    can_review: bool
    reason: Optional[str] = None
    existing_review: Optional[str] = Field(None, description="ID of the review already written")


class ReviewResponse(DocumentResponse):
    product_id: str
    order_id: str
    user_id: str
    seller_id: str
    rating: int
    comment: str = ""
    images: List[str] = Field(default_factory=list)
    user: Optional[Dict[str, Any]] = Field(None, description="Reviewer summary")


class ReviewsListResponse(PageMeta):
    reviews: List[ReviewResponse]


class ProductReviewsResponse(ReviewsListResponse):
    average_rating: float = 0
    rating_distribution: Dict[str, int] = Field(..., description="Review count per star, 1 to 5")
