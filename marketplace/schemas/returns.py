"""
Return request API schemas for request/response validation.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..models.enums import ReturnReason, ReturnStatus
from .common import DocumentResponse, ObjectIdStr, PageMeta


class ReturnCreateRequest(BaseModel):
    order_id: ObjectIdStr
    product_id: ObjectIdStr
    reason: ReturnReason
    details: str = Field("", max_length=2000)
    images: List[str] = Field(default_factory=list, max_length=10)


class ReturnUpdateRequest(BaseModel):
    status: ReturnStatus
    seller_response: Optional[str] = Field(None, max_length=2000)
    refund_amount: Optional[float] = Field(None, ge=0)


class ReturnResponse(DocumentResponse):
    order_id: str
    user_id: str
    product_id: str
    reason: str
    details: str = ""
    status: str
    seller_response: Optional[str] = None
    refund_amount: Optional[float] = None
    images: List[str] = Field(default_factory=list)
    completed_at: Optional[datetime] = None
    order: Optional[Dict[str, Any]] = Field(None, description="Order number and status")
    product: Optional[Dict[str, Any]] = Field(None, description="Product name and image")


class ReturnsListResponse(PageMeta):
    returns: List[ReturnResponse]
