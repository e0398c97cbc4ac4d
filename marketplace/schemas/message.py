"""
Message API schemas for request/response validation.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .common import DocumentResponse, ObjectIdStr, PageMeta


class SendMessageRequest(BaseModel):
    receiver_id: ObjectIdStr
    content: str = Field(..., min_length=1, max_length=2000)
    related_order_id: Optional[ObjectIdStr] = None
    related_product_id: Optional[ObjectIdStr] = None


class MessageResponse(DocumentResponse):
    sender_id: str
    receiver_id: str
    content: str
    read: bool = False
    read_at: Optional[datetime] = None
    related_order_id: Optional[str] = None
    related_product_id: Optional[str] = None


class LastMessage(MessageResponse):
    is_from_me: bool = False


class ConversationMessagesResponse(PageMeta):
    messages: List[MessageResponse]
    me: Optional[Dict[str, Any]] = None
    partner: Optional[Dict[str, Any]] = None


class ConversationSummary(BaseModel):
    """One conversation partner with the latest message and unread count."""
    user_id: str
    user: Optional[Dict[str, Any]] = None
    last_message: LastMessage
    unread_count: int = 0


class UnreadCountResponse(BaseModel):
    unread_count: int


class MarkedReadResponse(BaseModel):
    marked: int
