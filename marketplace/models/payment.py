"""
Payment data models for database documents.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId
from pydantic import Field

from .base import MongoDocument
from .enums import (
    PaymentMethodStatus,
    PaymentMethodType,
    PaymentProvider,
    TransactionStatus,
    TransactionType,
)


class PaymentMethodDocument(MongoDocument):
    """Saved payment method of a user."""
    user_id: ObjectId
    type: PaymentMethodType
    status: PaymentMethodStatus = PaymentMethodStatus.ACTIVE
    is_default: bool = False
    details: Dict[str, Any] = Field(default_factory=dict)
    last_used_at: Optional[datetime] = None


class TransactionDocument(MongoDocument):
    """Money movement record: payments, refunds, payouts and fees."""
    order_id: Optional[ObjectId] = None
    user_id: ObjectId
    seller_id: Optional[ObjectId] = None
    amount: float = Field(..., ge=0)
    type: TransactionType
    status: TransactionStatus = TransactionStatus.PENDING
    payment_method_id: Optional[ObjectId] = None
    provider: PaymentProvider = PaymentProvider.SYSTEM
    provider_transaction_id: Optional[str] = None
    provider_fee: float = 0
    notes: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    completed_at: Optional[datetime] = None
