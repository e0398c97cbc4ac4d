"""
Payment API schemas for request/response validation.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from ..models.enums import PaymentMethodType
from .common import DocumentResponse, ObjectIdStr, PageMeta


class AddPaymentMethodRequest(BaseModel):
    type: PaymentMethodType
    details: Dict[str, Any] = Field(default_factory=dict, description="Provider-specific details")
    set_default: bool = False

    @field_validator("details")
    @classmethod
    def strip_card_number(cls, v):
        # Only the last four digits of a card are kept
        number = v.get("card_number")
        if number:
            v = {**v, "last4": str(number)[-4:]}
            v.pop("card_number")
        v.pop("cvv", None)
        return v


class PaymentMethodResponse(DocumentResponse):
    user_id: str
    type: str
    status: str
    is_default: bool = False
    details: Dict[str, Any] = Field(default_factory=dict)
    last_used_at: Optional[datetime] = None


class PayPalCreateOrderRequest(BaseModel):
    amount: float = Field(..., gt=0)
    currency: str = Field("USD", min_length=3, max_length=3)
    description: str = Field("Marketplace purchase", max_length=127)
    order_id: Optional[ObjectIdStr] = Field(None, description="Marketplace order being paid")


class PayPalCaptureRequest(BaseModel):
    paypal_order_id: str = Field(..., min_length=1)
    order_id: Optional[ObjectIdStr] = None


class RefundRequest(BaseModel):
    amount: Optional[float] = Field(None, gt=0, description="Defaults to the amount not yet refunded")
    reason: Optional[str] = Field(None, max_length=500)


class TransactionResponse(DocumentResponse):
    order_id: Optional[str] = None
    user_id: str
    seller_id: Optional[str] = None
    amount: float
    type: str
    status: str
    payment_method_id: Optional[str] = None
    provider: str
    provider_transaction_id: Optional[str] = None
    provider_fee: float = 0
    notes: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    completed_at: Optional[datetime] = None
    order: Optional[Dict[str, Any]] = Field(None, description="Order number, status and total")


class TransactionsListResponse(PageMeta):
    transactions: List[TransactionResponse]


class PayPalCaptureResponse(BaseModel):
    capture_details: Dict[str, Any]
    transaction: TransactionResponse
