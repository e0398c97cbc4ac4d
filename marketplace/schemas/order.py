"""
Order API schemas for request/response validation.
These models define the structure of data sent to and from the API.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from ..models.enums import OrderPaymentMethod
from .common import DocumentResponse, ObjectIdStr, PageMeta, UtcDatetime


# Request Schemas

class CreateOrderRequest(BaseModel):
    """Checkout the selected cart items."""
    shipping_address_id: ObjectIdStr = Field(..., description="Address to ship to")
    payment_method: OrderPaymentMethod = Field(..., description="paypal or cod")
    coupon_code: Optional[str] = Field(None, min_length=3, max_length=20)
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("coupon_code")
    @classmethod
    def normalize_code(cls, v):
        return v.strip().upper() if v else v


class CancelOrderRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class PayOrderRequest(BaseModel):
    payment_method: OrderPaymentMethod
    payment_details: Optional[Dict[str, Any]] = Field(None, description="Provider payload, e.g. paypal_token")


class ShipOrderRequest(BaseModel):
    tracking_number: str = Field(..., min_length=1, max_length=100)
    shipping_provider: Optional[str] = Field(None, max_length=100)
    estimated_delivery_date: Optional[UtcDatetime] = None


class DeliverOrderRequest(BaseModel):
    delivery_notes: Optional[str] = Field(None, max_length=500)


# Response Schemas

class OrderItemResponse(BaseModel):
    product_id: str
    product_name: str
    product_image: Optional[str] = None
    quantity: int
    price: float
    variant: Optional[str] = None
    variant_id: Optional[str] = None
    seller_id: str


class OrderResponse(DocumentResponse):
    """Response schema for a single order."""
    order_number: str
    buyer_id: str
    items: List[OrderItemResponse]
    subtotal: float
    shipping: float
    tax: float
    discount: float = 0
    total: float
    coupon_code: Optional[str] = None
    shipping_address_id: str
    payment_method: str
    payment_status: bool = False
    tracking_number: Optional[str] = None
    shipping_provider: Optional[str] = None
    estimated_delivery_date: Optional[datetime] = None
    status: str
    notes: Optional[str] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class OrdersListResponse(PageMeta):
    """Response schema for order list with pagination."""
    orders: List[OrderResponse]


class SellerStatsResponse(BaseModel):
    revenue: float
    orders: int
    items_sold: int
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
