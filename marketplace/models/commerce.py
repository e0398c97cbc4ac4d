"""
Commerce data models for database documents.
Carts, coupons, orders and bids as they are stored in MongoDB.
"""
from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field

from .base import MongoDocument
from .enums import CouponApplicability, CouponType, OrderPaymentMethod, OrderStatus


class CartItem(BaseModel):
    """A cart line; price is captured when the item is added."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    product_id: ObjectId
    quantity: int = Field(..., gt=0)
    price: float = Field(..., ge=0)
    variant_id: Optional[ObjectId] = None
    selected: bool = True


class CartDocument(MongoDocument):
    user_id: ObjectId
    items: List[CartItem] = Field(default_factory=list)
    coupon_code: Optional[str] = None


class CouponDocument(MongoDocument):
    """Discount coupon document."""
    code: str
    description: str
    type: CouponType
    value: float = Field(..., gt=0)
    min_purchase: Optional[float] = None
    max_discount: Optional[float] = None
    applicability: CouponApplicability = CouponApplicability.ALL_PRODUCTS
    product_ids: List[ObjectId] = Field(default_factory=list)
    category_ids: List[ObjectId] = Field(default_factory=list)
    created_by: ObjectId
    usage_limit: Optional[int] = None
    usage_count: int = 0
    starts_at: datetime
    expires_at: datetime
    is_active: bool = True


class OrderItem(BaseModel):
    """Order line snapshot taken at checkout."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    product_id: ObjectId
    product_name: str
    product_image: Optional[str] = None
    quantity: int = Field(..., gt=0)
    price: float = Field(..., ge=0)
    variant: Optional[str] = None
    variant_id: Optional[ObjectId] = None
    seller_id: ObjectId


class OrderDocument(MongoDocument):
    """
    Order document model representing the MongoDB document structure.
    Money fields are rounded to two decimals when the order is priced.
    """
    order_number: str
    buyer_id: ObjectId
    items: List[OrderItem] = Field(..., min_length=1)
    subtotal: float
    shipping: float
    tax: float
    discount: float = 0
    total: float
    coupon_code: Optional[str] = None
    shipping_address_id: ObjectId
    payment_method: OrderPaymentMethod
    payment_status: bool = False
    tracking_number: Optional[str] = None
    shipping_provider: Optional[str] = None
    estimated_delivery_date: Optional[datetime] = None
    status: OrderStatus = OrderStatus.PENDING
    notes: Optional[str] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class BidDocument(MongoDocument):
    product_id: ObjectId
    bidder_id: ObjectId
    amount: float = Field(..., gt=0)
