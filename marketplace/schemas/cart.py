"""
Cart API schemas for request/response validation.
"""
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from .common import DocumentResponse, ObjectIdStr


class AddToCartRequest(BaseModel):
    product_id: ObjectIdStr = Field(..., description="Product ID")
    quantity: int = Field(1, gt=0, le=100, description="Quantity to add (max 100)")
    variant_id: Optional[ObjectIdStr] = Field(None, description="Variant ID")


class UpdateCartItemRequest(BaseModel):
    quantity: Optional[int] = Field(None, gt=0, le=100)
    selected: Optional[bool] = None


class ApplyCouponRequest(BaseModel):
    coupon_code: str = Field(..., min_length=3, max_length=20)

    @field_validator("coupon_code")
    @classmethod
    def normalize_code(cls, v):
        return v.strip().upper()


class CartItemResponse(BaseModel):
    """A cart line with live product data."""
    product_id: str
    variant_id: Optional[str] = None
    variant_name: Optional[str] = None
    quantity: int
    price: float
    selected: bool = True
    product_name: Optional[str] = None
    product_image: Optional[str] = None
    seller_id: Optional[str] = None
    available: bool
    in_stock: bool
    current_price: Optional[float] = None
    line_total: float


class CartSummary(BaseModel):
    subtotal: float
    shipping: float
    tax: float
    discount: float
    total: float
    items_count: int
    total_items: int
    coupon_code: Optional[str] = None


class CartResponse(DocumentResponse):
    """Cart with enriched lines and a price summary."""
    user_id: str
    items: List[CartItemResponse]
    coupon_code: Optional[str] = None
    summary: CartSummary
