"""
Coupon API schemas for request/response validation.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..models.enums import CouponApplicability, CouponType
from .common import DocumentResponse, ObjectIdStr, PageMeta, UtcDatetime

CODE_PATTERN = r"^[A-Z0-9_-]+$"


def _upper(value: Optional[str]) -> Optional[str]:
    return value.strip().upper() if isinstance(value, str) else value


class CouponCreateRequest(BaseModel):
    """Request schema for creating a coupon."""
    code: str = Field(..., min_length=3, max_length=20, pattern=CODE_PATTERN)
    description: str = Field(..., min_length=5, max_length=200)
    type: CouponType
    value: float = Field(..., ge=0.01)
    min_purchase: Optional[float] = Field(None, ge=0)
    max_discount: Optional[float] = Field(None, gt=0)
    applicability: CouponApplicability = CouponApplicability.ALL_PRODUCTS
    product_ids: List[ObjectIdStr] = Field(default_factory=list)
    category_ids: List[ObjectIdStr] = Field(default_factory=list)
    usage_limit: Optional[int] = Field(None, ge=1)
    starts_at: UtcDatetime
    expires_at: UtcDatetime
    is_active: bool = True

    @field_validator("code", mode="before")
    @classmethod
    def normalize_code(cls, v):
        return _upper(v)

    @model_validator(mode="after")
    def validate_rules(self):
        if self.expires_at <= self.starts_at:
            raise ValueError("expires_at must be after starts_at")
        if self.type == CouponType.PERCENTAGE and self.value > 100:
            raise ValueError("Percentage coupons cannot exceed 100")
        if self.applicability == CouponApplicability.SPECIFIC_PRODUCTS and not self.product_ids:
            raise ValueError("product_ids is required for product-specific coupons")
        if self.applicability == CouponApplicability.SPECIFIC_CATEGORIES and not self.category_ids:
            raise ValueError("category_ids is required for category-specific coupons")
        return self


class CouponUpdateRequest(BaseModel):
    """Partial update; sending null for an optional limit removes it."""
    description: Optional[str] = Field(None, min_length=5, max_length=200)
    type: Optional[CouponType] = None
    value: Optional[float] = Field(None, ge=0.01)
    min_purchase: Optional[float] = Field(None, ge=0)
    max_discount: Optional[float] = Field(None, gt=0)
    applicability: Optional[CouponApplicability] = None
    product_ids: Optional[List[ObjectIdStr]] = None
    category_ids: Optional[List[ObjectIdStr]] = None
    usage_limit: Optional[int] = Field(None, ge=1)
    starts_at: Optional[UtcDatetime] = None
    expires_at: Optional[UtcDatetime] = None
    is_active: Optional[bool] = None


class CouponValidateRequest(BaseModel):
    code: str = Field(..., min_length=3, max_length=20)
    subtotal: float = Field(..., ge=0)
    product_ids: List[ObjectIdStr] = Field(default_factory=list)
    category_ids: List[ObjectIdStr] = Field(default_factory=list)

    @field_validator("code", mode="before")
    @classmethod
    def normalize_code(cls, v):
        return _upper(v)


class CouponValidateResponse(BaseModel):
    valid: bool
    message: Optional[str] = None
    discount_amount: float = 0
    subtotal_before_discount: float
    subtotal_after_discount: float


class CouponResponse(DocumentResponse):
    code: str
    description: str
    type: str
    value: float
    min_purchase: Optional[float] = None
    max_discount: Optional[float] = None
    applicability: str
    product_ids: List[str] = Field(default_factory=list)
    category_ids: List[str] = Field(default_factory=list)
    created_by: str
    usage_limit: Optional[int] = None
    usage_count: int = 0
    starts_at: datetime
    expires_at: datetime
    is_active: bool


class CouponsListResponse(PageMeta):
    coupons: List[CouponResponse]
