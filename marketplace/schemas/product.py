"""
Product API schemas for request/response validation.
These models define the structure of data sent to and from the API.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models.enums import ProductCondition, ProductStatus
from .common import DocumentResponse, ObjectIdStr, PageMeta, UtcDatetime


# Request Schemas

class MediaRequest(BaseModel):
    url: str = Field(..., min_length=1, description="Media URL")
    type: str = Field("image", description="Media type")
    is_primary: bool = False


class VariantRequest(BaseModel):
    """A variant as sent by the seller; an existing variant is matched by `_id`, then by name."""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[ObjectIdStr] = Field(None, alias="_id", description="ID of an existing variant")
    name: str = Field(..., min_length=1, max_length=100)
    price: float = Field(..., gt=0)
    stock: int = Field(0, ge=0)
    attributes: Dict[str, Any] = Field(default_factory=dict)


class ProductCreateRequest(BaseModel):
    """Request schema for listing a new product."""
    name: str = Field(..., min_length=1, max_length=200, description="Product name")
    description: str = Field(..., min_length=1, max_length=5000, description="Product description")
    price: float = Field(..., gt=0, description="Price, or starting price for auctions")
    quantity: int = Field(..., ge=0, description="Available stock quantity")
    category_id: ObjectIdStr = Field(..., description="Category ID")
    condition: ProductCondition = ProductCondition.NEW
    status: ProductStatus = ProductStatus.ACTIVE
    medias: List[MediaRequest] = Field(default_factory=list, max_length=10)
    tags: List[str] = Field(default_factory=list, max_length=20)
    variants: List[VariantRequest] = Field(default_factory=list)
    shipping_price: float = Field(0, ge=0)
    free_shipping: bool = False
    is_auction: bool = False
    auction_end_time: Optional[UtcDatetime] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v == ProductStatus.DELETED:
            raise ValueError("A product cannot be created as deleted")
        return v

    @model_validator(mode="after")
    def validate_auction(self):
        if self.is_auction:
            if self.auction_end_time is None:
                raise ValueError("auction_end_time is required for auction listings")
            if self.auction_end_time <= datetime.utcnow():
                raise ValueError("auction_end_time must be in the future")
        return self


class ProductUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1, max_length=5000)
    price: Optional[float] = Field(None, gt=0)
    quantity: Optional[int] = Field(None, ge=0)
    category_id: Optional[ObjectIdStr] = None
    condition: Optional[ProductCondition] = None
    status: Optional[ProductStatus] = None
    medias: Optional[List[MediaRequest]] = Field(None, max_length=10)
    tags: Optional[List[str]] = Field(None, max_length=20)
    variants: Optional[List[VariantRequest]] = None
    shipping_price: Optional[float] = Field(None, ge=0)
    free_shipping: Optional[bool] = None
    auction_end_time: Optional[UtcDatetime] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v == ProductStatus.DELETED:
            raise ValueError("Use DELETE to remove a product")
        return v


# Response Schemas

class MediaResponse(BaseModel):
    url: str
    type: str = "image"
    is_primary: bool = False


class VariantResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id")
    name: str
    price: float
    stock: int
    attributes: Dict[str, Any] = Field(default_factory=dict)


class ProductResponse(DocumentResponse):
    """Response schema for a single product."""
    seller_id: str
    name: str
    description: str
    price: float
    quantity: int
    category_id: str
    condition: str
    status: str
    medias: List[MediaResponse] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    variants: List[VariantResponse] = Field(default_factory=list)
    shipping_price: float = 0
    free_shipping: bool = False
    views: int = 0
    rating: float = 0
    total_reviews: int = 0
    is_auction: bool = False
    auction_end_time: Optional[UtcDatetime] = None


class ProductsListResponse(PageMeta):
    """Response schema for product list with pagination."""
    products: List[ProductResponse]
