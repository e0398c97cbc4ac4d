"""
Catalog data models for database documents.
These represent the actual structure of category, product and store documents.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field

from .base import MongoDocument
from .enums import ProductCondition, ProductStatus, StoreStatus


class CategoryDocument(MongoDocument):
    """Category document; categories nest through parent_id."""
    name: str = Field(..., min_length=1, max_length=100)
    slug: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = None
    parent_id: Optional[ObjectId] = None
    image_url: Optional[str] = None
    is_active: bool = True


class ProductMedia(BaseModel):
    url: str
    type: str = "image"
    is_primary: bool = False


class ProductVariant(BaseModel):
    """A purchasable variant of a product with its own stock."""
    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    id: ObjectId = Field(default_factory=ObjectId, alias="_id")
    name: str
    price: float = Field(..., gt=0)
    stock: int = Field(0, ge=0)
    attributes: Dict[str, Any] = Field(default_factory=dict)


class ProductDocument(MongoDocument):
    """
    Product document model representing the MongoDB document structure.
    Auction listings set is_auction and take bids until auction_end_time.
    """
    seller_id: ObjectId
    name: str = Field(..., min_length=1, max_length=200)
    description: str
    price: float = Field(..., gt=0)
    quantity: int = Field(..., ge=0)
    category_id: ObjectId
    condition: ProductCondition = ProductCondition.NEW
    status: ProductStatus = ProductStatus.ACTIVE
    medias: List[ProductMedia] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    variants: List[ProductVariant] = Field(default_factory=list)
    shipping_price: float = Field(0, ge=0)
    free_shipping: bool = False
    views: int = 0
    rating: float = 0
    total_reviews: int = 0
    is_auction: bool = False
    auction_end_time: Optional[datetime] = None


class StoreDocument(MongoDocument):
    """Seller store document; one per seller."""
    seller_id: ObjectId
    name: str = Field(..., min_length=1, max_length=100)
    description: str = ""
    logo: Optional[str] = None
    banner: Optional[str] = None
    policy: Optional[str] = None
    status: StoreStatus = StoreStatus.ACTIVE
    rating: float = 0
    total_sales: int = 0
    total_products: int = 0
