"""
Store API schemas for request/response validation.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..models.enums import StoreStatus
from .common import DocumentResponse, PageMeta
from .product import ProductResponse


class StoreCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Store name")
    description: str = Field("", max_length=2000)
    logo: Optional[str] = None
    banner: Optional[str] = None
    policy: Optional[str] = Field(None, max_length=5000, description="Return and shipping policy")


class StoreUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    logo: Optional[str] = None
    banner: Optional[str] = None
    policy: Optional[str] = Field(None, max_length=5000)


class StoreStatusUpdateRequest(BaseModel):
    status: StoreStatus


class StoreResponse(DocumentResponse):
    seller_id: str
    name: str
    description: str = ""
    logo: Optional[str] = None
    banner: Optional[str] = None
    policy: Optional[str] = None
    status: str
    rating: float = 0
    total_sales: int = 0
    total_products: int = 0


class StoreDetailResponse(StoreResponse):
    """Store page: the store, a seller summary and its latest listings."""
    seller: Optional[Dict[str, Any]] = None
    recent_products: List[ProductResponse] = Field(default_factory=list)


class StoresListResponse(PageMeta):
    stores: List[StoreResponse]
