"""
Shipping data models for database documents.
"""
from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field

from .base import MongoDocument
from .enums import ShipmentStatus, ShippingMethodType


class ShippingMethodDocument(MongoDocument):
    name: str
    type: ShippingMethodType
    provider: str
    price_base: float = Field(..., ge=0)
    price_per_kg: Optional[float] = Field(None, ge=0)
    estimated_days_min: int = Field(..., ge=0)
    estimated_days_max: int = Field(..., ge=0)
    is_active: bool = True
    is_international: bool = False
    regions_available: List[str] = Field(default_factory=list)
    max_weight_kg: Optional[float] = Field(None, gt=0)


class PackageDimensions(BaseModel):
    length: float = Field(..., gt=0)
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)
    unit: str = "cm"


class TrackingEvent(BaseModel):
    """One entry of a shipment's tracking history."""
    model_config = ConfigDict(use_enum_values=True)

    status: ShipmentStatus
    location: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    description: Optional[str] = None


class ShipmentDocument(MongoDocument):
    """
    Shipment document; one per order.
    tracking_history is append-only and starts with the creation event.
    """
    order_id: ObjectId
    shipping_method_id: ObjectId
    tracking_number: Optional[str] = None
    carrier: Optional[str] = None
    status: ShipmentStatus = ShipmentStatus.PENDING
    estimated_delivery_date: Optional[datetime] = None
    actual_delivery_date: Optional[datetime] = None
    shipping_label_url: Optional[str] = None
    weight_kg: Optional[float] = None
    dimensions: Optional[PackageDimensions] = None
    tracking_history: List[TrackingEvent] = Field(default_factory=list)
    shipping_cost: float = 0
    shipped_at: Optional[datetime] = None
