"""
Shipping API schemas for request/response validation.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..models.enums import ShipmentStatus, ShippingMethodType
from .common import DocumentResponse, ObjectIdStr


class DimensionsRequest(BaseModel):
    length: float = Field(..., gt=0)
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)
    unit: str = Field("cm", pattern="^(cm|in)$")


class ShippingMethodCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: ShippingMethodType
    provider: str = Field(..., min_length=1, max_length=100)
    price_base: float = Field(..., ge=0)
    price_per_kg: Optional[float] = Field(None, ge=0)
    estimated_days_min: int = Field(..., ge=0)
    estimated_days_max: int = Field(..., ge=0)
    is_active: bool = True
    is_international: bool = False
    regions_available: List[str] = Field(default_factory=list)
    max_weight_kg: Optional[float] = Field(None, gt=0)

    @field_validator("regions_available")
    @classmethod
    def upper_regions(cls, v):
        return [region.strip().upper() for region in v if region.strip()]

    @model_validator(mode="after")
    def check_day_range(self):
        if self.estimated_days_max < self.estimated_days_min:
            raise ValueError("estimated_days_max must be greater than or equal to estimated_days_min")
        return self


class CalculateShippingRequest(BaseModel):
    shipping_method_id: ObjectIdStr
    weight_kg: float = Field(..., gt=0)
    destination_country: str = Field(..., min_length=2, max_length=56)

    @field_validator("destination_country")
    @classmethod
    def upper_country(cls, v):
        return v.strip().upper()


class CreateShipmentRequest(BaseModel):
    order_id: ObjectIdStr
    shipping_method_id: ObjectIdStr
    tracking_number: Optional[str] = Field(None, max_length=100)
    carrier: Optional[str] = Field(None, max_length=100)
    weight_kg: Optional[float] = Field(None, gt=0)
    dimensions: Optional[DimensionsRequest] = None
    shipping_cost: Optional[float] = Field(None, ge=0, description="Defaults to the method's base price")


class UpdateShipmentRequest(BaseModel):
    status: ShipmentStatus
    tracking_number: Optional[str] = Field(None, max_length=100)
    location: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=500)


# Response Schemas

class ShippingMethodResponse(DocumentResponse):
    name: str
    type: str
    provider: str
    price_base: float
    price_per_kg: Optional[float] = None
    estimated_days_min: int
    estimated_days_max: int
    is_active: bool
    is_international: bool
    regions_available: List[str] = Field(default_factory=list)
    max_weight_kg: Optional[float] = None


class ShippingQuoteResponse(BaseModel):
    shipping_method_id: str
    method_name: str
    provider: str
    cost: float
    currency: str = "USD"
    estimated_days_min: int
    estimated_days_max: int


class TrackingEventResponse(BaseModel):
    status: str
    location: Optional[str] = None
    timestamp: datetime
    description: Optional[str] = None


class ShipmentResponse(DocumentResponse):
    order_id: str
    shipping_method_id: str
    tracking_number: Optional[str] = None
    carrier: Optional[str] = None
    status: str
    estimated_delivery_date: Optional[datetime] = None
    actual_delivery_date: Optional[datetime] = None
    shipping_label_url: Optional[str] = None
    weight_kg: Optional[float] = None
    dimensions: Optional[Dict[str, Any]] = None
    tracking_history: List[TrackingEventResponse] = Field(default_factory=list)
    shipping_cost: float = 0
    shipped_at: Optional[datetime] = None


class TrackingResponse(BaseModel):
    tracking_number: str
    carrier: Optional[str] = None
    status: str
    estimated_delivery_date: Optional[datetime] = None
    actual_delivery_date: Optional[datetime] = None
    events: List[TrackingEventResponse]


class ShippingLabelResponse(BaseModel):
    shipment_id: str
    label_url: str
    tracking_number: Optional[str] = None
    carrier: Optional[str] = None
    ship_to: Dict[str, Any]
    created_at: datetime
