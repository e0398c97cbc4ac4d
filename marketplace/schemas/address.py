"""
Address API schemas for request/response validation.
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from .common import DocumentResponse, ObjectIdStr, PageMeta


class AddressCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Recipient name")
    phone: str = Field(..., min_length=5, max_length=30)
    address_line1: str = Field(..., min_length=1, max_length=200)
    address_line2: Optional[str] = Field(None, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field(..., min_length=2, max_length=100)
    is_default: bool = False


class AddressUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, min_length=5, max_length=30)
    address_line1: Optional[str] = Field(None, min_length=1, max_length=200)
    address_line2: Optional[str] = Field(None, max_length=200)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    state: Optional[str] = Field(None, min_length=1, max_length=100)
    postal_code: Optional[str] = Field(None, min_length=1, max_length=20)
    country: Optional[str] = Field(None, min_length=2, max_length=100)
    is_default: Optional[bool] = None


class SetDefaultAddressRequest(BaseModel):
    address_id: ObjectIdStr


class AddressResponse(DocumentResponse):
    user_id: str
    name: str
    phone: str
    address_line1: str
    address_line2: Optional[str] = None
    city: str
    state: str
    postal_code: str
    country: str
    is_default: bool = False


class AddressesListResponse(PageMeta):
    addresses: List[AddressResponse]
