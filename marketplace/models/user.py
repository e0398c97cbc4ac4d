"""
User and address data models.
User records are owned by the upstream identity service; this API reads the
role and maintains the seller fields.
"""
from typing import Optional

from bson import ObjectId

from .base import MongoDocument
from .enums import UserRole


class UserDocument(MongoDocument):
    name: str = ""
    email: Optional[str] = None
    username: Optional[str] = None
    avatar: Optional[str] = None
    role: UserRole = UserRole.BUYER
    store_id: Optional[ObjectId] = None
    is_seller_verified: bool = False
    seller_rating: float = 0
    positive_feedback_percentage: float = 0
    total_feedback: int = 0


class AddressDocument(MongoDocument):
    """Shipping address document owned by a user."""
    user_id: ObjectId
    name: str
    phone: str
    address_line1: str
    address_line2: Optional[str] = None
    city: str
    state: str
    postal_code: str
    country: str
    is_default: bool = False
