"""
Models package for database document structures.
These models represent how data is stored in MongoDB.
"""
from .base import MongoDocument
from .catalog import (
    CategoryDocument,
    ProductDocument,
    ProductMedia,
    ProductVariant,
    StoreDocument,
)
from .commerce import (
    BidDocument,
    CartDocument,
    CartItem,
    CouponDocument,
    OrderDocument,
    OrderItem,
)
from .community import (
    FeedbackDocument,
    MessageDocument,
    ReturnRequestDocument,
    ReviewDocument,
)
from .payment import PaymentMethodDocument, TransactionDocument
from .shipping import (
    PackageDimensions,
    ShipmentDocument,
    ShippingMethodDocument,
    TrackingEvent,
)
from .user import AddressDocument, UserDocument

__all__ = [
    "MongoDocument",

    # Catalog models
    "CategoryDocument",
    "ProductDocument",
    "ProductMedia",
    "ProductVariant",
    "StoreDocument",

    # Commerce models
    "BidDocument",
    "CartDocument",
    "CartItem",
    "CouponDocument",
    "OrderDocument",
    "OrderItem",

    # Community models
    "FeedbackDocument",
    "MessageDocument",
    "ReturnRequestDocument",
    "ReviewDocument",

    # Payment models
    "PaymentMethodDocument",
    "TransactionDocument",

    # Shipping models
    "PackageDimensions",
    "ShipmentDocument",
    "ShippingMethodDocument",
    "TrackingEvent",

    # User models
    "AddressDocument",
    "UserDocument",
]
