"""
Schemas package for API request/response validation.
Domain schemas live in their own modules; the shared ones are exported here.
"""
from .common import (
    DocumentResponse,
    ErrorResponse,
    HealthCheckResponse,
    ObjectIdStr,
    PageMeta,
    RootResponse,
    SuccessResponse,
    UtcDatetime,
)

__all__ = [
    "DocumentResponse",
    "ErrorResponse",
    "HealthCheckResponse",
    "ObjectIdStr",
    "PageMeta",
    "RootResponse",
    "SuccessResponse",
    "UtcDatetime",
]
