"""
FastAPI dependencies for caller identity, lookups and common validations
"""
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from bson import ObjectId
from fastapi import Depends, Header, HTTPException
from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pydantic import BaseModel, ConfigDict

from ..config.database import get_database
from ..models.enums import UserRole

logger = logging.getLogger(__name__)


class CurrentUser(BaseModel):
    """Caller identity resolved from the gateway header."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: ObjectId
    role: UserRole = UserRole.BUYER
    name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def validate_object_id(object_id: str, resource_name: str = "resource") -> ObjectId:
    """
    Validate and convert string to ObjectId

    Args:
        object_id: String representation of ObjectId
        resource_name: Name of the resource for error messages

    Returns:
        Valid ObjectId instance

    Raises:
        HTTPException: If ObjectId format is invalid
    """
    if not ObjectId.is_valid(object_id):
        raise HTTPException(
            status_code=400,
            detail=f"Invalid {resource_name} ID format: {object_id}"
        )
    return ObjectId(object_id)


async def _resolve_user(x_user_id: str, db: AsyncIOMotorDatabase) -> CurrentUser:
    user_id = validate_object_id(x_user_id, "user")
    record = await db.users.find_one({"_id": user_id}, {"role": 1, "name": 1})
    if not record:
        return CurrentUser(id=user_id)
    return CurrentUser(id=user_id, role=record.get("role", UserRole.BUYER), name=record.get("name"))


async def get_current_user(
    x_user_id: Optional[str] = Header(None, description="Authenticated user ID forwarded by the gateway"),
    db: AsyncIOMotorDatabase = Depends(get_database)
) -> CurrentUser:
    """
    Resolve the authenticated caller

    Raises:
        HTTPException: 401 when the identity header is missing, 400 when malformed
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    return await _resolve_user(x_user_id, db)


async def get_optional_user(
    x_user_id: Optional[str] = Header(None),
    db: AsyncIOMotorDatabase = Depends(get_database)
) -> Optional[CurrentUser]:
    """Resolve the caller on public routes; anonymous requests yield None."""
    if not x_user_id:
        return None
    return await _resolve_user(x_user_id, db)


def require_roles(*roles: UserRole):
    """Build a dependency that admits only callers holding one of the roles."""
    async def checker(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in roles:
            raise HTTPException(
                status_code=403,
                detail=f"This action requires one of the roles: {', '.join(r.value for r in roles)}"
            )
        return user
    return checker


require_admin = require_roles(UserRole.ADMIN)
require_seller = require_roles(UserRole.SELLER)


async def verify_document_exists(
    collection: AsyncIOMotorCollection, document_id: str, resource_name: str
) -> Dict[str, Any]:
    """
    Verify that a document exists in a collection

    Args:
        collection: Collection to look in
        document_id: Document ID to verify
        resource_name: Name of the resource for error messages

    Returns:
        The document if found

    Raises:
        HTTPException: If the document is not found or the ID is invalid
    """
    object_id = validate_object_id(document_id, resource_name)

    document = await collection.find_one({"_id": object_id})
    if not document:
        raise HTTPException(
            status_code=404,
            detail=f"{resource_name.capitalize()} {document_id} not found"
        )

    return document


async def verify_product_exists(product_id: str, db: AsyncIOMotorDatabase) -> Dict[str, Any]:
    """Verify that a product exists in the database"""
    return await verify_document_exists(db.products, product_id, "product")


async def verify_order_exists(order_id: str, db: AsyncIOMotorDatabase) -> Dict[str, Any]:
    """Verify that an order exists in the database"""
    return await verify_document_exists(db.orders, order_id, "order")


def order_seller_ids(order: Dict[str, Any]) -> List[ObjectId]:
    return [item["seller_id"] for item in order.get("items", [])]


def ensure_order_participant(
    order: Dict[str, Any], user: CurrentUser, allow_buyer: bool = True, allow_seller: bool = True
) -> None:
    """
    Check that the caller may act on an order

    Raises:
        HTTPException: 403 unless the caller is the buyer, a seller of one of
        the items, or an admin (as allowed by the flags)
    """
    if user.is_admin:
        return
    if allow_buyer and order["buyer_id"] == user.id:
        return
    if allow_seller and user.id in order_seller_ids(order):
        return
    raise HTTPException(status_code=403, detail="You are not allowed to access this order")


async def fetch_page(
    collection: AsyncIOMotorCollection,
    filter_query: Dict[str, Any],
    sort: Sequence[Tuple[str, int]],
    limit: int,
    offset: int,
) -> Tuple[List[Dict[str, Any]], int]:
    """
    Run a limit/offset query

    Returns:
        Tuple of (documents, total matching documents)
    """
    total = await collection.count_documents(filter_query)
    cursor = collection.find(filter_query).sort(list(sort)).skip(offset).limit(limit)
    docs = await cursor.to_list(length=limit)
    return docs, total


async def user_summaries(db: AsyncIOMotorDatabase, user_ids: Sequence[ObjectId]) -> Dict[ObjectId, Dict[str, Any]]:
    """Load name/username/avatar for a set of users, keyed by ID."""
    cursor = db.users.find(
        {"_id": {"$in": list(set(user_ids))}},
        {"name": 1, "username": 1, "avatar": 1, "email": 1}
    )
    users = await cursor.to_list(length=None)
    return {user["_id"]: user for user in users}
