"""
Store routes: seller onboarding and store pages.
"""
import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..config.database import get_database
from ..models import StoreDocument
from ..models.enums import ProductStatus, StoreStatus, UserRole
from ..schemas.common import SuccessResponse
from ..schemas.product import ProductsListResponse
from ..schemas.store import (
    StoreCreateRequest,
    StoreDetailResponse,
    StoreResponse,
    StoresListResponse,
    StoreStatusUpdateRequest,
    StoreUpdateRequest,
)
from ..utils.dependencies import (
    CurrentUser,
    fetch_page,
    get_current_user,
    require_admin,
    require_seller,
    validate_object_id,
    verify_document_exists,
)
from ..utils.serializers import page_payload, serialize_doc, serialize_docs

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stores", tags=["Stores"])


async def promote_to_seller(db: AsyncIOMotorDatabase, user: CurrentUser, extra: Optional[Dict[str, Any]] = None) -> None:
    """Give the caller the seller role, creating their user record if needed."""
    now = datetime.utcnow()
    changes: Dict[str, Any] = {"updated_at": now, **(extra or {})}
    if not user.is_admin:
        changes["role"] = UserRole.SELLER.value
    await db.users.update_one(
        {"_id": user.id},
        {"$set": changes, "$setOnInsert": {"created_at": now}},
        upsert=True
    )


async def store_detail(db: AsyncIOMotorDatabase, store: Dict[str, Any]) -> Dict[str, Any]:
    seller = await db.users.find_one(
        {"_id": store["seller_id"]},
        {"name": 1, "username": 1, "avatar": 1, "seller_rating": 1, "positive_feedback_percentage": 1}
    )
    recent = await db.products.find(
        {"seller_id": store["seller_id"], "status": ProductStatus.ACTIVE.value}
    ).sort("created_at", -1).limit(10).to_list(length=10)
    return {
        **serialize_doc(store),
        "seller": serialize_doc(seller),
        "recent_products": serialize_docs(recent),
    }


@router.post("", status_code=201, response_model=StoreResponse)
async def create_store(
    payload: StoreCreateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Open a store; the caller becomes a seller"""
    try:
        if await db.stores.find_one({"seller_id": user.id}):
            raise HTTPException(status_code=409, detail="You already have a store")

        document = StoreDocument(**payload.model_dump(), seller_id=user.id)
        result = await db.stores.insert_one(document.to_mongo())

        await promote_to_seller(db, user, {"store_id": result.inserted_id, "is_seller_verified": True})

        created = await db.stores.find_one({"_id": result.inserted_id})
        logger.info(f"Store created: {payload.name} for seller {user.id}")
        return serialize_doc(created)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to create store: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to create store: {str(e)}")


@router.post("/upgrade", response_model=SuccessResponse)
async def upgrade_to_seller(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Become a seller without opening a store yet"""
    if user.role != UserRole.BUYER:
        raise HTTPException(status_code=400, detail="User is already a seller")
    await promote_to_seller(db, user)
    logger.info(f"User {user.id} upgraded to seller")
    return SuccessResponse(message="Upgraded to seller successfully")


@router.get("/me", response_model=StoreResponse)
async def get_my_store(
    seller: CurrentUser = Depends(require_seller),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    store = await db.stores.find_one({"seller_id": seller.id})
    if not store:
        raise HTTPException(status_code=404, detail="Store not found")
    return serialize_doc(store)


@router.put("/me", response_model=StoreResponse)
async def update_my_store(
    payload: StoreUpdateRequest,
    seller: CurrentUser = Depends(require_seller),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Update the caller's store"""
    try:
        store = await db.stores.find_one({"seller_id": seller.id})
        if not store:
            raise HTTPException(status_code=404, detail="Store not found")

        changes = payload.model_dump(exclude_unset=True)
        changes["updated_at"] = datetime.utcnow()
        await db.stores.update_one({"_id": store["_id"]}, {"$set": changes})

        logger.info(f"Store updated: {store['_id']}")
        return serialize_doc(await db.stores.find_one({"_id": store["_id"]}))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to update store for seller {seller.id}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to update store: {str(e)}")


@router.get("", response_model=StoresListResponse)
async def list_stores(
    q: Optional[str] = Query(None, description="Search store name and description"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """List active stores"""
    filter_query: Dict[str, Any] = {"status": StoreStatus.ACTIVE.value}
    if q:
        pattern = {"$regex": re.escape(q), "$options": "i"}
        filter_query["$or"] = [{"name": pattern}, {"description": pattern}]

    docs, total = await fetch_page(db.stores, filter_query, [("rating", -1), ("created_at", -1)], limit, offset)
    return page_payload("stores", docs, total, limit, offset)


@router.get("/top", response_model=List[StoreResponse])
async def get_top_stores(
    limit: int = Query(10, ge=1, le=50),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    cursor = db.stores.find({"status": StoreStatus.ACTIVE.value}).sort([("rating", -1), ("total_sales", -1)]).limit(limit)
    return serialize_docs(await cursor.to_list(length=limit))


@router.get("/seller/{seller_id}", response_model=StoreDetailResponse)
async def get_store_by_seller(seller_id: str, db: AsyncIOMotorDatabase = Depends(get_database)):
    store = await db.stores.find_one({"seller_id": validate_object_id(seller_id, "seller")})
    if not store:
        raise HTTPException(status_code=404, detail=f"Store for seller {seller_id} not found")
    return await store_detail(db, store)


@router.get("/{store_id}", response_model=StoreDetailResponse)
async def get_store(store_id: str, db: AsyncIOMotorDatabase = Depends(get_database)):
    """Get a store page with seller info and recent listings"""
    store = await verify_document_exists(db.stores, store_id, "store")
    return await store_detail(db, store)


@router.get("/{store_id}/products", response_model=ProductsListResponse)
async def get_store_products(
    store_id: str,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    store = await verify_document_exists(db.stores, store_id, "store")
    filter_query = {"seller_id": store["seller_id"], "status": ProductStatus.ACTIVE.value}
    docs, total = await fetch_page(db.products, filter_query, [("created_at", -1)], limit, offset)
    return page_payload("products", docs, total, limit, offset)


@router.patch("/{store_id}/status", response_model=StoreResponse)
async def update_store_status(
    store_id: str,
    payload: StoreStatusUpdateRequest,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Moderate a store"""
    store = await verify_document_exists(db.stores, store_id, "store")
    await db.stores.update_one(
        {"_id": store["_id"]},
        {"$set": {"status": payload.status.value, "updated_at": datetime.utcnow()}}
    )
    logger.info(f"Store {store_id} status -> {payload.status.value}")
    return serialize_doc(await db.stores.find_one({"_id": store["_id"]}))
