"""
Address book routes. Every address is scoped to its owner.
"""
import logging
from datetime import datetime
from typing import Any, Dict

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..config.database import get_database
from ..models import AddressDocument
from ..schemas.address import (
    AddressCreateRequest,
    AddressesListResponse,
    AddressResponse,
    AddressUpdateRequest,
    SetDefaultAddressRequest,
)
from ..utils.dependencies import CurrentUser, fetch_page, get_current_user, validate_object_id
from ..utils.serializers import page_payload, serialize_doc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/addresses", tags=["Addresses"])

ADDRESS_ORDER = [("is_default", -1), ("created_at", -1)]


async def get_owned_address(db: AsyncIOMotorDatabase, address_id: str, user: CurrentUser) -> Dict[str, Any]:
    """
    Load an address of the caller

    Raises:
        HTTPException: 404 when the address does not exist or belongs to someone else
    """
    address = await db.addresses.find_one({
        "_id": validate_object_id(address_id, "address"),
        "user_id": user.id,
    })
    if not address:
        raise HTTPException(status_code=404, detail=f"Address {address_id} not found")
    return address


async def make_default(db: AsyncIOMotorDatabase, user_id: ObjectId, address_id: ObjectId) -> None:
    now = datetime.utcnow()
    await db.addresses.update_many(
        {"user_id": user_id, "_id": {"$ne": address_id}, "is_default": True},
        {"$set": {"is_default": False, "updated_at": now}}
    )
    await db.addresses.update_one({"_id": address_id}, {"$set": {"is_default": True, "updated_at": now}})


@router.get("", response_model=AddressesListResponse)
async def list_addresses(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """List the caller's addresses, default first"""
    docs, total = await fetch_page(db.addresses, {"user_id": user.id}, ADDRESS_ORDER, limit, offset)
    return page_payload("addresses", docs, total, limit, offset)


@router.post("", status_code=201, response_model=AddressResponse)
async def create_address(
    payload: AddressCreateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Add an address; the first one becomes the default"""
    try:
        is_first = await db.addresses.count_documents({"user_id": user.id}) == 0
        document = AddressDocument(**payload.model_dump(exclude={"is_default"}), user_id=user.id)
        result = await db.addresses.insert_one(document.to_mongo())

        if is_first or payload.is_default:
            await make_default(db, user.id, result.inserted_id)

        logger.info(f"Address created: {result.inserted_id} for user {user.id}")
        return serialize_doc(await db.addresses.find_one({"_id": result.inserted_id}))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to create address: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to create address: {str(e)}")


@router.get("/default", response_model=AddressResponse)
async def get_default_address(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    address = await db.addresses.find_one({"user_id": user.id, "is_default": True})
    if not address:
        raise HTTPException(status_code=404, detail="No default address set")
    return serialize_doc(address)


@router.post("/default", response_model=AddressResponse)
async def set_default_address(
    payload: SetDefaultAddressRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    address = await get_owned_address(db, payload.address_id, user)
    await make_default(db, user.id, address["_id"])
    return serialize_doc(await db.addresses.find_one({"_id": address["_id"]}))


@router.get("/{address_id}", response_model=AddressResponse)
async def get_address(
    address_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    return serialize_doc(await get_owned_address(db, address_id, user))


@router.put("/{address_id}", response_model=AddressResponse)
async def update_address(
    address_id: str,
    payload: AddressUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Update an address"""
    try:
        address = await get_owned_address(db, address_id, user)

        changes = payload.model_dump(exclude_unset=True, exclude={"is_default"})
        changes["updated_at"] = datetime.utcnow()
        await db.addresses.update_one({"_id": address["_id"]}, {"$set": changes})

        if payload.is_default:
            await make_default(db, user.id, address["_id"])

        logger.info(f"Address updated: {address_id}")
        return serialize_doc(await db.addresses.find_one({"_id": address["_id"]}))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to update address {address_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to update address: {str(e)}")


@router.delete("/{address_id}", status_code=204)
async def delete_address(
    address_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Delete an address; a deleted default hands over to the newest remaining one"""
    address = await get_owned_address(db, address_id, user)
    await db.addresses.delete_one({"_id": address["_id"]})

    if address.get("is_default"):
        newest = await db.addresses.find({"user_id": user.id}).sort("created_at", -1).limit(1).to_list(length=1)
        if newest:
            await make_default(db, user.id, newest[0]["_id"])

    logger.info(f"Address deleted: {address_id}")
    return None
