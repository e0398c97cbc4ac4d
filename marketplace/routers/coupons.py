"""
Coupon routes. Management is admin-only; listing active coupons and
validating a code are open to any caller.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..config.database import get_database
from ..models import CouponDocument
from ..models.enums import CouponApplicability, CouponType
from ..schemas.coupon import (
    CouponCreateRequest,
    CouponResponse,
    CouponsListResponse,
    CouponUpdateRequest,
    CouponValidateRequest,
    CouponValidateResponse,
)
from ..services.pricing import calculate_discount, coupon_window_error, round_money
from ..utils.dependencies import CurrentUser, fetch_page, require_admin, verify_document_exists
from ..utils.serializers import page_payload, serialize_doc, serialize_docs

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/coupons", tags=["Coupons"])


def applies_to(coupon: Dict[str, Any], product_ids: List[str], category_ids: List[str]) -> bool:
    applicability = coupon.get("applicability")
    if applicability == CouponApplicability.SPECIFIC_PRODUCTS.value:
        allowed = {str(pid) for pid in coupon.get("product_ids", [])}
        return bool(allowed.intersection(product_ids))
    if applicability == CouponApplicability.SPECIFIC_CATEGORIES.value:
        allowed = {str(cid) for cid in coupon.get("category_ids", [])}
        return bool(allowed.intersection(category_ids))
    return True


@router.get("/active", response_model=List[CouponResponse])
async def get_active_coupons(db: AsyncIOMotorDatabase = Depends(get_database)):
    """Coupons usable right now"""
    now = datetime.utcnow()
    cursor = db.coupons.find({
        "is_active": True,
        "starts_at": {"$lte": now},
        "expires_at": {"$gte": now},
    }).sort("expires_at", 1)
    coupons = await cursor.to_list(length=None)
    return serialize_docs([c for c in coupons if coupon_window_error(c, now) is None])


@router.post("/validate", response_model=CouponValidateResponse)
async def validate_coupon(payload: CouponValidateRequest, db: AsyncIOMotorDatabase = Depends(get_database)):
    """Check a coupon against a subtotal and report the discount it would give"""
    subtotal = round_money(payload.subtotal)

    def rejected(message: str) -> Dict[str, Any]:
        return {
            "valid": False,
            "message": message,
            "discount_amount": 0,
            "subtotal_before_discount": subtotal,
            "subtotal_after_discount": subtotal,
        }

    coupon = await db.coupons.find_one({"code": payload.code})
    if not coupon:
        return rejected("Coupon not found")

    error = coupon_window_error(coupon)
    if error:
        return rejected(error)

    min_purchase = coupon.get("min_purchase")
    if min_purchase is not None and subtotal < min_purchase:
        return rejected(f"Minimum purchase of {min_purchase:.2f} required")

    if not applies_to(coupon, payload.product_ids, payload.category_ids):
        return rejected("Coupon is not applicable to these items")

    discount = calculate_discount(coupon, subtotal)
    return {
        "valid": True,
        "message": "Coupon is valid",
        "discount_amount": discount,
        "subtotal_before_discount": subtotal,
        "subtotal_after_discount": round_money(subtotal - discount),
    }


@router.post("", status_code=201, response_model=CouponResponse)
async def create_coupon(
    payload: CouponCreateRequest,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Create a new coupon"""
    try:
        if await db.coupons.find_one({"code": payload.code}):
            raise HTTPException(status_code=409, detail=f"Coupon code '{payload.code}' already exists")

        document = CouponDocument(
            **payload.model_dump(exclude={"product_ids", "category_ids"}),
            product_ids=[ObjectId(pid) for pid in payload.product_ids],
            category_ids=[ObjectId(cid) for cid in payload.category_ids],
            created_by=admin.id,
        )
        result = await db.coupons.insert_one(document.to_mongo())

        logger.info(f"Coupon created: {payload.code} (ID: {result.inserted_id})")
        return serialize_doc(await db.coupons.find_one({"_id": result.inserted_id}))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to create coupon: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to create coupon: {str(e)}")


@router.get("", response_model=CouponsListResponse)
async def list_coupons(
    is_active: Optional[bool] = Query(None),
    type: Optional[CouponType] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    admin: CurrentUser = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    filter_query: Dict[str, Any] = {}
    if is_active is not None:
        filter_query["is_active"] = is_active
    if type is not None:
        filter_query["type"] = type.value

    docs, total = await fetch_page(db.coupons, filter_query, [("created_at", -1)], limit, offset)
    return page_payload("coupons", docs, total, limit, offset)


@router.get("/{coupon_id}", response_model=CouponResponse)
async def get_coupon(
    coupon_id: str,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    return serialize_doc(await verify_document_exists(db.coupons, coupon_id, "coupon"))


@router.put("/{coupon_id}", response_model=CouponResponse)
async def update_coupon(
    coupon_id: str,
    payload: CouponUpdateRequest,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Update a coupon"""
    try:
        coupon = await verify_document_exists(db.coupons, coupon_id, "coupon")
        changes = payload.model_dump(exclude_unset=True)

        # Required fields cannot be cleared
        for key in ("description", "type", "value", "applicability", "starts_at", "expires_at", "is_active"):
            if key in changes and changes[key] is None:
                del changes[key]

        for key in ("type", "applicability"):
            if key in changes:
                changes[key] = changes[key].value
        for key in ("product_ids", "category_ids"):
            if key in changes:
                changes[key] = [ObjectId(value) for value in changes[key] or []]

        starts_at = changes.get("starts_at", coupon["starts_at"])
        expires_at = changes.get("expires_at", coupon["expires_at"])
        if expires_at <= starts_at:
            raise HTTPException(status_code=400, detail="expires_at must be after starts_at")

        coupon_type = changes.get("type", coupon["type"])
        if coupon_type == CouponType.PERCENTAGE.value and changes.get("value", coupon["value"]) > 100:
            raise HTTPException(status_code=400, detail="Percentage coupons cannot exceed 100")

        changes["updated_at"] = datetime.utcnow()
        await db.coupons.update_one({"_id": coupon["_id"]}, {"$set": changes})

        logger.info(f"Coupon updated: {coupon['code']}")
        return serialize_doc(await db.coupons.find_one({"_id": coupon["_id"]}))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to update coupon {coupon_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to update coupon: {str(e)}")


@router.delete("/{coupon_id}", status_code=204)
async def delete_coupon(
    coupon_id: str,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    coupon = await verify_document_exists(db.coupons, coupon_id, "coupon")
    await db.coupons.delete_one({"_id": coupon["_id"]})
    logger.info(f"Coupon deleted: {coupon['code']}")
    return None
