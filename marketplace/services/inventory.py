"""
Stock lookups and adjustments for products and their variants.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..models.enums import ProductStatus

logger = logging.getLogger(__name__)


def find_variant(product: Dict[str, Any], variant_id: Optional[ObjectId]) -> Optional[Dict[str, Any]]:
    if variant_id is None:
        return None
    for variant in product.get("variants", []):
        if variant.get("_id") == variant_id:
            return variant
    return None


def available_stock(product: Dict[str, Any], variant_id: Optional[ObjectId] = None) -> int:
    """Stock of the variant when one is given, else of the product."""
    if variant_id is not None:
        variant = find_variant(product, variant_id)
        return variant.get("stock", 0) if variant else 0
    return product.get("quantity", 0)


def is_available(product: Optional[Dict[str, Any]]) -> bool:
    return product is not None and product.get("status") == ProductStatus.ACTIVE.value


def primary_image(product: Dict[str, Any]) -> Optional[str]:
    medias = product.get("medias", [])
    for media in medias:
        if media.get("is_primary"):
            return media.get("url")
    return medias[0].get("url") if medias else None


async def decrement_stock(
    db: AsyncIOMotorDatabase, product_id: ObjectId, quantity: int, variant_id: Optional[ObjectId] = None
) -> None:
    """
    Take stock for a purchase

    Raises:
        HTTPException: 400 when the product or variant no longer has enough stock
    """
    now = datetime.utcnow()

    if variant_id is None:
        result = await db.products.update_one(
            {"_id": product_id, "quantity": {"$gte": quantity}},
            {"$inc": {"quantity": -quantity}, "$set": {"updated_at": now}}
        )
        if result.modified_count == 0:
            raise HTTPException(status_code=400, detail=f"Insufficient stock for product {product_id}")
        await db.products.update_one(
            {"_id": product_id, "quantity": 0, "status": ProductStatus.ACTIVE.value},
            {"$set": {"status": ProductStatus.SOLD_OUT.value}}
        )
        return

    product = await db.products.find_one({"_id": product_id})
    variant = find_variant(product, variant_id) if product else None
    if variant is None or variant.get("stock", 0) < quantity:
        raise HTTPException(status_code=400, detail=f"Insufficient stock for product {product_id}")

    variants = [
        {**v, "stock": v.get("stock", 0) - quantity} if v.get("_id") == variant_id else v
        for v in product["variants"]
    ]
    await db.products.update_one(
        {"_id": product_id},
        {"$set": {"variants": variants, "updated_at": now}}
    )


async def restore_stock(
    db: AsyncIOMotorDatabase, product_id: ObjectId, quantity: int, variant_id: Optional[ObjectId] = None
) -> None:
    """Give stock back, e.g. when an order is cancelled."""
    now = datetime.utcnow()

    if variant_id is None:
        await db.products.update_one(
            {"_id": product_id},
            {"$inc": {"quantity": quantity}, "$set": {"updated_at": now}}
        )
        await db.products.update_one(
            {"_id": product_id, "status": ProductStatus.SOLD_OUT.value},
            {"$set": {"status": ProductStatus.ACTIVE.value}}
        )
        return

    product = await db.products.find_one({"_id": product_id})
    if product is None:
        logger.warning(f"⚠️  Cannot restore stock, product {product_id} no longer exists")
        return
    variants = [
        {**v, "stock": v.get("stock", 0) + quantity} if v.get("_id") == variant_id else v
        for v in product.get("variants", [])
    ]
    await db.products.update_one(
        {"_id": product_id},
        {"$set": {"variants": variants, "updated_at": now}}
    )
