"""
Product routes: catalog browsing and seller listing management.
"""
import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..config.database import get_database
from ..models import ProductDocument, ProductVariant
from ..models.enums import ProductCondition, ProductStatus
from ..schemas.product import (
    ProductCreateRequest,
    ProductResponse,
    ProductsListResponse,
    ProductUpdateRequest,
    VariantRequest,
)
from ..utils.dependencies import (
    CurrentUser,
    fetch_page,
    get_current_user,
    get_optional_user,
    require_seller,
    validate_object_id,
    verify_document_exists,
    verify_product_exists,
)
from ..utils.serializers import page_payload, serialize_doc, serialize_docs

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["Products"])

SORT_FIELDS = {"created_at", "price", "rating", "views", "name"}
HIDDEN_STATUSES = {ProductStatus.HIDDEN.value, ProductStatus.DELETED.value}


def can_manage(product: Dict[str, Any], user: Optional[CurrentUser]) -> bool:
    return user is not None and (user.is_admin or product["seller_id"] == user.id)


def merge_variants(existing: List[Dict[str, Any]], requested: List[VariantRequest]) -> List[Dict[str, Any]]:
    """
    Rebuild a product's variant list from an update.

    Resubmitted variants keep their ID so cart lines that point at them stay valid.
    A variant is matched by `_id` when given, otherwise by name; anything else is new.
    """
    by_id = {variant["_id"]: variant for variant in existing}
    by_name = {variant["name"]: variant["_id"] for variant in existing}
    merged = []
    for variant in requested:
        fields = variant.model_dump(exclude={"id"})
        if variant.id is not None:
            variant_id = ObjectId(variant.id)
            if variant_id not in by_id:
                raise HTTPException(status_code=400, detail=f"Variant {variant.id} does not belong to this product")
            fields["_id"] = variant_id
        elif variant.name in by_name:
            fields["_id"] = by_name[variant.name]
        merged.append(ProductVariant(**fields).model_dump(by_alias=True))
    return merged


@router.post("", status_code=201, response_model=ProductResponse)
async def create_product(
    payload: ProductCreateRequest,
    seller: CurrentUser = Depends(require_seller),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Create a new product listing"""
    try:
        await verify_document_exists(db.categories, payload.category_id, "category")

        document = ProductDocument(
            **payload.model_dump(exclude={"category_id", "variants"}),
            seller_id=seller.id,
            category_id=ObjectId(payload.category_id),
            variants=[ProductVariant(**variant.model_dump(exclude={"id"})) for variant in payload.variants],
        )
        result = await db.products.insert_one(document.to_mongo())

        await db.stores.update_one(
            {"seller_id": seller.id},
            {"$inc": {"total_products": 1}, "$set": {"updated_at": datetime.utcnow()}}
        )

        created_product = await db.products.find_one({"_id": result.inserted_id})
        logger.info(f"Product created: {payload.name} (ID: {result.inserted_id})")
        return serialize_doc(created_product)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to create product: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to create product: {str(e)}")


@router.get("", response_model=ProductsListResponse)
async def list_products(
    category_id: Optional[str] = Query(None, description="Filter by category"),
    seller_id: Optional[str] = Query(None, description="Filter by seller"),
    min_price: Optional[float] = Query(None, ge=0, description="Minimum price filter"),
    max_price: Optional[float] = Query(None, gt=0, description="Maximum price filter"),
    condition: Optional[ProductCondition] = Query(None, description="Filter by item condition"),
    free_shipping: Optional[bool] = Query(None, description="Only free-shipping items"),
    is_auction: Optional[bool] = Query(None, description="Filter auction listings"),
    search: Optional[str] = Query(None, description="Search in name and description"),
    status: Optional[ProductStatus] = Query(None, description="Status filter (admins and owners only)"),
    sort: str = Query("created_at", description="Sort field"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: Optional[CurrentUser] = Depends(get_optional_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """List products with optional filtering and pagination"""
    try:
        filter_query: Dict[str, Any] = {}

        seller_oid = validate_object_id(seller_id, "seller") if seller_id else None
        if seller_oid is not None:
            filter_query["seller_id"] = seller_oid

        # Only admins, or sellers browsing their own listings, see non-active products
        may_pick_status = user is not None and (user.is_admin or (seller_oid is not None and seller_oid == user.id))
        if status is not None and may_pick_status:
            filter_query["status"] = status.value
        elif may_pick_status:
            filter_query["status"] = {"$ne": ProductStatus.DELETED.value}
        else:
            filter_query["status"] = ProductStatus.ACTIVE.value

        if category_id:
            filter_query["category_id"] = validate_object_id(category_id, "category")

        if min_price is not None or max_price is not None:
            price_filter = {}
            if min_price is not None:
                price_filter["$gte"] = min_price
            if max_price is not None:
                price_filter["$lte"] = max_price
            filter_query["price"] = price_filter

        if condition is not None:
            filter_query["condition"] = condition.value
        if free_shipping is not None:
            filter_query["free_shipping"] = free_shipping
        if is_auction is not None:
            filter_query["is_auction"] = is_auction

        if search:
            pattern = {"$regex": re.escape(search), "$options": "i"}
            filter_query["$or"] = [{"name": pattern}, {"description": pattern}, {"tags": pattern}]

        sort_field = sort if sort in SORT_FIELDS else "created_at"
        direction = 1 if order == "asc" else -1

        docs, total = await fetch_page(db.products, filter_query, [(sort_field, direction)], limit, offset)
        return page_payload("products", docs, total, limit, offset)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to fetch products: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to fetch products: {str(e)}")


@router.get("/seller/me", response_model=ProductsListResponse)
async def get_my_products(
    status: Optional[ProductStatus] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    seller: CurrentUser = Depends(require_seller),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """List the caller's own products"""
    filter_query: Dict[str, Any] = {"seller_id": seller.id}
    filter_query["status"] = status.value if status else {"$ne": ProductStatus.DELETED.value}
    docs, total = await fetch_page(db.products, filter_query, [("created_at", -1)], limit, offset)
    return page_payload("products", docs, total, limit, offset)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: str,
    user: Optional[CurrentUser] = Depends(get_optional_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Get a specific product by ID"""
    try:
        product = await verify_product_exists(product_id, db)

        if product["status"] in HIDDEN_STATUSES and not can_manage(product, user):
            raise HTTPException(status_code=404, detail=f"Product {product_id} not found")

        if user is None or product["seller_id"] != user.id:
            await db.products.update_one({"_id": product["_id"]}, {"$inc": {"views": 1}})
            product["views"] = product.get("views", 0) + 1

        return serialize_doc(product)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to fetch product {product_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to fetch product: {str(e)}")


@router.get("/{product_id}/related", response_model=List[ProductResponse])
async def get_related_products(
    product_id: str,
    limit: int = Query(8, ge=1, le=50),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Active products from the same category, topped up with tag matches"""
    product = await verify_product_exists(product_id, db)

    base_filter = {"_id": {"$ne": product["_id"]}, "status": ProductStatus.ACTIVE.value}
    related = await db.products.find(
        {**base_filter, "category_id": product["category_id"]}
    ).sort("rating", -1).limit(limit).to_list(length=limit)

    if len(related) < limit and product.get("tags"):
        seen = [doc["_id"] for doc in related] + [product["_id"]]
        more = await db.products.find({
            "_id": {"$nin": seen},
            "status": ProductStatus.ACTIVE.value,
            "tags": {"$in": product["tags"]},
        }).sort("rating", -1).limit(limit - len(related)).to_list(length=limit)
        related.extend(more)

    return serialize_docs(related)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: str,
    payload: ProductUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Update a product"""
    try:
        product = await verify_product_exists(product_id, db)
        if product["seller_id"] != user.id:
            raise HTTPException(status_code=403, detail="Only the seller can update this product")
        if product["status"] == ProductStatus.DELETED.value:
            raise HTTPException(status_code=404, detail=f"Product {product_id} not found")

        changes = payload.model_dump(exclude_unset=True, exclude_none=True, mode="python")
        if "category_id" in changes:
            await verify_document_exists(db.categories, changes["category_id"], "category")
            changes["category_id"] = ObjectId(changes["category_id"])
        if "variants" in changes:
            changes["variants"] = merge_variants(product.get("variants", []), payload.variants)
        for key in ("condition", "status"):
            if key in changes:
                changes[key] = changes[key].value
        changes["updated_at"] = datetime.utcnow()

        await db.products.update_one({"_id": product["_id"]}, {"$set": changes})

        updated_product = await db.products.find_one({"_id": product["_id"]})
        logger.info(f"Product updated: {product_id}")
        return serialize_doc(updated_product)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to update product {product_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to update product: {str(e)}")


@router.delete("/{product_id}", status_code=204)
async def delete_product(
    product_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Soft-delete a product"""
    try:
        product = await verify_product_exists(product_id, db)
        if not can_manage(product, user):
            raise HTTPException(status_code=403, detail="Only the seller or an admin can delete this product")
        if product["status"] == ProductStatus.DELETED.value:
            raise HTTPException(status_code=404, detail=f"Product {product_id} not found")

        await db.products.update_one(
            {"_id": product["_id"]},
            {"$set": {"status": ProductStatus.DELETED.value, "updated_at": datetime.utcnow()}}
        )
        await db.stores.update_one(
            {"seller_id": product["seller_id"], "total_products": {"$gt": 0}},
            {"$inc": {"total_products": -1}}
        )

        logger.info(f"Product deleted: {product_id}")
        return None

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to delete product {product_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to delete product: {str(e)}")
