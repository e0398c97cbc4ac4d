"""
Category routes: browsing the category hierarchy and admin management.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..config.database import get_database
from ..models import CategoryDocument
from ..models.enums import ProductStatus
from ..schemas.category import (
    CategoriesListResponse,
    CategoryCreateRequest,
    CategoryDetailResponse,
    CategoryProductCount,
    CategoryResponse,
    CategoryTreeNode,
    CategoryUpdateRequest,
)
from ..schemas.product import ProductsListResponse
from ..utils.dependencies import (
    CurrentUser,
    fetch_page,
    require_admin,
    validate_object_id,
    verify_document_exists,
)
from ..utils.serializers import page_payload, serialize_doc, serialize_docs

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/categories", tags=["Categories"])


def build_tree(categories: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Nest serialized categories under their parents; orphans become roots."""
    nodes = {doc["_id"]: {**doc, "children": []} for doc in categories}
    roots = []
    for node in nodes.values():
        parent = nodes.get(node.get("parent_id"))
        if parent is not None:
            parent["children"].append(node)
        else:
            roots.append(node)
    return roots


async def breadcrumbs_for(db: AsyncIOMotorDatabase, category: Dict[str, Any]) -> List[Dict[str, str]]:
    trail = []
    seen = set()
    current = category
    while current is not None and current["_id"] not in seen:
        seen.add(current["_id"])
        trail.append({"id": str(current["_id"]), "name": current["name"], "slug": current["slug"]})
        parent_id = current.get("parent_id")
        current = await db.categories.find_one({"_id": parent_id}) if parent_id else None
    return list(reversed(trail))


async def ensure_valid_parent(db: AsyncIOMotorDatabase, category_id: Optional[ObjectId], parent_id: ObjectId) -> None:
    """
    Reject parents that are missing, the category itself, or one of its descendants

    Raises:
        HTTPException: 404 for a missing parent, 400 for self or circular parenting
    """
    if category_id is not None and parent_id == category_id:
        raise HTTPException(status_code=400, detail="Category cannot be its own parent")

    parent = await db.categories.find_one({"_id": parent_id})
    if not parent:
        raise HTTPException(status_code=404, detail=f"Parent category {parent_id} not found")

    if category_id is None:
        return

    seen = set()
    ancestor_id = parent.get("parent_id")
    while ancestor_id is not None and ancestor_id not in seen:
        if ancestor_id == category_id:
            raise HTTPException(status_code=400, detail="Circular reference detected in category hierarchy")
        seen.add(ancestor_id)
        ancestor = await db.categories.find_one({"_id": ancestor_id}, {"parent_id": 1})
        ancestor_id = ancestor.get("parent_id") if ancestor else None


@router.get("", response_model=CategoriesListResponse)
async def list_categories(
    active_only: bool = Query(True, description="Only return active categories"),
    parent_id: Optional[str] = Query(None, description="Filter by parent category"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """List categories with optional filtering and pagination"""
    filter_query: Dict[str, Any] = {}
    if active_only:
        filter_query["is_active"] = True
    if parent_id:
        filter_query["parent_id"] = validate_object_id(parent_id, "category")

    docs, total = await fetch_page(db.categories, filter_query, [("name", 1)], limit, offset)
    return page_payload("categories", docs, total, limit, offset)


@router.get("/tree", response_model=List[CategoryTreeNode])
async def get_category_tree(
    include_inactive: bool = Query(False),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Get the whole category hierarchy as a nested tree"""
    filter_query = {} if include_inactive else {"is_active": True}
    categories = await db.categories.find(filter_query).sort("name", 1).to_list(length=None)
    return build_tree(serialize_docs(categories))


@router.get("/root", response_model=List[CategoryResponse])
async def get_root_categories(db: AsyncIOMotorDatabase = Depends(get_database)):
    cursor = db.categories.find({"parent_id": None, "is_active": True}).sort("name", 1)
    return serialize_docs(await cursor.to_list(length=None))


@router.get("/product-counts", response_model=List[CategoryProductCount])
async def get_category_product_counts(db: AsyncIOMotorDatabase = Depends(get_database)):
    """Count active products per category"""
    try:
        pipeline = [
            {"$match": {"status": ProductStatus.ACTIVE.value}},
            {"$group": {"_id": "$category_id", "count": {"$sum": 1}}},
        ]
        counts = await db.products.aggregate(pipeline).to_list(length=None)

        category_ids = [entry["_id"] for entry in counts if entry["_id"] is not None]
        names = {
            doc["_id"]: doc["name"]
            for doc in await db.categories.find({"_id": {"$in": category_ids}}, {"name": 1}).to_list(length=None)
        }

        return [
            {"category_id": str(entry["_id"]), "name": names.get(entry["_id"]), "count": entry["count"]}
            for entry in sorted(counts, key=lambda e: e["count"], reverse=True)
            if entry["_id"] is not None
        ]
    except Exception as e:
        logger.error(f"Failed to count products per category: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to count products: {str(e)}")


@router.get("/children/{parent_id}", response_model=List[CategoryResponse])
async def get_child_categories(parent_id: str, db: AsyncIOMotorDatabase = Depends(get_database)):
    parent = await verify_document_exists(db.categories, parent_id, "category")
    cursor = db.categories.find({"parent_id": parent["_id"], "is_active": True}).sort("name", 1)
    return serialize_docs(await cursor.to_list(length=None))


@router.get("/slug/{slug}", response_model=CategoryDetailResponse)
async def get_category_by_slug(slug: str, db: AsyncIOMotorDatabase = Depends(get_database)):
    category = await db.categories.find_one({"slug": slug})
    if not category:
        raise HTTPException(status_code=404, detail=f"Category '{slug}' not found")
    return {**serialize_doc(category), "breadcrumbs": await breadcrumbs_for(db, category)}


@router.get("/{category_id}", response_model=CategoryDetailResponse)
async def get_category(category_id: str, db: AsyncIOMotorDatabase = Depends(get_database)):
    """Get a category with its breadcrumb trail"""
    category = await verify_document_exists(db.categories, category_id, "category")
    return {**serialize_doc(category), "breadcrumbs": await breadcrumbs_for(db, category)}


@router.get("/{category_id}/products", response_model=ProductsListResponse)
async def get_category_products(
    category_id: str,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    category = await verify_document_exists(db.categories, category_id, "category")
    filter_query = {"category_id": category["_id"], "status": ProductStatus.ACTIVE.value}
    docs, total = await fetch_page(db.products, filter_query, [("created_at", -1)], limit, offset)
    return page_payload("products", docs, total, limit, offset)


@router.post("", status_code=201, response_model=CategoryResponse)
async def create_category(
    payload: CategoryCreateRequest,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Create a new category"""
    try:
        if await db.categories.find_one({"slug": payload.slug}):
            raise HTTPException(status_code=409, detail=f"Category slug '{payload.slug}' already exists")

        parent_id = ObjectId(payload.parent_id) if payload.parent_id else None
        if parent_id is not None:
            await ensure_valid_parent(db, None, parent_id)

        document = CategoryDocument(**payload.model_dump(exclude={"parent_id"}), parent_id=parent_id)
        result = await db.categories.insert_one(document.to_mongo())

        created = await db.categories.find_one({"_id": result.inserted_id})
        logger.info(f"Category created: {payload.slug} (ID: {result.inserted_id})")
        return serialize_doc(created)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to create category: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to create category: {str(e)}")


@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: str,
    payload: CategoryUpdateRequest,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Update a category"""
    try:
        category = await verify_document_exists(db.categories, category_id, "category")
        changes = payload.model_dump(exclude_unset=True)

        if "slug" in changes and changes["slug"] != category["slug"]:
            if await db.categories.find_one({"slug": changes["slug"], "_id": {"$ne": category["_id"]}}):
                raise HTTPException(status_code=409, detail=f"Category slug '{changes['slug']}' already exists")

        if "parent_id" in changes:
            if changes["parent_id"] is not None:
                changes["parent_id"] = ObjectId(changes["parent_id"])
                await ensure_valid_parent(db, category["_id"], changes["parent_id"])

        changes["updated_at"] = datetime.utcnow()
        await db.categories.update_one({"_id": category["_id"]}, {"$set": changes})

        updated = await db.categories.find_one({"_id": category["_id"]})
        logger.info(f"Category updated: {category_id}")
        return serialize_doc(updated)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to update category {category_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to update category: {str(e)}")
