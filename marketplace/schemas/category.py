"""
Category API schemas for request/response validation.
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from .common import DocumentResponse, ObjectIdStr, PageMeta

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class CategoryCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Category name")
    slug: str = Field(..., min_length=1, max_length=120, pattern=SLUG_PATTERN, description="URL slug")
    description: Optional[str] = Field(None, max_length=1000)
    parent_id: Optional[ObjectIdStr] = Field(None, description="Parent category ID")
    image_url: Optional[str] = None
    is_active: bool = True


class CategoryUpdateRequest(BaseModel):
    """Partial update; a null parent_id moves the category to the root."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(None, min_length=1, max_length=120, pattern=SLUG_PATTERN)
    description: Optional[str] = Field(None, max_length=1000)
    parent_id: Optional[ObjectIdStr] = None
    image_url: Optional[str] = None
    is_active: Optional[bool] = None


class CategoryResponse(DocumentResponse):
    name: str
    slug: str
    description: Optional[str] = None
    parent_id: Optional[str] = None
    image_url: Optional[str] = None
    is_active: bool = True


class Breadcrumb(BaseModel):
    id: str
    name: str
    slug: str


class CategoryDetailResponse(CategoryResponse):
    breadcrumbs: List[Breadcrumb] = Field(default_factory=list, description="Path from the root category")


class CategoryTreeNode(CategoryResponse):
    children: List["CategoryTreeNode"] = Field(default_factory=list)


class CategoriesListResponse(PageMeta):
    categories: List[CategoryResponse]


class CategoryProductCount(BaseModel):
    category_id: str
    name: Optional[str] = None
    count: int


CategoryTreeNode.model_rebuild()
