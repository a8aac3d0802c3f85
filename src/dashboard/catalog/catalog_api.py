"""Catalog form routes: category pickers and product submission payloads."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from ..uploads.session_registry import ImageSessionRegistry
from ..uploads.upload_api import get_registry
from .catalog_schemas import (
    CategoryListRequest,
    CategoryOption,
    CategoryToggleRequest,
    CategoryToggleResponse,
    OrganizedCategoryPayload,
    ParentOptionsRequest,
    ProductFormError,
    ProductPayloadRequest,
    build_product_payload,
)
from .category_tree import (
    category_path,
    organize_categories,
    parent_options,
    toggle_category,
)

router = APIRouter(prefix="/api/catalog", tags=["catalog"])


@router.post("/categories/parent-options")
def list_parent_options(payload: ParentOptionsRequest) -> List[CategoryOption]:
    """Parent choices for the category form, excluding the edited subtree."""
    options = parent_options(payload.categories, payload.editing_id)
    return [
        CategoryOption(
            id=category.id,
            name=category.name,
            path=category_path(category, payload.categories),
        )
        for category in options
    ]


@router.post("/categories/organized")
def list_organized(payload: CategoryListRequest) -> List[OrganizedCategoryPayload]:
    return [
        OrganizedCategoryPayload(category=entry.category, children=entry.children)
        for entry in organize_categories(payload.categories)
    ]


@router.post("/categories/toggle")
def toggle_selection(payload: CategoryToggleRequest) -> CategoryToggleResponse:
    selected = toggle_category(
        payload.selected, payload.category_id, payload.checked, payload.categories
    )
    return CategoryToggleResponse(selected=selected)


@router.post("/products/payload")
def product_payload(
    payload: ProductPayloadRequest,
    registry: ImageSessionRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    """Build the product create/update body, taking images from the image session."""
    images: Optional[List[str]] = None
    if payload.image_session_id is not None:
        try:
            image_field = registry.get(payload.image_session_id)
        except KeyError:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"status": "error", "reason": "session_not_found"},
            ) from None
        images = image_field.finalize()
    try:
        return build_product_payload(payload.values, images)
    except ProductFormError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"status": "error", "reason": "invalid_product", "message": str(exc)},
        ) from None
