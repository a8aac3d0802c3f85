"""Catalog models used by the product and category forms."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProductFormError(ValueError):
    """Raised when product form values cannot be submitted."""


class Category(BaseModel):
    """Category as returned by the shop API."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    name: str
    description: Optional[str] = None
    parent_id: Optional[int] = Field(default=None, alias="parentId")
    order: Optional[int] = None


class ProductFormValues(BaseModel):
    """Raw values of the product form before submission."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = ""
    description: str = ""
    price: float = 0
    original_price: Optional[float] = Field(default=None, alias="originalPrice")
    stock: int = 0
    category_id: Optional[int] = Field(default=None, alias="categoryId")
    category_ids: List[int] = Field(default_factory=list, alias="categoryIds")


def build_product_payload(
    values: ProductFormValues, images: Optional[List[str]]
) -> Dict[str, Any]:
    """Build the create/update request body for a product.

    ``images`` is the finalized value of the image field; it is omitted when
    ``None`` so the backend keeps treating the field as optional.
    """
    payload: Dict[str, Any] = {
        "name": values.name.strip(),
        "description": values.description.strip(),
        "price": values.price,
        "stock": values.stock,
    }
    if values.original_price is not None:
        payload["originalPrice"] = values.original_price
    cleaned_images = [image for image in images or [] if image.strip()]
    if cleaned_images:
        payload["images"] = cleaned_images

    category_ids = [item for item in values.category_ids if item > 0]
    if category_ids:
        payload["categoryIds"] = category_ids
    elif values.category_id is not None and values.category_id > 0:
        payload["categoryId"] = values.category_id
    else:
        raise ProductFormError("At least one category is required")
    return payload


class CategoryOption(BaseModel):
    """Category entry of a select box, labelled with its full path."""

    id: int
    name: str
    path: str


class ParentOptionsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    categories: List[Category]
    editing_id: Optional[int] = Field(default=None, alias="editingId")


class OrganizedCategoryPayload(BaseModel):
    category: Category
    children: List[Category] = Field(default_factory=list)


class CategoryListRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    categories: List[Category]


class CategoryToggleRequest(BaseModel):
    """Checkbox change in the product form's category tree."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    categories: List[Category]
    selected: List[int] = Field(default_factory=list)
    category_id: int = Field(..., alias="categoryId")
    checked: bool


class CategoryToggleResponse(BaseModel):
    selected: List[int]


class ProductPayloadRequest(BaseModel):
    """Product form values plus the image session holding the ``images`` field."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    values: ProductFormValues
    image_session_id: Optional[str] = Field(default=None, alias="imageSessionId")
