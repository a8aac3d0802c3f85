"""Request/response schemas for the product image session API."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .upload_models import SlotState


class SessionCreateRequest(BaseModel):
    """Initial state of the form's ``images`` field."""

    model_config = ConfigDict(extra="forbid")

    images: List[str] = Field(default_factory=list, description="Images already saved on the product.")


class UrlSlotRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    value: str = Field(default="", description="Manually entered image URL (may be blank).")


class CropAreaPayload(BaseModel):
    """Crop rectangle in source image pixels."""

    model_config = ConfigDict(extra="forbid")

    x: int = Field(..., ge=0)
    y: int = Field(..., ge=0)
    width: int = Field(..., ge=1)
    height: int = Field(..., ge=1)


class ImageSlotPayload(BaseModel):
    state: SlotState
    value: str


class CropJobPayload(BaseModel):
    """Image currently shown in the crop dialog."""

    filename: str
    content_type: str
    preview_url: str
    default_area: Optional[CropAreaPayload] = None
    queued: int = Field(..., ge=0, description="Files waiting behind this one.")


class ImageSessionResponse(BaseModel):
    session_id: str
    images: List[ImageSlotPayload]
    accepting_files: bool
    crop: Optional[CropJobPayload] = None
    notifications: List[str] = Field(default_factory=list)


class FinalizeResponse(BaseModel):
    """Submission value of the ``images`` field (``None`` when empty)."""

    images: Optional[List[str]] = None
