"""Product image session routes used by the product form."""

from __future__ import annotations

import time
from typing import List, Optional

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Request,
    Response,
    UploadFile,
    status,
)

from .cropping import default_area
from .image_field import ProductImageField
from .session_registry import ImageSessionRegistry
from .upload_errors import ClassificationError, CropStateError, PipelineBusyError
from .upload_models import CropArea, PendingFile
from .upload_schemas import (
    CropAreaPayload,
    CropJobPayload,
    FinalizeResponse,
    ImageSessionResponse,
    ImageSlotPayload,
    SessionCreateRequest,
    UrlSlotRequest,
)

router = APIRouter(prefix="/api/product-images/sessions", tags=["product-images"])


def get_registry(request: Request) -> ImageSessionRegistry:
    """Fetch the session registry from application state."""
    try:
        return request.app.state.image_sessions  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover - app wiring error
        raise RuntimeError("ImageSessionRegistry is not configured") from exc


def _lookup(registry: ImageSessionRegistry, session_id: str) -> ProductImageField:
    try:
        return registry.get(session_id)
    except KeyError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"status": "error", "reason": "session_not_found"},
        ) from None


def _slot_not_found(index: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"status": "error", "reason": "slot_not_found", "index": index},
    )


def _conflict(reason: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={"status": "error", "reason": reason, "message": message},
    )


def _crop_payload(session_id: str, image_field: ProductImageField) -> CropJobPayload | None:
    job = image_field.active_crop
    if job is None:
        return None
    try:
        area = default_area(job.source)
    except ClassificationError:
        area_payload = None
    else:
        area_payload = CropAreaPayload(x=area.x, y=area.y, width=area.width, height=area.height)
    return CropJobPayload(
        filename=job.source.filename,
        content_type=job.source.content_type,
        preview_url=f"{router.prefix}/{session_id}/crop/preview",
        default_area=area_payload,
        queued=image_field.crop.pending_count,
    )


def _session_payload(session_id: str, image_field: ProductImageField) -> ImageSessionResponse:
    return ImageSessionResponse(
        session_id=session_id,
        images=[
            ImageSlotPayload(state=slot.state, value=slot.value)
            for slot in image_field.images.slots
        ],
        accepting_files=image_field.accepting_files,
        crop=_crop_payload(session_id, image_field),
        notifications=list(image_field.notifications),
    )


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_session(
    payload: Optional[SessionCreateRequest] = None,
    registry: ImageSessionRegistry = Depends(get_registry),
) -> ImageSessionResponse:
    initial = payload.images if payload else []
    session_id, image_field = registry.create(initial)
    return _session_payload(session_id, image_field)


@router.get("/{session_id}")
def fetch_session(
    session_id: str,
    registry: ImageSessionRegistry = Depends(get_registry),
) -> ImageSessionResponse:
    return _session_payload(session_id, _lookup(registry, session_id))


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def drop_session(
    session_id: str,
    registry: ImageSessionRegistry = Depends(get_registry),
) -> Response:
    _lookup(registry, session_id)
    registry.drop(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{session_id}/files")
async def select_files(
    session_id: str,
    files: List[UploadFile] = File(...),
    last_modified: Optional[List[float]] = Form(None),
    registry: ImageSessionRegistry = Depends(get_registry),
) -> ImageSessionResponse:
    image_field = _lookup(registry, session_id)
    now = time.time()
    pending: list[PendingFile] = []
    for position, upload in enumerate(files):
        modified = now
        if last_modified and position < len(last_modified):
            modified = last_modified[position]
        pending.append(
            PendingFile(
                filename=upload.filename or "upload",
                content_type=upload.content_type or "application/octet-stream",
                payload=await upload.read(),
                last_modified=modified,
            )
        )
    try:
        await image_field.files_selected(pending)
    except PipelineBusyError as exc:
        raise _conflict("busy", str(exc)) from None
    await image_field.wait_settled()
    return _session_payload(session_id, image_field)


@router.get("/{session_id}/crop")
def fetch_crop(
    session_id: str,
    registry: ImageSessionRegistry = Depends(get_registry),
) -> CropJobPayload:
    crop = _crop_payload(session_id, _lookup(registry, session_id))
    if crop is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"status": "error", "reason": "no_active_crop"},
        )
    return crop


@router.get("/{session_id}/crop/preview")
def fetch_crop_preview(
    session_id: str,
    registry: ImageSessionRegistry = Depends(get_registry),
) -> Response:
    image_field = _lookup(registry, session_id)
    job = image_field.active_crop
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"status": "error", "reason": "no_active_crop"},
        )
    content = image_field.previews.read(job.preview.preview_id)
    return Response(content=content, media_type=job.preview.content_type)


@router.post("/{session_id}/crop")
async def confirm_crop(
    session_id: str,
    payload: CropAreaPayload,
    registry: ImageSessionRegistry = Depends(get_registry),
) -> ImageSessionResponse:
    image_field = _lookup(registry, session_id)
    area = CropArea(x=payload.x, y=payload.y, width=payload.width, height=payload.height)
    try:
        await image_field.crop_area_confirmed(area)
    except CropStateError as exc:
        raise _conflict("no_active_crop", str(exc)) from None
    await image_field.wait_settled()
    return _session_payload(session_id, image_field)


@router.delete("/{session_id}/crop")
def cancel_crop(
    session_id: str,
    registry: ImageSessionRegistry = Depends(get_registry),
) -> ImageSessionResponse:
    image_field = _lookup(registry, session_id)
    image_field.crop_cancelled()
    return _session_payload(session_id, image_field)


@router.post("/{session_id}/urls")
def add_url_slot(
    session_id: str,
    payload: UrlSlotRequest,
    registry: ImageSessionRegistry = Depends(get_registry),
) -> ImageSessionResponse:
    image_field = _lookup(registry, session_id)
    image_field.url_slot_added(payload.value)
    return _session_payload(session_id, image_field)


@router.put("/{session_id}/urls/{index}")
def edit_url_slot(
    session_id: str,
    index: int,
    payload: UrlSlotRequest,
    registry: ImageSessionRegistry = Depends(get_registry),
) -> ImageSessionResponse:
    image_field = _lookup(registry, session_id)
    if not 0 <= index < len(image_field.images):
        raise _slot_not_found(index)
    try:
        image_field.url_slot_edited(index, payload.value)
    except ValueError as exc:
        raise _conflict("slot_uploading", str(exc)) from None
    return _session_payload(session_id, image_field)


@router.delete("/{session_id}/slots/{index}")
async def remove_slot(
    session_id: str,
    index: int,
    registry: ImageSessionRegistry = Depends(get_registry),
) -> ImageSessionResponse:
    image_field = _lookup(registry, session_id)
    if not 0 <= index < len(image_field.images):
        raise _slot_not_found(index)
    await image_field.slot_removed(index)
    return _session_payload(session_id, image_field)


@router.post("/{session_id}/finalize")
def finalize_session(
    session_id: str,
    registry: ImageSessionRegistry = Depends(get_registry),
) -> FinalizeResponse:
    return FinalizeResponse(images=_lookup(registry, session_id).finalize())
