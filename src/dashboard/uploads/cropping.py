"""Square crop helpers used by the crop dialog."""

from __future__ import annotations

import time
from io import BytesIO

from PIL import Image

from .classifier import measure
from .upload_models import CropArea, PendingFile

_FORMAT_BY_CONTENT_TYPE = {
    "image/jpeg": "JPEG",
    "image/jpg": "JPEG",
    "image/png": "PNG",
    "image/gif": "GIF",
    "image/webp": "WEBP",
}


def centered_square(width: int, height: int) -> CropArea:
    """Largest square crop centered in a ``width`` x ``height`` image."""
    side = min(width, height)
    return CropArea(x=(width - side) // 2, y=(height - side) // 2, width=side, height=side)


def clamp_area(area: CropArea, width: int, height: int) -> CropArea:
    """Clamp a crop rectangle to the image bounds (at least 1x1)."""
    x = min(max(area.x, 0), width - 1)
    y = min(max(area.y, 0), height - 1)
    w = max(1, min(area.width, width - x))
    h = max(1, min(area.height, height - y))
    return CropArea(x=x, y=y, width=w, height=h)


def default_area(file: PendingFile) -> CropArea:
    width, height = measure(file.payload)
    return centered_square(width, height)


def apply_crop(file: PendingFile, area: CropArea) -> PendingFile:
    """Return the cropped derivative of ``file``, encoded like the source."""
    image_format = _FORMAT_BY_CONTENT_TYPE.get(file.content_type, "PNG")
    content_type = file.content_type if file.content_type in _FORMAT_BY_CONTENT_TYPE else "image/png"

    with Image.open(BytesIO(file.payload)) as image:
        box = clamp_area(area, *image.size)
        cropped = image.crop((box.x, box.y, box.x + box.width, box.y + box.height))
        if image_format == "JPEG" and cropped.mode not in ("RGB", "L"):
            cropped = cropped.convert("RGB")
        buffer = BytesIO()
        cropped.save(buffer, format=image_format)

    return PendingFile(
        filename=file.filename,
        content_type=content_type,
        payload=buffer.getvalue(),
        last_modified=time.time(),
    )
