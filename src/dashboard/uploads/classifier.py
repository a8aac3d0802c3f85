"""Aspect-ratio classification of selected images."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from .upload_errors import ClassificationError
from .upload_models import PendingFile

logger = logging.getLogger(__name__)


def measure(payload: bytes) -> tuple[int, int]:
    """Return ``(width, height)`` of an encoded image."""
    try:
        with Image.open(BytesIO(payload)) as image:
            width, height = image.size
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
        raise ClassificationError(str(exc)) from exc
    if width <= 0 or height <= 0:
        raise ClassificationError(f"invalid dimensions {width}x{height}")
    return width, height


@dataclass(slots=True)
class AspectRatioClassifier:
    """Decide whether a selected image must go through the crop dialog.

    Classification fails open: anything that cannot be measured counts as
    square and is uploaded as is.
    """

    tolerance: float = 0.05
    log: logging.Logger = field(default_factory=lambda: logger)

    async def is_square(self, file: PendingFile) -> bool:
        if not file.content_type.startswith("image/"):
            self.log.info(
                "images.classify.not_an_image",
                extra={"file_name": file.filename, "content_type": file.content_type},
            )
            return True
        try:
            width, height = await asyncio.to_thread(measure, file.payload)
        except ClassificationError as exc:
            self.log.warning(
                "images.classify.undecodable",
                extra={"file_name": file.filename, "error": str(exc)},
            )
            return True
        ratio = width / height
        square = abs(ratio - 1.0) <= self.tolerance
        self.log.debug(
            "images.classify.measured",
            extra={
                "file_name": file.filename,
                "width": width,
                "height": height,
                "square": square,
            },
        )
        return square

    async def needs_crop(self, file: PendingFile) -> bool:
        return not await self.is_square(file)
