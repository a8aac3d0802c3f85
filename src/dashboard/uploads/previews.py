"""In-memory store of crop previews."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field

from .upload_models import PendingFile, PreviewHandle

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PreviewRegistry:
    """Own the preview copies shown in the crop dialog.

    Every handle returned by :meth:`acquire` must be passed to :meth:`release`;
    ``active_count`` exposes leaks to tests.
    """

    _payloads: dict[str, bytes] = field(default_factory=dict)

    def acquire(self, file: PendingFile) -> PreviewHandle:
        preview_id = uuid.uuid4().hex
        self._payloads[preview_id] = file.payload
        logger.debug(
            "images.preview.acquired",
            extra={"preview_id": preview_id, "file_name": file.filename},
        )
        return PreviewHandle(preview_id=preview_id, content_type=file.content_type)

    def read(self, preview_id: str) -> bytes:
        """Return preview bytes; raises ``KeyError`` once released."""
        return self._payloads[preview_id]

    def release(self, handle: PreviewHandle) -> None:
        if self._payloads.pop(handle.preview_id, None) is not None:
            logger.debug("images.preview.released", extra={"preview_id": handle.preview_id})

    @property
    def active_count(self) -> int:
        return len(self._payloads)
