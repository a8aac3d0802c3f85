"""One-at-a-time crop queue for non-square images."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field

from .classifier import AspectRatioClassifier
from .previews import PreviewRegistry
from .upload_errors import CropStateError
from .upload_models import CropJob, CropState, PendingFile

logger = logging.getLogger(__name__)

Dispatch = Callable[[Sequence[PendingFile], Sequence[str]], None]
Discard = Callable[[Sequence[str]], None]


@dataclass(slots=True)
class QueuedFile:
    """File waiting for its turn in the crop dialog.

    ``needs_crop`` is ``None`` until the file has been classified.
    """

    file: PendingFile
    slot_key: str
    needs_crop: bool | None = None


@dataclass(slots=True)
class CropCoordinator:
    """Show queued images in the crop dialog strictly in selection order.

    ``dispatch`` hands files and their reserved slot keys to the uploader,
    ``discard`` drops reserved slots of files that will never be uploaded.
    """

    classifier: AspectRatioClassifier
    previews: PreviewRegistry
    dispatch: Dispatch
    discard: Discard
    state: CropState = CropState.IDLE
    active: CropJob | None = None
    log: logging.Logger = field(default_factory=lambda: logger)
    _queue: deque[QueuedFile] = field(init=False, default_factory=deque)
    _generation: int = field(init=False, default=0)

    @property
    def pending_count(self) -> int:
        """Files still waiting behind the active job."""
        return len(self._queue)

    async def start(self, items: Iterable[QueuedFile]) -> None:
        """Queue a selection and show the first file that needs cropping."""
        if self.state is not CropState.IDLE:
            raise CropStateError("crop dialog is already open")
        self._queue.extend(items)
        if not self._queue:
            return
        self.state = CropState.AWAITING_CROP
        await self._advance()

    async def complete(self, cropped: PendingFile, job: CropJob | None = None) -> None:
        """Upload the cropped result for the active job and move on.

        When ``job`` is given it must still be the active job; a crop computed
        for an image that is no longer shown is refused.
        """
        active = self._require_active()
        if job is not None and job is not active:
            raise CropStateError("crop job is no longer active")
        job = active
        self.previews.release(job.preview)
        self.active = None
        self.log.info(
            "images.crop.completed",
            extra={"file_name": job.source.filename, "remaining": len(self._queue)},
        )
        self.dispatch([cropped], [job.slot_key])
        await self._advance()

    def cancel(self) -> None:
        """Close the dialog, dropping the active job and every queued file."""
        keys: list[str] = []
        if self.active is not None:
            self.previews.release(self.active.preview)
            keys.append(self.active.slot_key)
            self.active = None
        keys.extend(item.slot_key for item in self._queue)
        self._queue.clear()
        self._generation += 1
        self.state = CropState.IDLE
        self.log.info("images.crop.cancelled", extra={"discarded": len(keys)})
        if keys:
            self.discard(keys)

    def _require_active(self) -> CropJob:
        if self.active is None:
            raise CropStateError("no image is waiting for a crop")
        return self.active

    async def _advance(self) -> None:
        generation = self._generation
        ready: list[QueuedFile] = []
        while self._queue:
            item = self._queue.popleft()
            needs_crop = item.needs_crop
            if needs_crop is None:
                needs_crop = await self.classifier.needs_crop(item.file)
                if generation != self._generation:
                    # cancelled while measuring
                    self.discard([item.slot_key] + [entry.slot_key for entry in ready])
                    return
            if needs_crop:
                self._activate(item)
                break
            ready.append(item)

        if ready:
            self.dispatch([entry.file for entry in ready], [entry.slot_key for entry in ready])
        if self.active is None:
            self.state = CropState.IDLE

    def _activate(self, item: QueuedFile) -> None:
        self.active = CropJob(
            source=item.file,
            slot_key=item.slot_key,
            preview=self.previews.acquire(item.file),
        )
        self.state = CropState.AWAITING_CROP
        self.log.info(
            "images.crop.awaiting",
            extra={"file_name": item.file.filename, "queued": len(self._queue)},
        )
