"""Product form ``images`` field wired to the upload pipeline."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from .batcher import UploadBatcher
from .classifier import AspectRatioClassifier
from .crop_coordinator import CropCoordinator, QueuedFile
from .cropping import apply_crop
from .previews import PreviewRegistry
from .reconciler import ImageListReconciler
from .storage import ImageStorageDriver
from .upload_errors import CropStateError, PipelineBusyError, UploadError
from .upload_models import CropArea, CropJob, CropState, PendingFile

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ProductImageField:
    """Form-facing facade over classification, cropping, uploads and the slot list.

    Uploads run as background tasks on the current event loop; their failures
    become user notifications instead of exceptions. ``wait_settled`` awaits
    whatever is still in flight.
    """

    storage: ImageStorageDriver
    initial: Sequence[str] = ()
    on_change: Callable[[list[str]], None] | None = None
    notify: Callable[[str], None] | None = None
    square_tolerance: float = 0.05
    notifications: list[str] = field(default_factory=list)
    images: ImageListReconciler = field(init=False)
    batcher: UploadBatcher = field(init=False)
    crop: CropCoordinator = field(init=False)
    previews: PreviewRegistry = field(init=False)
    log: logging.Logger = field(default_factory=lambda: logger)
    _classifier: AspectRatioClassifier = field(init=False)
    _tasks: set[asyncio.Task[None]] = field(init=False, default_factory=set)
    _selecting: bool = field(init=False, default=False)
    _confirming: CropJob | None = field(init=False, default=None)

    def __post_init__(self) -> None:
        self.images = ImageListReconciler(
            storage=self.storage, initial=self.initial, on_change=self.on_change
        )
        self.batcher = UploadBatcher(storage=self.storage, images=self.images)
        self.previews = PreviewRegistry()
        self._classifier = AspectRatioClassifier(tolerance=self.square_tolerance)
        self.crop = CropCoordinator(
            classifier=self._classifier,
            previews=self.previews,
            dispatch=self._dispatch,
            discard=self.images.discard,
        )

    @property
    def values(self) -> list[str]:
        return self.images.values

    @property
    def busy(self) -> bool:
        return (
            self._selecting
            or bool(self._tasks)
            or self.batcher.busy
            or self.crop.state is not CropState.IDLE
        )

    @property
    def accepting_files(self) -> bool:
        """Whether the file input is enabled."""
        return not self.busy

    @property
    def active_crop(self) -> CropJob | None:
        return self.crop.active

    async def files_selected(self, files: Sequence[PendingFile]) -> None:
        """Handle a file-picker selection.

        Square images are uploaded right away as one batch; the others go
        through the crop dialog one by one. Every file gets its slot now, in
        selection order.
        """
        if self.busy:
            self.log.info("images.selection.rejected", extra={"count": len(files)})
            raise PipelineBusyError("previous selection is still being processed")
        if not files:
            return

        self._selecting = True
        try:
            keys = self.images.reserve(len(files))
            ready: list[tuple[PendingFile, str]] = []
            to_crop: list[QueuedFile] = []
            for file, key in zip(files, keys):
                if await self._classifier.needs_crop(file):
                    to_crop.append(QueuedFile(file, key, needs_crop=True))
                else:
                    ready.append((file, key))
            self.log.info(
                "images.selection.classified",
                extra={"ready": len(ready), "to_crop": len(to_crop)},
            )
            if ready:
                self._dispatch([file for file, _ in ready], [key for _, key in ready])
            if to_crop:
                await self.crop.start(to_crop)
        finally:
            self._selecting = False

    async def crop_completed(self, cropped: PendingFile) -> None:
        await self.crop.complete(cropped)

    async def crop_area_confirmed(self, area: CropArea) -> None:
        """Crop the active image to ``area`` and upload the result."""
        job = self.crop.active
        if job is None:
            raise CropStateError("no image is waiting for a crop")
        if job is self._confirming:
            raise CropStateError("crop of this image is already being applied")
        self._confirming = job
        try:
            cropped = await asyncio.to_thread(apply_crop, job.source, area)
            await self.crop.complete(cropped, job)
        finally:
            if self._confirming is job:
                self._confirming = None

    def crop_cancelled(self) -> None:
        self.crop.cancel()

    async def slot_removed(self, index: int) -> None:
        await self.images.remove(index)

    def url_slot_added(self, value: str = "") -> None:
        self.images.append(value)

    def url_slot_edited(self, index: int, value: str) -> None:
        self.images.update(index, value)

    def finalize(self) -> list[str] | None:
        return self.images.finalize()

    async def wait_settled(self) -> None:
        """Wait until no upload task is running."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def close(self) -> None:
        """Cancel the crop dialog, releasing previews. Running uploads finish on their own."""
        if self.crop.state is not CropState.IDLE:
            self.crop.cancel()

    def _dispatch(self, files: Sequence[PendingFile], keys: Sequence[str]) -> None:
        task = asyncio.get_running_loop().create_task(self._upload(list(files), list(keys)))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _upload(self, files: list[PendingFile], keys: list[str]) -> None:
        try:
            outcome = await self.batcher.submit_into(files, keys)
        except UploadError as exc:
            self._notify(f"Image upload failed: {exc.reason}")
            return
        except Exception as exc:
            self.log.exception(
                "images.upload.unexpected_error",
                extra={"files": [item.filename for item in files]},
            )
            self._notify(f"Image upload failed: {exc}")
            return
        if outcome.rejected:
            names = ", ".join(item.filename for item in outcome.rejected)
            self._notify(f"Server returned an invalid address for: {names}")

    def _notify(self, message: str) -> None:
        self.notifications.append(message)
        self.log.warning("images.notify", extra={"user_message": message})
        if self.notify is not None:
            self.notify(message)
