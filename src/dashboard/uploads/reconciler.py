"""Ordered image list backing the product form."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field

import structlog

from .storage import ImageStorageDriver
from .upload_errors import DeleteError
from .upload_models import ImageSlot, SlotState

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class ImageListReconciler:
    """Single source of truth for the image slots of one form.

    Values passed as ``initial`` are treated as pre-existing server images:
    they are shown and submitted but never deleted remotely. Only URLs that
    this instance uploaded itself (``session_uploads``) are cleaned up on
    removal.
    """

    storage: ImageStorageDriver
    initial: Sequence[str] = ()
    on_change: Callable[[list[str]], None] | None = None
    session_uploads: set[str] = field(default_factory=set)
    _slots: list[ImageSlot] = field(init=False, default_factory=list)
    _original: frozenset[str] = field(init=False, default=frozenset())

    def __post_init__(self) -> None:
        self._original = frozenset(value for value in self.initial if value)
        self._slots = [
            ImageSlot.resolved(value) if value else ImageSlot.empty() for value in self.initial
        ]

    @property
    def slots(self) -> tuple[ImageSlot, ...]:
        return tuple(self._slots)

    @property
    def values(self) -> list[str]:
        """Slot values in display order, placeholders included."""
        return [slot.value for slot in self._slots]

    def __len__(self) -> int:
        return len(self._slots)

    def append(self, value: str = "") -> ImageSlot:
        """Add a manually entered URL slot (an empty one when ``value`` is blank)."""
        slot = ImageSlot.user_url(value)
        self._slots.append(slot)
        self._changed()
        return slot

    def update(self, index: int, value: str) -> ImageSlot:
        """Replace the text of a URL slot."""
        current = self._slots[index]
        if current.state is SlotState.PLACEHOLDER:
            raise ValueError(f"slot {index} is still uploading")
        slot = ImageSlot.user_url(value)
        self._slots[index] = slot
        self._changed()
        return slot

    async def remove(self, index: int) -> None:
        """Remove a slot, deleting the hosted image if this session uploaded it.

        Remote deletion is best effort: failures are logged and the slot is
        removed from the list regardless.
        """
        slot = self._slots[index]
        try:
            if self._owns(slot):
                await self._delete_remote(slot.value)
        finally:
            self._drop_keys({slot.key})

    async def release_orphan(self, url: str) -> None:
        """Delete an uploaded image whose slot disappeared before it resolved."""
        logger.info("images.upload.orphaned", url=url)
        self.session_uploads.add(url)
        await self._delete_remote(url)

    def reserve(self, count: int, at: int | None = None) -> list[str]:
        """Insert ``count`` placeholders at ``at`` (default: the end) and return their keys."""
        placeholders = [ImageSlot.placeholder() for _ in range(count)]
        position = len(self._slots) if at is None else max(0, min(at, len(self._slots)))
        self._slots[position:position] = placeholders
        if placeholders:
            self._changed()
        return [slot.key for slot in placeholders]

    def resolve(self, key: str, url: str) -> bool:
        """Turn the placeholder ``key`` into a resolved slot; False if it was removed."""
        for position, slot in enumerate(self._slots):
            if slot.key == key and slot.state is SlotState.PLACEHOLDER:
                self._slots[position] = ImageSlot(SlotState.RESOLVED, url, key)
                self.session_uploads.add(url)
                self._changed()
                return True
        return False

    def discard(self, keys: Iterable[str]) -> None:
        """Remove placeholders (rollback of failed or cancelled uploads)."""
        wanted = set(keys)
        self._drop_keys(
            {
                slot.key
                for slot in self._slots
                if slot.key in wanted and slot.state is SlotState.PLACEHOLDER
            }
        )

    def finalize(self) -> list[str] | None:
        """Return persistable values for submission, or ``None`` when there are none."""
        values = [slot.value for slot in self._slots if slot.is_persistable]
        return values or None

    def _owns(self, slot: ImageSlot) -> bool:
        return (
            slot.state is SlotState.RESOLVED
            and slot.value in self.session_uploads
            and slot.value not in self._original
        )

    async def _delete_remote(self, url: str) -> None:
        try:
            deleted = await self.storage.delete_image(url)
        except DeleteError as exc:
            logger.warning("images.delete.failed", url=url, reason=exc.reason)
            return
        if deleted:
            self.session_uploads.discard(url)
            logger.info("images.delete.done", url=url)
        else:
            logger.warning("images.delete.refused", url=url)

    def _drop_keys(self, keys: set[str]) -> None:
        if not keys:
            return
        before = len(self._slots)
        self._slots = [slot for slot in self._slots if slot.key not in keys]
        if len(self._slots) != before:
            self._changed()

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change(self.values)
