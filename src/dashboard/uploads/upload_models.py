"""Data structures for the product image pipeline."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Sequence
from urllib.parse import urlparse

PLACEHOLDER_PREFIX = "uploading-"
TRANSIENT_SCHEMES = ("blob:", "data:", "file:")

FileIdentity = tuple[str, int, float]
BatchIdentity = tuple[FileIdentity, ...]


class SlotState(StrEnum):
    """States of one entry in the ordered image list."""

    EMPTY = "empty"
    PLACEHOLDER = "placeholder"
    RESOLVED = "resolved"
    USER_URL = "user_url"


class BatcherState(StrEnum):
    """Upload batcher states."""

    IDLE = "idle"
    BATCHING = "batching"


class CropState(StrEnum):
    """Crop coordinator states."""

    IDLE = "idle"
    AWAITING_CROP = "awaiting_crop"


def is_transient_reference(value: str) -> bool:
    """Return True for values that only make sense inside the current client."""
    lowered = value.strip().lower()
    return lowered.startswith(TRANSIENT_SCHEMES) or lowered.startswith(PLACEHOLDER_PREFIX)


def is_server_url(value: object) -> bool:
    """Accept absolute http(s) URLs and root-relative paths issued by the server."""
    if not isinstance(value, str) or not value.strip() or is_transient_reference(value):
        return False
    candidate = value.strip()
    if candidate.startswith("/") and not candidate.startswith("//"):
        return True
    parsed = urlparse(candidate)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


@dataclass(slots=True)
class PendingFile:
    """Image selected by the admin and not yet resolved."""

    filename: str
    content_type: str
    payload: bytes = field(repr=False)
    last_modified: float = field(default_factory=time.time)

    @property
    def size(self) -> int:
        return len(self.payload)

    @property
    def identity(self) -> FileIdentity:
        return (self.filename, self.size, self.last_modified)


def batch_identity(files: Sequence[PendingFile]) -> BatchIdentity:
    """Derive the de-duplication key of an ordered file set."""
    return tuple(item.identity for item in files)


def _new_key() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True, slots=True)
class ImageSlot:
    """One position of the image list.

    ``key`` addresses the slot independently of its index, so an upload that
    resolves after other edits still lands in the position it reserved.
    """

    state: SlotState
    value: str = ""
    key: str = field(default_factory=_new_key)

    @classmethod
    def empty(cls) -> "ImageSlot":
        return cls(SlotState.EMPTY)

    @classmethod
    def placeholder(cls) -> "ImageSlot":
        key = _new_key()
        return cls(SlotState.PLACEHOLDER, f"{PLACEHOLDER_PREFIX}{key}", key)

    @classmethod
    def resolved(cls, url: str) -> "ImageSlot":
        return cls(SlotState.RESOLVED, url)

    @classmethod
    def user_url(cls, url: str) -> "ImageSlot":
        if not url.strip():
            return cls.empty()
        return cls(SlotState.USER_URL, url.strip())

    @property
    def is_persistable(self) -> bool:
        if self.state not in (SlotState.RESOLVED, SlotState.USER_URL):
            return False
        return bool(self.value.strip()) and not is_transient_reference(self.value)


@dataclass(slots=True)
class PreviewHandle:
    """Locally displayable copy of a pending image."""

    preview_id: str
    content_type: str


@dataclass(slots=True)
class CropJob:
    """A file waiting for the admin to pick its square crop."""

    source: PendingFile
    slot_key: str
    preview: PreviewHandle


@dataclass(slots=True)
class CropArea:
    """Pixel rectangle chosen in the crop dialog."""

    x: int
    y: int
    width: int
    height: int


@dataclass(slots=True)
class UploadOutcome:
    """Result of one upload batch."""

    urls: list[str] = field(default_factory=list)
    rejected: list[PendingFile] = field(default_factory=list)
    skipped: bool = False
