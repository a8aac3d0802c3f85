"""Serialized, de-duplicated image uploads."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from .reconciler import ImageListReconciler
from .storage import ImageStorageDriver
from .upload_errors import InvalidResponseError
from .upload_models import (
    BatchIdentity,
    BatcherState,
    PendingFile,
    UploadOutcome,
    batch_identity,
    is_server_url,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class UploadBatcher:
    """Post files to storage one batch at a time.

    A batch whose identity is already in flight is skipped; any other batch
    waits for the running one to finish. Placeholders are written before the
    first await so the list shows progress immediately.
    """

    storage: ImageStorageDriver
    images: ImageListReconciler
    state: BatcherState = BatcherState.IDLE
    current: BatchIdentity | None = None
    log: logging.Logger = field(default_factory=lambda: logger)
    _in_flight: set[BatchIdentity] = field(init=False, default_factory=set)
    _lock: asyncio.Lock = field(init=False, default_factory=asyncio.Lock)

    @property
    def busy(self) -> bool:
        return bool(self._in_flight)

    def is_in_flight(self, files: Sequence[PendingFile]) -> bool:
        return batch_identity(files) in self._in_flight

    async def submit(
        self, files: Sequence[PendingFile], start_index: int | None = None
    ) -> UploadOutcome:
        """Upload ``files`` into new slots inserted at ``start_index``."""
        if not files:
            return UploadOutcome()
        identity = batch_identity(files)
        if identity in self._in_flight:
            self._log_duplicate(files)
            return UploadOutcome(skipped=True)
        keys = self.images.reserve(len(files), at=start_index)
        return await self._run(list(files), keys, identity)

    async def submit_into(
        self, files: Sequence[PendingFile], slot_keys: Sequence[str]
    ) -> UploadOutcome:
        """Upload ``files`` into placeholders reserved earlier (crop path, selections)."""
        if len(files) != len(slot_keys):
            raise ValueError("files and slot_keys must have the same length")
        if not files:
            return UploadOutcome()
        identity = batch_identity(files)
        if identity in self._in_flight:
            self._log_duplicate(files)
            self.images.discard(slot_keys)
            return UploadOutcome(skipped=True)
        return await self._run(list(files), list(slot_keys), identity)

    async def _run(
        self, files: list[PendingFile], keys: list[str], identity: BatchIdentity
    ) -> UploadOutcome:
        self._in_flight.add(identity)
        settled = False
        try:
            async with self._lock:
                self.state = BatcherState.BATCHING
                self.current = identity
                try:
                    self.log.info("images.batch.started", extra={"count": len(files)})
                    urls = await self._upload(files)
                    outcome = await self._apply(files, keys, urls)
                    settled = True
                finally:
                    self.state = BatcherState.IDLE
                    self.current = None
        except Exception as exc:
            self.log.warning(
                "images.batch.failed",
                extra={"count": len(files), "error": str(exc)},
            )
            raise
        finally:
            if not settled:
                self.images.discard(keys)
            self._in_flight.discard(identity)

        self.log.info(
            "images.batch.completed",
            extra={"uploaded": len(outcome.urls), "rejected": len(outcome.rejected)},
        )
        return outcome

    async def _upload(self, files: list[PendingFile]) -> list[str]:
        if len(files) == 1:
            return [await self.storage.upload_one(files[0])]
        urls = await self.storage.upload_many(files)
        if len(urls) != len(files):
            raise InvalidResponseError(
                f"storage returned {len(urls)} URLs for {len(files)} files"
            )
        return list(urls)

    async def _apply(
        self, files: list[PendingFile], keys: list[str], urls: list[str]
    ) -> UploadOutcome:
        outcome = UploadOutcome()
        for file, key, url in zip(files, keys, urls):
            if not is_server_url(url):
                self.log.warning(
                    "images.batch.invalid_url",
                    extra={"file_name": file.filename, "url": str(url)},
                )
                self.images.discard([key])
                outcome.rejected.append(file)
                continue
            if self.images.resolve(key, url):
                outcome.urls.append(url)
            else:
                await self.images.release_orphan(url)
        return outcome

    def _log_duplicate(self, files: Sequence[PendingFile]) -> None:
        self.log.info(
            "images.batch.duplicate_skipped",
            extra={"files": [item.filename for item in files]},
        )
