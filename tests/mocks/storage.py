"""In-memory image storage used by pipeline tests."""

from __future__ import annotations

import asyncio
from typing import Sequence

from src.dashboard.uploads.storage import ImageStorageDriver
from src.dashboard.uploads.upload_errors import DeleteError, UploadError
from src.dashboard.uploads.upload_models import PendingFile

CDN_BASE_URL = "https://cdn.shop.test/uploads"


class FakeStorage(ImageStorageDriver):
    """Record calls and answer with deterministic CDN URLs.

    ``gates`` maps a filename to an event the upload waits on, which lets a
    test hold an upload in flight. ``fail_uploads`` lists filenames whose
    upload raises :class:`UploadError`.
    """

    def __init__(self) -> None:
        self.upload_one_calls: list[str] = []
        self.upload_many_calls: list[list[str]] = []
        self.deleted: list[str] = []
        self.fail_uploads: set[str] = set()
        self.gates: dict[str, asyncio.Event] = {}
        self.url_overrides: dict[str, str] = {}
        self.delete_result = True
        self.delete_error: str | None = None
        self._counter = 0

    @property
    def network_calls(self) -> int:
        return len(self.upload_one_calls) + len(self.upload_many_calls)

    async def upload_one(self, file: PendingFile) -> str:
        self.upload_one_calls.append(file.filename)
        return await self._store(file)

    async def upload_many(self, files: Sequence[PendingFile]) -> list[str]:
        self.upload_many_calls.append([file.filename for file in files])
        return [await self._store(file) for file in files]

    async def delete_image(self, url: str) -> bool:
        self.deleted.append(url)
        if self.delete_error is not None:
            raise DeleteError(self.delete_error)
        return self.delete_result

    async def _store(self, file: PendingFile) -> str:
        gate = self.gates.get(file.filename)
        if gate is not None:
            await gate.wait()
        if file.filename in self.fail_uploads:
            raise UploadError(f"storage rejected {file.filename}")
        if file.filename in self.url_overrides:
            return self.url_overrides[file.filename]
        self._counter += 1
        return f"{CDN_BASE_URL}/{self._counter}-{file.filename}"
