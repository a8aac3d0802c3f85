"""Abstract image storage driver definition."""

from abc import ABC, abstractmethod
from typing import Sequence

from .upload_models import PendingFile


class ImageStorageDriver(ABC):
    """Interface of the service that hosts product images."""

    @abstractmethod
    async def upload_one(self, file: PendingFile) -> str:
        """Upload a single file and return its public URL."""

    @abstractmethod
    async def upload_many(self, files: Sequence[PendingFile]) -> list[str]:
        """Upload several files; URLs come back in the order of ``files``."""

    @abstractmethod
    async def delete_image(self, url: str) -> bool:
        """Delete a hosted image. A missing image counts as deleted."""
