"""In-memory registry of open product image sessions."""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field

import structlog

from .image_field import ProductImageField
from .storage import ImageStorageDriver

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class ImageSessionRegistry:
    """Keep one :class:`ProductImageField` per open product form."""

    storage: ImageStorageDriver
    square_tolerance: float = 0.05
    _sessions: dict[str, ProductImageField] = field(default_factory=dict)

    def create(self, initial: Sequence[str] = ()) -> tuple[str, ProductImageField]:
        session_id = uuid.uuid4().hex
        image_field = ProductImageField(
            storage=self.storage,
            initial=list(initial),
            square_tolerance=self.square_tolerance,
        )
        self._sessions[session_id] = image_field
        logger.info("images.session.created", session_id=session_id, initial=len(initial))
        return session_id, image_field

    def get(self, session_id: str) -> ProductImageField:
        """Return the session; raises ``KeyError`` when unknown."""
        return self._sessions[session_id]

    def drop(self, session_id: str) -> None:
        image_field = self._sessions.pop(session_id)
        image_field.close()
        logger.info("images.session.dropped", session_id=session_id)

    def __len__(self) -> int:
        return len(self._sessions)
