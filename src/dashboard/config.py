"""Dashboard configuration.

Values come from ``DASHBOARD_*`` environment variables. The defaults target a
local backend on ``localhost:3000`` whose REST API is mounted under ``/api``.
"""

from __future__ import annotations

from typing import Tuple

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONTENT_TYPES: Tuple[str, ...] = (
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
)


class DashboardSettings(BaseSettings):
    """Settings for the storage driver and the image pipeline."""

    model_config = SettingsConfigDict(env_prefix="DASHBOARD_")

    api_base_url: str = Field(
        default="http://localhost:3000/api",
        description="Base URL of the shop REST API, including the /api prefix.",
    )
    api_token: str | None = Field(
        default=None,
        description="Bearer token of the signed-in admin.",
    )
    upload_endpoint: str = Field(default="/admin/upload")
    upload_many_endpoint: str = Field(default="/admin/upload/multiple")
    delete_endpoint: str = Field(default="/admin/upload/delete")
    request_timeout_seconds: float = Field(default=30.0, gt=0)
    max_upload_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1,
        description="Largest image accepted before any network call.",
    )
    allowed_content_types: Tuple[str, ...] = Field(default=DEFAULT_CONTENT_TYPES)
    square_tolerance: float = Field(
        default=0.05,
        ge=0,
        lt=1,
        description="Allowed deviation of width/height from 1.0 for a square image.",
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level name (DEBUG, INFO, WARNING, ...).",
    )
    log_json: bool = Field(
        default=True,
        description="Render structlog events as JSON; console output otherwise.",
    )

    @property
    def api_origin(self) -> str:
        """Return the API base URL without its trailing ``/api`` segment."""

        base = self.api_base_url.rstrip("/")
        if base.endswith("/api"):
            return base[: -len("/api")]
        return base


def load_settings() -> DashboardSettings:
    """Load settings from the environment."""

    return DashboardSettings()
