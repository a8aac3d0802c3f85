"""Dependency wiring helpers."""

from fastapi import FastAPI

from .catalog.catalog_api import router as catalog_router
from .config import DashboardSettings
from .uploads.session_registry import ImageSessionRegistry
from .uploads.storage import ImageStorageDriver
from .uploads.upload_api import router as product_images_router
from .uploads.upload_client import HttpImageStorage


def include_routers(
    app: FastAPI,
    settings: DashboardSettings,
    storage: ImageStorageDriver | None = None,
) -> None:
    """Mount module routers and attach services."""
    driver = storage or HttpImageStorage(settings=settings)

    app.state.settings = settings
    app.state.image_storage = driver
    app.state.image_sessions = ImageSessionRegistry(
        storage=driver,
        square_tolerance=settings.square_tolerance,
    )

    app.include_router(product_images_router)
    app.include_router(catalog_router)
