"""FastAPI application entry point."""

from fastapi import FastAPI

from .config import DashboardSettings, load_settings
from .dependencies import include_routers
from .logging import configure_logging
from .uploads.storage import ImageStorageDriver


def create_app(
    settings: DashboardSettings | None = None,
    storage: ImageStorageDriver | None = None,
) -> FastAPI:
    """Build FastAPI instance with configured dependencies."""
    cfg = settings or load_settings()
    configure_logging(cfg)
    app = FastAPI(title="Shop Admin Images")
    include_routers(app, cfg, storage)
    return app


app = create_app()
