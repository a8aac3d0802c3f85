"""Logging configuration for the admin dashboard."""

from __future__ import annotations

import logging

import structlog

from .config import DashboardSettings

# Third-party loggers that are noisy below WARNING.
_CHATTY_LOGGERS = ("httpx", "httpcore", "PIL")


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"unknown log level: {name!r}")
    return level


def configure_logging(settings: DashboardSettings | None = None) -> None:
    """Set up stdlib logging and the structlog pipeline from dashboard settings."""
    cfg = settings or DashboardSettings()
    level = _resolve_level(cfg.log_level)

    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s %(message)s")
    logging.getLogger().setLevel(level)
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    renderer = (
        structlog.processors.JSONRenderer()
        if cfg.log_json
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
