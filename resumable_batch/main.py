"""Entry points for running the FastAPI application."""

from __future__ import annotations

import logging

from fastapi import FastAPI

from .api.routes import router as api_router
from .config import get_settings
from .logging_utils import configure_logging
from .monitoring.metrics import metrics_router

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_file, settings.log_level)

    app = FastAPI(title="Resumable Batch", version="0.1.0")
    app.include_router(api_router, prefix="/api")

    if settings.enable_metrics:
        app.include_router(metrics_router)

    logger.info("Created operator API", extra={"environment": settings.environment})
    return app


__all__ = ["create_app"]
