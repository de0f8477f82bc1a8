from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from app.api import router
from app.web import router as web_router
from logging_config import configure_logging
from services.query import build_default_query_service
from settings import get_settings

logger = logging.getLogger(__name__)

ENDPOINTS = (
    ("GET /api/latest", "Latest data from all locations"),
    ("GET /api/history/{location}", "Historical data"),
    ("GET /api/status", "Overall system status"),
    ("GET /api/health", "Health check"),
)


def log_endpoint_table(port: int) -> None:
    rule = "=" * 60
    logger.info(rule)
    logger.info("Skateway Monitor")
    logger.info("Dashboard: http://localhost:%d", port)
    logger.info("API endpoints:")
    for route, description in ENDPOINTS:
        logger.info("  - %s - %s", route, description)
    logger.info(rule)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    service = build_default_query_service()
    log_endpoint_table(get_settings().port)
    try:
        yield
    finally:
        service.shutdown()
        build_default_query_service.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Skateway Monitor",
        description="Ice-safety conditions for skating routes from windowed sensor aggregates.",
        version="0.1.0",
        lifespan=lifespan,
    )
    static_dir = Path(__file__).resolve().parent.parent / "static"
    app.mount("/static", StaticFiles(directory=static_dir), name="static")
    app.include_router(router)
    app.include_router(web_router)
    return app


def run() -> None:
    """Serve the application on the configured port."""
    settings = get_settings()
    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.port, log_config=None)


app = create_app()
