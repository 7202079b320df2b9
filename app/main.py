from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI

from app.config import get_llm_settings, load_env_files


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Log the active LLM adapter on boot."""
    settings = get_llm_settings()
    logging.getLogger(__name__).info(
        "DataPulse API started adapter=%s model=%s", settings.adapter, settings.model
    )
    try:
        yield
    finally:
        logging.getLogger(__name__).info("DataPulse API stopped")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    load_env_files()
    _configure_logging()

    application = FastAPI(
        title="DataPulse API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import (
        business_rules_router,
        clean_and_score_router,
        google_sheets_router,
        summary_router,
    )

    application.include_router(clean_and_score_router)
    application.include_router(google_sheets_router)
    application.include_router(business_rules_router)
    application.include_router(summary_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
